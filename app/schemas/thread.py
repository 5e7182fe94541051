from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional
from app.models.thread import MessageRole, Thread, ThreadMessage

class MessageCreate(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    role: MessageRole
    content: str
    model: Optional[str] = None

class AddMessageRequest(BaseModel):
    """Body of POST /threads/{id}/messages; presence is checked by the endpoint"""
    model_config = ConfigDict(protected_namespaces=())

    role: Optional[MessageRole] = None
    content: Optional[str] = None
    model: Optional[str] = None

class ThreadCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: Optional[str] = None
    initial_message: Optional[MessageCreate] = None

class ThreadUpdate(BaseModel):
    title: Optional[str] = None

class ThreadResponse(BaseModel):
    thread: Thread

class ThreadListResponse(BaseModel):
    threads: List[Thread]

class MessageResponse(BaseModel):
    message: ThreadMessage

class DeleteResponse(BaseModel):
    success: bool = True
