from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime
from enum import Enum

class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

class ThreadMessage(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())

    id: str
    role: MessageRole
    content: str
    timestamp: datetime
    model: Optional[str] = None  # Backend model that produced an assistant message

class Thread(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    messages: List[ThreadMessage] = Field(default_factory=list)
