from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Annotated, List, Literal, Optional, Union
from app.models.thread import MessageRole

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

# Message parts sent by the client

class TextPart(_CamelModel):
    type: Literal["text"] = "text"
    text: str = ""

class ReasoningPart(_CamelModel):
    type: Literal["reasoning"] = "reasoning"
    text: str = ""

class SourceUrlPart(_CamelModel):
    type: Literal["source-url"] = "source-url"
    url: str
    source_id: Optional[str] = None
    title: Optional[str] = None

class OtherPart(BaseModel):
    """Any part type the relay does not interpret (files, tool calls, ...)"""
    model_config = ConfigDict(extra="allow")

    type: str

MessagePart = Annotated[
    Union[TextPart, ReasoningPart, SourceUrlPart, OtherPart],
    Field(union_mode="left_to_right"),
]

def parts_to_flat_text(parts: List[MessagePart]) -> str:
    """Concatenate the text parts of a message, in order. Other part types are dropped."""
    return "".join(part.text for part in parts if isinstance(part, TextPart))

class UIMessage(_CamelModel):
    id: Optional[str] = None
    role: MessageRole = MessageRole.USER
    parts: List[MessagePart] = Field(default_factory=list)

class ChatRequest(_CamelModel):
    thread_id: Optional[str] = None
    message: UIMessage
    model: Optional[str] = Field(None, description="Display name of the requested model")
    web_search: bool = False

# Events streamed back to the client

class TextDeltaEvent(_CamelModel):
    type: Literal["text-delta"] = "text-delta"
    delta: str

class ReasoningDeltaEvent(_CamelModel):
    type: Literal["reasoning-delta"] = "reasoning-delta"
    delta: str

class SourceUrlEvent(_CamelModel):
    type: Literal["source-url"] = "source-url"
    source_id: str
    url: str
    title: Optional[str] = None

class DoneEvent(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())

    type: Literal["done"] = "done"
    thread_id: Optional[str] = None
    message_id: Optional[str] = None
    model: str

StreamEvent = Union[TextDeltaEvent, ReasoningDeltaEvent, SourceUrlEvent, DoneEvent]
