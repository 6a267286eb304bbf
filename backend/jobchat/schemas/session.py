from pydantic import BaseModel

from jobchat.schemas.chat import ChatInfo
from jobchat.schemas.render import RenderDescriptor, RenderItem


class DraftUpdate(BaseModel):
    text: str = ""


class ChatSessionResponse(BaseModel):
    chat_id: str
    state: str
    draft: str
    can_send: bool
    info: ChatInfo
    message_count: int
    has_more: bool
    history_state: str = "idle"
    last_error: str | None = None
    pending_attachment: bool = False


class TimelineResponse(BaseModel):
    chat_id: str
    items: list[RenderItem]
    renders: dict[str, RenderDescriptor]


class DocumentResolveRequest(BaseModel):
    content: str


class DocumentResolveResponse(BaseModel):
    uri: str
