from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, field_validator, model_validator
from pydantic.alias_generators import to_camel


class MessageType(str, Enum):
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    FILE = "FILE"


class ViewerRole(str, Enum):
    CANDIDATE = "CANDIDATE"
    EMPLOYER = "EMPLOYER"
    ADMIN = "ADMIN"


class WireModel(BaseModel):
    """Base for payloads exchanged with the job-portal API (camelCase on the wire)."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"


def _as_optional_str(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value)
    return text or None


class Message(WireModel):
    id: str | None = None
    chat_id: str | None = None
    sender_id: str | None = None
    content: str = ""
    # Kept as the raw wire string so unknown types still render as text.
    message_type: str = MessageType.TEXT.value
    created_at: Any = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_wire_shape(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if data.get("id") is None and data.get("_id") is not None:
            data["id"] = data["_id"]
        sender = data.get("sender")
        if data.get("senderId") is None and data.get("sender_id") is None and isinstance(sender, dict):
            data["senderId"] = sender.get("id")
        return data

    @field_validator("id", "chat_id", "sender_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> Optional[str]:
        return _as_optional_str(value)

    @field_validator("content", mode="before")
    @classmethod
    def _coerce_content(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("message_type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> str:
        if isinstance(value, MessageType):
            return value.value
        if value is None:
            return MessageType.TEXT.value
        return str(value)


class ParticipantUser(WireModel):
    id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    profile_image: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Optional[str]:
        return _as_optional_str(value)


class Participant(WireModel):
    id: str | None = None
    company_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    profile_image: str | None = None
    user: ParticipantUser | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Optional[str]:
        return _as_optional_str(value)


class Chat(WireModel):
    id: str
    candidate: Participant | None = None
    employer: Participant | None = None
    other_participant: Participant | None = None
    last_message: Message | None = None
    last_message_at: Any = None
    unread_count: int = 0

    @model_validator(mode="before")
    @classmethod
    def _resolve_participants(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        application = data.get("application")
        if isinstance(application, dict):
            if data.get("candidate") is None:
                data["candidate"] = application.get("candidate")
            job = application.get("job")
            if data.get("employer") is None and isinstance(job, dict):
                data["employer"] = job.get("employer")
        if data.get("unreadCount") is None and data.get("unread_count") is None:
            data["unreadCount"] = 0
        return data

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        return str(value)


class ChatSummary(BaseModel):
    chat_id: str
    display_name: str
    avatar_letter: str
    avatar_image: str | None = None
    preview: str = ""
    timestamp_label: str = ""
    unread_badge: str | None = None


class ChatInfo(BaseModel):
    display_name: str = "Chat"
    avatar_letter: str = "?"
    avatar_image: str | None = None

