from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from jobchat.schemas.chat import Message


class RenderVariant(str, Enum):
    TEXT = "text"
    INLINE_IMAGE = "inline_image"
    REMOTE_IMAGE = "remote_image"
    REMOTE_FILE = "remote_file"
    LOCALIZED_FILE = "localized_file"
    UNSUPPORTED_ATTACHMENT = "unsupported_attachment"


class RenderDescriptor(BaseModel):
    variant: RenderVariant
    source: str
    label: str | None = None

    @property
    def is_image(self) -> bool:
        return self.variant in (RenderVariant.INLINE_IMAGE, RenderVariant.REMOTE_IMAGE)

    @property
    def is_openable(self) -> bool:
        return self.variant in (RenderVariant.REMOTE_FILE, RenderVariant.LOCALIZED_FILE)


class DateSeparatorItem(BaseModel):
    type: Literal["date"] = "date"
    key: str
    label: str


class MessageItem(BaseModel):
    type: Literal["message"] = "message"
    key: str
    message: Message


RenderItem = Annotated[Union[DateSeparatorItem, MessageItem], Field(discriminator="type")]
