from enum import Enum

from pydantic import BaseModel

from jobchat.schemas.chat import MessageType


class AttachmentSource(str, Enum):
    CAMERA = "camera"
    LIBRARY = "library"
    FILE_PICKER = "file_picker"


class PickedAttachment(BaseModel):
    local_uri: str
    mime_type: str | None = None
    file_name: str | None = None
    source: AttachmentSource = AttachmentSource.LIBRARY

    @property
    def kind(self) -> MessageType:
        if self.source == AttachmentSource.FILE_PICKER:
            return MessageType.FILE
        return MessageType.IMAGE


class AttachmentUploadResult(BaseModel):
    remote_url: str
    mime_type: str
    name: str | None = None


class UploadOutcome(BaseModel):
    result: AttachmentUploadResult | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None and self.error is None
