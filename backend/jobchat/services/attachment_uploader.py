import asyncio
import logging
import os
from typing import Optional
from urllib.parse import unquote, urlparse

from jobchat.schemas.attachment import (
    AttachmentSource,
    AttachmentUploadResult,
    PickedAttachment,
    UploadOutcome,
)
from jobchat.schemas.chat import MessageType
from jobchat.services.api_client import ApiClient

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/jpeg"
DEFAULT_DOCUMENT_MIME = "application/octet-stream"
DEFAULT_DOCUMENT_NAME = "document"

ALLOWED_DOCUMENT_MIME_TYPES = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/plain",
)


def classify_source(picked: PickedAttachment) -> MessageType:
    """Camera and photo-library picks are images; file-picker picks are documents."""
    return MessageType.FILE if picked.source == AttachmentSource.FILE_PICKER else MessageType.IMAGE


def image_extension(mime_type: str) -> str:
    if "png" in mime_type:
        return "png"
    if "gif" in mime_type:
        return "gif"
    if "webp" in mime_type:
        return "webp"
    return "jpg"


def local_path(local_uri: str) -> str:
    if local_uri.startswith("file://"):
        return unquote(urlparse(local_uri).path)
    return local_uri


def _read_file(path: str) -> Optional[bytes]:
    if not os.path.isfile(path):
        return None
    with open(path, "rb") as f:
        return f.read()


class AttachmentUploader:
    """Uploads locally picked images and documents to the chat attachment store.

    One multipart request per call and no retries. Failures come back as an
    `UploadOutcome` with a human-readable error; chat state is never touched.
    """

    def __init__(self, api: ApiClient):
        self.api = api

    async def _load(self, local_uri: str) -> tuple[Optional[bytes], Optional[str]]:
        try:
            content = await asyncio.to_thread(_read_file, local_path(local_uri))
        except OSError as e:
            logger.warning("attachment_read_failed", extra={"extra": {"error": str(e)}})
            return None, "Could not read file"
        if content is None:
            return None, "File not found"
        return content, None

    async def upload_image(self, local_uri: str, mime_type: Optional[str] = None) -> UploadOutcome:
        mime_type = mime_type or DEFAULT_IMAGE_MIME
        content, read_error = await self._load(local_uri)
        if content is None:
            return UploadOutcome(error=read_error)

        res = await self.api.upload_chat_image(
            content, mime_type, f"chat-image.{image_extension(mime_type)}"
        )
        return self._outcome(res.success, res.data, res.error, mime_type, "Failed to upload image")

    async def upload_document(
        self,
        local_uri: str,
        mime_type: Optional[str] = None,
        file_name: Optional[str] = None,
    ) -> UploadOutcome:
        mime_type = mime_type or DEFAULT_DOCUMENT_MIME
        content, read_error = await self._load(local_uri)
        if content is None:
            return UploadOutcome(error=read_error)

        res = await self.api.upload_chat_document(
            content, mime_type, file_name or DEFAULT_DOCUMENT_NAME
        )
        return self._outcome(res.success, res.data, res.error, mime_type, "Failed to upload document")

    async def upload(self, picked: PickedAttachment) -> UploadOutcome:
        if classify_source(picked) == MessageType.FILE:
            return await self.upload_document(picked.local_uri, picked.mime_type, picked.file_name)
        return await self.upload_image(picked.local_uri, picked.mime_type)

    def _outcome(
        self,
        success: bool,
        data: Optional[dict],
        error: Optional[str],
        mime_type: str,
        fallback: str,
    ) -> UploadOutcome:
        url = data.get("url") if success and isinstance(data, dict) else None
        if not url:
            logger.warning(
                "attachment_upload_failed",
                extra={"extra": {"mime": mime_type, "error": error}},
            )
            return UploadOutcome(error=error or fallback)

        logger.info("attachment_uploaded", extra={"extra": {"mime": mime_type}})
        return UploadOutcome(
            result=AttachmentUploadResult(remote_url=url, mime_type=mime_type, name=data.get("name"))
        )
