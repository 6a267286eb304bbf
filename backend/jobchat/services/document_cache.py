import asyncio
import base64
import binascii
import logging
import os
import re
import time
import uuid
from pathlib import Path
from typing import Optional

from jobchat.config import settings
from jobchat.errors import MalformedDataUri
from jobchat.services.ports import DocumentOpener

logger = logging.getLogger(__name__)

DATA_URI_RE = re.compile(r"^data:([^;]+);base64,(.+)$", re.DOTALL)


def decode_data_uri(data_uri: str) -> tuple[str, bytes]:
    """Split a `data:<mime>;base64,<payload>` string into its MIME type and bytes."""
    if not isinstance(data_uri, str):
        raise MalformedDataUri("Content is not a string")
    match = DATA_URI_RE.match(data_uri)
    if not match:
        raise MalformedDataUri()
    mime, payload = match.group(1), match.group(2)
    try:
        return mime, base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedDataUri(f"Invalid base64 payload: {e}") from e


def extension_for_mime(mime: str) -> str:
    if "pdf" in mime:
        return "pdf"
    if "word" in mime or "msword" in mime:
        return "doc"
    if "sheet" in mime:
        return "xls"
    return "bin"


class DocumentCache:
    """Writes inline documents to local files so the OS viewer can open them.

    Files are never cleaned up; the cache directory grows until the host
    clears it.
    """

    def __init__(self, cache_dir: Optional[str] = None):
        self.cache_dir = Path(cache_dir or settings.CACHE_DIR)

    def _target_path(self, ext: str) -> Path:
        stamp = int(time.time() * 1000)
        return self.cache_dir / f"chat-doc-{stamp}-{uuid.uuid4().hex[:8]}.{ext}"

    def _write(self, path: Path, payload: bytes):
        os.makedirs(path.parent, exist_ok=True)
        with open(path, "wb") as f:
            f.write(payload)

    async def materialize(self, data_uri: str) -> str:
        """Decode a data URI into the cache and return its `file://` URI."""
        mime, payload = decode_data_uri(data_uri)
        path = self._target_path(extension_for_mime(mime))
        await asyncio.to_thread(self._write, path, payload)
        logger.info(
            "document_cached",
            extra={"extra": {"mime": mime, "bytes": len(payload), "path": str(path)}},
        )
        return path.resolve().as_uri()

    async def resolve(self, content: str) -> str:
        """Return a URI the OS can open: remote URLs unchanged, data URIs decoded."""
        if content.startswith("http://") or content.startswith("https://"):
            return content
        if content.startswith("data:"):
            return await self.materialize(content)
        raise MalformedDataUri("Content is neither a remote URL nor a data URI")

    async def open_document(self, content: str, opener: DocumentOpener) -> bool:
        try:
            uri = await self.resolve(content)
        except MalformedDataUri as e:
            logger.warning("document_open_failed", extra={"extra": {"reason": e.reason}})
            return False
        await opener.open(uri)
        return True
