import re
from typing import Any, Optional

from jobchat.schemas.chat import MessageType
from jobchat.schemas.render import RenderDescriptor, RenderVariant

# Legacy servers stored chat images as bare base64. Anything longer than this
# with no whitespace is assumed to be one.
RAW_BASE64_MIN_EXCLUSIVE = 100
WHITESPACE_RE = re.compile(r"\s")

FILE_LABEL = "Document"
UNSUPPORTED_LABEL = "Unsupported attachment"


def _is_remote(content: str) -> bool:
    return content.startswith("http://") or content.startswith("https://")


def looks_like_raw_base64(content: str) -> bool:
    return len(content) > RAW_BASE64_MIN_EXCLUSIVE and not WHITESPACE_RE.search(content)


def classify(message_type: Any, content: Any) -> RenderDescriptor:
    """Decide how a chat message body should be rendered.

    Never raises: unknown types and odd content degrade to plain text or to
    an unsupported-attachment placeholder.
    """
    if content is None:
        text = ""
    elif isinstance(content, str):
        text = content
    else:
        text = str(content)

    kind = message_type.value if isinstance(message_type, MessageType) else message_type

    if kind == MessageType.IMAGE.value:
        if text.startswith("data:image"):
            return RenderDescriptor(variant=RenderVariant.INLINE_IMAGE, source=text)
        if _is_remote(text):
            return RenderDescriptor(variant=RenderVariant.REMOTE_IMAGE, source=text)
        if looks_like_raw_base64(text):
            return RenderDescriptor(
                variant=RenderVariant.INLINE_IMAGE,
                source=f"data:image/jpeg;base64,{text}",
            )
        return RenderDescriptor(variant=RenderVariant.TEXT, source=text)

    if kind == MessageType.FILE.value:
        if _is_remote(text):
            return RenderDescriptor(variant=RenderVariant.REMOTE_FILE, source=text, label=FILE_LABEL)
        if text.startswith("data:"):
            return RenderDescriptor(variant=RenderVariant.LOCALIZED_FILE, source=text, label=FILE_LABEL)
        return RenderDescriptor(
            variant=RenderVariant.UNSUPPORTED_ATTACHMENT, source=text, label=UNSUPPORTED_LABEL
        )

    return RenderDescriptor(variant=RenderVariant.TEXT, source=text)


def image_uri_for_display(value: Any) -> Optional[str]:
    """Normalize an avatar, logo or banner value into a displayable URI."""
    if not value or not isinstance(value, str):
        return None
    s = value.strip()
    if not s:
        return None
    if s.startswith("data:") or _is_remote(s):
        return s
    return f"data:image/png;base64,{s}"
