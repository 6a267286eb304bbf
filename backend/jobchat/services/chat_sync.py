import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from jobchat.config import settings
from jobchat.schemas.attachment import AttachmentSource, PickedAttachment
from jobchat.schemas.chat import Chat, ChatInfo, Message, MessageType
from jobchat.schemas.render import RenderDescriptor
from jobchat.services.api_client import ApiClient, ApiResponse
from jobchat.services.attachment_uploader import AttachmentUploader, classify_source
from jobchat.services.content_classifier import classify
from jobchat.services.inbox import chat_info
from jobchat.services.ports import PERMISSION_GRANTED, GrantedMediaPermissions, MediaPermissions
from jobchat.services.timeline import build_timeline

logger = logging.getLogger(__name__)


class ComposerState(str, Enum):
    IDLE = "idle"
    COMPOSING = "composing"
    UPLOADING = "uploading"
    SENDING = "sending"
    SENT = "sent"
    FAILED = "failed"


PENDING_STATES = frozenset({ComposerState.UPLOADING, ComposerState.SENDING})


class SendFailure(str, Enum):
    BUSY = "busy"
    EMPTY_DRAFT = "empty_draft"
    NOTHING_TO_RETRY = "nothing_to_retry"
    PERMISSION_DENIED = "permission_denied"
    UPLOAD_FAILED = "upload_failed"
    SEND_FAILED = "send_failed"


class HistoryState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADING_MORE = "loading_more"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


FETCHING_STATES = frozenset({HistoryState.LOADING, HistoryState.LOADING_MORE})

MEDIA_PERMISSION_MESSAGES = {
    AttachmentSource.CAMERA: "Camera access is needed to take a photo. Enable it in Settings.",
    AttachmentSource.LIBRARY: "Photo library access is needed to send images. Enable it in Settings.",
}


class SendResult(BaseModel):
    accepted: bool
    state: ComposerState
    message: Message | None = None
    error: str | None = None
    failure: SendFailure | None = None

    @property
    def ok(self) -> bool:
        return self.accepted and self.message is not None


class PageResult(BaseModel):
    accepted: bool
    state: HistoryState
    added: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.accepted and self.error is None


def _extract_messages(data: Any) -> list[Message]:
    raw = data.get("messages") if isinstance(data, dict) else data
    if not isinstance(raw, list):
        return []
    messages = []
    for item in raw:
        try:
            messages.append(Message.model_validate(item))
        except ValidationError:
            logger.warning("message_skipped_invalid")
    return messages


class ChatSyncClient:
    """Compose-and-send state for one open chat thread.

    Only one upload or send may be in flight at a time, and only one history
    fetch; a request made while one is pending is rejected, not queued. Once
    `dispose()` has been called, results that arrive late are dropped.
    """

    def __init__(
        self,
        chat_id: str,
        api: ApiClient,
        uploader: Optional[AttachmentUploader] = None,
        viewer_role: Optional[str] = None,
        page_size: Optional[int] = None,
        media_permissions: Optional[MediaPermissions] = None,
    ):
        self.chat_id = chat_id
        self.api = api
        self.uploader = uploader or AttachmentUploader(api)
        self.viewer_role = viewer_role
        self.page_size = page_size or settings.MESSAGE_PAGE_SIZE
        self.media_permissions = media_permissions or GrantedMediaPermissions()

        self.state = ComposerState.IDLE
        self.history_state = HistoryState.IDLE
        self.draft = ""
        self.messages: list[Message] = []
        self.chat: Optional[Chat] = None
        self.info = ChatInfo()
        self.last_error: Optional[str] = None
        self.pending_attachment: Optional[PickedAttachment] = None

        self._active = True
        self._page = 0

    @property
    def active(self) -> bool:
        return self._active

    @property
    def is_pending(self) -> bool:
        return self.state in PENDING_STATES

    @property
    def can_send(self) -> bool:
        return bool(self.draft.strip()) and not self.is_pending

    @property
    def loading_more(self) -> bool:
        return self.history_state == HistoryState.LOADING_MORE

    @property
    def has_more(self) -> bool:
        return self.history_state != HistoryState.EXHAUSTED

    def set_draft(self, text: str):
        self.draft = text
        if self.is_pending:
            return
        self.state = ComposerState.COMPOSING if text else ComposerState.IDLE

    def dispose(self):
        self._active = False

    def _rest_state(self) -> ComposerState:
        return ComposerState.COMPOSING if self.draft else ComposerState.IDLE

    def _discarded(self, event: str) -> bool:
        if self._active:
            return False
        logger.info("chat_result_discarded", extra={"extra": {"chat_id": self.chat_id, "event": event}})
        return True

    def _rejected(self, reason: str, failure: SendFailure) -> SendResult:
        logger.info("chat_submit_rejected", extra={"extra": {"chat_id": self.chat_id, "reason": reason}})
        return SendResult(accepted=False, state=self.state, error=reason, failure=failure)

    def _page_rejected(self, reason: str) -> PageResult:
        logger.info("chat_history_rejected", extra={"extra": {"chat_id": self.chat_id, "reason": reason}})
        return PageResult(accepted=False, state=self.history_state, error=reason)

    def _late_result(
        self, message: Optional[Message], error: Optional[str], failure: Optional[SendFailure]
    ) -> SendResult:
        state = ComposerState.SENT if message else ComposerState.FAILED
        return SendResult(accepted=True, state=state, message=message, error=error, failure=failure)

    def _append(self, message: Message):
        if message.id and any(m.id == message.id for m in self.messages):
            return
        self.messages.append(message)

    def _settle_history(self, page: list[Message]):
        self.history_state = HistoryState.IDLE if len(page) >= self.page_size else HistoryState.EXHAUSTED

    async def load(self) -> PageResult:
        """Fetch chat details and the first page of messages."""
        if self.history_state in FETCHING_STATES:
            return self._page_rejected("history fetch already in progress")
        self.history_state = HistoryState.LOADING
        try:
            chat_res, messages_res = await asyncio.gather(
                self.api.get_chat_by_id(self.chat_id),
                self.api.get_chat_messages(self.chat_id, page=1, limit=self.page_size),
            )
        except Exception:
            self.history_state = HistoryState.FAILED
            raise
        if self._discarded("load"):
            return PageResult(accepted=True, state=self.history_state)

        if chat_res.success and isinstance(chat_res.data, dict):
            try:
                self.chat = Chat.model_validate(chat_res.data)
                self.info = chat_info(self.chat, self.viewer_role)
            except ValidationError:
                logger.warning("chat_info_invalid", extra={"extra": {"chat_id": self.chat_id}})
                self.info = ChatInfo()
        else:
            self.info = ChatInfo()

        if not messages_res.success:
            self.last_error = messages_res.error
            self.history_state = HistoryState.FAILED
            logger.warning(
                "chat_messages_load_failed",
                extra={"extra": {"chat_id": self.chat_id, "error": messages_res.error}},
            )
            return PageResult(accepted=True, state=self.history_state, error=messages_res.error)

        page = _extract_messages(messages_res.data)
        self.messages = page
        self._page = 1
        self._settle_history(page)
        return PageResult(accepted=True, state=self.history_state, added=len(page))

    async def load_more(self) -> PageResult:
        """Fetch the next (older) page. Only one history fetch runs at a time."""
        if self.history_state in FETCHING_STATES:
            return self._page_rejected("history fetch already in progress")
        if self.history_state == HistoryState.EXHAUSTED:
            return self._page_rejected("no older messages")
        self.history_state = HistoryState.LOADING_MORE
        next_page = self._page + 1
        try:
            res = await self.api.get_chat_messages(self.chat_id, page=next_page, limit=self.page_size)
        except Exception:
            self.history_state = HistoryState.FAILED
            raise
        if self._discarded("load_more"):
            return PageResult(accepted=True, state=self.history_state)
        if not res.success:
            self.last_error = res.error
            self.history_state = HistoryState.FAILED
            return PageResult(accepted=True, state=self.history_state, error=res.error)

        older = _extract_messages(res.data)
        known = {m.id for m in self.messages if m.id}
        fresh = [m for m in older if not m.id or m.id not in known]
        self.messages = fresh + self.messages
        self._page = next_page
        self._settle_history(older)
        return PageResult(accepted=True, state=self.history_state, added=len(fresh))

    async def _send(self, content: str, message_type: MessageType) -> tuple[Optional[Message], Optional[str]]:
        res: ApiResponse = await self.api.send_message(self.chat_id, content, message_type.value)
        if res.success and isinstance(res.data, dict):
            try:
                return Message.model_validate(res.data), None
            except ValidationError:
                logger.warning("sent_message_invalid", extra={"extra": {"chat_id": self.chat_id}})
        return None, res.error or "Failed to send"

    async def submit_text(self) -> SendResult:
        if self.is_pending:
            return self._rejected("send already in progress", SendFailure.BUSY)
        text = self.draft.strip()
        if not text:
            return self._rejected("draft is empty", SendFailure.EMPTY_DRAFT)

        self.draft = ""
        self.state = ComposerState.SENDING
        try:
            message, error = await self._send(text, MessageType.TEXT)
        except Exception as e:
            logger.exception("chat_send_crashed", extra={"extra": {"chat_id": self.chat_id}})
            message, error = None, str(e) or "Failed to send"

        failure = None if message else SendFailure.SEND_FAILED
        if self._discarded("send_text"):
            return self._late_result(message, error, failure)

        if message is None:
            self.draft = text
            self.last_error = error
            self.state = ComposerState.FAILED
            logger.warning("chat_send_failed", extra={"extra": {"chat_id": self.chat_id, "error": error}})
            return SendResult(accepted=True, state=ComposerState.FAILED, error=error, failure=failure)

        self._append(message)
        self.last_error = None
        self.state = self._rest_state()
        return SendResult(accepted=True, state=ComposerState.SENT, message=message)

    async def _media_permitted(self, source: AttachmentSource) -> bool:
        if source not in MEDIA_PERMISSION_MESSAGES:
            return True
        return await self.media_permissions.request_permission(source) == PERMISSION_GRANTED

    def _permission_denied(self, source: AttachmentSource, resting: ComposerState) -> SendResult:
        if not self._discarded("media_permission"):
            self.state = resting
        logger.info(
            "chat_media_permission_denied",
            extra={"extra": {"chat_id": self.chat_id, "source": source.value}},
        )
        return SendResult(
            accepted=False,
            state=resting,
            error=MEDIA_PERMISSION_MESSAGES[source],
            failure=SendFailure.PERMISSION_DENIED,
        )

    async def submit_attachment(self, picked: PickedAttachment) -> SendResult:
        """Upload a picked image or document, then send its URL as a message.

        Camera and library picks ask the media permission port first; a
        denial leaves the composer as it was and reports PERMISSION_DENIED.
        """
        if self.is_pending:
            return self._rejected("send already in progress", SendFailure.BUSY)

        kind = classify_source(picked)
        resting = self.state
        self.state = ComposerState.UPLOADING
        failure = SendFailure.UPLOAD_FAILED
        try:
            if not await self._media_permitted(picked.source):
                return self._permission_denied(picked.source, resting)
            self.pending_attachment = picked
            outcome = await self.uploader.upload(picked)
            if outcome.ok:
                self.state = ComposerState.SENDING
                failure = SendFailure.SEND_FAILED
                message, error = await self._send(outcome.result.remote_url, kind)
            else:
                message, error = None, outcome.error
        except Exception as e:
            logger.exception("chat_attachment_crashed", extra={"extra": {"chat_id": self.chat_id}})
            message, error = None, str(e) or "Failed to send attachment"

        if message is not None:
            failure = None
        if self._discarded("send_attachment"):
            return self._late_result(message, error, failure)

        if message is None:
            self.last_error = error
            self.state = ComposerState.FAILED
            logger.warning(
                "chat_attachment_failed",
                extra={"extra": {"chat_id": self.chat_id, "kind": kind.value, "error": error}},
            )
            return SendResult(accepted=True, state=ComposerState.FAILED, error=error, failure=failure)

        self._append(message)
        self.pending_attachment = None
        self.last_error = None
        self.state = self._rest_state()
        return SendResult(accepted=True, state=ComposerState.SENT, message=message)

    async def retry_attachment(self) -> SendResult:
        if self.pending_attachment is None:
            return self._rejected("no attachment to retry", SendFailure.NOTHING_TO_RETRY)
        return await self.submit_attachment(self.pending_attachment)

    def timeline(self, now: Optional[datetime] = None):
        return build_timeline(self.messages, now=now)

    def classify(self, message: Message) -> RenderDescriptor:
        return classify(message.message_type, message.content)

    def is_mine(self, message: Message, user_id: Optional[str]) -> bool:
        return user_id is not None and message.sender_id == user_id
