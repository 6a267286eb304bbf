import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from jobchat.config import settings
from jobchat.schemas.chat import Chat, ChatInfo, ChatSummary, Participant, ViewerRole
from jobchat.services.api_client import ApiClient
from jobchat.services.content_classifier import image_uri_for_display
from jobchat.services.timeline import format_chat_timestamp

logger = logging.getLogger(__name__)

PREVIEW_MAX_CHARS = 28
PREVIEW_KEEP_CHARS = 25
BADGE_CAP = 99


def other_participant(chat: Chat, viewer_role: Optional[str]) -> Optional[Participant]:
    """The participant on the opposite side of the conversation from the viewer."""
    if viewer_role == ViewerRole.CANDIDATE.value:
        return chat.employer or chat.other_participant
    return chat.candidate or chat.other_participant


def display_name(participant: Optional[Participant]) -> str:
    if participant is None:
        return "Chat"
    if participant.company_name:
        return participant.company_name
    user = participant.user
    first = user.first_name if user else participant.first_name
    last = user.last_name if user else participant.last_name
    return " ".join(part for part in (first, last) if part) or "Chat"


def avatar_letter(name: str) -> str:
    return (name or "?")[0].upper()


def avatar_image(participant: Optional[Participant]) -> Optional[str]:
    if participant is None:
        return None
    raw = participant.user.profile_image if participant.user else None
    return image_uri_for_display(raw or participant.profile_image)


def chat_info(chat: Chat, viewer_role: Optional[str]) -> ChatInfo:
    other = other_participant(chat, viewer_role)
    name = display_name(other)
    return ChatInfo(display_name=name, avatar_letter=avatar_letter(name), avatar_image=avatar_image(other))


def preview(text: str) -> str:
    if len(text) > PREVIEW_MAX_CHARS:
        return text[:PREVIEW_KEEP_CHARS] + "..."
    return text


def unread_badge(count: int) -> Optional[str]:
    if count <= 0:
        return None
    return f"{BADGE_CAP}+" if count > BADGE_CAP else str(count)


def summarize(chat: Chat, viewer_role: Optional[str], now: Optional[datetime] = None) -> ChatSummary:
    info = chat_info(chat, viewer_role)
    last = chat.last_message.content if chat.last_message else ""
    return ChatSummary(
        chat_id=chat.id,
        display_name=info.display_name,
        avatar_letter=info.avatar_letter,
        avatar_image=info.avatar_image,
        preview=preview(last),
        timestamp_label=format_chat_timestamp(chat.last_message_at, now) if chat.last_message_at else "",
        unread_badge=unread_badge(chat.unread_count),
    )


def filter_chats(summaries: Iterable[ChatSummary], query: str) -> list[ChatSummary]:
    needle = query.strip().lower()
    if not needle:
        return list(summaries)
    return [s for s in summaries if needle in s.display_name.lower()]


def _extract_list(data: Any, key: str) -> list:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    return []


def parse_chats(data: Any) -> list[Chat]:
    chats = []
    for raw in _extract_list(data, "chats"):
        try:
            chats.append(Chat.model_validate(raw))
        except ValidationError:
            raw_id = raw.get("id") if isinstance(raw, dict) else None
            logger.warning("chat_skipped_invalid", extra={"extra": {"raw_id": raw_id}})
    return chats


class ChatInbox:
    """Chat list for the signed-in user."""

    def __init__(self, api: ApiClient, viewer_role: Optional[str] = None):
        self.api = api
        self.viewer_role = viewer_role
        self.chats: list[Chat] = []
        self.error: Optional[str] = None
        self._refreshing = False

    @property
    def refreshing(self) -> bool:
        return self._refreshing

    async def refresh(self) -> bool:
        """Reload the chat list. Returns False if a refresh was already running."""
        if self._refreshing:
            return False
        self._refreshing = True
        try:
            res = await self.api.get_chats(limit=settings.CHAT_LIST_PAGE_SIZE)
            if res.success:
                self.chats = parse_chats(res.data)
                self.error = None
            else:
                self.error = res.error
                logger.warning("chat_list_load_failed", extra={"extra": {"error": res.error}})
        finally:
            self._refreshing = False
        return True

    def summaries(self, query: str = "", now: Optional[datetime] = None) -> list[ChatSummary]:
        return filter_chats((summarize(c, self.viewer_role, now) for c in self.chats), query)


async def unread_notification_count(api: ApiClient) -> int:
    """Unread notifications for the bell badge, capped at 99."""
    res = await api.get_notifications(page=1, limit=100)
    if not res.success:
        return 0
    raw = res.data if res.data is not None else {}
    items = _extract_list(raw, "notifications")
    total = raw.get("unreadCount") if isinstance(raw, dict) else None
    if not isinstance(total, int) or isinstance(total, bool):
        total = sum(1 for n in items if isinstance(n, dict) and not n.get("isRead"))
    return min(total, BADGE_CAP)
