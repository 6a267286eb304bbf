import logging
from typing import Any, Optional

from jobchat.schemas.notification import NavigationKind, NavigationTarget, PushPayload
from jobchat.services.api_client import ApiClient
from jobchat.services.ports import Navigator

logger = logging.getLogger(__name__)

NEW_CHAT_MESSAGE = "NEW_CHAT_MESSAGE"
CHAT_RELATED_TYPE = "CHAT"
INTERVIEW_TYPES = frozenset(
    {
        "INTERVIEW_SCHEDULED",
        "INTERVIEW_UPDATED",
        "INTERVIEW_CANCELLED",
        "INTERVIEW_REMINDER",
    }
)
JOB_DECISION_TYPES = frozenset({"JOB_APPROVED", "JOB_REJECTED"})


def _as_payload(payload: Any) -> PushPayload:
    if isinstance(payload, PushPayload):
        return payload
    return PushPayload.model_validate(payload)


def route(payload: Any) -> NavigationTarget:
    """Map a push payload to the screen it should open. First matching rule wins.

    Accepts a `PushPayload` or any raw mapping; missing or malformed fields
    fall through to the notification list.
    """
    p = _as_payload(payload)
    kind = p.type or ""

    if p.chat_id and (kind == NEW_CHAT_MESSAGE or p.related_type == CHAT_RELATED_TYPE):
        return NavigationTarget(kind=NavigationKind.CHAT_THREAD, target_id=p.chat_id)
    if p.notification_id:
        return NavigationTarget(kind=NavigationKind.NOTIFICATION_DETAIL, target_id=p.notification_id)
    if p.related_id and ("APPLICATION" in kind or kind in INTERVIEW_TYPES):
        return NavigationTarget(kind=NavigationKind.APPLICATION_DETAIL, target_id=p.related_id)
    if p.related_id and ("JOB" in kind or kind in JOB_DECISION_TYPES):
        return NavigationTarget(kind=NavigationKind.JOB_DETAIL, target_id=p.related_id)
    if p.job_id:
        return NavigationTarget(kind=NavigationKind.JOB_DETAIL, target_id=p.job_id)
    return NavigationTarget(kind=NavigationKind.NOTIFICATION_LIST)


def extract_data(raw: Any) -> Any:
    """Pull the data block out of a notification response envelope if present."""
    if not isinstance(raw, dict):
        return raw
    notification = raw.get("notification")
    if isinstance(notification, dict):
        request = notification.get("request")
        content = request.get("content") if isinstance(request, dict) else None
        if isinstance(content, dict) and isinstance(content.get("data"), dict):
            return content["data"]
    if isinstance(raw.get("data"), dict):
        return raw["data"]
    return raw


class NotificationHandler:
    """Turns notification taps into navigation, marking opened notifications read."""

    def __init__(self, api: ApiClient, navigator: Navigator):
        self.api = api
        self.navigator = navigator

    async def handle_tap(self, raw: Any) -> NavigationTarget:
        payload = _as_payload(extract_data(raw))
        target = route(payload)
        if target.kind == NavigationKind.NOTIFICATION_DETAIL:
            res = await self.api.mark_notification_as_read(target.target_id)
            if not res.success:
                logger.warning(
                    "notification_mark_read_failed",
                    extra={"extra": {"notification_id": target.target_id, "error": res.error}},
                )
        logger.info(
            "notification_routed",
            extra={"extra": {"kind": target.kind.value, "target_id": target.target_id}},
        )
        self.navigator.navigate_to(target)
        return target

    async def handle_launch_payload(self, raw: Optional[Any]) -> Optional[NavigationTarget]:
        """Handle the notification that launched the app from a killed state, if any."""
        if raw is None:
            return None
        return await self.handle_tap(raw)
