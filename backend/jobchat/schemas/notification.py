from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, field_validator, model_validator

from jobchat.schemas.chat import WireModel


class PushPayload(WireModel):
    """Data block delivered with a push notification.

    Every field is optional and untrusted: non-string scalars are coerced to
    strings, empty strings and nested structures count as absent.
    """

    type: str | None = None
    related_id: str | None = None
    related_type: str | None = None
    chat_id: str | None = None
    notification_id: str | None = None
    job_id: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _require_mapping(cls, data: Any) -> Any:
        if isinstance(data, PushPayload):
            return data.model_dump()
        if not isinstance(data, dict):
            return {}
        return {str(key): value for key, value in data.items()}

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_scalar(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, (dict, list, tuple, set)):
            return None
        text = str(value).strip()
        return text or None


class NavigationKind(str, Enum):
    CHAT_THREAD = "chat_thread"
    NOTIFICATION_DETAIL = "notification_detail"
    APPLICATION_DETAIL = "application_detail"
    JOB_DETAIL = "job_detail"
    NOTIFICATION_LIST = "notification_list"


class NavigationTarget(BaseModel):
    kind: NavigationKind
    target_id: str | None = None

    @property
    def path(self) -> str:
        if self.kind == NavigationKind.CHAT_THREAD:
            return f"/chat/{self.target_id}"
        if self.kind == NavigationKind.NOTIFICATION_DETAIL:
            return f"/notifications?focus={self.target_id}"
        if self.kind == NavigationKind.APPLICATION_DETAIL:
            return f"/application-details/{self.target_id}"
        if self.kind == NavigationKind.JOB_DETAIL:
            return f"/job-details/{self.target_id}"
        return "/notifications"


class RouteResponse(BaseModel):
    kind: NavigationKind
    target_id: str | None = None
    path: str
