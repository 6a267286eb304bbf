from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from jobchat.schemas.chat import WireModel


class RegistrationStatus(str, Enum):
    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting_permission"
    PERMISSION_DENIED = "permission_denied"
    TOKEN_UNAVAILABLE = "token_unavailable"
    BACKEND_REGISTERING = "backend_registering"
    REGISTERED = "registered"
    BACKEND_REJECTED = "backend_rejected"
    ERROR = "error"


TERMINAL_STATUSES = frozenset(
    {
        RegistrationStatus.PERMISSION_DENIED,
        RegistrationStatus.TOKEN_UNAVAILABLE,
        RegistrationStatus.REGISTERED,
        RegistrationStatus.BACKEND_REJECTED,
        RegistrationStatus.ERROR,
    }
)


class DeviceRegistration(BaseModel):
    token: str | None = None
    platform: str | None = None
    status: RegistrationStatus = RegistrationStatus.IDLE
    message: str | None = None
    updated_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class PushStatus(WireModel):
    ok: bool = False
    fcm_configured: bool = False
    token_count: int = 0
    message: str = ""
