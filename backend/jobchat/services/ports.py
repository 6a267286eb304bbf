from typing import Optional, Protocol, runtime_checkable

from jobchat.schemas.attachment import AttachmentSource
from jobchat.schemas.notification import NavigationTarget


@runtime_checkable
class PushProvider(Protocol):
    """Device-side push capabilities (permission prompt and token retrieval)."""

    @property
    def is_device(self) -> bool: ...

    async def get_permission_status(self) -> str: ...

    async def request_permission(self) -> str: ...

    async def get_device_push_token(self) -> Optional[str]: ...


@runtime_checkable
class Navigator(Protocol):
    def navigate_to(self, target: NavigationTarget) -> None: ...


@runtime_checkable
class DocumentOpener(Protocol):
    async def open(self, uri: str) -> None: ...


@runtime_checkable
class MediaPermissions(Protocol):
    """OS prompts guarding the camera and the photo library."""

    async def request_permission(self, source: AttachmentSource) -> str: ...


PERMISSION_GRANTED = "granted"


class RecordingNavigator:
    """Navigator that keeps the targets it was asked to open.

    Used by the local control surface, which has no screen stack of its own.
    """

    def __init__(self):
        self.history: list[NavigationTarget] = []

    def navigate_to(self, target: NavigationTarget) -> None:
        self.history.append(target)

    @property
    def current(self) -> Optional[NavigationTarget]:
        return self.history[-1] if self.history else None


class UnavailablePushProvider:
    """Push provider for hosts with no push service (simulators, servers)."""

    is_device = False

    async def get_permission_status(self) -> str:
        return "undetermined"

    async def request_permission(self) -> str:
        return "denied"

    async def get_device_push_token(self) -> Optional[str]:
        return None


class GrantedMediaPermissions:
    """Media permissions for hosts that pick files without OS prompts."""

    async def request_permission(self, source: AttachmentSource) -> str:
        return PERMISSION_GRANTED
