import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from pydantic import ValidationError

from jobchat.config import settings
from jobchat.schemas.device import DeviceRegistration, PushStatus, RegistrationStatus
from jobchat.services.api_client import ApiClient
from jobchat.services.ports import PERMISSION_GRANTED, PushProvider

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS = ("ios", "android")
PUSH_NOT_CONFIGURED_MARKER = "Default FirebaseApp is not initialized"
PUSH_NOT_CONFIGURED_RE = re.compile(r"(fcm|firebase).*not\s+(configured|initiali[sz]ed)", re.IGNORECASE)
PUSH_NOT_CONFIGURED_MESSAGE = (
    "Push service is not configured for this build (missing Firebase configuration)."
)


def normalize_error(exc: BaseException) -> str:
    text = str(exc) or exc.__class__.__name__
    if PUSH_NOT_CONFIGURED_MARKER in text or PUSH_NOT_CONFIGURED_RE.search(text):
        return PUSH_NOT_CONFIGURED_MESSAGE
    return text


def device_platform(value: Optional[str] = None) -> Optional[str]:
    platform = (value or settings.DEVICE_PLATFORM or "").lower()
    return platform if platform in SUPPORTED_PLATFORMS else None


class RegistrationStore:
    """Holds the last registration outcome and the token the backend accepted.

    Built once at startup and shared by reference, so diagnostics screens and
    the logout flow see the same state the registration run wrote.
    """

    def __init__(self):
        self._registration = DeviceRegistration()
        self._registered_token: Optional[str] = None

    def get(self) -> DeviceRegistration:
        return self._registration

    def set(self, registration: DeviceRegistration):
        self._registration = registration

    def get_registered_token(self) -> Optional[str]:
        return self._registered_token

    def set_registered_token(self, token: Optional[str]):
        self._registered_token = token


class DeviceRegistrationService:
    def __init__(
        self,
        api: ApiClient,
        provider: PushProvider,
        store: Optional[RegistrationStore] = None,
        platform: Optional[str] = None,
        retry_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api = api
        self.provider = provider
        self.store = store or RegistrationStore()
        self.platform = device_platform(platform)
        self.retry_delay = settings.PUSH_TOKEN_RETRY_DELAY if retry_delay is None else retry_delay
        self._sleep = sleep
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def snapshot(self) -> DeviceRegistration:
        return self.store.get()

    def _set(
        self,
        status: RegistrationStatus,
        token: Optional[str] = None,
        message: Optional[str] = None,
    ):
        self.store.set(
            DeviceRegistration(
                token=token,
                platform=self.platform,
                status=status,
                message=message,
                updated_at=datetime.now(timezone.utc),
            )
        )
        logger.info(
            "device_registration_status",
            extra={"extra": {"status": status.value, "detail": message}},
        )

    async def register(self) -> DeviceRegistration:
        """Run the permission → token → backend flow once.

        If a run is already active the current snapshot is returned and no
        second run is started.
        """
        if self._lock.locked():
            logger.info("device_registration_already_running")
            return self.snapshot()
        async with self._lock:
            try:
                await self._run()
            except Exception as e:
                logger.exception("device_registration_crashed")
                self._set(RegistrationStatus.ERROR, message=normalize_error(e))
        return self.snapshot()

    async def retry(self) -> DeviceRegistration:
        return await self.register()

    async def _read_token(self) -> Optional[str]:
        token = await self.provider.get_device_push_token()
        return token if isinstance(token, str) and token else None

    async def _run(self):
        previous = self.snapshot()
        self._set(RegistrationStatus.REQUESTING_PERMISSION)

        if not self.provider.is_device:
            self._set(
                RegistrationStatus.TOKEN_UNAVAILABLE,
                message="Push notifications require a physical device",
            )
            return

        status = await self.provider.get_permission_status()
        if status != PERMISSION_GRANTED:
            status = await self.provider.request_permission()
        if status != PERMISSION_GRANTED:
            self._set(
                RegistrationStatus.PERMISSION_DENIED,
                message="Notification permission was not granted",
            )
            return

        token = await self._read_token()
        if token is None:
            # retried exactly once
            await self._sleep(self.retry_delay)
            token = await self._read_token()
        if token is None:
            self._set(
                RegistrationStatus.TOKEN_UNAVAILABLE,
                message=f"Device push token unavailable after retrying once ({self.retry_delay:g}s delay)",
            )
            return

        if previous.status == RegistrationStatus.REGISTERED and self.store.get_registered_token() == token:
            self._set(RegistrationStatus.REGISTERED, token=token, message="Token already registered")
            return

        self._set(RegistrationStatus.BACKEND_REGISTERING, token=token)
        res = await self.api.register_fcm_token(token, self.platform)
        if res.success:
            self.store.set_registered_token(token)
            self._set(RegistrationStatus.REGISTERED, token=token, message=res.message)
        else:
            self._set(
                RegistrationStatus.BACKEND_REJECTED,
                token=token,
                message=res.error or "Backend rejected the device token",
            )

    async def unregister(self) -> bool:
        """Remove the registered token from the backend (logout).

        Returns False without calling the backend when nothing was registered.
        The local token is forgotten even if the backend call fails.
        """
        async with self._lock:
            token = self.store.get_registered_token()
            if not token:
                return False
            try:
                res = await self.api.unregister_fcm_token(token)
                if not res.success:
                    logger.warning(
                        "device_unregister_failed",
                        extra={"extra": {"error": res.error}},
                    )
            finally:
                self.store.set_registered_token(None)
                self._set(RegistrationStatus.IDLE)
            return True

    async def push_status(self) -> Optional[PushStatus]:
        res = await self.api.get_push_status()
        if not res.success or not isinstance(res.data, dict):
            return None
        try:
            return PushStatus.model_validate(res.data)
        except ValidationError:
            return None
