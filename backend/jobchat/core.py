import asyncio
import logging
from typing import Optional

from jobchat.config import settings
from jobchat.errors import ChatSessionNotFound
from jobchat.services.api_client import ApiClient
from jobchat.services.attachment_uploader import AttachmentUploader
from jobchat.services.chat_sync import ChatSyncClient
from jobchat.services.device_registration import DeviceRegistrationService, RegistrationStore
from jobchat.services.document_cache import DocumentCache
from jobchat.services.inbox import ChatInbox
from jobchat.services.notification_dispatcher import NotificationHandler
from jobchat.services.ports import (
    MediaPermissions,
    Navigator,
    PushProvider,
    RecordingNavigator,
    UnavailablePushProvider,
)

logger = logging.getLogger(__name__)


class ClientCore:
    """Process-wide services, built once at startup and passed by reference."""

    def __init__(
        self,
        api: Optional[ApiClient] = None,
        push_provider: Optional[PushProvider] = None,
        navigator: Optional[Navigator] = None,
        document_cache: Optional[DocumentCache] = None,
        viewer_role: Optional[str] = None,
        registration_store: Optional[RegistrationStore] = None,
        media_permissions: Optional[MediaPermissions] = None,
    ):
        self.api = api or ApiClient()
        self.viewer_role = viewer_role
        self.navigator = navigator or RecordingNavigator()
        self.media_permissions = media_permissions
        self.uploader = AttachmentUploader(self.api)
        self.documents = document_cache or DocumentCache()
        self.registration = DeviceRegistrationService(
            self.api,
            push_provider or UnavailablePushProvider(),
            store=registration_store,
        )
        self.notifications = NotificationHandler(self.api, self.navigator)
        self.inbox = ChatInbox(self.api, viewer_role)
        self.sessions: dict[str, ChatSyncClient] = {}
        self._registration_task: Optional[asyncio.Task] = None

    async def open_session(self, chat_id: str) -> ChatSyncClient:
        session = self.sessions.get(chat_id)
        if session is None:
            session = ChatSyncClient(
                chat_id,
                self.api,
                self.uploader,
                viewer_role=self.viewer_role,
                media_permissions=self.media_permissions,
            )
            self.sessions[chat_id] = session
            await session.load()
        return session

    def get_session(self, chat_id: str) -> ChatSyncClient:
        session = self.sessions.get(chat_id)
        if session is None:
            raise ChatSessionNotFound(chat_id)
        return session

    def close_session(self, chat_id: str) -> bool:
        session = self.sessions.pop(chat_id, None)
        if session is None:
            return False
        session.dispose()
        return True

    async def startup(self):
        if settings.REGISTER_DEVICE_ON_STARTUP:
            self._registration_task = asyncio.create_task(self.registration.register())

    async def logout(self):
        await self.registration.unregister()
        for chat_id in list(self.sessions):
            self.close_session(chat_id)
        self.api.set_access_token(None)

    async def shutdown(self):
        if self._registration_task and not self._registration_task.done():
            self._registration_task.cancel()
            try:
                await self._registration_task
            except asyncio.CancelledError:
                pass
        for chat_id in list(self.sessions):
            self.close_session(chat_id)
        await self.api.aclose()
        logger.info("client_core_stopped")
