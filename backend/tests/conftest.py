import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import httpx
import pytest

from jobchat.services.api_client import ApiClient

BASE_URL = "http://portal.test"


class FakePortal:
    """In-memory stand-in for the job-portal API, served through httpx.MockTransport."""

    def __init__(self):
        self.requests: list[dict] = []
        self.chats: dict[str, dict] = {}
        self.messages: dict[str, list[dict]] = {}
        self.notifications: list[dict] = []
        self.unread_count: Optional[int] = None
        self.tokens: list[str] = []
        self.push_status = {"ok": True, "fcmConfigured": True, "tokenCount": 0, "message": "ready"}

        self.send_error: Optional[tuple[int, str]] = None
        self.upload_error: Optional[tuple[int, str]] = None
        self.upload_raw_body: Optional[str] = None
        self.register_error: Optional[tuple[int, str]] = None
        self.send_gate: Optional[asyncio.Event] = None
        self.upload_gate: Optional[asyncio.Event] = None
        self.messages_gate: Optional[asyncio.Event] = None
        self.messages_error: Optional[tuple[int, str]] = None
        self._arrived = asyncio.Event()
        self._next_id = 1000

    def requests_to(self, method: str, path: str) -> list[dict]:
        return [r for r in self.requests if r["method"] == method and r["path"] == path]

    async def wait_for_request(self, method: str, path: str, count: int = 1, timeout: float = 5.0):
        """Block until `count` matching requests have reached the portal."""

        async def _wait():
            while len(self.requests_to(method, path)) < count:
                self._arrived.clear()
                await self._arrived.wait()

        await asyncio.wait_for(_wait(), timeout)

    def _new_id(self) -> str:
        self._next_id += 1
        return f"m{self._next_id}"

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = None
        content_type = request.headers.get("content-type", "")
        if request.content and content_type.startswith("application/json"):
            body = json.loads(request.content)
        self.requests.append(
            {
                "method": request.method,
                "path": path,
                "params": dict(request.url.params),
                "json": body,
                "headers": dict(request.headers),
                "content": request.content if "multipart" in content_type else None,
            }
        )
        self._arrived.set()

        if path == "/api/chats" and request.method == "GET":
            return httpx.Response(200, json={"success": True, "data": list(self.chats.values())})

        if path == "/api/chats/upload-image" or path == "/api/chats/upload-document":
            if self.upload_gate is not None:
                await self.upload_gate.wait()
            if self.upload_raw_body is not None:
                return httpx.Response(200, text=self.upload_raw_body)
            if self.upload_error:
                status, message = self.upload_error
                return httpx.Response(status, json={"error": message})
            kind = "image" if path.endswith("image") else "doc"
            return httpx.Response(
                200,
                json={"success": True, "data": {"url": f"https://cdn.portal.test/{kind}/1", "name": "upload"}},
            )

        if path.startswith("/api/chats/") and path.endswith("/messages"):
            chat_id = path.split("/")[3]
            if request.method == "GET":
                page = int(request.url.params.get("page", "1"))
                limit = int(request.url.params.get("limit", "100"))
                if page > 1 and self.messages_gate is not None:
                    await self.messages_gate.wait()
                if self.messages_error:
                    status, message = self.messages_error
                    return httpx.Response(status, json={"success": False, "message": message})
                history = self.messages.get(chat_id, [])
                # page 1 is the newest slice; later pages walk back in time
                end = len(history) - (page - 1) * limit
                start = max(0, end - limit)
                chunk = history[start:end] if end > 0 else []
                return httpx.Response(200, json={"success": True, "data": {"messages": chunk}})
            if self.send_gate is not None:
                await self.send_gate.wait()
            if self.send_error:
                status, message = self.send_error
                return httpx.Response(status, json={"success": False, "message": message})
            created = {
                "id": self._new_id(),
                "chatId": chat_id,
                "senderId": "me",
                "content": body["content"],
                "messageType": body["messageType"],
                "createdAt": "2026-10-18T09:30:00Z",
            }
            self.messages.setdefault(chat_id, []).append(created)
            return httpx.Response(201, json={"success": True, "data": created})

        if path.startswith("/api/chats/"):
            chat_id = path.split("/")[3]
            chat = self.chats.get(chat_id)
            if chat is None:
                return httpx.Response(404, json={"success": False, "message": "Chat not found"})
            return httpx.Response(200, json={"success": True, "data": chat})

        if path == "/api/notifications":
            data = {"notifications": self.notifications}
            if self.unread_count is not None:
                data["unreadCount"] = self.unread_count
            return httpx.Response(200, json={"success": True, "data": data})

        if path == "/api/notifications/mark-all-read":
            for notification in self.notifications:
                notification["isRead"] = True
            return httpx.Response(200, json={"success": True, "message": "All notifications marked as read"})

        if path.startswith("/api/notifications/") and path.endswith("/read"):
            return httpx.Response(200, json={"success": True})

        if path == "/api/users/fcm-token":
            if request.method == "POST":
                if self.register_error:
                    status, message = self.register_error
                    return httpx.Response(status, json={"success": False, "message": message})
                if body["token"] not in self.tokens:
                    self.tokens.append(body["token"])
                return httpx.Response(200, json={"success": True, "message": "Token registered"})
            if body and body.get("token") in self.tokens:
                self.tokens.remove(body["token"])
            return httpx.Response(200, json={"success": True})

        if path == "/api/users/push-status":
            return httpx.Response(200, json={"success": True, "data": {**self.push_status, "tokenCount": len(self.tokens)}})

        return httpx.Response(404, text="Not Found")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def portal() -> FakePortal:
    return FakePortal()


@pytest.fixture
async def api(portal):
    client = ApiClient(base_url=BASE_URL, transport=httpx.MockTransport(portal.handler))
    yield client
    await client.aclose()


class FakePushProvider:
    def __init__(self, tokens=None, permission="granted", requested="granted", is_device=True, error=None):
        self.is_device = is_device
        self.permission = permission
        self.requested = requested
        self._tokens = list(tokens if tokens is not None else ["device-token-1"])
        self.error = error
        self.token_calls = 0
        self.permission_requests = 0

    async def get_permission_status(self) -> str:
        return self.permission

    async def request_permission(self) -> str:
        self.permission_requests += 1
        return self.requested

    async def get_device_push_token(self):
        self.token_calls += 1
        if self.error is not None:
            raise self.error
        if not self._tokens:
            return None
        if len(self._tokens) == 1:
            return self._tokens[0]
        return self._tokens.pop(0)


class RecordingOpener:
    def __init__(self):
        self.opened: list[str] = []

    async def open(self, uri: str) -> None:
        self.opened.append(uri)


@pytest.fixture
def push_provider() -> FakePushProvider:
    return FakePushProvider()


@pytest.fixture
def opener() -> RecordingOpener:
    return RecordingOpener()
