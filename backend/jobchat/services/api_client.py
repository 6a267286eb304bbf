import logging
from typing import Any, Optional

import httpx
from pydantic import BaseModel

from jobchat.config import settings

logger = logging.getLogger(__name__)


class ApiResponse(BaseModel):
    success: bool
    data: Any = None
    error: str | None = None
    message: str | None = None
    status_code: int | None = None


def _error_from_body(data: Any, default: str) -> str:
    if isinstance(data, dict):
        for key in ("message", "error"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return default


class ApiClient:
    """Async client for the job-portal REST API.

    Every call resolves to an `ApiResponse`; transport and server failures are
    reported through `success=False` rather than raised.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._access_token = access_token or settings.API_ACCESS_TOKEN or None
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.REQUEST_TIMEOUT,
            transport=transport,
        )

    def set_access_token(self, token: Optional[str]):
        self._access_token = token

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        return headers

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        body: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> ApiResponse:
        try:
            response = await self._client.request(
                method,
                endpoint,
                headers=self._headers(),
                json=body,
                params={k: v for k, v in (params or {}).items() if v},
            )
        except httpx.HTTPError as e:
            msg = str(e) or "Network error occurred"
            logger.warning(
                "api_request_failed",
                extra={"extra": {"method": method, "endpoint": endpoint, "error": msg}},
            )
            return ApiResponse(success=False, error=msg)

        content_type = response.headers.get("content-type", "")
        data: Any
        if "application/json" in content_type:
            try:
                data = response.json()
            except ValueError:
                data = {"message": "Invalid response", "error": "Invalid response"}
        else:
            text = response.text
            logger.warning(
                "api_non_json_response",
                extra={"extra": {"status": response.status_code, "body": text[:200]}},
            )
            data = {"message": text or "Invalid response", "error": text or "Invalid response"}

        if not response.is_success:
            return ApiResponse(
                success=False,
                error=_error_from_body(data, "An error occurred"),
                data=data,
                status_code=response.status_code,
            )

        resolved = data
        message = None
        if isinstance(data, dict):
            if data.get("data") is not None:
                resolved = data["data"]
            message = data.get("message") if isinstance(data.get("message"), str) else None
        return ApiResponse(
            success=True,
            data=resolved,
            message=message,
            status_code=response.status_code,
        )

    async def _upload(
        self,
        endpoint: str,
        field: str,
        filename: str,
        content: bytes,
        mime_type: str,
        fallback_error: str,
    ) -> ApiResponse:
        try:
            response = await self._client.post(
                endpoint,
                headers=self._headers(),
                files={field: (filename, content, mime_type)},
            )
        except httpx.HTTPError as e:
            msg = str(e) or fallback_error
            logger.warning(
                "api_upload_failed",
                extra={"extra": {"endpoint": endpoint, "error": msg}},
            )
            return ApiResponse(success=False, error=msg)

        text = response.text
        data: Any = {}
        if text and text.strip():
            try:
                data = response.json()
            except ValueError:
                if response.is_success:
                    error = "Invalid response from server. Try a smaller file (e.g. under 5MB)."
                else:
                    error = f"Upload failed ({response.status_code}). Try a smaller file."
                return ApiResponse(success=False, error=error, status_code=response.status_code)

        if not response.is_success:
            error = None
            if isinstance(data, dict):
                error = data.get("error") or data.get("message")
            return ApiResponse(
                success=False,
                error=error if isinstance(error, str) and error else f"Upload failed ({response.status_code})",
                data=data,
                status_code=response.status_code,
            )

        inner = data.get("data") if isinstance(data, dict) else None
        url = None
        name = None
        if isinstance(inner, dict):
            url = inner.get("url")
            name = inner.get("name")
        if url is None and isinstance(data, dict):
            url = data.get("url")
        return ApiResponse(
            success=True,
            data={"url": url, "name": name},
            status_code=response.status_code,
        )

    # Chat APIs
    async def get_chats(self, page: Optional[int] = None, limit: Optional[int] = None) -> ApiResponse:
        return await self._request("GET", "/api/chats", params={"page": page, "limit": limit})

    async def get_chat_by_id(self, chat_id: str) -> ApiResponse:
        return await self._request("GET", f"/api/chats/{chat_id}")

    async def get_chat_messages(
        self, chat_id: str, page: Optional[int] = None, limit: Optional[int] = None
    ) -> ApiResponse:
        return await self._request(
            "GET", f"/api/chats/{chat_id}/messages", params={"page": page, "limit": limit}
        )

    async def send_message(self, chat_id: str, content: str, message_type: str = "TEXT") -> ApiResponse:
        return await self._request(
            "POST",
            f"/api/chats/{chat_id}/messages",
            body={"content": content, "messageType": message_type},
        )

    async def upload_chat_image(self, content: bytes, mime_type: str, filename: str) -> ApiResponse:
        return await self._upload(
            "/api/chats/upload-image", "image", filename, content, mime_type, "Upload failed"
        )

    async def upload_chat_document(self, content: bytes, mime_type: str, filename: str) -> ApiResponse:
        return await self._upload(
            "/api/chats/upload-document",
            "file",
            filename,
            content,
            mime_type,
            "Upload failed. Try a smaller file or check your connection.",
        )

    # Notifications APIs
    async def get_notifications(self, page: Optional[int] = None, limit: Optional[int] = None) -> ApiResponse:
        return await self._request("GET", "/api/notifications", params={"page": page, "limit": limit})

    async def mark_notification_as_read(self, notification_id: str) -> ApiResponse:
        return await self._request("PUT", f"/api/notifications/{notification_id}/read")

    async def mark_all_notifications_as_read(self) -> ApiResponse:
        return await self._request("PUT", "/api/notifications/mark-all-read")

    # Device token APIs
    async def register_fcm_token(self, token: str, platform: Optional[str] = None) -> ApiResponse:
        body = {"token": token}
        if platform:
            body["platform"] = platform
        return await self._request("POST", "/api/users/fcm-token", body=body)

    async def unregister_fcm_token(self, token: str) -> ApiResponse:
        return await self._request("DELETE", "/api/users/fcm-token", body={"token": token})

    async def get_push_status(self) -> ApiResponse:
        return await self._request("GET", "/api/users/push-status")

    async def aclose(self):
        await self._client.aclose()
