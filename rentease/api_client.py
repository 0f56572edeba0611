# Async HTTP client for the RentEase backend: one method per endpoint.
# Transport errors (httpx.HTTPError) propagate; HTTP-level failures come back as an
# ApiResponse with is_successful == False. Converting either into a user message is
# the repositories' job.
from __future__ import annotations

import logging
import time
from typing import Any, Optional

import httpx

from .auth_session import AuthSession

logger = logging.getLogger("rentease.api")


class ApiResponse:
    """Status code plus the decoded JSON body (None when the body is not JSON)."""

    def __init__(self, status_code: int, body: Any) -> None:
        self.status_code = status_code
        self.body = body

    @property
    def is_successful(self) -> bool:
        if not 200 <= self.status_code < 300:
            return False
        # Some endpoints answer 200 with {"status": "error", ...}
        if isinstance(self.body, dict) and self.body.get("status") == "error":
            return False
        return True

    @property
    def message(self) -> Optional[str]:
        if isinstance(self.body, dict):
            msg = self.body.get("message") or self.body.get("error")
            return str(msg) if msg else None
        return None

    @property
    def data(self) -> Any:
        """The "data" member of the envelope, or the whole body for endpoints without one."""
        if isinstance(self.body, dict) and "data" in self.body:
            return self.body["data"]
        return self.body

    def __repr__(self) -> str:
        return f"ApiResponse(status_code={self.status_code}, message={self.message!r})"


class RentEaseApiClient:
    """
    Typed wrapper around httpx.AsyncClient.

    Adds "Authorization: Bearer <token>" whenever the shared AuthSession holds a token.
    Use as an async context manager or call aclose() when done.
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: AuthSession,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.session = session
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "RentEaseApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[dict] = None,
        data: Optional[dict] = None,
        files: Optional[dict] = None,
    ) -> ApiResponse:
        headers = {}
        token = self.session.token
        if token:
            headers["Authorization"] = f"Bearer {token}"

        started = time.monotonic()
        response = await self._client.request(
            method, path, json=json, params=params, data=data, files=files, headers=headers
        )
        try:
            body = response.json()
        except ValueError:
            body = None

        logger.info(
            "api.request",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "elapsed_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return ApiResponse(response.status_code, body)

    # ----------------
    # Properties
    # ----------------
    async def list_properties(self, **filters: Any) -> ApiResponse:
        # Supported filters: min_price, max_price, bedroom_count, bathroom_count,
        # furniture_type, landlord_id, page, limit
        params = {k: v for k, v in filters.items() if v is not None}
        return await self._request("GET", "/properties", params=params or None)

    async def get_property(self, property_id: int) -> ApiResponse:
        return await self._request("GET", f"/properties/{property_id}")

    async def create_property(self, payload: dict) -> ApiResponse:
        return await self._request("POST", "/properties", json=payload)

    async def update_property(self, property_id: int, payload: dict) -> ApiResponse:
        return await self._request("PUT", f"/properties/{property_id}", json=payload)

    async def delete_property(self, property_id: int) -> ApiResponse:
        return await self._request("DELETE", f"/properties/{property_id}")

    async def upload_property_image(
        self, property_id: int, filename: str, content: bytes, content_type: str = "image/jpeg"
    ) -> ApiResponse:
        return await self._request(
            "POST",
            "/properties/upload-image",
            data={"property_id": str(property_id)},
            files={"image": (filename, content, content_type)},
        )

    # ----------------
    # Users
    # ----------------
    async def list_users(self) -> ApiResponse:
        return await self._request("GET", "/users")

    async def get_user(self, user_id: int) -> ApiResponse:
        return await self._request("GET", f"/users/{user_id}")

    async def update_user(self, user_id: int, payload: dict) -> ApiResponse:
        return await self._request("PUT", f"/users/{user_id}", json=payload)

    async def delete_user(self, user_id: int) -> ApiResponse:
        return await self._request("DELETE", f"/users/{user_id}")

    # ----------------
    # Auth
    # ----------------
    async def login(self, username: str, password: str, user_type: Optional[str] = None) -> ApiResponse:
        payload = {"username": username, "password": password}
        if user_type:
            payload["user_type"] = user_type
        return await self._request("POST", "/auth/login", json=payload)

    async def register(self, payload: dict) -> ApiResponse:
        return await self._request("POST", "/auth/register", json=payload)

    async def change_password(self, current_password: str, new_password: str) -> ApiResponse:
        return await self._request(
            "POST",
            "/auth/password",
            json={"current_password": current_password, "new_password": new_password},
        )

    async def get_current_user(self) -> ApiResponse:
        return await self._request("GET", "/auth/me")

    # ----------------
    # Contact requests
    # ----------------
    async def list_requests(self) -> ApiResponse:
        return await self._request("GET", "/requests")

    async def get_request(self, request_id: int) -> ApiResponse:
        return await self._request("GET", f"/requests/{request_id}")

    async def create_request(self, payload: dict) -> ApiResponse:
        return await self._request("POST", "/requests", json=payload)

    async def list_landlord_requests(self, landlord_id: int) -> ApiResponse:
        return await self._request("GET", f"/requests/landlord/{landlord_id}")

    async def mark_request_read(self, request_id: int) -> ApiResponse:
        return await self._request("PATCH", f"/requests/{request_id}/read")

    async def landlord_unread_count(self, landlord_id: int) -> ApiResponse:
        return await self._request("GET", f"/requests/landlord/{landlord_id}/unread-count")

    async def delete_request(self, request_id: int) -> ApiResponse:
        return await self._request("DELETE", f"/requests/{request_id}")
