# Shared error translation for repositories.
# Everything below a repository raises; repositories turn failures into short messages.
from __future__ import annotations

import logging
from typing import Awaitable, Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError

from ..api_client import ApiResponse, RentEaseApiClient
from ..result import Error

NETWORK_ERROR = "Network error occurred"
TIMEOUT_ERROR = "Request timed out"
STORAGE_ERROR = "Local storage error"


class BaseRepository:
    """Holds the API client and maps failures to user-facing messages."""

    logger = logging.getLogger("rentease.repository")

    def __init__(self, api: Optional[RentEaseApiClient]) -> None:
        self.api = api

    @staticmethod
    def message_for_response(response: ApiResponse, default: str = "Unknown error occurred") -> str:
        code = response.status_code
        server_message: Optional[str] = response.message
        if 200 <= code < 300:
            # 2xx with {"status": "error"}
            return server_message or default
        if code == 400:
            return server_message or "Invalid request"
        if code == 401:
            return "Authentication required"
        if code == 403:
            return "Permission denied"
        if code == 404:
            return server_message or "Not found"
        if code == 409:
            return server_message or "Conflict"
        if code >= 500:
            return "Server error, please try again later"
        return server_message or f"API call failed with code: {code}"

    @staticmethod
    def message_for_exception(exc: Exception) -> str:
        if isinstance(exc, httpx.TimeoutException):
            return TIMEOUT_ERROR
        if isinstance(exc, httpx.HTTPError):
            return NETWORK_ERROR
        if isinstance(exc, SQLAlchemyError):
            return STORAGE_ERROR
        return str(exc) or exc.__class__.__name__

    def error_from_response(self, op: str, response: ApiResponse, default: str = "Unknown error occurred") -> Error:
        message = self.message_for_response(response, default)
        self.logger.warning("%s.failed", op, extra={"status_code": response.status_code, "error": message})
        return Error(message)

    def error_from_exception(self, op: str, exc: Exception) -> Error:
        message = self.message_for_exception(exc)
        self.logger.warning("%s.error", op, extra={"error": message, "exc_type": exc.__class__.__name__})
        return Error(message)

    async def cache_quietly(self, op: str, write: Awaitable) -> None:
        """Await a cache write that follows a change the server already accepted; failures are only logged."""
        try:
            await write
        except Exception as exc:
            self.error_from_exception(op, exc)
