# Login, registration, and password changes.
# Token issuance is the server's business; this side only keeps the session it is handed.
from __future__ import annotations

import logging
from typing import Optional

from ..api_client import ApiResponse, RentEaseApiClient
from ..auth_session import AuthSession
from ..result import Error, Result, Success
from ..schemas import AuthResponse, ChangePasswordRequest, LoginRequest, RegisterRequest, User
from ..validation import validate_login, validate_password_change, validate_registration
from .base import BaseRepository
from .users import UserRepository

NOT_LOGGED_IN = "User not logged in"


def parse_auth_response(response: ApiResponse) -> AuthResponse:
    """Accept {"token", "user"} at the top level or wrapped in "data"."""
    body = response.body if isinstance(response.body, dict) else {}
    payload = body if "token" in body else response.data
    if not isinstance(payload, dict):
        raise ValueError("Unexpected authentication payload")
    return AuthResponse(
        token=payload.get("token"),
        user=payload.get("user"),
        message=payload.get("message") or body.get("message"),
    )


class AuthRepository(BaseRepository):
    logger = logging.getLogger("rentease.repository.auth")

    def __init__(self, api: RentEaseApiClient, session: AuthSession, users: UserRepository) -> None:
        super().__init__(api)
        self.session = session
        self.users = users

    async def login(self, username: str, password: str, user_type: Optional[str] = None) -> Result[User]:
        request = LoginRequest(username=(username or "").strip(), password=password or "", user_type=user_type)
        error = validate_login(request)
        if error:
            return Error(error)
        try:
            response = await self.api.login(request.username, request.password, request.user_type)
            if not response.is_successful:
                if response.status_code == 401:
                    return Error(response.message or "Invalid credentials")
                return self.error_from_response("auth.login", response, "Login failed")
            auth = parse_auth_response(response)
        except Exception as exc:
            return self.error_from_exception("auth.login", exc)
        return await self._start_session(auth, "auth.login")

    async def register(self, request: RegisterRequest) -> Result[User]:
        error = validate_registration(request)
        if error:
            return Error(error)
        try:
            response = await self.api.register(request.model_dump())
            if not response.is_successful:
                return self.error_from_response("auth.register", response, "Registration failed")
            auth = parse_auth_response(response)
        except Exception as exc:
            return self.error_from_exception("auth.register", exc)
        return await self._start_session(auth, "auth.register")

    async def change_password(self, current_password: str, new_password: str) -> Result[None]:
        if not self.session.is_logged_in:
            return Error(NOT_LOGGED_IN)
        request = ChangePasswordRequest(current_password=current_password or "", new_password=new_password or "")
        error = validate_password_change(request)
        if error:
            return Error(error)
        try:
            response = await self.api.change_password(request.current_password, request.new_password)
            if not response.is_successful:
                # The server answers 401 when the current password does not verify
                if response.status_code in (400, 401) and response.message:
                    return Error(response.message)
                return self.error_from_response("auth.change_password", response, "Failed to change password")
        except Exception as exc:
            return self.error_from_exception("auth.change_password", exc)
        self.logger.info("auth.password_changed", extra={"user_id": self.session.user_id})
        return Success(None)

    async def current_user(self, force_refresh: bool = False) -> Result[User]:
        """
        Profile of the logged-in user.

        Cached row first; otherwise GET /auth/me. Falls back to the profile captured at login.
        """
        user_id = self.session.user_id
        if not self.session.is_logged_in or user_id is None:
            return Error(NOT_LOGGED_IN)
        try:
            if not force_refresh:
                cached = await self.users.store.get_by_id(user_id)
                if cached is not None:
                    return Success(cached)

            response = await self.api.get_current_user()
            if response.is_successful:
                data = response.data
                if isinstance(data, dict) and isinstance(data.get("user"), dict):
                    data = data["user"]
                user = User.model_validate(data)
                await self.users.save(user)
                return Success(user)
            failure = self.error_from_response("auth.me", response, "Failed to load profile")
        except Exception as exc:
            failure = self.error_from_exception("auth.me", exc)
        return Success(self.session.user) if self.session.user is not None else failure

    async def logout(self) -> Result[None]:
        user_id = self.session.user_id
        self.session.logout()
        result = await self.users.clear()
        self.logger.info("auth.logout", extra={"user_id": user_id})
        return result

    async def _start_session(self, auth: AuthResponse, op: str) -> Result[User]:
        try:
            self.session.login(auth.user, auth.token)
        except ValueError as exc:
            return self.error_from_exception(op, exc)
        # Cache failures are logged by the user repository and do not undo the login
        await self.users.save(auth.user)
        self.logger.info(op + ".success", extra={"user_id": auth.user.id, "user_type": auth.user.user_type})
        return Success(auth.user)
