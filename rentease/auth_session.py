from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional

import jwt

from .schemas import User

logger = logging.getLogger("rentease.auth")

# The backend currently issues "demo-token-{userId}". It is not signed, so anyone can
# forge one for any user id; treat it as a development stand-in only.
DEMO_TOKEN_PREFIX = "demo-token-"


@dataclass(frozen=True)
class TokenInfo:
    user_id: Optional[int]
    expires_at: Optional[int]  # unix seconds; None when the token never expires
    signed: bool


def parse_token(token: str) -> TokenInfo:
    """
    Read the user id and expiry out of a bearer token.

    - demo-token-{userId}: unsigned, never expires.
    - JWT: the payload is read without verifying the signature (the server verifies);
      "sub" is the user id and "exp" the expiry.
    Raises ValueError for anything else.
    """
    if token.startswith(DEMO_TOKEN_PREFIX):
        raw = token[len(DEMO_TOKEN_PREFIX):]
        if not raw.isdigit():
            raise ValueError("Malformed demo token")
        return TokenInfo(user_id=int(raw), expires_at=None, signed=False)

    try:
        payload = jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.InvalidTokenError as exc:
        raise ValueError("Unrecognized token format") from exc

    sub = payload.get("sub")
    exp = payload.get("exp")
    return TokenInfo(
        user_id=int(sub) if sub is not None and str(sub).isdigit() else None,
        expires_at=int(exp) if exp is not None else None,
        signed=True,
    )


class AuthSession:
    """
    In-memory login state shared by the API client and the repositories.

    One instance per application; constructed by the Container and passed by reference.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._user: Optional[User] = None
        self._token_info: Optional[TokenInfo] = None

    def login(self, user: User, token: str) -> None:
        info = parse_token(token)
        if info.user_id is not None and info.user_id != user.id:
            logger.warning("auth.token.user_mismatch", extra={"token_user_id": info.user_id, "user_id": user.id})
        with self._lock:
            self._token = token
            self._user = user
            self._token_info = info
        if not info.signed:
            logger.debug("auth.token.unsigned", extra={"user_id": user.id})

    def logout(self) -> None:
        with self._lock:
            self._token = None
            self._user = None
            self._token_info = None

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def user_id(self) -> Optional[int]:
        return self._user.id if self._user else None

    @property
    def user_type(self) -> Optional[str]:
        return self._user.user_type if self._user else None

    @property
    def is_expired(self) -> bool:
        info = self._token_info
        if info is None or info.expires_at is None:
            return False
        return info.expires_at <= int(time.time())

    @property
    def is_logged_in(self) -> bool:
        return self._token is not None and self._user is not None and not self.is_expired

    @property
    def is_admin(self) -> bool:
        return self.is_logged_in and self.user_type == "ADMIN"

    @property
    def is_landlord(self) -> bool:
        return self.is_logged_in and self.user_type == "LANDLORD"
