# Auth session state, token parsing, the Result type, and settings loading.
import time

import jwt
import pytest

from rentease.auth_session import AuthSession, parse_token
from rentease.config import Settings
from rentease.result import Error, ResultError, Success
from rentease.schemas import User

# Only the server knows this key; the client reads tokens without it
SIGNING_KEY = "server-only-secret-0123456789abcdef"


def test_parse_demo_token():
    info = parse_token("demo-token-42")
    assert info.user_id == 42
    assert info.expires_at is None
    assert info.signed is False


def test_parse_jwt_without_verifying_signature():
    exp = int(time.time()) + 3600
    token = jwt.encode({"sub": "9", "exp": exp}, SIGNING_KEY, algorithm="HS256")
    info = parse_token(token)
    assert info.user_id == 9
    assert info.expires_at == exp
    assert info.signed is True


@pytest.mark.parametrize("token", ["demo-token-abc", "not a token", ""])
def test_parse_rejects_garbage(token):
    with pytest.raises(ValueError):
        parse_token(token)


def test_session_roles():
    session = AuthSession()
    assert not session.is_logged_in
    assert session.user_id is None

    session.login(User(id=3, username="lara", user_type="LANDLORD"), "demo-token-3")
    assert session.is_logged_in
    assert session.is_landlord
    assert not session.is_admin
    assert session.user_type == "LANDLORD"

    session.logout()
    assert not session.is_logged_in
    assert session.user is None


# An expired JWT leaves the session logged out even though a token is held
def test_expired_jwt_is_not_logged_in():
    token = jwt.encode({"sub": "5", "exp": int(time.time()) - 10}, SIGNING_KEY, algorithm="HS256")
    session = AuthSession()
    session.login(User(id=5, username="old"), token)
    assert session.token == token
    assert session.is_expired
    assert not session.is_logged_in


def test_login_with_malformed_token_raises():
    session = AuthSession()
    with pytest.raises(ValueError):
        session.login(User(id=1, username="x"), "garbage")
    assert not session.is_logged_in


def test_result_helpers():
    ok = Success([1, 2])
    err = Error("Network error occurred")
    assert ok.is_success and not err.is_success
    assert ok.get_or_none() == [1, 2]
    assert err.get_or_none() is None
    assert ok.unwrap() == [1, 2]
    with pytest.raises(ResultError, match="Network error occurred"):
        err.unwrap()


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("RENTEASE_API_BASE_URL", "https://api.rentease.test/")
    monkeypatch.setenv("RENTEASE_CACHE_DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("RENTEASE_HTTP_TIMEOUT_SECONDS", "not-a-number")
    monkeypatch.setenv("RENTEASE_LOG_LEVEL", "warning")
    monkeypatch.setenv("RENTEASE_SQL_ECHO", "yes")

    settings = Settings.from_env()
    assert settings.api_base_url == "https://api.rentease.test"
    assert settings.cache_database_url == "sqlite:///:memory:"
    assert settings.http_timeout_seconds == 10.0
    assert settings.log_level == "WARNING"
    assert settings.sql_echo is True
