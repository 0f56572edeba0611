# Pytest configuration for the client data-access tests.
# Every test gets a fresh SQLite cache file and an in-memory fake backend reached through httpx.
import asyncio
import os
from typing import Iterator

import pytest

# Test-time environment: nothing may reach a real server or the working-directory cache
os.environ.setdefault("RENTEASE_API_BASE_URL", "http://testserver")
os.environ.setdefault("RENTEASE_LOG_LEVEL", "DEBUG")

import sys
# Ensure the repo root and tests/ are on sys.path so 'rentease' and 'fake_backend' resolve from anywhere
HERE = os.path.dirname(os.path.abspath(__file__))
ROOT = os.path.abspath(os.path.join(HERE, ".."))
for path in (ROOT, HERE):
    if path not in sys.path:
        sys.path.insert(0, path)

from rentease.config import Settings  # noqa: E402
from rentease.container import Container  # noqa: E402
from rentease.db import Database  # noqa: E402
from rentease.schemas import User  # noqa: E402
from fake_backend import BackendState, SwitchableTransport, create_app  # noqa: E402


@pytest.fixture()
def database(tmp_path) -> Iterator[Database]:
    """
    Stand-alone cache database for store-level tests.

    A new SQLite file per test keeps tests independent without transactional tricks.
    """
    db = Database(f"sqlite:///{tmp_path / 'store.db'}")
    db.init_schema()
    yield db
    db.dispose()


@pytest.fixture()
def backend() -> BackendState:
    """Empty fake server state; tests seed it through the add_* helpers."""
    return BackendState()


@pytest.fixture()
def transport(backend: BackendState) -> SwitchableTransport:
    return SwitchableTransport(create_app(backend))


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        api_base_url="http://testserver",
        cache_database_url=f"sqlite:///{tmp_path / 'cache.db'}",
        http_timeout_seconds=5.0,
        log_level="DEBUG",
    )


@pytest.fixture()
def container(settings: Settings, transport: SwitchableTransport) -> Iterator[Container]:
    """
    Fully wired client (API client, cache, session, repositories) talking to the fake backend.
    """
    app = Container.from_settings(settings, transport=transport)
    yield app
    asyncio.run(app.aclose())


@pytest.fixture()
def sign_in(container: Container):
    """Put a backend user dict into the client's session without going through /auth/login."""

    def _sign_in(user: dict) -> User:
        profile = User.model_validate(user)
        container.session.login(profile, f"demo-token-{profile.id}")
        return profile

    return _sign_in
