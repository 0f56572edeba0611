# Composition root: builds one instance of every collaborator and wires them by reference.
from __future__ import annotations

import logging
from typing import Optional

import httpx

from .api_client import RentEaseApiClient
from .auth_session import AuthSession
from .config import Settings, configure_logging
from .db import Database
from .local_store import FavoriteStore, PropertyStore, RequestStore, UserStore
from .repositories.auth import AuthRepository
from .repositories.favorites import FavoriteRepository
from .repositories.properties import PropertyRepository
from .repositories.requests import RequestRepository
from .repositories.users import UserRepository

logger = logging.getLogger("rentease")


class Container:
    """
    Application-lifetime owner of the cache database, HTTP client, session and repositories.

    Usage:

        async with Container.from_settings(Settings.from_env()) as app:
            result = await app.properties.list()
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.database = Database(settings.cache_database_url, echo=settings.sql_echo)
        self.database.init_schema()
        self.session = AuthSession()
        self.api = RentEaseApiClient(
            settings.api_base_url,
            session=self.session,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

        self.property_store = PropertyStore(self.database)
        self.user_store = UserStore(self.database)
        self.request_store = RequestStore(self.database)
        self.favorite_store = FavoriteStore(self.database)

        self.properties = PropertyRepository(self.api, self.property_store)
        self.users = UserRepository(self.api, self.user_store)
        self.requests = RequestRepository(self.api, self.request_store)
        self.auth = AuthRepository(self.api, self.session, self.users)
        self.favorites = FavoriteRepository(self.favorite_store, self.property_store)

    @classmethod
    def from_settings(
        cls, settings: Settings, *, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "Container":
        configure_logging(settings.log_level)
        container = cls(settings, transport=transport)
        logger.info(
            "container.ready",
            extra={"api_base_url": settings.api_base_url, "cache": settings.cache_database_url},
        )
        return container

    async def __aenter__(self) -> "Container":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.api.aclose()
        self.database.dispose()
