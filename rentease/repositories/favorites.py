# Favorites are bookmarks kept on the device only; the server never sees them.
from __future__ import annotations

import logging
from typing import List

from ..local_store import FavoriteStore, PropertyStore
from ..result import Result, Success
from ..schemas import Favorite, Property
from .base import BaseRepository


class FavoriteRepository(BaseRepository):
    logger = logging.getLogger("rentease.repository.favorites")

    def __init__(self, store: FavoriteStore, properties: PropertyStore) -> None:
        super().__init__(api=None)
        self.store = store
        self.properties = properties

    def watch(self, user_id: int):
        """One user's bookmarks now and after every favorites write (async iterator)."""
        return self.store.watch_user(user_id)

    async def list_for_user(self, user_id: int) -> Result[List[Favorite]]:
        try:
            return Success(await self.store.list_for_user(user_id))
        except Exception as exc:
            return self.error_from_exception("favorites.list", exc)

    async def is_favorite(self, user_id: int, property_id: int) -> Result[bool]:
        try:
            return Success(await self.store.is_favorite(user_id, property_id))
        except Exception as exc:
            return self.error_from_exception("favorites.check", exc)

    async def toggle(self, user_id: int, property_id: int) -> Result[bool]:
        """Flip the bookmark; returns True when the property is now a favorite."""
        try:
            if await self.store.is_favorite(user_id, property_id):
                await self.store.remove(user_id, property_id)
                return Success(False)
            await self.store.add(user_id, property_id)
            return Success(True)
        except Exception as exc:
            return self.error_from_exception("favorites.toggle", exc)

    async def favorite_properties(self, user_id: int) -> Result[List[Property]]:
        """Cached listings the user bookmarked; bookmarks whose listing is not cached are skipped."""
        try:
            favorites = await self.store.list_for_user(user_id)
            found = []
            for fav in favorites:
                prop = await self.properties.get_by_id(fav.property_id)
                if prop is not None:
                    found.append(prop)
            return Success(found)
        except Exception as exc:
            return self.error_from_exception("favorites.properties", exc)
