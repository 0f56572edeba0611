# User accounts and the landlord view over them (users whose user_type is LANDLORD).
from __future__ import annotations

import logging
from typing import List

from ..api_client import RentEaseApiClient
from ..local_store import UserStore
from ..result import Error, Result, Success
from ..schemas import User, UserUpdate
from .base import BaseRepository


def parse_user_list(data) -> List[User]:
    """Accept both {"users": [...]} and a bare list."""
    if isinstance(data, dict):
        data = data.get("users") or []
    if not isinstance(data, list):
        raise ValueError("Unexpected users payload")
    return [User.model_validate(item) for item in data]


class UserRepository(BaseRepository):
    logger = logging.getLogger("rentease.repository.users")

    def __init__(self, api: RentEaseApiClient, store: UserStore) -> None:
        super().__init__(api)
        self.store = store

    async def list(self, force_refresh: bool = False) -> Result[List[User]]:
        """All users (admin-only endpoint). Cache-first, stale fallback, Error only when nothing is cached."""
        try:
            if not force_refresh:
                cached = await self.store.get_all()
                if cached:
                    return Success(cached)

            response = await self.api.list_users()
            if response.is_successful:
                users = parse_user_list(response.data)
                await self.store.replace_all(users)
                return Success(users)
            failure = self.error_from_response("users.list", response, "Failed to get users")
        except Exception as exc:
            failure = self.error_from_exception("users.list", exc)

        try:
            cached = await self.store.get_all()
        except Exception as exc:
            self.error_from_exception("users.list.fallback", exc)
            return failure
        return Success(cached) if cached else failure

    async def get_by_id(self, user_id: int, force_refresh: bool = False) -> Result[User]:
        try:
            if not force_refresh:
                cached = await self.store.get_by_id(user_id)
                if cached is not None:
                    return Success(cached)

            response = await self.api.get_user(user_id)
            if response.is_successful:
                user = User.model_validate(response.data)
                await self.store.upsert(user)
                return Success(user)
            failure = self.error_from_response("users.get", response, "Failed to get user")
        except Exception as exc:
            failure = self.error_from_exception("users.get", exc)

        try:
            cached = await self.store.get_by_id(user_id)
        except Exception as exc:
            self.error_from_exception("users.get.fallback", exc)
            return failure
        return Success(cached) if cached is not None else failure

    async def list_landlords(self, force_refresh: bool = False) -> Result[List[User]]:
        """
        Landlord accounts.

        Cached landlords first; otherwise the user list is fetched and filtered client-side.
        Never fails: on any error the cached landlords (possibly none) are returned.
        """
        try:
            if not force_refresh:
                cached = await self.store.get_by_foreign_key("LANDLORD")
                if cached:
                    return Success(cached)

            response = await self.api.list_users()
            if response.is_successful:
                landlords = [u for u in parse_user_list(response.data) if u.is_landlord]
                await self.store.upsert_many(landlords)
                return Success(landlords)
            self.error_from_response("users.landlords", response)
        except Exception as exc:
            self.error_from_exception("users.landlords", exc)

        try:
            return Success(await self.store.get_by_foreign_key("LANDLORD"))
        except Exception as exc:
            self.error_from_exception("users.landlords.fallback", exc)
            return Success([])

    async def update(self, user_id: int, changes: UserUpdate) -> Result[User]:
        payload = changes.model_dump(exclude_none=True)
        if not payload:
            return Error("Nothing to update")
        try:
            response = await self.api.update_user(user_id, payload)
            if not response.is_successful:
                return self.error_from_response("users.update", response, "Failed to update user")
            user = User.model_validate(response.data)
        except Exception as exc:
            return self.error_from_exception("users.update", exc)
        await self.cache_quietly("users.cache_write", self.store.upsert(user))
        return Success(user)

    async def delete(self, user_id: int) -> Result[None]:
        try:
            response = await self.api.delete_user(user_id)
            if not response.is_successful:
                return self.error_from_response("users.delete", response, "Failed to delete user")
        except Exception as exc:
            return self.error_from_exception("users.delete", exc)
        await self.cache_quietly("users.cache_delete", self.store.delete(user_id))
        return Success(None)

    # ----------------
    # Local-only cache maintenance (used by AuthRepository)
    # ----------------
    async def save(self, user: User) -> Result[None]:
        try:
            await self.store.upsert(user)
        except Exception as exc:
            return self.error_from_exception("users.save", exc)
        return Success(None)

    async def clear(self) -> Result[None]:
        try:
            await self.store.delete_all()
        except Exception as exc:
            return self.error_from_exception("users.clear", exc)
        return Success(None)
