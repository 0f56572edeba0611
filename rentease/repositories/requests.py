# Contact requests (inquiries) sent by prospective tenants to a landlord about a listing.
from __future__ import annotations

import logging
from typing import List, Optional

from ..api_client import RentEaseApiClient
from ..local_store import RequestStore
from ..result import Error, Result, Success
from ..schemas import ContactRequest, ContactRequestCreate
from ..validation import validate_contact_request
from .base import BaseRepository


def parse_request_list(data) -> List[ContactRequest]:
    """Accept both {"requests": [...]} and a bare list."""
    if isinstance(data, dict):
        data = data.get("requests") or []
    if not isinstance(data, list):
        raise ValueError("Unexpected requests payload")
    return [ContactRequest.model_validate(item) for item in data]


class RequestRepository(BaseRepository):
    logger = logging.getLogger("rentease.repository.requests")

    def __init__(self, api: RentEaseApiClient, store: RequestStore) -> None:
        super().__init__(api)
        self.store = store

    def watch(self):
        return self.store.watch_all()

    async def list(self, force_refresh: bool = False) -> Result[List[ContactRequest]]:
        """Every inquiry (admin view). Cache-first, stale fallback, Error only when nothing is cached."""
        try:
            if not force_refresh:
                cached = await self.store.get_all()
                if cached:
                    return Success(cached)

            response = await self.api.list_requests()
            if response.is_successful:
                await self.store.replace_all(parse_request_list(response.data))
                # Re-read so locally recorded read flags survive the refresh
                return Success(await self.store.get_all())
            failure = self.error_from_response("requests.list", response, "Failed to get requests")
        except Exception as exc:
            failure = self.error_from_exception("requests.list", exc)

        try:
            cached = await self.store.get_all()
        except Exception as exc:
            self.error_from_exception("requests.list.fallback", exc)
            return failure
        return Success(cached) if cached else failure

    async def submit(self, request: ContactRequestCreate) -> Result[ContactRequest]:
        """Validate, send to the server, and cache the created inquiry."""
        error = validate_contact_request(request)
        if error:
            return Error(error)

        try:
            response = await self.api.create_request(request.model_dump())
            if not response.is_successful:
                return self.error_from_response("requests.submit", response, "Failed to submit request")
            created = ContactRequest.model_validate(response.data)
        except Exception as exc:
            return self.error_from_exception("requests.submit", exc)

        await self.cache_quietly("requests.cache_write", self.store.upsert(created))
        self.logger.info(
            "requests.submitted",
            extra={"request_id": created.id, "property_id": created.property_id, "landlord_id": created.landlord_id},
        )
        return Success(created)

    async def get_by_id(self, request_id: int, force_refresh: bool = False) -> Result[ContactRequest]:
        try:
            if not force_refresh:
                cached = await self.store.get_by_id(request_id)
                if cached is not None:
                    return Success(cached)

            response = await self.api.get_request(request_id)
            if response.is_successful:
                item = ContactRequest.model_validate(response.data)
                await self.store.upsert(item)
                return Success(item)
            failure = self.error_from_response("requests.get", response, "Failed to get request")
        except Exception as exc:
            failure = self.error_from_exception("requests.get", exc)

        try:
            cached = await self.store.get_by_id(request_id)
        except Exception as exc:
            self.error_from_exception("requests.get.fallback", exc)
            return failure
        return Success(cached) if cached is not None else failure

    async def list_for_landlord(self, landlord_id: int, force_refresh: bool = False) -> Result[List[ContactRequest]]:
        """
        Inquiries addressed to one landlord, newest first.

        Never fails: on any error the cached rows for this landlord (possibly none) are returned.
        """
        try:
            if not force_refresh:
                cached = await self.store.get_by_foreign_key(landlord_id)
                if cached:
                    return Success(cached)

            response = await self.api.list_landlord_requests(landlord_id)
            if response.is_successful:
                items = [r for r in parse_request_list(response.data) if r.landlord_id == landlord_id]
                await self.store.upsert_many(items)
                # Re-read so read flags already recorded locally win over stale payloads
                fresh_ids = {r.id for r in items}
                merged = [r for r in await self.store.get_by_foreign_key(landlord_id) if r.id in fresh_ids]
                return Success(merged)
            self.error_from_response("requests.by_landlord", response)
        except Exception as exc:
            self.error_from_exception("requests.by_landlord", exc)

        try:
            return Success(await self.store.get_by_foreign_key(landlord_id))
        except Exception as exc:
            self.error_from_exception("requests.by_landlord.fallback", exc)
            return Success([])

    async def mark_as_read(self, request_id: int) -> Result[Optional[ContactRequest]]:
        """PATCH the read flag; the cached row flips to read only after the server accepted."""
        try:
            response = await self.api.mark_request_read(request_id)
            if not response.is_successful:
                return self.error_from_response("requests.mark_read", response, "Failed to update request")
            item = None
            if isinstance(response.data, dict) and "id" in response.data:
                item = ContactRequest.model_validate(response.data)
        except Exception as exc:
            return self.error_from_exception("requests.mark_read", exc)

        # The server has recorded the read; from here on cache trouble is only logged
        try:
            if item is None:
                item = await self.store.get_by_id(request_id)
        except Exception as exc:
            self.error_from_exception("requests.mark_read.cache_read", exc)
        if item is None:
            return Success(None)
        item = item.model_copy(update={"is_read": True})
        await self.cache_quietly("requests.cache_write", self.store.upsert(item))
        return Success(item)

    async def unread_count(self, landlord_id: int) -> Result[int]:
        """Server count when reachable, otherwise the number of unread cached rows."""
        try:
            response = await self.api.landlord_unread_count(landlord_id)
            if response.is_successful:
                data = response.data
                count = data.get("count", data.get("unread_count")) if isinstance(data, dict) else data
                return Success(int(count))
            self.error_from_response("requests.unread_count", response)
        except Exception as exc:
            self.error_from_exception("requests.unread_count", exc)

        try:
            return Success(await self.store.count_unread(landlord_id))
        except Exception as exc:
            return self.error_from_exception("requests.unread_count.fallback", exc)

    async def delete(self, request_id: int) -> Result[None]:
        try:
            response = await self.api.delete_request(request_id)
            if not response.is_successful:
                return self.error_from_response("requests.delete", response, "Failed to delete request")
        except Exception as exc:
            return self.error_from_exception("requests.delete", exc)
        await self.cache_quietly("requests.cache_delete", self.store.delete(request_id))
        return Success(None)
