# Property listings: cache-first reads with network refresh and stale fallback.
# Landlords and admins create/update/delete through the server; the cache follows on success.
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from ..api_client import ApiResponse, RentEaseApiClient
from ..local_store import PropertyStore
from ..result import Error, Result, Success
from ..schemas import Attachment, Property, PropertyDraft, PropertyPage
from ..validation import validate_property_draft
from .base import BaseRepository


# The server pages GET /properties: 10 rows unless asked otherwise, never more than 100
PAGE_SIZE = 100


def parse_property_page(data) -> PropertyPage:
    """Accept both {"properties": [...], "pagination": {...}} and a bare (unpaged) list."""
    if isinstance(data, list):
        return PropertyPage(properties=[Property.model_validate(item) for item in data])
    if isinstance(data, dict):
        return PropertyPage.model_validate(data)
    raise ValueError("Unexpected properties payload")


class PropertyRepository(BaseRepository):
    logger = logging.getLogger("rentease.repository.properties")

    def __init__(self, api: RentEaseApiClient, store: PropertyStore) -> None:
        super().__init__(api)
        self.store = store

    def watch(self):
        """Cached listings now and after every cache write (async iterator)."""
        return self.store.watch_all()

    async def fetch_all(self, **filters) -> Tuple[List[Property], Optional[ApiResponse]]:
        """
        Every listing matching filters, walking the server's pages.

        Behavior:
        - Request PAGE_SIZE rows per page and follow pagination.total until it is covered.
        - Stop early on an empty page or a payload without pagination.
        - Return ([], response) on the first unsuccessful page so callers never cache a partial list.
        Transport errors propagate.
        """
        collected: Dict[int, Property] = {}
        page = 1
        while True:
            response = await self.api.list_properties(page=page, limit=PAGE_SIZE, **filters)
            if not response.is_successful:
                return [], response
            batch = parse_property_page(response.data)
            for prop in batch.properties:
                # Rows can shift between pages while walking; keep the first copy
                collected.setdefault(prop.id, prop)
            pagination = batch.pagination
            if pagination is None or not batch.properties or pagination.limit <= 0:
                break
            if page * pagination.limit >= pagination.total:
                break
            page += 1
        return list(collected.values()), None

    async def list(self, force_refresh: bool = False) -> Result[List[Property]]:
        """
        All listings.

        Behavior:
        - Cache non-empty and not forced: return the cache (stale reads allowed).
        - Otherwise fetch every page; on success replace the whole cache in one transaction.
        - On any failure return the cache if it has rows, else an Error.
        """
        try:
            if not force_refresh:
                cached = await self.store.get_all()
                if cached:
                    return Success(cached)

            properties, failed = await self.fetch_all()
            if failed is None:
                await self.store.replace_all(properties)
                self.logger.info("properties.list.refreshed", extra={"count": len(properties)})
                return Success(properties)
            failure = self.error_from_response("properties.list", failed, "Failed to get properties")
        except Exception as exc:
            failure = self.error_from_exception("properties.list", exc)

        try:
            cached = await self.store.get_all()
        except Exception as exc:
            self.error_from_exception("properties.list.fallback", exc)
            return failure
        if cached:
            self.logger.info("properties.list.stale", extra={"count": len(cached)})
            return Success(cached)
        return failure

    async def get_by_id(self, property_id: int, force_refresh: bool = False) -> Result[Property]:
        """Same order as list(), scoped to one row; the fetched row is upserted."""
        try:
            if not force_refresh:
                cached = await self.store.get_by_id(property_id)
                if cached is not None:
                    return Success(cached)

            response = await self.api.get_property(property_id)
            if response.is_successful:
                prop = Property.model_validate(response.data)
                await self.store.upsert(prop)
                return Success(prop)
            failure = self.error_from_response("properties.get", response, "Failed to get property")
        except Exception as exc:
            failure = self.error_from_exception("properties.get", exc)

        try:
            cached = await self.store.get_by_id(property_id)
        except Exception as exc:
            self.error_from_exception("properties.get.fallback", exc)
            return failure
        if cached is not None:
            return Success(cached)
        return failure

    async def get_by_landlord(self, landlord_id: int) -> Result[List[Property]]:
        """
        Listings owned by one landlord.

        Never fails: listing screens show an empty list instead of an error.
        Rows are filtered client-side as well, so other landlords' listings never leak in.
        """
        try:
            cached = await self.store.get_by_foreign_key(landlord_id)
            if cached:
                return Success(cached)

            properties, failed = await self.fetch_all(landlord_id=landlord_id)
            if failed is not None:
                self.error_from_response("properties.by_landlord", failed)
                return Success([])
            owned = [p for p in properties if p.landlord_id == landlord_id]
            await self.store.upsert_many(owned)
            return Success(owned)
        except Exception as exc:
            self.error_from_exception("properties.by_landlord", exc)
            return Success([])

    async def create(self, draft: PropertyDraft, attachments: Iterable[Attachment] = ()) -> Result[Property]:
        """
        Create on the server, then cache the returned row (with its server-assigned id).

        Attachments are uploaded afterwards under the new id; a failed upload is logged
        and skipped, never failing the creation. Nothing is cached when the server refuses.
        """
        error = validate_property_draft(draft)
        if error:
            return Error(error)

        try:
            response = await self.api.create_property(draft.to_payload())
            if not response.is_successful:
                return self.error_from_response("properties.create", response, "Failed to create property")
            created = Property.model_validate(response.data)
        except Exception as exc:
            return self.error_from_exception("properties.create", exc)

        await self._cache(created, insert=True)
        created = await self._attach(created, attachments)
        self.logger.info("properties.created", extra={"property_id": created.id, "landlord_id": created.landlord_id})
        return Success(created)

    async def update(self, draft: PropertyDraft, attachments: Iterable[Attachment] = ()) -> Result[Property]:
        """Like create(), but issues an update and refreshes the existing cached row."""
        if draft.id is None:
            return Error("Property id is required")
        error = validate_property_draft(draft)
        if error:
            return Error(error)

        try:
            response = await self.api.update_property(draft.id, draft.to_payload())
            if not response.is_successful:
                return self.error_from_response("properties.update", response, "Failed to update property")
            updated = Property.model_validate(response.data)
        except Exception as exc:
            return self.error_from_exception("properties.update", exc)

        await self._cache(updated, insert=False)
        updated = await self._attach(updated, attachments)
        return Success(updated)

    async def delete(self, property_id: int) -> Result[None]:
        """Delete on the server; the cached row goes only after the server agreed (409 when still referenced)."""
        try:
            response = await self.api.delete_property(property_id)
            if not response.is_successful:
                return self.error_from_response("properties.delete", response, "Failed to delete property")
        except Exception as exc:
            return self.error_from_exception("properties.delete", exc)

        await self.cache_quietly("properties.cache_delete", self.store.delete(property_id))
        self.logger.info("properties.deleted", extra={"property_id": property_id})
        return Success(None)

    async def upload_image(self, property_id: int, attachment: Attachment) -> Result[str]:
        """Upload one image for a property; returns the served URL."""
        try:
            response = await self.api.upload_property_image(
                property_id, attachment.filename, attachment.content, attachment.content_type
            )
            if not response.is_successful:
                return self.error_from_response("properties.upload_image", response, "Failed to upload image")
            data = response.data if isinstance(response.data, dict) else {}
            url: Optional[str] = data.get("url") or data.get("image_url")
            if not url:
                return Error("Upload response missing URL")
            return Success(url)
        except Exception as exc:
            return self.error_from_exception("properties.upload_image", exc)

    async def _attach(self, prop: Property, attachments: Iterable[Attachment]) -> Property:
        urls = []
        for attachment in attachments:
            result = await self.upload_image(prop.id, attachment)
            if isinstance(result, Success):
                urls.append(result.value)
            else:
                self.logger.warning(
                    "properties.attachment.skipped",
                    extra={"property_id": prop.id, "attachment": attachment.filename, "error": result.message},
                )
        if urls and not prop.image_url:
            # The server stores the uploaded URL on the listing; mirror it locally
            prop = prop.model_copy(update={"image_url": urls[0]})
            await self._cache(prop, insert=False)
        return prop

    async def _cache(self, prop: Property, insert: bool) -> None:
        write = self.store.upsert(prop) if insert else self.store.update(prop)
        await self.cache_quietly("properties.cache_write", write)
