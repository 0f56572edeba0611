# Contact request repository: submission validation, landlord inbox reads, and read-flag handling.
import asyncio

from sqlalchemy.exc import SQLAlchemyError

from rentease.result import Error, Success
from rentease.schemas import ContactRequestCreate


def seed_listing(backend):
    landlord = backend.add_user("lara", user_type="LANDLORD")
    prop = backend.add_property(landlord["id"], title="Sunny flat", address="1 Main St")
    return landlord, prop


def inquiry(prop: dict, **overrides) -> ContactRequestCreate:
    fields = {
        "property_id": prop["id"],
        "landlord_id": prop["landlord_id"],
        "requester_name": "Tina Tenant",
        "requester_email": "tina@example.com",
        "requester_phone": "  ",
        "message": "Can I visit on Friday?",
    }
    fields.update(overrides)
    return ContactRequestCreate(**fields)


# Missing fields and malformed emails are rejected before any request is sent
def test_submit_validates_before_network(container, backend, transport):
    _, prop = seed_listing(backend)

    async def scenario():
        missing = await container.requests.submit(inquiry(prop, message=" "))
        bad_email = await container.requests.submit(inquiry(prop, requester_email="not-an-email"))
        return missing, bad_email

    missing, bad_email = asyncio.run(scenario())
    assert missing == Error("All fields are required")
    assert bad_email == Error("Invalid email address")
    assert transport.sent == []


# A submitted inquiry is cached with the server's id and denormalized property fields
def test_submit_caches_created_request(container, backend):
    _, prop = seed_listing(backend)

    async def scenario():
        result = await container.requests.submit(inquiry(prop))
        return result, await container.request_store.get_by_id(result.value.id)

    result, cached = asyncio.run(scenario())
    assert isinstance(result, Success)
    assert result.value.property_title == "Sunny flat"
    assert result.value.requester_phone is None
    assert cached is not None and cached.is_read is False


# Server-side consistency checks come back as the server's message
def test_submit_for_wrong_landlord_is_error(container, backend):
    _, prop = seed_listing(backend)
    result = asyncio.run(container.requests.submit(inquiry(prop, landlord_id=prop["landlord_id"] + 100)))
    assert result == Error("Landlord does not own this property")


# The landlord inbox only ever holds that landlord's requests
def test_list_for_landlord_only_returns_own_requests(container, backend):
    landlord, prop = seed_listing(backend)
    other = backend.add_user("leo", user_type="LANDLORD")
    other_prop = backend.add_property(other["id"])
    backend.add_request(prop["id"], requester_name="First")
    backend.add_request(other_prop["id"], requester_name="Elsewhere")
    backend.add_request(prop["id"], requester_name="Second")

    result = asyncio.run(container.requests.list_for_landlord(landlord["id"]))
    assert isinstance(result, Success)
    assert [r.requester_name for r in result.value] == ["Second", "First"]


# Offline inbox reads return whatever is cached for the landlord, never an error
def test_list_for_landlord_offline_uses_cache(container, backend, transport):
    landlord, prop = seed_listing(backend)
    backend.add_request(prop["id"])

    async def scenario():
        await container.requests.list_for_landlord(landlord["id"])
        transport.mode = "offline"
        cached = await container.requests.list_for_landlord(landlord["id"], force_refresh=True)
        empty = await container.requests.list_for_landlord(landlord["id"] + 50, force_refresh=True)
        return cached, empty

    cached, empty = asyncio.run(scenario())
    assert len(cached.value) == 1
    assert empty == Success([])


# Once read, a request stays read locally even if a later payload says otherwise
def test_read_flag_never_regresses(container, backend):
    landlord, prop = seed_listing(backend)
    req = backend.add_request(prop["id"])

    async def scenario():
        await container.requests.list_for_landlord(landlord["id"])
        marked = await container.requests.mark_as_read(req["id"])
        backend.requests[req["id"]]["is_read"] = False
        refreshed = await container.requests.list_for_landlord(landlord["id"], force_refresh=True)
        return marked, refreshed

    marked, refreshed = asyncio.run(scenario())
    assert isinstance(marked, Success) and marked.value.is_read is True
    assert refreshed.value[0].is_read is True


# A failed PATCH leaves the cached flag alone
def test_mark_as_read_failure_keeps_cache(container, backend, transport):
    landlord, prop = seed_listing(backend)
    req = backend.add_request(prop["id"])

    async def scenario():
        await container.requests.list_for_landlord(landlord["id"])
        transport.mode = "timeout"
        result = await container.requests.mark_as_read(req["id"])
        return result, await container.request_store.get_by_id(req["id"])

    result, cached = asyncio.run(scenario())
    assert result == Error("Request timed out")
    assert cached.is_read is False


def test_mark_unknown_request_is_not_found(container):
    result = asyncio.run(container.requests.mark_as_read(999))
    assert result == Error("Request not found")


# Unread badge: server count online, cached count offline
def test_unread_count_falls_back_to_cache(container, backend, transport):
    landlord, prop = seed_listing(backend)
    backend.add_request(prop["id"])
    backend.add_request(prop["id"], is_read=True)
    backend.add_request(prop["id"])

    async def scenario():
        online = await container.requests.unread_count(landlord["id"])
        await container.requests.list_for_landlord(landlord["id"])
        backend.add_request(prop["id"])
        transport.mode = "offline"
        offline = await container.requests.unread_count(landlord["id"])
        return online, offline

    online, offline = asyncio.run(scenario())
    assert online == Success(2)
    # The request added after the last sync is not known locally
    assert offline == Success(2)


def test_delete_removes_cached_request(container, backend):
    _, prop = seed_listing(backend)

    async def scenario():
        created = await container.requests.submit(inquiry(prop))
        deleted = await container.requests.delete(created.value.id)
        return deleted, await container.request_store.get_by_id(created.value.id)

    deleted, cached = asyncio.run(scenario())
    assert deleted == Success(None)
    assert cached is None
    assert backend.requests == {}


# get_by_id prefers the cache and falls back to it when the server is unreachable
def test_get_by_id_uses_cache_offline(container, backend, transport):
    _, prop = seed_listing(backend)
    req = backend.add_request(prop["id"], requester_name="Cached")

    async def scenario():
        await container.requests.get_by_id(req["id"])
        transport.mode = "offline"
        return await container.requests.get_by_id(req["id"], force_refresh=True)

    result = asyncio.run(scenario())
    assert isinstance(result, Success)
    assert result.value.requester_name == "Cached"


# The admin list caches every inquiry and serves the cache when the server is unreachable
def test_list_all_requests_online_then_offline(container, backend, transport):
    _, prop = seed_listing(backend)
    backend.add_request(prop["id"], requester_name="First")
    backend.add_request(prop["id"], requester_name="Second")

    async def scenario():
        online = await container.requests.list()
        transport.mode = "offline"
        offline = await container.requests.list(force_refresh=True)
        return online, offline, await container.request_store.count()

    online, offline, cached = asyncio.run(scenario())
    assert [r.requester_name for r in online.value] == ["Second", "First"]
    assert offline == online
    assert cached == 2


def test_list_all_requests_without_cache_or_network(container, transport):
    transport.mode = "offline"
    result = asyncio.run(container.requests.list())
    assert result == Error("Network error occurred")


# A refresh of the admin list keeps read flags recorded on this device
def test_list_all_requests_keeps_local_read_flag(container, backend):
    _, prop = seed_listing(backend)
    req = backend.add_request(prop["id"])

    async def scenario():
        await container.requests.list()
        await container.requests.mark_as_read(req["id"])
        # The server forgets the flag, e.g. a replica that lags behind
        backend.requests[req["id"]]["is_read"] = False
        return await container.requests.list(force_refresh=True)

    result = asyncio.run(scenario())
    assert result.value[0].is_read is True


# A delete the server accepted is reported as done even if the cache cannot drop the row
def test_delete_succeeds_when_cache_write_fails(container, backend, monkeypatch):
    _, prop = seed_listing(backend)
    req = backend.add_request(prop["id"])

    async def broken_delete(request_id):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(container.request_store, "delete", broken_delete)
    result = asyncio.run(container.requests.delete(req["id"]))
    assert result == Success(None)
    assert backend.requests == {}
