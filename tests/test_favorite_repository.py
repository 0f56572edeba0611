# Favorites: local-only bookmarks joined against cached listings.
import asyncio

from rentease.result import Success


def test_toggle_flips_state(container):
    async def scenario():
        first = await container.favorites.toggle(1, 10)
        marked = await container.favorites.is_favorite(1, 10)
        second = await container.favorites.toggle(1, 10)
        cleared = await container.favorites.is_favorite(1, 10)
        return first, marked, second, cleared

    assert asyncio.run(scenario()) == (Success(True), Success(True), Success(False), Success(False))


# Favorites never touch the network
def test_favorites_work_offline(container, transport):
    transport.mode = "offline"

    async def scenario():
        await container.favorites.toggle(3, 20)
        return await container.favorites.list_for_user(3)

    result = asyncio.run(scenario())
    assert [f.property_id for f in result.value] == [20]
    assert transport.sent == []


# Only bookmarked listings that are cached come back
def test_favorite_properties_joins_cache(container, backend):
    landlord = backend.add_user("lara", user_type="LANDLORD")
    kept = backend.add_property(landlord["id"], title="Bookmarked")
    backend.add_property(landlord["id"], title="Ignored")

    async def scenario():
        await container.properties.list()
        await container.favorites.toggle(1, kept["id"])
        await container.favorites.toggle(1, 999)
        return await container.favorites.favorite_properties(1)

    result = asyncio.run(scenario())
    assert [p.title for p in result.value] == ["Bookmarked"]


# watch() follows one user's bookmarks and ignores other users
def test_watch_emits_after_toggle(container):
    async def scenario():
        stream = container.favorites.watch(1)
        initial = await stream.__anext__()
        await container.favorites.toggle(1, 10)
        updated = await asyncio.wait_for(stream.__anext__(), timeout=5)
        await stream.aclose()
        return initial, updated

    initial, updated = asyncio.run(scenario())
    assert initial == []
    assert [(f.user_id, f.property_id) for f in updated] == [(1, 10)]
