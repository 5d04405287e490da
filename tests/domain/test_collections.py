from __future__ import annotations

import asyncio

import pytest

from sitepatch.domain.collections import CollectionResolver
from sitepatch.domain.errors import ApiError, RateLimitedError
from tests.helpers.webflow import FakeRemoteBackend


def _remote() -> FakeRemoteBackend:
    return FakeRemoteBackend(
        collections={
            "blog": {f"post-{n}": {"name": f"Post {n}"} for n in range(5)},
            "team": {"alice": {"name": "Alice"}, "bob": {"name": "Bob"}},
        }
    )


def test_resolves_and_caches_collection() -> None:
    remote = _remote()
    resolver = CollectionResolver(remote)

    first = asyncio.run(resolver.resolve_collection_id("bob"))
    second = asyncio.run(resolver.resolve_collection_id("bob"))

    assert first == second == "team"
    assert resolver.cached("bob") == "team"
    assert remote.calls["list_collections"] == 1


def test_pages_through_collection_items() -> None:
    remote = _remote()
    resolver = CollectionResolver(remote, page_size=2)

    collection_id = asyncio.run(resolver.resolve_collection_id("post-4"))

    assert collection_id == "blog"
    assert remote.listed_offsets == [("blog", 0), ("blog", 2), ("blog", 4)]


def test_stops_paging_at_reported_total() -> None:
    remote = _remote()
    resolver = CollectionResolver(remote, page_size=2)

    collection_id = asyncio.run(resolver.resolve_collection_id("alice"))

    assert collection_id == "team"
    assert remote.listed_offsets == [("blog", 0), ("blog", 2), ("blog", 4), ("team", 0)]


def test_missing_item_raises_not_found() -> None:
    resolver = CollectionResolver(_remote())

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(resolver.resolve_collection_id("ghost"))

    assert excinfo.value.code == 404
    assert excinfo.value.message == "Collection not found for item ghost"


def test_failing_collection_is_skipped() -> None:
    remote = _remote()
    remote.fail("list_collection_items", ApiError("boom", code=500))
    resolver = CollectionResolver(remote)

    assert asyncio.run(resolver.resolve_collection_id("alice")) == "team"


def test_rate_limit_failures_propagate() -> None:
    remote = _remote()
    remote.fail("list_collection_items", RateLimitedError("slow down"))
    resolver = CollectionResolver(remote)

    with pytest.raises(RateLimitedError):
        asyncio.run(resolver.resolve_collection_id("alice"))


def test_invalidate_forces_rediscovery() -> None:
    remote = _remote()
    resolver = CollectionResolver(remote)
    asyncio.run(resolver.resolve_collection_id("alice"))

    resolver.invalidate("alice")
    asyncio.run(resolver.resolve_collection_id("alice"))

    assert resolver.cached("alice") == "team"
    assert remote.calls["list_collections"] == 2
