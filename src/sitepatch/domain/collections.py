"""Discover which CMS collection owns an item."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

from .errors import ApiError

if TYPE_CHECKING:
    from .ports import RemoteBackend

log = getLogger(__name__)

ITEMS_PAGE_SIZE: Final[int] = 100


class CollectionResolver:
    """Lazily map item ids to collection ids, memoising every hit.

    The first lookup for an item walks every collection of the site and pages
    through its items, so it costs one request per collection page. Later
    lookups for the same item are served from memory until :meth:`invalidate`
    drops the mapping.
    """

    def __init__(self, remote: RemoteBackend, *, page_size: int = ITEMS_PAGE_SIZE) -> None:
        self._remote = remote
        self._page_size = page_size
        self._cache: dict[str, str] = {}

    def cached(self, item_id: str) -> str | None:
        return self._cache.get(item_id)

    def invalidate(self, item_id: str) -> None:
        if self._cache.pop(item_id, None) is not None:
            log.info(f"Dropped cached collection for item {item_id}")

    async def resolve_collection_id(self, item_id: str) -> str:
        cached = self._cache.get(item_id)
        if cached is not None:
            return cached

        collections = await self._remote.list_collections(self._remote.site_id)
        for collection in collections:
            try:
                found = await self._collection_contains(collection.id, item_id)
            except ApiError as exc:
                log.warning(f"Skipping collection {collection.id} while resolving {item_id}: {exc}")
                continue
            if found:
                self._cache[item_id] = collection.id
                log.debug(f"Item {item_id} belongs to collection {collection.id}")
                return collection.id

        raise ApiError(f"Collection not found for item {item_id}", code=404, err="Not Found")

    async def _collection_contains(self, collection_id: str, item_id: str) -> bool:
        offset = 0
        while True:
            page = await self._remote.list_collection_items(
                collection_id, offset=offset, limit=self._page_size
            )
            if any(item.id == item_id for item in page.items):
                return True
            if not page.items:
                return False
            offset += len(page.items)
            total = page.total
            if total is not None and offset >= total:
                return False
            # without pagination metadata a short page is the last one
            if total is None and len(page.items) < self._page_size:
                return False
