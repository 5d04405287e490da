"""Ports the engine needs from its collaborators."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from sitepatch.adapters.webflow.schema import (
        Collection,
        CollectionItem,
        CollectionItemList,
        Page,
    )

    from .model import MutationKind, MutationRequest, RateLimitState


@runtime_checkable
class CredentialProvider(Protocol):
    """Exposes the scopes granted to the active access token."""

    @property
    def granted_scopes(self) -> frozenset[str]: ...


@runtime_checkable
class DirectBackend(Protocol):
    """In-process backend that only exists inside the Designer host.

    ``apply`` returns ``True`` when the host reports success. ``False`` or an
    exception both mean "fall back to the remote backend".
    """

    name: str

    def supports(self, kind: MutationKind) -> bool: ...

    async def apply(self, request: MutationRequest) -> bool: ...


@runtime_checkable
class RemoteBackend(Protocol):
    """Network backend speaking the Webflow Data API."""

    @property
    def site_id(self) -> str: ...

    @property
    def rate_limit_info(self) -> RateLimitState: ...

    async def get_page(self, page_id: str) -> Page: ...

    async def update_page(self, page_id: str, payload: Mapping[str, object]) -> Page: ...

    async def list_collections(self, site_id: str) -> list[Collection]: ...

    async def list_collection_items(
        self,
        collection_id: str,
        *,
        offset: int = 0,
        limit: int = 100,
    ) -> CollectionItemList: ...

    async def get_collection_item(self, collection_id: str, item_id: str) -> CollectionItem: ...

    async def update_collection_item(
        self,
        collection_id: str,
        item_id: str,
        field_data: Mapping[str, object],
    ) -> CollectionItem: ...
