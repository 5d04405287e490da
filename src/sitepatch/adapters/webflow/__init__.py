"""Public interface for the Webflow Data API adapter."""

from __future__ import annotations

from .client import WebflowClient
from .schema import (
    Collection,
    CollectionItem,
    CollectionItemList,
    ErrorResponse,
    Page,
    PageSeo,
)

__all__ = [
    "Collection",
    "CollectionItem",
    "CollectionItemList",
    "ErrorResponse",
    "Page",
    "PageSeo",
    "WebflowClient",
]
