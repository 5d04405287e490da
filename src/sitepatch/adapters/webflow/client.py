"""HTTP client for the Webflow Data API."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, cast

from pydantic import BaseModel
from pydantic import ValidationError as PayloadValidationError

from sitepatch.adapters.http_resilience import ResilientClient
from sitepatch.adapters.rate_limit import RateLimitManager
from sitepatch.domain.errors import ApiError, RateLimitedError

from .schema import (
    Collection,
    CollectionItem,
    CollectionItemList,
    CollectionList,
    ErrorResponse,
    Page,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    import httpx

    from sitepatch.config.http_resilience import ResilienceConfig
    from sitepatch.config.webflow import WebflowConfig
    from sitepatch.domain.model import RateLimitState
    from sitepatch.domain.ports import RemoteBackend

log = getLogger(__name__)

JsonObject = dict[str, object]

# set by hishel on responses replayed from its storage
CACHE_HIT_EXTENSIONS = ("hishel_from_cache", "from_cache")


class WebflowClient:
    """Async client for the page and CMS endpoints the engine writes through.

    Every request goes through the shared :class:`RateLimitManager`, which is
    refreshed from the response headers before the status code is inspected.
    """

    def __init__(
        self,
        *,
        config: WebflowConfig,
        rate_limits: RateLimitManager | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None
        self.rate_limits = rate_limits or RateLimitManager()

    async def __aenter__(self) -> WebflowClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def site_id(self) -> str:
        return self._config.site_id

    @property
    def rate_limit_info(self) -> RateLimitState:
        return self.rate_limits.state

    async def get_page(self, page_id: str) -> Page:
        payload = await self._call("GET", f"pages/{page_id}")
        return _parse(Page, payload)

    async def update_page(self, page_id: str, payload: Mapping[str, object]) -> Page:
        response = await self._call("PATCH", f"pages/{page_id}", json=dict(payload))
        return _parse(Page, response)

    async def list_collections(self, site_id: str) -> list[Collection]:
        payload = await self._call("GET", f"sites/{site_id}/collections")
        return _parse(CollectionList, payload).collections

    async def list_collection_items(
        self,
        collection_id: str,
        *,
        offset: int = 0,
        limit: int = 100,
    ) -> CollectionItemList:
        payload = await self._call(
            "GET",
            f"collections/{collection_id}/items",
            params={"offset": offset, "limit": limit},
        )
        return _parse(CollectionItemList, payload)

    async def get_collection_item(self, collection_id: str, item_id: str) -> CollectionItem:
        payload = await self._call("GET", f"collections/{collection_id}/items/{item_id}")
        return _parse(CollectionItem, payload)

    async def update_collection_item(
        self,
        collection_id: str,
        item_id: str,
        field_data: Mapping[str, object],
    ) -> CollectionItem:
        payload = await self._call(
            "PATCH",
            f"collections/{collection_id}/items/{item_id}",
            json={"fieldData": dict(field_data)},
        )
        return _parse(CollectionItem, payload)

    async def _call(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str | int] | None = None,
        json: JsonObject | None = None,
    ) -> JsonObject:
        async def send() -> JsonObject:
            return await self._send(method, path, params=params, json=json)

        return cast(JsonObject, await self.rate_limits.execute(send))

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, str | int] | None,
        json: JsonObject | None,
    ) -> JsonObject:
        client = self._http()
        log.debug(f"Webflow {method} {path}")
        if json is None:
            response = await client.request(
                method, path, params=params, headers=self._auth_headers()
            )
        else:
            response = await client.request(
                method, path, params=params, json=json, headers=self._auth_headers()
            )
        if _served_from_cache(response):
            log.debug(f"Webflow {method} {path} served from cache")
        else:
            self.rate_limits.update_from_headers(response.headers)
        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> JsonObject:
        status = response.status_code
        if status == 429:
            raise RateLimitedError(_error_message(response), state=self.rate_limits.state)

        if response.is_success:
            if status == 204 or not response.content:
                return {}
            payload = response.json()
            if not isinstance(payload, dict):
                raise ApiError("Unexpected Webflow response payload", code=502)
            return cast(JsonObject, payload)

        message = _error_message(response)
        log.error(f"Webflow API error {status}: {message}")
        raise ApiError(message, code=status, err=response.reason_phrase or None)

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._config.access_token}"}

    def _http(self) -> ResilientClient:
        if self._client is None:
            self._client = self._client_factory(self._resilience)
        return self._client


def _parse[ModelT: BaseModel](
    model: type[ModelT],
    payload: JsonObject,
) -> ModelT:
    try:
        return model.model_validate(payload)
    except PayloadValidationError as exc:
        raise ApiError(
            f"Unexpected Webflow {model.__name__} payload: {exc.error_count()} error(s)",
            code=502,
        ) from exc


def _served_from_cache(response: httpx.Response) -> bool:
    return any(response.extensions.get(key) for key in CACHE_HIT_EXTENSIONS)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        try:
            message = ErrorResponse.model_validate(payload).message
        except PayloadValidationError:
            message = ""
        if message:
            return message
    return response.text.strip() or f"HTTP {response.status_code}"


if TYPE_CHECKING:
    _backend_check: RemoteBackend = WebflowClient(config=cast("WebflowConfig", None))
