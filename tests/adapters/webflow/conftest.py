"""Shared fixtures for Webflow adapter tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import replace
from pathlib import Path

import httpx
import pytest

from sitepatch.adapters.http_resilience import ResilientClient
from sitepatch.adapters.rate_limit import RateLimitManager
from sitepatch.adapters.webflow import WebflowClient
from sitepatch.config import ResilienceConfig, WebflowConfig, default_webflow_resilience

WebflowPayload = dict[str, object]
Handler = Callable[[httpx.Request], httpx.Response]
ClientBuilder = Callable[..., WebflowClient]

FIXTURES = Path(__file__).resolve().parents[2] / "data" / "webflow"


def load_fixture(name: str) -> WebflowPayload:
    return json.loads((FIXTURES / name).read_text())


def _client_factory(handler: Handler) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or "",
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


@pytest.fixture
def webflow_config() -> WebflowConfig:
    resilience = replace(default_webflow_resilience(), cache=None, ratelimit=None)
    return WebflowConfig(
        access_token="test-token",
        site_id="site-1",
        scopes=("pages:write", "cms:write"),
        resilience=resilience,
    )


@pytest.fixture
def make_client(webflow_config: WebflowConfig) -> ClientBuilder:
    def build(handler: Handler, *, rate_limits: RateLimitManager | None = None) -> WebflowClient:
        return WebflowClient(
            config=webflow_config,
            rate_limits=rate_limits,
            client_factory=_client_factory(handler),
        )

    return build


@pytest.fixture
def page_payload() -> WebflowPayload:
    return load_fixture("page.json")


@pytest.fixture
def collections_payload() -> WebflowPayload:
    return load_fixture("collections.json")


@pytest.fixture
def collection_items_payload() -> WebflowPayload:
    return load_fixture("collection_items.json")
