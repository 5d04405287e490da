from __future__ import annotations

import asyncio
from dataclasses import replace

import httpx
import pytest

from sitepatch.adapters.http_resilience import ResilientClient
from sitepatch.app import build_engine, open_engine, parse_kinds
from sitepatch.config import (
    ConfigurationError,
    EngineConfig,
    RateLimitConfig,
    ResilienceConfig,
    WebflowConfig,
    default_webflow_resilience,
)
from sitepatch.domain.model import MutationKind, MutationRequest
from tests.helpers.webflow import FakeHost, FakeRemoteBackend, make_credentials, make_page


def test_parse_kinds_normalises_names() -> None:
    assert parse_kinds([" Page_Title", "cms_field"]) == {
        MutationKind.PAGE_TITLE,
        MutationKind.CMS_FIELD,
    }


def test_parse_kinds_rejects_unknown_names() -> None:
    with pytest.raises(ConfigurationError, match="Unknown mutation kind: h3_heading"):
        parse_kinds(["h3_heading"])


def test_build_engine_prefers_designer_host() -> None:
    remote = FakeRemoteBackend(pages={"page-1": make_page()})
    host = FakeHost({"set_title": True})
    engine = build_engine(
        remote=remote,
        credentials=make_credentials(),
        engine_config=EngineConfig(disabled_kinds=()),
        host=host,
    )

    result = asyncio.run(
        engine.apply(MutationRequest(kind=MutationKind.PAGE_TITLE, value="Hi", page_id="page-1"))
    )

    assert result.success
    assert remote.calls["update_page"] == 0
    assert engine.disabled_kinds == frozenset()


def test_open_engine_closes_http_client() -> None:
    closed: list[bool] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer token"
        return httpx.Response(200, json={"id": "page-1", "title": "Hi"})

    class TrackingClient(ResilientClient):
        async def aclose(self) -> None:
            closed.append(True)
            await super().aclose()

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = TrackingClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or "",
            transport=httpx.MockTransport(handler),
        )
        return client

    config = WebflowConfig(
        access_token="token",
        site_id="site-1",
        scopes=("pages:write",),
        resilience=replace(default_webflow_resilience(), cache=None, ratelimit=None),
    )

    async def scenario() -> bool:
        async with open_engine(
            webflow_config=config,
            engine_config=EngineConfig(),
            rate_limit_config=RateLimitConfig(strategy="throw"),
            client_factory=factory,
        ) as engine:
            result = await engine.apply(
                MutationRequest(kind=MutationKind.PAGE_TITLE, value="Hi", page_id="page-1")
            )
            return result.success

    assert asyncio.run(scenario())
    assert closed == [True]
