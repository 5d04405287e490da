"""Application wiring: configuration and adapters assembled into a mutation engine."""

from __future__ import annotations

from contextlib import asynccontextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from sitepatch.adapters.designer import DesignerBackend
from sitepatch.adapters.rate_limit import RateLimitManager
from sitepatch.adapters.webflow import WebflowClient
from sitepatch.config import (
    ConfigurationError,
    get_engine_config,
    get_rate_limit_config,
    get_webflow_config,
)
from sitepatch.domain.engine import MutationEngine
from sitepatch.domain.model import MutationKind
from sitepatch.domain.permissions import StaticCredentials

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Iterable

    from sitepatch.adapters.http_resilience import ResilientClient
    from sitepatch.config import EngineConfig, RateLimitConfig, ResilienceConfig, WebflowConfig
    from sitepatch.domain.ports import CredentialProvider, RemoteBackend

    type ClientFactory = Callable[[ResilienceConfig], ResilientClient]

log = getLogger(__name__)


def parse_kinds(names: Iterable[str]) -> frozenset[MutationKind]:
    kinds: set[MutationKind] = set()
    for name in names:
        try:
            kinds.add(MutationKind(name.strip().lower()))
        except ValueError as exc:
            raise ConfigurationError(f"Unknown mutation kind: {name}") from exc
    return frozenset(kinds)


def build_engine(
    *,
    remote: RemoteBackend,
    credentials: CredentialProvider,
    engine_config: EngineConfig | None = None,
    host: object | None = None,
) -> MutationEngine:
    """Create an engine writing through ``remote`` and, if given, a Designer host."""

    engine_config = engine_config or get_engine_config()
    direct = DesignerBackend(host) if host is not None else None
    return MutationEngine(
        remote=remote,
        credentials=credentials,
        direct=direct,
        disabled_kinds=parse_kinds(engine_config.disabled_kinds),
        estimated_ms_per_operation=engine_config.estimated_ms_per_operation,
    )


@asynccontextmanager
async def open_engine(
    *,
    webflow_config: WebflowConfig | None = None,
    engine_config: EngineConfig | None = None,
    rate_limit_config: RateLimitConfig | None = None,
    host: object | None = None,
    client_factory: ClientFactory | None = None,
) -> AsyncIterator[MutationEngine]:
    """Yield a configured engine and close its HTTP client afterwards.

    Missing arguments are loaded from the environment.
    """

    webflow_config = webflow_config or get_webflow_config()
    rate_limits = RateLimitManager(rate_limit_config or get_rate_limit_config())
    log.info(
        f"Opening engine for site {webflow_config.site_id} "
        f"(rate limit strategy: {rate_limits.config.strategy})"
    )
    async with WebflowClient(
        config=webflow_config,
        rate_limits=rate_limits,
        client_factory=client_factory,
    ) as client:
        yield build_engine(
            remote=client,
            credentials=StaticCredentials.from_scopes(
                webflow_config.access_token, webflow_config.scopes
            ),
            engine_config=engine_config,
            host=host,
        )
