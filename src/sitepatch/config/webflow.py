"""Webflow Data API configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field

from .env import optional_env_var, require_env_vars, split_list
from .errors import ConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig

WEBFLOW_BASE_URL = "https://api.webflow.com/v2/"
WEBFLOW_TIMEOUT_SECONDS = 10.0
COLLECTION_CACHE_TTL_SECONDS = 300.0


def _is_collection_listing(payload: object) -> bool:
    # pages and items are never cached
    return isinstance(payload, dict) and "collections" in payload


def default_webflow_resilience(base_url: str = WEBFLOW_BASE_URL) -> ResilienceConfig:
    return ResilienceConfig(
        name="webflow",
        base_url=base_url,
        timeout_seconds=WEBFLOW_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=60, per_seconds=60.0),
        cache=CacheConfig(
            backend="memory",
            default_ttl_seconds=COLLECTION_CACHE_TTL_SECONDS,
            should_cache=_is_collection_listing,
        ),
        default_headers={"Accept": "application/json"},
    )


@dataclass(frozen=True)
class WebflowConfig:
    """Credentials and target site for the Webflow Data API."""

    access_token: str
    site_id: str
    scopes: tuple[str, ...]
    resilience: ResilienceConfig = field(default_factory=default_webflow_resilience)


def get_webflow_config(*, resilience: ResilienceConfig | None = None) -> WebflowConfig:
    values = require_env_vars(("WEBFLOW_ACCESS_TOKEN", "WEBFLOW_SITE_ID", "WEBFLOW_TOKEN_SCOPES"))
    scopes = split_list(values["WEBFLOW_TOKEN_SCOPES"])
    if not scopes:
        raise ConfigurationError("WEBFLOW_TOKEN_SCOPES does not contain any scope")
    base_url = optional_env_var("WEBFLOW_API_BASE_URL") or WEBFLOW_BASE_URL
    return WebflowConfig(
        access_token=values["WEBFLOW_ACCESS_TOKEN"],
        site_id=values["WEBFLOW_SITE_ID"],
        scopes=scopes,
        resilience=resilience or default_webflow_resilience(base_url),
    )
