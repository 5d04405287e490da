"""Application configuration helpers."""

from __future__ import annotations

from .engine import (
    EngineConfig,
    RateLimitConfig,
    RateLimitStrategy,
    get_engine_config,
    get_rate_limit_config,
)
from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .webflow import WebflowConfig, default_webflow_resilience, get_webflow_config

__all__ = [
    "CacheConfig",
    "ConfigurationError",
    "EngineConfig",
    "MissingConfigurationError",
    "RateLimit",
    "RateLimitConfig",
    "RateLimitStrategy",
    "ResilienceConfig",
    "RetryPolicy",
    "WebflowConfig",
    "configure_logging",
    "default_webflow_resilience",
    "get_engine_config",
    "get_rate_limit_config",
    "get_webflow_config",
    "require_env_vars",
]
