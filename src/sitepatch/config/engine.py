"""Mutation engine defaults: rate-limit strategy, disabled kinds, estimates."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Literal, cast, get_args

from .env import optional_env_var, optional_float_env, optional_int_env, split_list
from .errors import ConfigurationError

RateLimitStrategy = Literal["queue", "retry", "throw"]

DEFAULT_STRATEGY: Final[RateLimitStrategy] = "queue"
DEFAULT_MAX_RETRIES: Final[int] = 3
DEFAULT_BASE_DELAY_SECONDS: Final[float] = 1.0
DEFAULT_DISABLED_KINDS: Final[tuple[str, ...]] = ("introduction_text",)
ESTIMATED_MS_PER_OPERATION: Final[int] = 2000


@dataclass(frozen=True, slots=True)
class RateLimitConfig:
    strategy: RateLimitStrategy = DEFAULT_STRATEGY
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS

    def __post_init__(self) -> None:
        if self.strategy not in get_args(RateLimitStrategy):
            raise ConfigurationError(f"Unknown rate limit strategy: {self.strategy}")
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be non-negative")
        if self.base_delay_seconds < 0:
            raise ConfigurationError("base_delay_seconds must be non-negative")


@dataclass(frozen=True, slots=True)
class EngineConfig:
    disabled_kinds: tuple[str, ...] = DEFAULT_DISABLED_KINDS
    estimated_ms_per_operation: int = ESTIMATED_MS_PER_OPERATION


def get_rate_limit_config() -> RateLimitConfig:
    strategy = optional_env_var("SITEPATCH_RATE_LIMIT_STRATEGY") or DEFAULT_STRATEGY
    return RateLimitConfig(
        strategy=cast(RateLimitStrategy, strategy.lower()),
        max_retries=optional_int_env("SITEPATCH_MAX_RETRIES", DEFAULT_MAX_RETRIES),
        base_delay_seconds=optional_float_env(
            "SITEPATCH_BASE_DELAY_SECONDS", DEFAULT_BASE_DELAY_SECONDS
        ),
    )


def get_engine_config() -> EngineConfig:
    raw = optional_env_var("SITEPATCH_DISABLED_KINDS")
    if raw is None:
        return EngineConfig()
    # "none" re-enables every kind
    disabled = () if raw.lower() == "none" else split_list(raw)
    return EngineConfig(disabled_kinds=disabled)
