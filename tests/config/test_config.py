from __future__ import annotations

import pytest

from sitepatch.config import (
    ConfigurationError,
    MissingConfigurationError,
    RateLimitConfig,
    get_engine_config,
    get_rate_limit_config,
    get_webflow_config,
)
from sitepatch.config.webflow import WEBFLOW_BASE_URL

WEBFLOW_VARS = ("WEBFLOW_ACCESS_TOKEN", "WEBFLOW_SITE_ID", "WEBFLOW_TOKEN_SCOPES")
ENGINE_VARS = (
    "WEBFLOW_API_BASE_URL",
    "SITEPATCH_RATE_LIMIT_STRATEGY",
    "SITEPATCH_MAX_RETRIES",
    "SITEPATCH_BASE_DELAY_SECONDS",
    "SITEPATCH_DISABLED_KINDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in WEBFLOW_VARS + ENGINE_VARS:
        monkeypatch.delenv(name, raising=False)


def test_webflow_config_reports_every_missing_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WEBFLOW_SITE_ID", "site-1")
    monkeypatch.setenv("WEBFLOW_ACCESS_TOKEN", "   ")

    with pytest.raises(MissingConfigurationError) as excinfo:
        get_webflow_config()

    assert str(excinfo.value) == (
        "Missing configuration for: WEBFLOW_ACCESS_TOKEN, WEBFLOW_TOKEN_SCOPES"
    )


def test_webflow_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WEBFLOW_ACCESS_TOKEN", " token ")
    monkeypatch.setenv("WEBFLOW_SITE_ID", "site-1")
    monkeypatch.setenv("WEBFLOW_TOKEN_SCOPES", "pages:write,cms:write pages:write")

    config = get_webflow_config()

    assert config.access_token == "token"
    assert config.site_id == "site-1"
    assert config.scopes == ("pages:write", "cms:write")
    assert config.resilience.base_url == WEBFLOW_BASE_URL
    assert config.resilience.cache is not None
    assert config.resilience.cache.should_cache is not None
    assert config.resilience.cache.should_cache({"collections": []})
    assert not config.resilience.cache.should_cache({"id": "page-1"})


def test_webflow_base_url_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WEBFLOW_ACCESS_TOKEN", "token")
    monkeypatch.setenv("WEBFLOW_SITE_ID", "site-1")
    monkeypatch.setenv("WEBFLOW_TOKEN_SCOPES", "pages:write")
    monkeypatch.setenv("WEBFLOW_API_BASE_URL", "http://localhost:8080/v2/")

    assert get_webflow_config().resilience.base_url == "http://localhost:8080/v2/"


def test_rate_limit_defaults() -> None:
    config = get_rate_limit_config()

    assert config == RateLimitConfig(strategy="queue", max_retries=3, base_delay_seconds=1.0)


def test_rate_limit_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SITEPATCH_RATE_LIMIT_STRATEGY", "RETRY")
    monkeypatch.setenv("SITEPATCH_MAX_RETRIES", "5")
    monkeypatch.setenv("SITEPATCH_BASE_DELAY_SECONDS", "0.5")

    config = get_rate_limit_config()

    assert config == RateLimitConfig(strategy="retry", max_retries=5, base_delay_seconds=0.5)


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("SITEPATCH_RATE_LIMIT_STRATEGY", "panic"),
        ("SITEPATCH_MAX_RETRIES", "many"),
        ("SITEPATCH_MAX_RETRIES", "-1"),
        ("SITEPATCH_BASE_DELAY_SECONDS", "soon"),
    ],
)
def test_invalid_rate_limit_settings(
    monkeypatch: pytest.MonkeyPatch,
    name: str,
    value: str,
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError):
        get_rate_limit_config()


def test_engine_config_defaults_disable_introduction_text() -> None:
    config = get_engine_config()

    assert config.disabled_kinds == ("introduction_text",)
    assert config.estimated_ms_per_operation == 2000


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("none", ()),
        ("NONE", ()),
        ("custom_code, h1_heading", ("custom_code", "h1_heading")),
    ],
)
def test_engine_config_disabled_kinds(
    monkeypatch: pytest.MonkeyPatch,
    raw: str,
    expected: tuple[str, ...],
) -> None:
    monkeypatch.setenv("SITEPATCH_DISABLED_KINDS", raw)

    assert get_engine_config().disabled_kinds == expected
