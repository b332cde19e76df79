"""Shared fixtures for unit tests."""

import os
from collections.abc import Generator
from typing import cast

import pytest
from pytest_mock import MockerFixture, MockType

from src.core.config import LogConfig, Settings, get_settings
from src.core.context import RequestContext
from src.core.error_context import _get_sensitive_fields


@pytest.fixture
def mock_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Real settings for a development deployment named ``TestApp`` on port 3000."""
    for name, value in {
        "APP_NAME": "TestApp",
        "APP_VERSION": "1.0.0",
        "ENVIRONMENT": "development",
        "DEBUG": "false",
        "API_HOST": "127.0.0.1",
        "API_PORT": "3000",
    }.items():
        monkeypatch.setenv(name, value)

    return Settings()


@pytest.fixture
def mock_app(mocker: MockerFixture) -> MockType:
    """ASGI app stand-in for middleware constructors."""
    app = mocker.Mock()
    app.__name__ = "mock_app"
    return cast("MockType", app)


@pytest.fixture
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Environment without the platform PORT variable."""
    monkeypatch.delenv("PORT", raising=False)
    return monkeypatch


@pytest.fixture(autouse=True)
def clean_lru_cache() -> Generator[None]:
    """Clear cached settings before and after each test."""
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()
    yield
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Drop application environment variables so defaults apply."""
    env_prefixes = (
        "APP_",
        "API_",
        "ENVIRONMENT",
        "DEBUG",
        "LOG_CONFIG__",
        "OBSERVABILITY_CONFIG__",
        "DATABASE_CONFIG__",
        "CONTENT_API_CONFIG__",
        "K_SERVICE",
        "AWS_EXECUTION_ENV",
    )
    for key in list(os.environ):
        if key.startswith(env_prefixes):
            monkeypatch.delenv(key, raising=False)

    return monkeypatch


@pytest.fixture(autouse=True)
def clean_context() -> Generator[None]:
    """Clear the request context before and after each test."""
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture
def mock_get_settings(mocker: MockerFixture) -> MockType:
    """Patch the settings seen by error_context with custom sensitive fields."""
    log_config = mocker.Mock(spec=LogConfig)
    log_config.sensitive_fields = ["custom_secret", "my_password", "api_token"]
    settings = mocker.Mock(spec=Settings, log_config=log_config)

    _get_sensitive_fields.cache_clear()
    return mocker.patch("src.core.error_context.get_settings", return_value=settings)
