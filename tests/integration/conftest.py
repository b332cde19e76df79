"""Shared fixtures for integration tests.

Applications are built with ``create_app`` and exercised through httpx's
ASGI transport. Content types come from a JSON definitions file written to
a temporary directory, the same format the application seeds from.
"""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from pathlib import Path

import orjson
import pytest
from httpx import ASGITransport, AsyncClient

from src.api.main import create_app
from src.core.config import Settings, get_settings
from src.core.context import RequestContext
from src.core.error_context import _get_sensitive_fields
from src.infrastructure.memory import InMemoryContentTypeRegistry, InMemoryEntryStore
from src.infrastructure.seed import load_content_types

CONTENT_TYPE_DEFINITIONS = [
    {
        "id": "ct-product",
        "slug": "product",
        "displayName": "Product",
        "fields": [
            {
                "id": "title",
                "name": "title",
                "displayName": "Title",
                "fieldType": "TEXT",
                "required": True,
                "validation": {"maxLength": 80},
                "order": 0,
            },
            {
                "id": "price",
                "name": "price",
                "displayName": "Price",
                "fieldType": "NUMBER",
                "required": True,
                "validation": {"min": 0},
                "order": 1,
            },
            {
                "id": "contact",
                "name": "contact",
                "displayName": "Contact Email",
                "fieldType": "EMAIL",
                "order": 2,
            },
        ],
    },
    {
        "id": "ct-article",
        "slug": "article",
        "displayName": "Article",
        "fields": [
            {
                "id": "title",
                "name": "title",
                "displayName": "Headline",
                "fieldType": "TEXT",
                "required": True,
            },
        ],
    },
]

ClientFactoryType = Callable[[Settings], Awaitable[AsyncClient]]

APP_ENV_PREFIXES = (
    "APP_",
    "API_",
    "ENVIRONMENT",
    "DEBUG",
    "LOG_CONFIG__",
    "OBSERVABILITY_CONFIG__",
    "DATABASE_CONFIG__",
    "CONTENT_API_CONFIG__",
)


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None]:
    """Clear cached settings before and after each test."""
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()
    yield
    get_settings.cache_clear()
    _get_sensitive_fields.cache_clear()


@pytest.fixture(autouse=True)
def clean_request_context() -> Generator[None]:
    """Clear the request context before and after each test."""
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Drop application environment variables so defaults apply.

    Returns:
        pytest.MonkeyPatch: The monkeypatch instance for env manipulation.
    """
    for key in list(os.environ):
        if key.startswith(APP_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch


@pytest.fixture
def content_types_file(tmp_path: Path) -> Path:
    """JSON file holding the ``product`` and ``article`` definitions."""
    path = tmp_path / "content_types.json"
    path.write_bytes(orjson.dumps(CONTENT_TYPE_DEFINITIONS))
    return path


@pytest.fixture
async def client_with_settings(
    content_types_file: Path,
) -> AsyncGenerator[ClientFactoryType]:
    """Factory creating clients for apps over fresh in-memory stores.

    Usage:
        async def test_something(client_with_settings):
            client = await client_with_settings(Settings())
    """
    clients: list[AsyncClient] = []

    async def _create_client(settings: Settings) -> AsyncClient:
        registry = InMemoryContentTypeRegistry(load_content_types(content_types_file))
        app = create_app(settings, registry, InMemoryEntryStore())

        client = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(client)
        return client

    yield _create_client

    for client in clients:
        await client.aclose()


@pytest.fixture
async def client(client_with_settings: ClientFactoryType) -> AsyncClient:
    """Client for an application with default settings."""
    return await client_with_settings(Settings())
