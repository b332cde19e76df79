"""Fixtures shared by the content engine tests."""

import pytest

from src.content.models import ContentField, ContentType, FieldType
from src.content.service import ContentService
from src.core.config import ContentApiConfig
from src.infrastructure.memory import InMemoryContentTypeRegistry, InMemoryEntryStore


@pytest.fixture
def product_type() -> ContentType:
    """Content type ``product`` with a required title and a required price."""
    return ContentType(
        id="ct-product",
        slug="product",
        display_name="Product",
        fields=[
            ContentField(
                id="title",
                name="title",
                display_name="Title",
                field_type=FieldType.TEXT,
                required=True,
                order=0,
            ),
            ContentField(
                id="price",
                name="price",
                display_name="Price",
                field_type=FieldType.NUMBER,
                required=True,
                order=1,
            ),
            ContentField(
                id="contact",
                name="contact",
                display_name="Contact Email",
                field_type=FieldType.EMAIL,
                order=2,
            ),
        ],
    )


@pytest.fixture
def article_type() -> ContentType:
    """Content type ``article`` with one optional text field."""
    return ContentType(
        id="ct-article",
        slug="article",
        display_name="Article",
        fields=[
            ContentField(
                id="headline",
                name="headline",
                display_name="Headline",
                field_type=FieldType.TEXT,
            )
        ],
    )


@pytest.fixture
def registry(
    product_type: ContentType, article_type: ContentType
) -> InMemoryContentTypeRegistry:
    """Registry holding ``product`` and ``article``."""
    return InMemoryContentTypeRegistry([product_type, article_type])


@pytest.fixture
def store() -> InMemoryEntryStore:
    """Empty in-memory entry store."""
    return InMemoryEntryStore()


@pytest.fixture
def api_config() -> ContentApiConfig:
    """Content API configuration with every optional middleware disabled."""
    return ContentApiConfig(
        enable_logging=False,
        enable_auth=False,
        cors_enabled=False,
        enable_rate_limit=False,
    )


@pytest.fixture
def service(
    registry: InMemoryContentTypeRegistry,
    store: InMemoryEntryStore,
    api_config: ContentApiConfig,
) -> ContentService:
    """Content service over the in-memory stores."""
    return ContentService(registry, store, api_config)


@pytest.fixture
def lamp_values() -> list[dict[str, object]]:
    """Field values of a valid ``product`` entry."""
    return [
        {"fieldId": "title", "value": "Lamp"},
        {"fieldId": "price", "value": "29.99"},
    ]
