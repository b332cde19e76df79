"""Loading content type definitions from a JSON file."""

from pathlib import Path
from typing import Protocol

import orjson
from loguru import logger
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from src.content.models import ContentType
from src.content.protocols import ContentTypeRegistry
from src.core.exceptions import StoreError

_CONTENT_TYPES = TypeAdapter(list[ContentType])


class WritableRegistry(ContentTypeRegistry, Protocol):
    """Registry that also accepts new content types."""

    async def save_type(self, content_type: ContentType) -> ContentType:
        """Insert or replace a content type."""
        ...


def load_content_types(path: Path) -> list[ContentType]:
    """Parse a JSON array of content type definitions (camelCase keys).

    Raises:
        StoreError: The file cannot be read or does not describe content types.
    """
    try:
        raw = orjson.loads(path.read_bytes())
        return _CONTENT_TYPES.validate_python(raw)
    except (OSError, orjson.JSONDecodeError, PydanticValidationError) as exc:
        raise StoreError(f"Cannot load content types from {path}", cause=exc) from exc


async def seed_registry(registry: WritableRegistry, path: Path) -> int:
    """Save every content type found in ``path``; returns how many were saved."""
    content_types = load_content_types(path)
    for content_type in content_types:
        await registry.save_type(content_type)
    logger.info("Seeded {} content type(s) from {}", len(content_types), path)
    return len(content_types)
