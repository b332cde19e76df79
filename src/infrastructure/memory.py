"""In-memory content type registry and entry store.

Used by default and in tests. Both classes keep their data in plain
dictionaries owned by the instance; nothing is shared between instances.
"""

import uuid
from collections.abc import Iterable, Iterator
from datetime import UTC, datetime

from loguru import logger

from src.content.models import (
    ContentEntry,
    ContentType,
    EntryChanges,
    EntryStatus,
    FieldValue,
)
from src.core.exceptions import StoreError
from src.infrastructure.slugs import unique_slug


class InMemoryContentTypeRegistry:
    """Content types held in insertion order."""

    def __init__(self, content_types: Iterable[ContentType] = ()) -> None:
        self._types: dict[str, ContentType] = {}
        for content_type in content_types:
            self.add(content_type)

    def add(self, content_type: ContentType) -> None:
        """Register or replace a content type.

        Raises:
            StoreError: Another content type already uses the slug.
        """
        for existing in self._types.values():
            if existing.slug == content_type.slug and existing.id != content_type.id:
                raise StoreError(
                    f"Content type slug '{content_type.slug}' is already in use"
                )
        self._types[content_type.id] = content_type

    async def save_type(self, content_type: ContentType) -> ContentType:
        """Async counterpart of :meth:`add` used when seeding."""
        self.add(content_type)
        return content_type

    async def list_types(self) -> list[ContentType]:
        """Return every registered content type."""
        return list(self._types.values())


class InMemoryEntryStore:
    """Entries keyed by id, listed newest first."""

    def __init__(self) -> None:
        self._entries: dict[str, ContentEntry] = {}

    def _slugs_of_type(
        self, content_type_id: str, exclude_id: str | None = None
    ) -> Iterator[str | None]:
        return (
            entry.slug
            for entry in self._entries.values()
            if entry.content_type_id == content_type_id and entry.id != exclude_id
        )

    async def list_by_type(self, content_type_id: str) -> list[ContentEntry]:
        """Return entries of one content type, most recently created first."""
        entries = [
            entry
            for entry in self._entries.values()
            if entry.content_type_id == content_type_id
        ]
        # dict order is creation order
        return entries[::-1]

    async def get_by_id(self, entry_id: str) -> ContentEntry | None:
        """Return an entry by id."""
        return self._entries.get(entry_id)

    async def create(
        self,
        content_type_id: str,
        field_values: list[FieldValue],
        *,
        slug: str | None = None,
        status: EntryStatus | None = None,
    ) -> ContentEntry:
        """Store a new entry with a fresh uuid4 id."""
        now = datetime.now(UTC)
        status = status or EntryStatus.DRAFT
        entry = ContentEntry(
            id=str(uuid.uuid4()),
            content_type_id=content_type_id,
            slug=(
                unique_slug(slug, self._slugs_of_type(content_type_id))
                if slug
                else None
            ),
            status=status,
            field_values=list(field_values),
            published_at=now if status == EntryStatus.PUBLISHED else None,
            created_at=now,
            updated_at=now,
        )
        self._entries[entry.id] = entry
        logger.debug("Stored entry {}", entry.id, entry_id=entry.id)
        return entry

    async def update(self, entry_id: str, changes: EntryChanges) -> ContentEntry | None:
        """Apply the explicitly set ``changes`` to an entry."""
        entry = self._entries.get(entry_id)
        if entry is None:
            return None

        now = datetime.now(UTC)
        update: dict[str, object] = {"updated_at": now}
        if "slug" in changes.model_fields_set:
            update["slug"] = (
                unique_slug(
                    changes.slug, self._slugs_of_type(entry.content_type_id, entry_id)
                )
                if changes.slug
                else None
            )
        if changes.status is not None:
            update["status"] = changes.status
            if (
                changes.status == EntryStatus.PUBLISHED
                and entry.status != EntryStatus.PUBLISHED
            ):
                update["published_at"] = now
        if changes.field_values is not None:
            update["field_values"] = list(changes.field_values)

        updated = entry.model_copy(update=update)
        self._entries[entry_id] = updated
        return updated

    async def delete(self, entry_id: str) -> bool:
        """Remove an entry; False when it did not exist."""
        return self._entries.pop(entry_id, None) is not None
