"""Contracts for the collaborators the content engine depends on.

Stores are free to raise :class:`~src.core.exceptions.StoreError` for
failures they understand; anything else is treated as an internal error.
"""

from typing import Protocol, runtime_checkable

from src.content.models import (
    ContentEntry,
    ContentType,
    EntryChanges,
    EntryStatus,
    FieldValue,
)


@runtime_checkable
class ContentTypeRegistry(Protocol):
    """Source of content type schemas."""

    async def list_types(self) -> list[ContentType]:
        """Return every known content type."""
        ...


@runtime_checkable
class EntryStore(Protocol):
    """Persistence for content entries."""

    async def list_by_type(self, content_type_id: str) -> list[ContentEntry]:
        """Return all entries of a content type, newest first."""
        ...

    async def get_by_id(self, entry_id: str) -> ContentEntry | None:
        """Return the entry with ``entry_id`` regardless of its type."""
        ...

    async def create(
        self,
        content_type_id: str,
        field_values: list[FieldValue],
        *,
        slug: str | None = None,
        status: EntryStatus | None = None,
    ) -> ContentEntry:
        """Persist a new entry."""
        ...

    async def update(
        self, entry_id: str, changes: EntryChanges
    ) -> ContentEntry | None:
        """Apply ``changes``; returns None when the entry does not exist."""
        ...

    async def delete(self, entry_id: str) -> bool:
        """Hard-delete an entry; returns False when it does not exist."""
        ...
