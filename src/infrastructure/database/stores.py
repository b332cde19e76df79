"""SQLAlchemy implementations of the content registry and entry store.

Each call runs in its own session and transaction. Constraint violations
are reported as :class:`~src.core.exceptions.StoreError`.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.content.models import (
    ContentEntry,
    ContentType,
    EntryChanges,
    EntryStatus,
    FieldValue,
)
from src.core.exceptions import StoreError
from src.infrastructure.database.base import utc_now
from src.infrastructure.database.models import (
    ContentEntryRecord,
    ContentTypeRecord,
    FieldValueRecord,
)
from src.infrastructure.database.repository import (
    ContentTypeRepository,
    EntryRepository,
)
from src.infrastructure.database.session import get_async_session
from src.infrastructure.slugs import unique_slug


def _value_records(field_values: list[FieldValue]) -> list[FieldValueRecord]:
    return [
        FieldValueRecord(field_id=value.field_id, value=value.value, position=index)
        for index, value in enumerate(field_values)
    ]


class _SqlStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession]:
        try:
            async with get_async_session(self.session_factory) as session:
                yield session
        except IntegrityError as exc:
            logger.warning("Database constraint violated: {}", exc.orig)
            raise StoreError(
                "The change conflicts with existing content", cause=exc
            ) from exc


class SqlContentTypeRegistry(_SqlStore):
    """Content types stored in ``content_types`` and ``content_fields``."""

    async def list_types(self) -> list[ContentType]:
        """Return every stored content type."""
        async with self._session() as session:
            records = await ContentTypeRepository(session).list_all()
            return [record.to_domain() for record in records]

    async def save_type(self, content_type: ContentType) -> ContentType:
        """Insert a content type, or replace the stored one with the same id."""
        incoming = ContentTypeRecord.from_domain(content_type)
        async with self._session() as session:
            repository = ContentTypeRepository(session)
            record = await repository.get_by_id(content_type.id)
            if record is None:
                await repository.create(incoming)
            else:
                # Entries keep referencing the same row
                record.slug = incoming.slug
                record.display_name = incoming.display_name
                record.description = incoming.description
                record.fields.clear()
                await session.flush()
                record.fields.extend(list(incoming.fields))
        logger.info("Saved content type {}", content_type.slug)
        return content_type


class SqlEntryStore(_SqlStore):
    """Entries stored in ``content_entries`` and ``content_field_values``."""

    async def list_by_type(self, content_type_id: str) -> list[ContentEntry]:
        """Return entries of one content type, newest first."""
        async with self._session() as session:
            records = await EntryRepository(session).filter_by(
                content_type_id=content_type_id
            )
            return [record.to_domain() for record in records]

    async def get_by_id(self, entry_id: str) -> ContentEntry | None:
        """Return an entry by id."""
        async with self._session() as session:
            record = await EntryRepository(session).get_by_id(entry_id)
            return record.to_domain() if record else None

    async def create(
        self,
        content_type_id: str,
        field_values: list[FieldValue],
        *,
        slug: str | None = None,
        status: EntryStatus | None = None,
    ) -> ContentEntry:
        """Insert a new entry with its field values."""
        status = status or EntryStatus.DRAFT
        async with self._session() as session:
            repository = EntryRepository(session)
            if slug:
                slug = unique_slug(
                    slug, await repository.slugs_like(content_type_id, slug)
                )
            now = utc_now()
            record = ContentEntryRecord(
                content_type_id=content_type_id,
                slug=slug,
                status=status.value,
                published_at=now if status == EntryStatus.PUBLISHED else None,
                created_at=now,
                updated_at=now,
                field_values=_value_records(field_values),
            )
            await repository.create(record)
            return record.to_domain()

    async def update(
        self, entry_id: str, changes: EntryChanges
    ) -> ContentEntry | None:
        """Apply the explicitly set ``changes`` to an entry."""
        async with self._session() as session:
            repository = EntryRepository(session)
            record = await repository.get_by_id(entry_id)
            if record is None:
                return None

            now = utc_now()
            if "slug" in changes.model_fields_set:
                record.slug = (
                    unique_slug(
                        changes.slug,
                        await repository.slugs_like(
                            record.content_type_id, changes.slug, exclude_id=entry_id
                        ),
                    )
                    if changes.slug
                    else None
                )
            if changes.status is not None:
                if (
                    changes.status == EntryStatus.PUBLISHED
                    and record.status != EntryStatus.PUBLISHED
                ):
                    record.published_at = now
                record.status = changes.status.value
            if changes.field_values is not None:
                record.field_values.clear()
                await session.flush()
                record.field_values.extend(_value_records(changes.field_values))
            record.updated_at = now
            await session.flush()
            return record.to_domain()

    async def delete(self, entry_id: str) -> bool:
        """Delete an entry and its field values."""
        async with self._session() as session:
            repository = EntryRepository(session)
            record = await repository.get_by_id(entry_id)
            if record is None:
                return False
            await session.delete(record)
            return True
