"""Repositories for the content records.

``BaseRepository`` holds the generic async CRUD operations; the content
repositories add the queries the SQL stores need.
"""

from typing import Any

from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.base import BaseModel
from src.infrastructure.database.models import ContentEntryRecord, ContentTypeRecord


class BaseRepository[T: BaseModel]:
    """Generic async CRUD operations for one record class.

    Args:
        session: The async SQLAlchemy session to use for operations.
        model_class: The record class this repository manages.
    """

    def __init__(self, session: AsyncSession, model_class: type[T]) -> None:
        self.session = session
        self.model_class = model_class

    async def get_by_id(self, entity_id: str) -> T | None:
        """Retrieve a record by its primary key."""
        logger.debug("Fetching {} by ID: {}", self.model_class.__name__, entity_id)
        return await self.session.get(self.model_class, entity_id)

    async def filter_by(self, *order_by: Any, **kwargs: object) -> list[T]:
        """Records matching every ``field=value`` condition.

        Args:
            *order_by: Ordering clauses; newest first when omitted.
            **kwargs: Field-value pairs to filter by.

        Returns:
            list[T]: Matching records.
        """
        stmt = select(self.model_class).filter_by(**kwargs)
        stmt = stmt.order_by(*(order_by or (self.model_class.created_at.desc(),)))
        result = await self.session.execute(stmt)
        instances = list(result.scalars().all())

        logger.debug(
            "Filtered {} - found {} instances with filters: {}",
            self.model_class.__name__,
            len(instances),
            kwargs,
        )
        return instances

    async def create(self, obj: T) -> T:
        """Add a record and flush it so defaults are populated."""
        self.session.add(obj)
        await self.session.flush()

        logger.debug(
            "Created {} instance with ID: {}", self.model_class.__name__, obj.id
        )
        return obj


class ContentTypeRepository(BaseRepository[ContentTypeRecord]):
    """Queries over ``content_types``."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ContentTypeRecord)

    async def list_all(self) -> list[ContentTypeRecord]:
        """All content types, oldest first."""
        return await self.filter_by(ContentTypeRecord.created_at)


class EntryRepository(BaseRepository[ContentEntryRecord]):
    """Queries over ``content_entries``."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ContentEntryRecord)

    async def slugs_like(
        self, content_type_id: str, base: str, exclude_id: str | None = None
    ) -> list[str]:
        """Slugs of the content type equal to ``base`` or starting ``base-``."""
        stmt = select(ContentEntryRecord.slug).where(
            ContentEntryRecord.content_type_id == content_type_id,
            or_(
                ContentEntryRecord.slug == base,
                ContentEntryRecord.slug.startswith(f"{base}-", autoescape=True),
            ),
        )
        if exclude_id is not None:
            stmt = stmt.where(ContentEntryRecord.id != exclude_id)
        result = await self.session.execute(stmt)
        return [slug for slug in result.scalars().all() if slug]
