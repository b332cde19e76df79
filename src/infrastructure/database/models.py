"""Database records for content types, fields, entries and field values."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.content.models import (
    ContentEntry,
    ContentField,
    ContentType,
    FieldValidation,
    FieldValue,
)
from src.infrastructure.database.base import ID_LENGTH, Base, BaseModel, as_utc


class ContentTypeRecord(BaseModel):
    """Row of ``content_types``."""

    __tablename__ = "content_types"

    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)

    fields: Mapped[list["ContentFieldRecord"]] = relationship(
        back_populates="content_type",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ContentFieldRecord.order",
    )

    @classmethod
    def from_domain(cls, content_type: ContentType) -> "ContentTypeRecord":
        """Build a record (with its fields) from a domain content type."""
        return cls(
            id=content_type.id,
            slug=content_type.slug,
            display_name=content_type.display_name,
            description=content_type.description,
            fields=[
                ContentFieldRecord(
                    id=field.id,
                    name=field.name,
                    display_name=field.display_name,
                    field_type=str(field.field_type),
                    required=field.required,
                    unique=field.unique,
                    default_value=field.default_value,
                    validation=(
                        field.validation.model_dump(exclude_none=True)
                        if field.validation
                        else None
                    ),
                    order=field.order,
                )
                for field in content_type.fields
            ],
        )

    def to_domain(self) -> ContentType:
        """Convert to the domain model."""
        return ContentType(
            id=self.id,
            slug=self.slug,
            display_name=self.display_name,
            description=self.description,
            fields=[
                ContentField(
                    id=field.id,
                    name=field.name,
                    display_name=field.display_name,
                    field_type=field.field_type,
                    required=field.required,
                    unique=field.unique,
                    default_value=field.default_value,
                    validation=(
                        FieldValidation.model_validate(field.validation)
                        if field.validation
                        else None
                    ),
                    order=field.order,
                )
                for field in self.fields
            ],
        )


class ContentFieldRecord(Base):
    """Row of ``content_fields``; field ids are unique per content type."""

    __tablename__ = "content_fields"

    content_type_id: Mapped[str] = mapped_column(
        ForeignKey("content_types.id", ondelete="CASCADE"), primary_key=True
    )
    id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    field_type: Mapped[str] = mapped_column(String(32), nullable=False)
    required: Mapped[bool] = mapped_column(Boolean, default=False)
    unique: Mapped[bool] = mapped_column("is_unique", Boolean, default=False)
    default_value: Mapped[str | None] = mapped_column(Text)
    validation: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    order: Mapped[int] = mapped_column("sort_order", Integer, default=0)

    content_type: Mapped[ContentTypeRecord] = relationship(back_populates="fields")


class ContentEntryRecord(BaseModel):
    """Row of ``content_entries``."""

    __tablename__ = "content_entries"
    __table_args__ = (UniqueConstraint("content_type_id", "slug"),)

    content_type_id: Mapped[str] = mapped_column(
        ForeignKey("content_types.id", ondelete="CASCADE"), index=True
    )
    slug: Mapped[str | None] = mapped_column(String(255))
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    field_values: Mapped[list["FieldValueRecord"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="FieldValueRecord.position",
    )

    def to_domain(self) -> ContentEntry:
        """Convert to the domain model."""
        return ContentEntry(
            id=self.id,
            content_type_id=self.content_type_id,
            slug=self.slug,
            status=self.status,
            field_values=[
                FieldValue(field_id=value.field_id, value=value.value)
                for value in self.field_values
            ],
            published_at=as_utc(self.published_at),
            scheduled_at=as_utc(self.scheduled_at),
            created_at=as_utc(self.created_at),
            updated_at=as_utc(self.updated_at),
        )


class FieldValueRecord(Base):
    """Row of ``content_field_values``; ``position`` keeps submission order."""

    __tablename__ = "content_field_values"

    entry_id: Mapped[str] = mapped_column(
        ForeignKey("content_entries.id", ondelete="CASCADE"), primary_key=True
    )
    field_id: Mapped[str] = mapped_column(String(ID_LENGTH), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    value: Mapped[str] = mapped_column(Text, default="")

    entry: Mapped[ContentEntryRecord] = relationship(back_populates="field_values")
