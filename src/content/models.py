"""Domain models for content types, fields and entries.

All models accept and emit camelCase keys on the wire while exposing
snake_case attributes in Python.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from src.core.types import HeaderMap, QueryParams


class FieldType(StrEnum):
    """Field types a content type may declare."""

    TEXT = "TEXT"
    TEXTAREA = "TEXTAREA"
    NUMBER = "NUMBER"
    EMAIL = "EMAIL"
    URL = "URL"
    DATE = "DATE"
    BOOLEAN = "BOOLEAN"
    PHONE = "PHONE"
    COLOR = "COLOR"
    SLUG = "SLUG"
    PASSWORD = "PASSWORD"
    JSON = "JSON"


class EntryStatus(StrEnum):
    """Publication lifecycle of an entry."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    SCHEDULED = "SCHEDULED"
    ARCHIVED = "ARCHIVED"


class PasswordStrength(StrEnum):
    """Strength classes produced by the password heuristic."""

    WEAK = "weak"
    MEDIUM = "medium"
    STRONG = "strong"


class CamelModel(BaseModel):
    """Base model using camelCase aliases on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FieldValidation(CamelModel):
    """Optional constraints attached to a field."""

    min: float | None = None
    max: float | None = None
    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=0)
    pattern: str | None = None


class FieldOptions(FieldValidation):
    """Everything the validator engine needs to know about a field."""

    model_config = ConfigDict(frozen=True)

    required: bool = False
    unique: bool = False

    @classmethod
    def for_field(cls, field: "ContentField") -> "FieldOptions":
        """Build validator options from a field definition."""
        validation = field.validation.model_dump() if field.validation else {}
        return cls(required=field.required, unique=field.unique, **validation)


class ContentField(CamelModel):
    """A single named, typed attribute of a content type.

    ``field_type`` keeps unrecognized type names as plain strings so that
    schemas written for newer field types still load.
    """

    id: str
    name: str
    display_name: str
    field_type: FieldType | str = Field(union_mode="left_to_right")
    required: bool = False
    unique: bool = False
    default_value: str | None = None
    validation: FieldValidation | None = None
    order: int = 0


class ContentType(CamelModel):
    """A user-defined schema made of ordered fields."""

    id: str
    slug: str
    display_name: str
    description: str | None = None
    fields: list[ContentField] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_fields(self) -> "ContentType":
        """Reject duplicate field ids and keep fields sorted by ``order``."""
        seen: set[str] = set()
        for field in self.fields:
            if field.id in seen:
                msg = f"Duplicate field id '{field.id}' in content type '{self.slug}'"
                raise ValueError(msg)
            seen.add(field.id)
        self.fields.sort(key=lambda field: field.order)
        return self

    def get_field(self, field_id: str) -> ContentField | None:
        """Return the field with ``field_id``, if the type declares it."""
        return next((field for field in self.fields if field.id == field_id), None)


class FieldValue(CamelModel):
    """A stored value for one field of an entry."""

    field_id: str
    value: str


class ContentEntry(CamelModel):
    """One record conforming to a content type."""

    id: str
    content_type_id: str
    slug: str | None = None
    status: EntryStatus = EntryStatus.DRAFT
    field_values: list[FieldValue] = Field(default_factory=list)
    published_at: datetime | None = None
    scheduled_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class EntryChanges(CamelModel):
    """Replacement values for an entry update.

    Only attributes that were explicitly set are applied; use
    ``model_fields_set`` to tell "clear the slug" from "leave it alone".
    """

    slug: str | None = None
    status: EntryStatus | None = None
    field_values: list[FieldValue] | None = None


class ValidationResult(BaseModel):
    """Outcome of validating one raw value."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    message: str | None = None
    strength: PasswordStrength | None = None


class ApiRequest(BaseModel):
    """Transport-neutral request handed to the content pipeline."""

    model_config = ConfigDict(frozen=True)

    method: str
    path: str
    query: QueryParams = Field(default_factory=dict)
    body: Any = None
    headers: HeaderMap = Field(default_factory=dict)
    client: str | None = None

    @field_validator("method")
    @classmethod
    def upper_method(cls, v: str) -> str:
        """HTTP verbs are compared upper-case."""
        return v.upper()

    @field_validator("headers")
    @classmethod
    def lower_header_names(cls, v: dict[str, str]) -> dict[str, str]:
        """Header names are case-insensitive."""
        return {name.lower(): value for name, value in v.items()}

    def header(self, name: str) -> str | None:
        """Return a request header by case-insensitive name."""
        return self.headers.get(name.lower())
