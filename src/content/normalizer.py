"""Entry normalizer.

Turns the loosely-typed ``fieldValues`` list a client submits into the
ordered, string-valued list a store persists. Every problem found is
reported; nothing short-circuits on the first error.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import orjson
from loguru import logger

from src.content.models import ContentType, FieldOptions, FieldType, FieldValue
from src.content.validators import REQUIRED_MESSAGE, validate_field
from src.core.constants import REDACTED


@dataclass(frozen=True, slots=True)
class NormalizationResult:
    """Errors found while normalizing, or the storage-ready values."""

    errors: list[str] = field(default_factory=list)
    values: list[FieldValue] | None = None

    @property
    def ok(self) -> bool:
        """True when values may be written."""
        return self.values is not None


def coerce_value(value: Any) -> str:
    """Convert a client-supplied value to its stored string form.

    Examples:
        >>> coerce_value(None), coerce_value(True), coerce_value(29.0)
        ('', 'true', '29')
        >>> coerce_value({"a": [1, 2]})
        '{"a":[1,2]}'
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, int | float):
        return str(value)
    return orjson.dumps(value).decode()


def normalize(
    content_type: ContentType,
    raw_field_values: Any,
    *,
    require_all_fields: bool = True,
) -> NormalizationResult:
    """Validate and canonicalize raw field values for ``content_type``.

    Args:
        content_type: Schema the values must conform to.
        raw_field_values: Whatever the client sent as ``fieldValues``.
        require_all_fields: Report every required field that was not supplied.

    Returns:
        NormalizationResult: ``values`` is set only when ``errors`` is empty.
    """
    errors: list[str] = []
    values: list[FieldValue] = []
    supplied: set[str] = set()

    items: Sequence[Any]
    if isinstance(raw_field_values, list):
        items = raw_field_values
    else:
        errors.append("fieldValues must be an array")
        items = []

    for index, item in enumerate(items):
        field_id = item.get("fieldId") if isinstance(item, dict) else None
        if not isinstance(field_id, str) or not field_id:
            errors.append(f"Field value at index {index} is missing a fieldId")
            continue

        content_field = content_type.get_field(field_id)
        if content_field is None:
            errors.append(
                f"Unknown field '{field_id}' for content type '{content_type.slug}'"
            )
            continue

        if field_id in supplied:
            errors.append(
                f"Field '{content_field.display_name}' was supplied more than once"
            )
            continue
        supplied.add(field_id)

        value = coerce_value(item.get("value"))
        result = validate_field(
            content_field.field_type, value, FieldOptions.for_field(content_field)
        )
        if not result.is_valid:
            if result.message == REQUIRED_MESSAGE:
                errors.append(f"Field '{content_field.display_name}' is required")
            else:
                errors.append(f"Field '{content_field.display_name}': {result.message}")
            continue

        values.append(FieldValue(field_id=field_id, value=value))

    if require_all_fields:
        errors.extend(
            f"Field '{content_field.display_name}' is required"
            for content_field in content_type.fields
            if content_field.required and content_field.id not in supplied
        )

    if errors:
        unique_errors = list(dict.fromkeys(errors))
        logger.debug(
            "Field values rejected for {}: {} error(s)",
            content_type.slug,
            len(unique_errors),
            content_type=content_type.slug,
        )
        return NormalizationResult(errors=unique_errors)

    logger.debug(
        "Normalized {} field value(s) for {}",
        len(values),
        content_type.slug,
        content_type=content_type.slug,
    )
    return NormalizationResult(values=values)


def redact_for_log(
    content_type: ContentType, values: Sequence[FieldValue]
) -> dict[str, str]:
    """Map field names to values with PASSWORD fields masked."""
    masked: dict[str, str] = {}
    for value in values:
        content_field = content_type.get_field(value.field_id)
        if content_field is None:
            continue
        if content_field.field_type == FieldType.PASSWORD:
            masked[content_field.name] = REDACTED
        else:
            masked[content_field.name] = value.value
    return masked
