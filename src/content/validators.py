"""Field validator engine.

Every rule is a pure function taking the raw string value and the field's
options and returning a :class:`ValidationResult`. :func:`validate_field`
applies the required-field check, skips empty optional values, and then
dispatches on the field type through :data:`FIELD_VALIDATORS`.

Field types without a registered rule (``DATE``, ``BOOLEAN``, ``JSON`` and
any type name this engine does not know) always pass. New field types must
therefore never be rejected by an older server.
"""

import math
import re
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Final
from urllib.parse import urlsplit

from src.content.models import (
    FieldOptions,
    FieldType,
    PasswordStrength,
    ValidationResult,
)

type FieldRule = Callable[[str, FieldOptions], ValidationResult]

REQUIRED_MESSAGE: Final[str] = "This field is required"
EMAIL_MESSAGE: Final[str] = "Please enter a valid email address"
URL_MESSAGE: Final[str] = "Please enter a valid URL"
PHONE_MESSAGE: Final[str] = "Please enter a valid phone number"
NUMBER_MESSAGE: Final[str] = "Please enter a valid number"
PATTERN_MESSAGE: Final[str] = "Text does not match the required pattern"
COLOR_MESSAGE: Final[str] = "Please enter a valid hex color (e.g., #FF0000)"
SLUG_MESSAGE: Final[str] = (
    "Slug must contain only lowercase letters, numbers, and hyphens"
)
PASSWORD_MESSAGE: Final[str] = (
    "Password must be at least 8 characters with uppercase, lowercase, and numbers"
)

EMAIL_PATTERN: Final = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
PHONE_PATTERN: Final = re.compile(
    r"\+?[1-9]\d{0,15}|\+?\(?[\d\s\-()]{10,}", re.ASCII
)
PHONE_SEPARATORS: Final = re.compile(r"[\s\-()]")
NUMBER_PATTERN: Final = re.compile(
    r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII
)
COLOR_PATTERN: Final = re.compile(r"#(?:[A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})")
SLUG_PATTERN: Final = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")

URL_SCHEMES: Final = frozenset({"http", "https", "ftp", "ftps"})
MIN_PHONE_DIGITS: Final[int] = 10
MIN_PASSWORD_LENGTH: Final[int] = 8
PASSWORD_VALID_SCORE: Final[int] = 3
PASSWORD_STRONG_SCORE: Final[int] = 5

_VALID: Final = ValidationResult(is_valid=True)
_DEFAULT_OPTIONS: Final = FieldOptions()


def _invalid(message: str) -> ValidationResult:
    return ValidationResult(is_valid=False, message=message)


def _format_bound(bound: float) -> str:
    """Render a numeric bound without a trailing ``.0``."""
    return str(int(bound)) if float(bound).is_integer() else str(bound)


def validate_email(
    value: str, _options: FieldOptions = _DEFAULT_OPTIONS
) -> ValidationResult:
    """Accept ``local@domain.tld`` shaped addresses."""
    return _VALID if EMAIL_PATTERN.fullmatch(value) else _invalid(EMAIL_MESSAGE)


def validate_url(
    value: str, _options: FieldOptions = _DEFAULT_OPTIONS
) -> ValidationResult:
    """Accept absolute http, https, ftp and ftps URLs."""
    try:
        parts = urlsplit(value)
        # Accessing .port raises on malformed ports
        _ = parts.port
    except ValueError:
        return _invalid(URL_MESSAGE)
    if parts.scheme.lower() not in URL_SCHEMES or not parts.netloc:
        return _invalid(URL_MESSAGE)
    return _VALID


def validate_phone(
    value: str, _options: FieldOptions = _DEFAULT_OPTIONS
) -> ValidationResult:
    """Accept phone numbers with at least ten characters once separators are removed."""
    cleaned = PHONE_SEPARATORS.sub("", value)
    if len(cleaned) >= MIN_PHONE_DIGITS and PHONE_PATTERN.fullmatch(cleaned):
        return _VALID
    return _invalid(PHONE_MESSAGE)


def validate_number(
    value: str, options: FieldOptions = _DEFAULT_OPTIONS
) -> ValidationResult:
    """Accept finite decimal numbers within the optional inclusive bounds."""
    candidate = value.strip()
    if not NUMBER_PATTERN.fullmatch(candidate):
        return _invalid(NUMBER_MESSAGE)

    number = float(candidate)
    if not math.isfinite(number):
        return _invalid(NUMBER_MESSAGE)

    if options.min is not None and number < options.min:
        return _invalid(f"Value must be at least {_format_bound(options.min)}")
    if options.max is not None and number > options.max:
        return _invalid(f"Value must be at most {_format_bound(options.max)}")
    return _VALID


def validate_text(
    value: str, options: FieldOptions = _DEFAULT_OPTIONS
) -> ValidationResult:
    """Check length bounds, then the optional regular expression.

    The pattern is searched, not anchored, so ``"ab"`` matches ``"cabin"``
    unless the pattern itself uses ``^``/``$``.
    """
    if options.min_length is not None and len(value) < options.min_length:
        return _invalid(f"Text must be at least {options.min_length} characters long")
    if options.max_length is not None and len(value) > options.max_length:
        return _invalid(f"Text must be at most {options.max_length} characters long")

    if options.pattern:
        try:
            matched = re.search(options.pattern, value) is not None
        except re.error:
            matched = False
        if not matched:
            return _invalid(PATTERN_MESSAGE)
    return _VALID


def validate_color(
    value: str, _options: FieldOptions = _DEFAULT_OPTIONS
) -> ValidationResult:
    """Accept ``#RGB`` and ``#RRGGBB`` hex colors."""
    return _VALID if COLOR_PATTERN.fullmatch(value) else _invalid(COLOR_MESSAGE)


def validate_slug(
    value: str, _options: FieldOptions = _DEFAULT_OPTIONS
) -> ValidationResult:
    """Accept lowercase alphanumeric segments joined by single hyphens."""
    return _VALID if SLUG_PATTERN.fullmatch(value) else _invalid(SLUG_MESSAGE)


def password_score(value: str) -> int:
    """Score a password from 0 to 5, one point per satisfied criterion."""
    checks = (
        len(value) >= MIN_PASSWORD_LENGTH,
        re.search(r"[a-z]", value) is not None,
        re.search(r"[A-Z]", value) is not None,
        re.search(r"[0-9]", value) is not None,
        re.search(r"[^A-Za-z0-9]", value) is not None,
    )
    return sum(checks)


def validate_password(
    value: str, _options: FieldOptions = _DEFAULT_OPTIONS
) -> ValidationResult:
    """Classify password strength; medium or better is valid."""
    score = password_score(value)
    if score >= PASSWORD_STRONG_SCORE:
        strength = PasswordStrength.STRONG
    elif score >= PASSWORD_VALID_SCORE:
        strength = PasswordStrength.MEDIUM
    else:
        strength = PasswordStrength.WEAK

    if score >= PASSWORD_VALID_SCORE:
        return ValidationResult(is_valid=True, strength=strength)
    return ValidationResult(is_valid=False, message=PASSWORD_MESSAGE, strength=strength)


FIELD_VALIDATORS: Final[Mapping[FieldType, FieldRule]] = MappingProxyType(
    {
        FieldType.EMAIL: validate_email,
        FieldType.URL: validate_url,
        FieldType.PHONE: validate_phone,
        FieldType.NUMBER: validate_number,
        FieldType.TEXT: validate_text,
        FieldType.TEXTAREA: validate_text,
        FieldType.COLOR: validate_color,
        FieldType.SLUG: validate_slug,
        FieldType.PASSWORD: validate_password,
    }
)


def validate_field(
    field_type: FieldType | str,
    value: str,
    options: FieldOptions | None = None,
) -> ValidationResult:
    """Validate one raw value against a field type and its options.

    Args:
        field_type: Declared type of the field. Unknown names pass.
        value: Raw string value supplied by the client.
        options: Required flag and constraints; defaults to none.

    Returns:
        ValidationResult: Validity, message and (passwords only) strength.

    Examples:
        >>> validate_field(FieldType.EMAIL, "", FieldOptions(required=True)).message
        'This field is required'
        >>> validate_field("GEOPOINT", "anything").is_valid
        True
    """
    options = options or _DEFAULT_OPTIONS

    if options.required and not value.strip():
        return _invalid(REQUIRED_MESSAGE)
    if not value:
        return _VALID

    rule = FIELD_VALIDATORS.get(field_type)  # type: ignore[call-overload]
    if rule is None:
        return _VALID
    return rule(value, options)
