"""Search and pagination for entry listings."""

import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from src.content.models import CamelModel, ContentEntry, ContentType
from src.core.exceptions import BadRequestError

POSITIVE_INTEGER = re.compile(r"[0-9]+")


@dataclass(frozen=True, slots=True)
class PageRequest:
    """1-based page number and page size."""

    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        """Index of the first entry on the page."""
        return (self.page - 1) * self.limit


class PaginationInfo(CamelModel):
    """Pagination block returned with every listing."""

    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


def _positive_int(query: Mapping[str, str], name: str, default: int) -> int | None:
    raw = query.get(name)
    if raw is None:
        return default
    raw = raw.strip()
    if not POSITIVE_INTEGER.fullmatch(raw) or int(raw) < 1:
        return None
    return int(raw)


def parse_page_request(
    query: Mapping[str, str], default_limit: int = 20
) -> PageRequest:
    """Read ``page`` and ``limit`` from query parameters.

    Raises:
        BadRequestError: Either parameter is present but not a positive integer.
    """
    page = _positive_int(query, "page", 1)
    limit = _positive_int(query, "limit", default_limit)

    details = []
    if page is None:
        details.append("page must be a positive integer")
    if limit is None:
        details.append("limit must be a positive integer")
    if page is None or limit is None:
        raise BadRequestError("Invalid pagination parameters", details)

    return PageRequest(page=page, limit=limit)


def matches_search(entry: ContentEntry, content_type: ContentType, term: str) -> bool:
    """Case-insensitive substring match on slug, field values and field names."""
    if entry.slug and term in entry.slug.casefold():
        return True
    for field_value in entry.field_values:
        if term in field_value.value.casefold():
            return True
        content_field = content_type.get_field(field_value.field_id)
        if content_field and term in content_field.display_name.casefold():
            return True
    return False


def filter_entries(
    entries: Sequence[ContentEntry], content_type: ContentType, search: str | None
) -> list[ContentEntry]:
    """Keep entries matching ``search``; a blank term keeps everything."""
    term = (search or "").strip().casefold()
    if not term:
        return list(entries)
    return [entry for entry in entries if matches_search(entry, content_type, term)]


def paginate(
    entries: Sequence[ContentEntry], request: PageRequest
) -> tuple[list[ContentEntry], PaginationInfo]:
    """Slice one page out of ``entries``.

    An empty collection yields an empty page for any page number.

    Raises:
        BadRequestError: The page starts past the last entry.
    """
    total = len(entries)
    total_pages = math.ceil(total / request.limit)

    if total > 0 and request.offset >= total:
        raise BadRequestError(
            "Page out of range",
            [f"Page {request.page} exceeds the last page ({total_pages})"],
        )

    page_entries = list(entries[request.offset : request.offset + request.limit])
    info = PaginationInfo(
        page=request.page,
        limit=request.limit,
        total=total,
        total_pages=total_pages,
        has_next_page=request.page < total_pages,
        has_previous_page=request.page > 1,
    )
    return page_entries, info
