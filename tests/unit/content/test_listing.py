"""Unit tests for src/content/listing.py."""

from datetime import UTC, datetime

import pytest

from src.content.listing import (
    PageRequest,
    filter_entries,
    paginate,
    parse_page_request,
)
from src.content.models import ContentEntry, ContentType, FieldValue
from src.core.exceptions import BadRequestError

NOW = datetime(2026, 1, 1, tzinfo=UTC)


def make_entry(index: int, title: str = "", slug: str | None = None) -> ContentEntry:
    """Build a product entry with a single title value."""
    return ContentEntry(
        id=f"e-{index}",
        content_type_id="ct-product",
        slug=slug,
        field_values=[FieldValue(field_id="title", value=title)],
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.mark.unit
class TestParsePageRequest:
    """Test suite for parse_page_request()."""

    def test_defaults(self) -> None:
        """Test page 1 and the default limit apply when omitted."""
        assert parse_page_request({}, default_limit=15) == PageRequest(1, 15)

    def test_explicit_values(self) -> None:
        """Test page and limit are read from the query."""
        assert parse_page_request({"page": "3", "limit": " 10 "}) == PageRequest(3, 10)

    @pytest.mark.parametrize("value", ["0", "-1", "abc", "1.5", "", "+2", "²"])
    def test_invalid_page(self, value: str) -> None:
        """Test anything but a positive integer is rejected."""
        with pytest.raises(BadRequestError) as exc_info:
            parse_page_request({"page": value})

        assert exc_info.value.message == "Invalid pagination parameters"
        assert exc_info.value.details == ["page must be a positive integer"]

    def test_both_invalid_are_reported(self) -> None:
        """Test both problems appear in the details."""
        with pytest.raises(BadRequestError) as exc_info:
            parse_page_request({"page": "x", "limit": "0"})

        assert exc_info.value.details == [
            "page must be a positive integer",
            "limit must be a positive integer",
        ]

    def test_offset(self) -> None:
        """Test offset is derived from page and limit."""
        assert PageRequest(page=3, limit=10).offset == 20


@pytest.mark.unit
class TestPaginate:
    """Test suite for paginate()."""

    def test_empty_collection(self) -> None:
        """Test an empty collection yields an empty first page."""
        page, info = paginate([], PageRequest(page=1, limit=10))

        assert page == []
        assert info.total == 0
        assert info.total_pages == 0
        assert info.has_next_page is False
        assert info.has_previous_page is False

    def test_empty_collection_any_page(self) -> None:
        """Test page numbers past the end are fine when nothing exists."""
        page, info = paginate([], PageRequest(page=4, limit=10))

        assert page == []
        assert info.page == 4

    def test_last_partial_page(self) -> None:
        """Test the last page of 25 entries in pages of 10."""
        entries = [make_entry(i) for i in range(25)]

        page, info = paginate(entries, PageRequest(page=3, limit=10))

        assert [entry.id for entry in page] == [f"e-{i}" for i in range(20, 25)]
        assert info.total == 25
        assert info.total_pages == 3
        assert info.has_next_page is False
        assert info.has_previous_page is True

    def test_middle_page(self) -> None:
        """Test a middle page has neighbours on both sides."""
        entries = [make_entry(i) for i in range(25)]

        page, info = paginate(entries, PageRequest(page=2, limit=10))

        assert len(page) == 10
        assert info.has_next_page is True
        assert info.has_previous_page is True

    def test_page_out_of_range(self) -> None:
        """Test a page starting after the last entry is a bad request."""
        entries = [make_entry(i) for i in range(25)]

        with pytest.raises(BadRequestError) as exc_info:
            paginate(entries, PageRequest(page=4, limit=10))

        assert exc_info.value.message == "Page out of range"
        assert exc_info.value.details == ["Page 4 exceeds the last page (3)"]

    def test_wire_shape(self) -> None:
        """Test pagination serializes with camelCase keys."""
        _, info = paginate([make_entry(0)], PageRequest())

        assert info.model_dump(by_alias=True) == {
            "page": 1,
            "limit": 20,
            "total": 1,
            "totalPages": 1,
            "hasNextPage": False,
            "hasPreviousPage": False,
        }


@pytest.mark.unit
class TestFilterEntries:
    """Test suite for search filtering."""

    def test_blank_search_keeps_everything(self, product_type: ContentType) -> None:
        """Test a missing or blank term filters nothing."""
        entries = [make_entry(0, "Lamp"), make_entry(1, "Desk")]

        assert filter_entries(entries, product_type, None) == entries
        assert filter_entries(entries, product_type, "   ") == entries

    def test_matches_value_case_insensitively(self, product_type: ContentType) -> None:
        """Test field values are searched ignoring case."""
        entries = [make_entry(0, "Desk Lamp"), make_entry(1, "Chair")]

        result = filter_entries(entries, product_type, "LAMP")

        assert [entry.id for entry in result] == ["e-0"]

    def test_matches_slug(self, product_type: ContentType) -> None:
        """Test the entry slug is searched."""
        entries = [make_entry(0, "One", slug="oak-table"), make_entry(1, "Two")]

        result = filter_entries(entries, product_type, "oak")

        assert [entry.id for entry in result] == ["e-0"]

    def test_matches_field_display_name(self, product_type: ContentType) -> None:
        """Test the display name of a field with a value is searched."""
        entries = [make_entry(0, "x")]

        assert filter_entries(entries, product_type, "title") == entries

    def test_no_match(self, product_type: ContentType) -> None:
        """Test entries without any match are dropped."""
        entries = [make_entry(0, "Lamp")]

        assert filter_entries(entries, product_type, "sofa") == []
