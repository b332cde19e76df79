"""Unit tests for src/content/orchestrator.py."""

from typing import Any

import pytest
from pytest_mock import MockerFixture

from src.content.models import ApiRequest, EntryStatus
from src.content.orchestrator import ContentOrchestrator
from src.content.router import ContentRouter
from src.core.exceptions import ErrorCode, NotFoundError, StoreError
from src.infrastructure.memory import InMemoryContentTypeRegistry, InMemoryEntryStore


@pytest.fixture
def orchestrator(
    registry: InMemoryContentTypeRegistry, store: InMemoryEntryStore
) -> ContentOrchestrator:
    """Orchestrator over the shared in-memory fixtures."""
    return ContentOrchestrator(ContentRouter(registry), store, default_page_size=10)


async def create_lamp(
    orchestrator: ContentOrchestrator, lamp_values: list[dict[str, Any]], **extra: Any
) -> dict[str, Any]:
    """Create a product entry and return its wire representation."""
    response = await orchestrator.handle(
        ApiRequest(
            method="POST",
            path="/api/product",
            body={"fieldValues": lamp_values, **extra},
        )
    )
    assert response.success, response.error
    return response.data["entry"]


@pytest.mark.unit
class TestCreate:
    """Test suite for POST /api/{type}."""

    async def test_create_defaults_to_draft(
        self, orchestrator: ContentOrchestrator, lamp_values: list[dict[str, Any]]
    ) -> None:
        """Test a valid product is stored as a draft."""
        response = await orchestrator.handle(
            ApiRequest(
                method="POST", path="/api/product", body={"fieldValues": lamp_values}
            )
        )

        assert response.success is True
        assert response.message == "Entry created successfully"
        entry = response.data["entry"]
        assert entry["status"] == "DRAFT"
        assert entry["contentTypeId"] == "ct-product"
        assert entry["fieldValues"] == [
            {"fieldId": "title", "value": "Lamp"},
            {"fieldId": "price", "value": "29.99"},
        ]
        assert response.data["contentType"]["slug"] == "product"

    async def test_create_missing_required_field(
        self, orchestrator: ContentOrchestrator, store: InMemoryEntryStore
    ) -> None:
        """Test a missing required field is a validation error naming it."""
        response = await orchestrator.handle(
            ApiRequest(
                method="POST",
                path="/api/product",
                body={"fieldValues": [{"fieldId": "title", "value": "Lamp"}]},
            )
        )

        assert response.status_code == 400
        assert response.error is not None
        assert response.error.code == ErrorCode.VALIDATION_ERROR
        assert response.error.details == ["Field 'Price' is required"]
        assert await store.list_by_type("ct-product") == []

    async def test_create_published_with_lowercase_status(
        self, orchestrator: ContentOrchestrator, lamp_values: list[dict[str, Any]]
    ) -> None:
        """Test status is accepted case-insensitively and sets publishedAt."""
        entry = await create_lamp(orchestrator, lamp_values, status="published")

        assert entry["status"] == "PUBLISHED"
        assert entry["publishedAt"] is not None

    async def test_create_reports_slug_and_status_errors_together(
        self, orchestrator: ContentOrchestrator, lamp_values: list[dict[str, Any]]
    ) -> None:
        """Test every problem in the payload is reported at once."""
        response = await orchestrator.handle(
            ApiRequest(
                method="POST",
                path="/api/product",
                body={"fieldValues": lamp_values, "slug": "Bad Slug", "status": "x"},
            )
        )

        assert response.error is not None
        assert response.error.code == ErrorCode.VALIDATION_ERROR
        details = response.error.details or []
        assert len(details) == 2
        assert details[0].startswith("Invalid slug 'Bad Slug'")
        assert details[1].startswith("Invalid status 'x'")

    async def test_duplicate_slug_gets_suffix(
        self, orchestrator: ContentOrchestrator, lamp_values: list[dict[str, Any]]
    ) -> None:
        """Test slugs stay unique within a content type."""
        first = await create_lamp(orchestrator, lamp_values, slug="lamp")
        second = await create_lamp(orchestrator, lamp_values, slug="lamp")

        assert first["slug"] == "lamp"
        assert second["slug"] == "lamp-1"

    @pytest.mark.parametrize("body", [None, [], "text"])
    async def test_create_requires_object_body(
        self, orchestrator: ContentOrchestrator, body: Any
    ) -> None:
        """Test a missing or non-object body is a bad request."""
        response = await orchestrator.handle(
            ApiRequest(method="POST", path="/api/product", body=body)
        )

        assert response.error is not None
        assert response.error.code == ErrorCode.BAD_REQUEST
        assert response.message == "Request body is required for POST requests"


@pytest.mark.unit
class TestReadAndList:
    """Test suite for GET requests."""

    async def test_get_unknown_content_type(
        self, orchestrator: ContentOrchestrator
    ) -> None:
        """Test an unknown content type is NOT_FOUND and named."""
        response = await orchestrator.handle(
            ApiRequest(method="GET", path="/api/doesnotexist")
        )

        assert response.status_code == 404
        assert response.error is not None
        assert response.error.code == ErrorCode.NOT_FOUND
        assert "doesnotexist" in response.message

    async def test_get_entry(
        self, orchestrator: ContentOrchestrator, lamp_values: list[dict[str, Any]]
    ) -> None:
        """Test a stored entry is returned with its content type."""
        entry = await create_lamp(orchestrator, lamp_values)

        response = await orchestrator.handle(
            ApiRequest(method="GET", path=f"/api/product/{entry['id']}")
        )

        assert response.data["entry"] == entry
        assert response.data["contentType"]["id"] == "ct-product"

    async def test_get_missing_entry(self, orchestrator: ContentOrchestrator) -> None:
        """Test an unknown entry id is NOT_FOUND."""
        response = await orchestrator.handle(
            ApiRequest(method="GET", path="/api/product/nope")
        )

        assert response.error is not None
        assert response.error.code == ErrorCode.NOT_FOUND
        assert response.message == "Entry 'nope' not found in content type 'product'"

    async def test_entry_of_other_type_is_not_found(
        self, orchestrator: ContentOrchestrator, lamp_values: list[dict[str, Any]]
    ) -> None:
        """Test an entry is invisible through another content type's path."""
        entry = await create_lamp(orchestrator, lamp_values)

        response = await orchestrator.handle(
            ApiRequest(method="GET", path=f"/api/article/{entry['id']}")
        )

        assert response.error is not None
        assert response.error.code == ErrorCode.NOT_FOUND

    async def test_list_is_paginated_newest_first(
        self, orchestrator: ContentOrchestrator, lamp_values: list[dict[str, Any]]
    ) -> None:
        """Test listing returns the newest entries on the first page."""
        created = [await create_lamp(orchestrator, lamp_values) for _ in range(12)]

        response = await orchestrator.handle(
            ApiRequest(method="GET", path="/api/product", query={"page": "1"})
        )

        ids = [entry["id"] for entry in response.data["entries"]]
        assert ids == [entry["id"] for entry in reversed(created)][:10]
        assert response.data["pagination"] == {
            "page": 1,
            "limit": 10,
            "total": 12,
            "totalPages": 2,
            "hasNextPage": True,
            "hasPreviousPage": False,
        }

    async def test_list_search(
        self, orchestrator: ContentOrchestrator, lamp_values: list[dict[str, Any]]
    ) -> None:
        """Test the search term filters before pagination."""
        await create_lamp(orchestrator, lamp_values)
        desk = await orchestrator.handle(
            ApiRequest(
                method="POST",
                path="/api/product",
                body={
                    "fieldValues": [
                        {"fieldId": "title", "value": "Oak Desk"},
                        {"fieldId": "price", "value": 120},
                    ]
                },
            )
        )

        response = await orchestrator.handle(
            ApiRequest(method="GET", path="/api/product", query={"search": "oak"})
        )

        assert [e["id"] for e in response.data["entries"]] == [
            desk.data["entry"]["id"]
        ]
        assert response.data["pagination"]["total"] == 1

    async def test_invalid_pagination_checked_before_resolution(
        self, orchestrator: ContentOrchestrator
    ) -> None:
        """Test bad pagination wins over an unknown content type."""
        response = await orchestrator.handle(
            ApiRequest(method="GET", path="/api/doesnotexist", query={"page": "0"})
        )

        assert response.error is not None
        assert response.error.code == ErrorCode.BAD_REQUEST
        assert response.message == "Invalid pagination parameters"

    async def test_empty_listing(self, orchestrator: ContentOrchestrator) -> None:
        """Test an empty content type lists zero entries."""
        response = await orchestrator.handle(
            ApiRequest(method="GET", path="/api/article")
        )

        assert response.data["entries"] == []
        assert response.data["pagination"]["total"] == 0
        assert response.data["pagination"]["totalPages"] == 0


@pytest.mark.unit
class TestUpdateAndDelete:
    """Test suite for PUT and DELETE."""

    async def test_update_status_and_slug(
        self, orchestrator: ContentOrchestrator, lamp_values: list[dict[str, Any]]
    ) -> None:
        """Test only the supplied attributes change."""
        entry = await create_lamp(orchestrator, lamp_values)

        response = await orchestrator.handle(
            ApiRequest(
                method="PUT",
                path=f"/api/product/{entry['id']}",
                body={"status": "PUBLISHED", "slug": "desk-lamp"},
            )
        )

        updated = response.data["entry"]
        assert response.message == "Entry updated successfully"
        assert updated["status"] == "PUBLISHED"
        assert updated["slug"] == "desk-lamp"
        assert updated["fieldValues"] == entry["fieldValues"]

    async def test_update_clears_slug(
        self, orchestrator: ContentOrchestrator, lamp_values: list[dict[str, Any]]
    ) -> None:
        """Test an explicit null slug removes it."""
        entry = await create_lamp(orchestrator, lamp_values, slug="lamp")

        response = await orchestrator.handle(
            ApiRequest(
                method="PUT", path=f"/api/product/{entry['id']}", body={"slug": None}
            )
        )

        assert response.data["entry"]["slug"] is None

    async def test_update_replaces_all_field_values(
        self, orchestrator: ContentOrchestrator, lamp_values: list[dict[str, Any]]
    ) -> None:
        """Test fieldValues on update must again be complete."""
        entry = await create_lamp(orchestrator, lamp_values)

        response = await orchestrator.handle(
            ApiRequest(
                method="PUT",
                path=f"/api/product/{entry['id']}",
                body={"fieldValues": [{"fieldId": "title", "value": "Lamp v2"}]},
            )
        )

        assert response.error is not None
        assert response.error.code == ErrorCode.VALIDATION_ERROR
        assert response.error.details == ["Field 'Price' is required"]

    async def test_update_missing_entry(
        self, orchestrator: ContentOrchestrator
    ) -> None:
        """Test updating an unknown entry is NOT_FOUND."""
        response = await orchestrator.handle(
            ApiRequest(
                method="PUT", path="/api/product/nope", body={"status": "DRAFT"}
            )
        )

        assert response.status_code == 404

    async def test_delete(
        self,
        orchestrator: ContentOrchestrator,
        store: InMemoryEntryStore,
        lamp_values: list[dict[str, Any]],
    ) -> None:
        """Test deleting returns the id and removes the entry."""
        entry = await create_lamp(orchestrator, lamp_values)

        response = await orchestrator.handle(
            ApiRequest(method="DELETE", path=f"/api/product/{entry['id']}")
        )

        assert response.data == {"deletedEntryId": entry["id"]}
        assert await store.get_by_id(entry["id"]) is None

    async def test_delete_twice_is_not_found(
        self, orchestrator: ContentOrchestrator, lamp_values: list[dict[str, Any]]
    ) -> None:
        """Test a deleted entry cannot be deleted again."""
        entry = await create_lamp(orchestrator, lamp_values)
        request = ApiRequest(method="DELETE", path=f"/api/product/{entry['id']}")

        await orchestrator.handle(request)
        response = await orchestrator.handle(request)

        assert response.status_code == 404


@pytest.mark.unit
class TestVerbs:
    """Test suite for verb dispatch."""

    @pytest.mark.parametrize("method", ["PATCH", "HEAD", "OPTIONS"])
    async def test_unsupported_verb(
        self, orchestrator: ContentOrchestrator, method: str
    ) -> None:
        """Test verbs outside GET, POST, PUT, DELETE are rejected."""
        response = await orchestrator.handle(
            ApiRequest(method=method, path="/api/product")
        )

        assert response.status_code == 405
        assert response.error is not None
        assert response.error.details == ["Supported methods: GET, POST, PUT, DELETE"]

    async def test_post_to_entry_path(self, orchestrator: ContentOrchestrator) -> None:
        """Test POST to an entry path is not allowed."""
        response = await orchestrator.handle(
            ApiRequest(method="POST", path="/api/product/abc", body={})
        )

        assert response.status_code == 405
        assert response.error is not None
        assert response.error.details == ["Supported methods: GET, PUT, DELETE"]

    @pytest.mark.parametrize("method", ["PUT", "DELETE"])
    async def test_collection_write_needs_entry_id(
        self, orchestrator: ContentOrchestrator, method: str
    ) -> None:
        """Test PUT and DELETE on a collection are bad requests."""
        response = await orchestrator.handle(
            ApiRequest(method=method, path="/api/product", body={})
        )

        assert response.error is not None
        assert response.error.code == ErrorCode.BAD_REQUEST
        assert response.message == "Entry id required"

    async def test_lowercase_method(self, orchestrator: ContentOrchestrator) -> None:
        """Test verbs are matched case-insensitively."""
        response = await orchestrator.handle(
            ApiRequest(method="get", path="/api/article")
        )

        assert response.success is True


@pytest.mark.unit
class TestStoreFailures:
    """Test suite for store error translation."""

    async def test_store_error_becomes_bad_request(
        self,
        orchestrator: ContentOrchestrator,
        store: InMemoryEntryStore,
        mocker: MockerFixture,
    ) -> None:
        """Test known store failures are reported as BAD_REQUEST."""
        mocker.patch.object(
            store, "list_by_type", side_effect=StoreError("Query rejected")
        )

        response = await orchestrator.handle(
            ApiRequest(method="GET", path="/api/product")
        )

        assert response.status_code == 400
        assert response.message == "Query rejected"

    async def test_unknown_failure_becomes_internal_error(
        self,
        orchestrator: ContentOrchestrator,
        store: InMemoryEntryStore,
        mocker: MockerFixture,
    ) -> None:
        """Test unexpected store exceptions become INTERNAL_SERVER_ERROR."""
        mocker.patch.object(
            store, "get_by_id", side_effect=ConnectionError("connection reset")
        )

        response = await orchestrator.handle(
            ApiRequest(method="GET", path="/api/product/abc")
        )

        assert response.status_code == 500
        assert response.error is not None
        assert response.error.details == ["connection reset"]

    async def test_failure_text_hidden_when_not_exposed(
        self,
        registry: InMemoryContentTypeRegistry,
        store: InMemoryEntryStore,
        mocker: MockerFixture,
    ) -> None:
        """Test failure text is withheld when expose_errors is off."""
        orchestrator = ContentOrchestrator(
            ContentRouter(registry), store, expose_errors=False
        )
        mocker.patch.object(store, "get_by_id", side_effect=RuntimeError("boom"))

        response = await orchestrator.handle(
            ApiRequest(method="GET", path="/api/product/abc")
        )

        assert response.error is not None
        assert response.error.details is None

    async def test_typed_errors_pass_through(
        self,
        orchestrator: ContentOrchestrator,
        store: InMemoryEntryStore,
        mocker: MockerFixture,
    ) -> None:
        """Test Contentum errors raised by a store keep their code."""
        mocker.patch.object(
            store, "get_by_id", side_effect=NotFoundError("Entry vanished")
        )

        response = await orchestrator.handle(
            ApiRequest(method="GET", path="/api/product/abc")
        )

        assert response.status_code == 404
        assert response.message == "Entry vanished"

    async def test_registry_failure_is_internal(
        self,
        store: InMemoryEntryStore,
        mocker: MockerFixture,
    ) -> None:
        """Test content type lookup failures are translated too."""
        registry = mocker.AsyncMock()
        registry.list_types.side_effect = OSError("registry offline")
        orchestrator = ContentOrchestrator(ContentRouter(registry), store)

        response = await orchestrator.handle(
            ApiRequest(method="GET", path="/api/product")
        )

        assert response.status_code == 500

    async def test_status_enum_is_persisted(
        self,
        orchestrator: ContentOrchestrator,
        store: InMemoryEntryStore,
        lamp_values: list[dict[str, Any]],
    ) -> None:
        """Test the stored entry carries the parsed status enum."""
        entry = await create_lamp(orchestrator, lamp_values, status="archived")

        stored = await store.get_by_id(entry["id"])

        assert stored is not None
        assert stored.status is EntryStatus.ARCHIVED
