"""Request orchestrator: verb dispatch, CRUD, search and pagination.

Checks run in a fixed order so that malformed requests never reach the
registry or the store: path parsing, verb check, pagination parsing (lists
only), content type resolution, and finally the store calls.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from src.content.envelope import (
    ApiResponse,
    response_from_exception,
    success_response,
)
from src.content.listing import (
    PageRequest,
    filter_entries,
    paginate,
    parse_page_request,
)
from src.content.models import (
    ApiRequest,
    ContentEntry,
    ContentType,
    EntryChanges,
    EntryStatus,
)
from src.content.normalizer import normalize, redact_for_log
from src.content.protocols import EntryStore
from src.content.router import ContentRouter, RoutePath
from src.content.validators import validate_slug
from src.core.error_context import sanitize_error_context
from src.core.exceptions import (
    BadRequestError,
    ContentumError,
    ErrorCode,
    MethodNotAllowedError,
    NotFoundError,
    Severity,
    StoreError,
    ValidationError,
)
from src.core.observability import trace_operation

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE")
ENTRY_METHODS = ("GET", "PUT", "DELETE")


def _dump(model: ContentEntry | ContentType) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


class ContentOrchestrator:
    """Executes content API requests against an entry store.

    Args:
        router: Resolves paths to content types.
        store: Entry persistence.
        default_page_size: Page size used when ``limit`` is omitted.
        expose_errors: Report store failure text in ``details``.
        version: API version reported in ``meta.version``.
    """

    def __init__(
        self,
        router: ContentRouter,
        store: EntryStore,
        *,
        default_page_size: int = 20,
        expose_errors: bool = True,
        version: str | None = None,
    ) -> None:
        self.router = router
        self.store = store
        self.default_page_size = default_page_size
        self.expose_errors = expose_errors
        self.version = version

    async def handle(self, request: ApiRequest) -> ApiResponse:
        """Serve one request, converting every known failure to an envelope."""
        try:
            return await self._dispatch(request)
        except ContentumError as exc:
            log = logger.info if exc.is_expected else logger.error
            log(
                "Content request failed: {}",
                exc,
                method=request.method,
                path=request.path,
                error_code=exc.error_code.value,
                fingerprint=exc.fingerprint,
            )
            return response_from_exception(exc, version=self.version)

    async def _dispatch(self, request: ApiRequest) -> ApiResponse:
        route = self.router.parse(request.path)
        method = request.method

        if method not in SUPPORTED_METHODS:
            raise MethodNotAllowedError(method, request.path, SUPPORTED_METHODS)

        entry_id = route.entry_id
        if entry_id is None:
            if method == "GET":
                page_request = parse_page_request(
                    request.query, self.default_page_size
                )
                content_type = await self._resolve(route)
                return await self.list_entries(
                    content_type, page_request, request.query.get("search")
                )
            if method == "POST":
                content_type = await self._resolve(route)
                return await self.create_entry(content_type, self._payload(request))
            raise BadRequestError(
                "Entry id required",
                [f"{method} requests must target {self.router.prefix}/<type>/<id>"],
            )

        if method == "POST":
            raise MethodNotAllowedError(method, request.path, ENTRY_METHODS)

        content_type = await self._resolve(route)
        if method == "GET":
            return await self.get_entry(content_type, entry_id)
        if method == "PUT":
            return await self.update_entry(
                content_type, entry_id, self._payload(request)
            )
        return await self.delete_entry(content_type, entry_id)

    async def _resolve(self, route: RoutePath) -> ContentType:
        resolved = await self._call_store(
            "resolve_content_type",
            lambda: self.router.resolve(route),
            identifier=route.content_type_identifier,
        )
        return resolved.content_type

    @staticmethod
    def _payload(request: ApiRequest) -> dict[str, Any]:
        if not isinstance(request.body, dict):
            raise BadRequestError(
                f"Request body is required for {request.method} requests"
            )
        return request.body

    async def _call_store[T](
        self,
        operation: str,
        call: Callable[[], Awaitable[T]],
        **attributes: str | int | bool,
    ) -> T:
        """Run one store call inside a span, translating its failures.

        ``StoreError`` becomes BAD_REQUEST and unknown exceptions become
        INTERNAL_SERVER_ERROR; typed Contentum errors pass through.
        """
        with trace_operation(f"content.store.{operation}", **attributes):
            try:
                return await call()
            except StoreError as exc:
                logger.warning(
                    "Store rejected {}: {}", operation, exc.message, operation=operation
                )
                raise BadRequestError(
                    exc.message,
                    [str(exc.cause or exc.message)] if self.expose_errors else None,
                    cause=exc,
                ) from exc
            except ContentumError:
                raise
            except Exception as exc:
                logger.opt(exception=exc).error(
                    "Store failure during {}",
                    operation,
                    operation=operation,
                    **sanitize_error_context(exc),
                )
                raise ContentumError(
                    ErrorCode.INTERNAL_SERVER_ERROR,
                    "Internal server error",
                    [str(exc)] if self.expose_errors and str(exc) else None,
                    Severity.CRITICAL,
                    {"operation": operation},
                    exc,
                ) from exc

    async def _find_entry(
        self, content_type: ContentType, entry_id: str
    ) -> ContentEntry:
        entry = await self._call_store(
            "get_by_id", lambda: self.store.get_by_id(entry_id), entry_id=entry_id
        )
        # An entry of another content type is reported exactly like a missing one
        if entry is None or entry.content_type_id != content_type.id:
            raise NotFoundError(
                f"Entry '{entry_id}' not found in content type '{content_type.slug}'"
            )
        return entry

    async def list_entries(
        self,
        content_type: ContentType,
        page_request: PageRequest | None = None,
        search: str | None = None,
    ) -> ApiResponse:
        """List entries of a content type, filtered by ``search`` and paginated."""
        entries = await self._call_store(
            "list_by_type",
            lambda: self.store.list_by_type(content_type.id),
            content_type=content_type.slug,
        )
        matching = filter_entries(entries, content_type, search)
        page_entries, pagination = paginate(
            matching, page_request or PageRequest(limit=self.default_page_size)
        )
        return success_response(
            {
                "entries": [_dump(entry) for entry in page_entries],
                "contentType": _dump(content_type),
                "pagination": pagination.model_dump(by_alias=True),
            },
            "Entries retrieved successfully",
            version=self.version,
        )

    async def get_entry(self, content_type: ContentType, entry_id: str) -> ApiResponse:
        """Fetch one entry that belongs to ``content_type``."""
        entry = await self._find_entry(content_type, entry_id)
        return success_response(
            {"entry": _dump(entry), "contentType": _dump(content_type)},
            "Entry retrieved successfully",
            version=self.version,
        )

    async def create_entry(
        self, content_type: ContentType, payload: dict[str, Any]
    ) -> ApiResponse:
        """Validate a complete set of field values and store a new entry."""
        errors: list[str] = []
        result = normalize(
            content_type, payload.get("fieldValues"), require_all_fields=True
        )
        errors.extend(result.errors)
        slug = self._parse_slug(payload.get("slug"), errors)
        status = self._parse_status(payload.get("status"), errors)
        if errors or result.values is None:
            raise ValidationError(details=list(dict.fromkeys(errors)))

        field_values = result.values
        logger.debug(
            "Creating entry with values {}",
            redact_for_log(content_type, field_values),
            content_type=content_type.slug,
        )
        entry = await self._call_store(
            "create",
            lambda: self.store.create(
                content_type.id, field_values, slug=slug, status=status
            ),
            content_type=content_type.slug,
        )
        logger.info(
            "Entry created", content_type=content_type.slug, entry_id=entry.id
        )
        return success_response(
            {"entry": _dump(entry), "contentType": _dump(content_type)},
            "Entry created successfully",
            version=self.version,
        )

    async def update_entry(
        self, content_type: ContentType, entry_id: str, payload: dict[str, Any]
    ) -> ApiResponse:
        """Replace slug, status and/or the complete field value set of an entry."""
        await self._find_entry(content_type, entry_id)

        errors: list[str] = []
        changes: dict[str, Any] = {}
        if "fieldValues" in payload:
            result = normalize(
                content_type, payload["fieldValues"], require_all_fields=True
            )
            errors.extend(result.errors)
            changes["field_values"] = result.values
        if "slug" in payload:
            changes["slug"] = self._parse_slug(payload["slug"], errors)
        if payload.get("status") is not None:
            changes["status"] = self._parse_status(payload["status"], errors)
        if errors:
            raise ValidationError(details=list(dict.fromkeys(errors)))

        entry = await self._call_store(
            "update",
            lambda: self.store.update(entry_id, EntryChanges(**changes)),
            entry_id=entry_id,
        )
        if entry is None:
            raise NotFoundError(
                f"Entry '{entry_id}' not found in content type '{content_type.slug}'"
            )
        logger.info(
            "Entry updated",
            content_type=content_type.slug,
            entry_id=entry_id,
            changed=sorted(changes),
        )
        return success_response(
            {"entry": _dump(entry), "contentType": _dump(content_type)},
            "Entry updated successfully",
            version=self.version,
        )

    async def delete_entry(
        self, content_type: ContentType, entry_id: str
    ) -> ApiResponse:
        """Hard-delete an entry after checking it belongs to ``content_type``."""
        await self._find_entry(content_type, entry_id)
        deleted = await self._call_store(
            "delete", lambda: self.store.delete(entry_id), entry_id=entry_id
        )
        if not deleted:
            raise NotFoundError(
                f"Entry '{entry_id}' not found in content type '{content_type.slug}'"
            )
        logger.info("Entry deleted", content_type=content_type.slug, entry_id=entry_id)
        return success_response(
            {"deletedEntryId": entry_id},
            "Entry deleted successfully",
            version=self.version,
        )

    @staticmethod
    def _parse_slug(value: Any, errors: list[str]) -> str | None:
        if value is None or value == "":
            return None
        if not isinstance(value, str):
            errors.append("Slug must be a string")
            return None
        result = validate_slug(value)
        if not result.is_valid:
            errors.append(f"Invalid slug '{value}': {result.message}")
            return None
        return value

    @staticmethod
    def _parse_status(value: Any, errors: list[str]) -> EntryStatus | None:
        if value is None:
            return None
        try:
            return EntryStatus(str(value).upper())
        except ValueError:
            allowed = ", ".join(status.value for status in EntryStatus)
            errors.append(f"Invalid status '{value}'. Allowed values: {allowed}")
            return None
