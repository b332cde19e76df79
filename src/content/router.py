"""Content router: request path to content type (and entry id)."""

from dataclasses import dataclass

from loguru import logger

from src.content.models import ContentType
from src.content.protocols import ContentTypeRegistry
from src.core.exceptions import BadRequestError, NotFoundError

MAX_PATH_SEGMENTS = 2


@dataclass(frozen=True, slots=True)
class RoutePath:
    """Identifiers extracted from a request path."""

    content_type_identifier: str
    entry_id: str | None = None


@dataclass(frozen=True, slots=True)
class ResolvedRoute:
    """A route whose content type exists."""

    content_type: ContentType
    entry_id: str | None = None


def is_api_path(path: str, prefix: str) -> bool:
    """Whether ``path`` is ``prefix`` itself or lives below it."""
    return path == prefix or path.startswith(prefix + "/")


def parse_path(path: str, prefix: str = "/api") -> RoutePath:
    """Split an API path into content type identifier and entry id.

    Args:
        path: Request path, e.g. ``/api/product/42``.
        prefix: API prefix the path must start with.

    Returns:
        RoutePath: The identifiers found in the path.

    Raises:
        BadRequestError: Outside the prefix, or no content type segment.
        NotFoundError: More than two segments below the prefix.
    """
    trimmed = path.rstrip("/") or "/"
    if not is_api_path(trimmed, prefix):
        raise BadRequestError(f"API path must start with {prefix}/")

    segments = [segment for segment in trimmed[len(prefix) :].split("/") if segment]
    if not segments:
        raise BadRequestError("Content type segment required")
    if len(segments) > MAX_PATH_SEGMENTS:
        raise NotFoundError(f"No API route matches '{path}'")

    entry_id = segments[1] if len(segments) == MAX_PATH_SEGMENTS else None
    return RoutePath(content_type_identifier=segments[0], entry_id=entry_id)


class ContentRouter:
    """Resolves API paths against a content type registry.

    Args:
        registry: Where content types are looked up.
        prefix: API prefix owned by this router.
    """

    def __init__(self, registry: ContentTypeRegistry, prefix: str = "/api") -> None:
        self.registry = registry
        self.prefix = prefix

    def parse(self, path: str) -> RoutePath:
        """Parse ``path`` without touching the registry."""
        return parse_path(path, self.prefix)

    async def resolve(self, route: RoutePath) -> ResolvedRoute:
        """Look up the content type named by ``route`` (by slug or id).

        Raises:
            NotFoundError: No content type has that slug or id.
        """
        identifier = route.content_type_identifier
        for content_type in await self.registry.list_types():
            if identifier in (content_type.slug, content_type.id):
                return ResolvedRoute(content_type=content_type, entry_id=route.entry_id)

        logger.debug("Unknown content type requested: {}", identifier)
        raise NotFoundError(
            f"Content type '{identifier}' not found. "
            "Create the content type before using its API endpoint.",
            context={"identifier": identifier},
        )

    async def route(self, path: str) -> ResolvedRoute:
        """Parse and resolve ``path`` in one step."""
        return await self.resolve(self.parse(path))
