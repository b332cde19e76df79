"""High-performance JSON response classes using orjson serialization.

The ORJSONResponse class is the default response class of the application.
It also knows how to render the content API envelope, so route handlers can
return an :class:`~src.content.envelope.ApiResponse` as is.
"""

from typing import Any

import orjson
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from src.content.envelope import ApiResponse


class ORJSONResponse(JSONResponse):
    """FastAPI Response class using orjson for JSON serialization.

    Attributes:
        media_type: The media type for the response.
    """

    media_type = "application/json"

    def render(self, content: Any) -> bytes:  # noqa: ANN401 - accepts any JSON-serializable content
        """Render the content as JSON using orjson.

        Args:
            content: The content to serialize to JSON.

        Returns:
            bytes: The JSON-encoded bytes.
        """
        if isinstance(content, ApiResponse):
            content = content.to_wire()
        elif isinstance(content, BaseModel):
            content = content.model_dump(mode="json", by_alias=True)

        return orjson.dumps(content)


def envelope_response(response: ApiResponse) -> ORJSONResponse:
    """Render an envelope with its HTTP status and middleware headers."""
    return ORJSONResponse(
        status_code=response.status_code,
        content=response,
        headers=response.headers or None,
    )
