"""Unit tests for src/api/utils/responses.py."""

import orjson
import pytest
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.api.utils.responses import ORJSONResponse, envelope_response
from src.content.envelope import error_response, success_response
from src.core.exceptions import ErrorCode


class Sample(BaseModel):
    """Model rendered by alias."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    display_name: str


@pytest.mark.unit
class TestORJSONResponse:
    """Test cases for ORJSONResponse rendering."""

    def test_media_type(self) -> None:
        """Test JSON is announced."""
        assert ORJSONResponse.media_type == "application/json"

    def test_renders_plain_content(self) -> None:
        """Test dicts keep their key order."""
        response = ORJSONResponse(content={"b": 1, "a": [True, None]})

        assert response.body == b'{"b":1,"a":[true,null]}'

    def test_renders_models_by_alias(self) -> None:
        """Test pydantic models are dumped with camelCase keys."""
        response = ORJSONResponse(content=Sample(display_name="Product"))

        assert orjson.loads(response.body) == {"displayName": "Product"}

    def test_renders_envelope_without_nulls(self) -> None:
        """Test envelopes omit absent members."""
        response = ORJSONResponse(content=success_response({"id": "e-1"}))

        body = orjson.loads(response.body)
        assert body["data"] == {"id": "e-1"}
        assert "error" not in body
        assert "processingTime" not in body["meta"]


@pytest.mark.unit
class TestEnvelopeResponse:
    """Test cases for envelope_response()."""

    def test_status_and_headers(self) -> None:
        """Test the envelope's status and middleware headers are applied."""
        envelope = error_response(ErrorCode.RATE_LIMITED).with_headers(
            {"Retry-After": "60"}
        )

        response = envelope_response(envelope)

        assert response.status_code == 429
        assert response.headers["retry-after"] == "60"
        assert orjson.loads(response.body)["error"]["code"] == "RATE_LIMITED"

    def test_success_is_200(self) -> None:
        """Test successful envelopes are rendered with status 200."""
        response = envelope_response(success_response([]))

        assert response.status_code == 200
        assert orjson.loads(response.body)["data"] == []
