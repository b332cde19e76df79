"""Fixtures for API middleware tests."""

from typing import cast

import pytest
from fastapi import Request
from pytest_mock import MockerFixture, MockType
from starlette.datastructures import URL, State
from starlette.middleware.base import RequestResponseEndpoint
from starlette.requests import Request as StarletteRequest
from starlette.responses import Response as StarletteResponse

from src.api.middleware.request_context import RequestContextMiddleware


@pytest.fixture
def mock_request(mocker: MockerFixture) -> MockType:
    """``GET /api/product`` as seen by the exception handlers."""
    request = mocker.Mock(spec=Request)
    request.method = "GET"
    request.url = mocker.Mock(spec=URL)
    request.url.path = "/api/product"
    request.headers = {"user-agent": "test-client/1.0"}
    request.app.state = State()
    return cast("MockType", request)


@pytest.fixture
def mock_starlette_request(mocker: MockerFixture) -> MockType:
    """Header-less request for ``/api/product``."""
    request = mocker.Mock(spec=StarletteRequest)
    request.headers = {}
    request.url = mocker.Mock(spec=URL)
    request.url.path = "/api/product"
    return cast("MockType", request)


@pytest.fixture
def mock_starlette_response(mocker: MockerFixture) -> MockType:
    """Response whose headers are a plain dict."""
    response = mocker.Mock(spec=StarletteResponse)
    response.headers = {}
    return cast("MockType", response)


@pytest.fixture
def mock_starlette_call_next(
    mocker: MockerFixture, mock_starlette_response: MockType
) -> MockType:
    """Downstream endpoint returning ``mock_starlette_response``."""
    call_next = mocker.AsyncMock(spec=RequestResponseEndpoint)
    call_next.return_value = mock_starlette_response
    return cast("MockType", call_next)


@pytest.fixture
def request_context_middleware(mock_app: MockType) -> RequestContextMiddleware:
    """Fresh request context middleware around ``mock_app``."""
    return RequestContextMiddleware(mock_app)
