"""Integration tests for the application lifespan."""

from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from pytest_mock import MockerFixture

from src.api.main import create_app
from src.core.config import Settings
from src.core.exceptions import StoreError
from src.infrastructure.memory import InMemoryContentTypeRegistry, InMemoryEntryStore


@pytest.mark.integration
class TestLifespan:
    """Test startup and shutdown behavior."""

    async def test_seeds_content_types(
        self, content_types_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test content types from the configured file are served after startup."""
        monkeypatch.setenv(
            "CONTENT_API_CONFIG__CONTENT_TYPES_FILE", str(content_types_file)
        )
        app = create_app(Settings())

        async with app.router.lifespan_context(app):
            types = await app.state.registry.list_types()
            async with AsyncClient(
                transport=ASGITransport(app=app), base_url="http://test"
            ) as client:
                response = await client.get("/api/article")

        assert [t.slug for t in types] == ["product", "article"]
        assert response.status_code == 200

    async def test_without_file_starts_empty(self) -> None:
        """Test no content types exist when no file is configured."""
        registry = InMemoryContentTypeRegistry()
        app = create_app(Settings(), registry, InMemoryEntryStore())

        async with app.router.lifespan_context(app):
            assert await registry.list_types() == []

    async def test_invalid_file_fails_startup(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a broken definitions file aborts startup."""
        path = tmp_path / "broken.json"
        path.write_text("[{]")
        monkeypatch.setenv("CONTENT_API_CONFIG__CONTENT_TYPES_FILE", str(path))
        app = create_app(Settings())

        with pytest.raises(StoreError, match="Cannot load content types"):
            async with app.router.lifespan_context(app):
                pass

    async def test_database_checked_on_startup(self, mocker: MockerFixture) -> None:
        """Test an unreachable database aborts startup."""
        app = create_app(
            Settings(), InMemoryContentTypeRegistry(), InMemoryEntryStore()
        )
        app.state.engine = mocker.Mock()
        mocker.patch(
            "src.api.main.check_database_connection",
            return_value=(False, "connection refused"),
        )

        with pytest.raises(RuntimeError, match="connection refused"):
            async with app.router.lifespan_context(app):
                pass

    async def test_database_tables_created_and_closed(
        self, mocker: MockerFixture
    ) -> None:
        """Test tables are ensured on startup and the engine closed on shutdown."""
        app = create_app(
            Settings(), InMemoryContentTypeRegistry(), InMemoryEntryStore()
        )
        engine = mocker.Mock()
        app.state.engine = engine
        mocker.patch(
            "src.api.main.check_database_connection", return_value=(True, None)
        )
        create_tables = mocker.patch("src.api.main.create_tables")
        close_database = mocker.patch("src.api.main.close_database")

        async with app.router.lifespan_context(app):
            create_tables.assert_awaited_once_with(engine)
            close_database.assert_not_awaited()

        close_database.assert_awaited_once()
