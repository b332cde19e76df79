"""FastAPI dependencies for the content API routes."""

from typing import Annotated

from fastapi import Depends, Request

from src.content.service import ContentService
from src.core.config import Settings, get_settings


def get_content_service(request: Request) -> ContentService:
    """Return the content service created by the application factory."""
    service: ContentService = request.app.state.content_service
    return service


def get_app_settings(request: Request) -> Settings:
    """Settings the application was created with, else the process settings."""
    settings: Settings | None = getattr(request.app.state, "settings", None)
    return settings or get_settings()


ContentServiceDep = Annotated[ContentService, Depends(get_content_service)]
AppSettingsDep = Annotated[Settings, Depends(get_app_settings)]
