"""Contentum - dynamic content API engine.

Content types are defined as data: a list of typed fields with validation
rules. Contentum exposes CRUD, pagination and search endpoints for every
content type without any per-type code.

Architecture Overview:
- **API Layer** (``src.api``): FastAPI application, HTTP middleware and
  exception handlers
- **Content Layer** (``src.content``): field validation, normalization,
  routing, orchestration, middleware pipeline and response envelope
- **Core Layer** (``src.core``): configuration, logging, exceptions, request
  context and tracing
- **Infrastructure Layer** (``src.infrastructure``): in-memory and SQL
  stores for content types and entries
"""
