"""HTTP API layer with FastAPI for the Contentum content API.

This package is the HTTP boundary of the application. It translates HTTP
requests into transport-neutral :class:`~src.content.models.ApiRequest`
objects, hands them to the content service and renders the resulting
envelope back to the client.

Key components:
- **main**: Application factory, store selection and lifecycle management
- **dependencies**: FastAPI dependencies resolving the content service
- **middleware**: Cross-cutting concerns for all requests
  - Security headers for protection against common attacks
  - Request context with correlation and request id tracking
  - Centralized error handling rendering the response envelope
- **utils**: High-performance JSON serialization with orjson

Content API concerns (request logging, authentication, CORS, rate limiting)
live in the content pipeline rather than in Starlette middleware, so that
they behave identically whether the service is called over HTTP or in
process.
"""
