"""FastAPI middleware package for cross-cutting request/response concerns.

- **SecurityHeadersMiddleware**: Adds security headers (HSTS, X-Frame-Options, etc.)
- **RequestContextMiddleware**: Manages correlation and request ids
- **error_handler**: Renders escaped exceptions in the response envelope

Starlette executes middleware in reverse order of registration:
1. Security headers (first to process, last to respond)
2. Request context (sets up correlation and request ids)
3. Exception handlers (innermost, inside the request context)
"""
