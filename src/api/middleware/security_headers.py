"""Hardening headers for every HTTP response, content API included."""

from collections.abc import Awaitable, Callable, Iterable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from src.api.constants import (
    DEFAULT_CONTENT_SECURITY_POLICY,
    DEFAULT_PERMISSIONS_POLICY,
)
from src.core.constants import DEFAULT_HSTS_MAX_AGE

STATIC_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": DEFAULT_PERMISSIONS_POLICY,
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Permitted-Cross-Domain-Policies": "none",
}


def build_hsts_header(
    max_age: int, *, include_subdomains: bool = True, preload: bool = True
) -> str:
    """Strict-Transport-Security value with the requested directives."""
    directives = [f"max-age={max_age}"]
    if include_subdomains:
        directives.append("includeSubDomains")
    if preload:
        directives.append("preload")
    return "; ".join(directives)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds :data:`STATIC_SECURITY_HEADERS`, a CSP and optionally HSTS.

    The interactive docs pull scripts from a CDN, so ``csp_exempt_paths``
    (normally the Swagger and ReDoc URLs) are served without a CSP. HSTS is
    only sent when ``hsts_enabled`` is set, which the app does in production.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        hsts_enabled: bool = False,
        hsts_max_age: int = DEFAULT_HSTS_MAX_AGE,
        hsts_include_subdomains: bool = True,
        hsts_preload: bool = True,
        content_security_policy: str = DEFAULT_CONTENT_SECURITY_POLICY,
        csp_exempt_paths: Iterable[str | None] = (),
    ) -> None:
        super().__init__(app)
        self.content_security_policy = content_security_policy
        self.csp_exempt_paths = frozenset(path for path in csp_exempt_paths if path)
        self.hsts_header = (
            build_hsts_header(
                hsts_max_age,
                include_subdomains=hsts_include_subdomains,
                preload=hsts_preload,
            )
            if hsts_enabled
            else None
        )

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response = await call_next(request)
        headers = response.headers

        headers.update(STATIC_SECURITY_HEADERS)
        if request.url.path not in self.csp_exempt_paths:
            headers["Content-Security-Policy"] = self.content_security_policy
        if self.hsts_header is not None:
            headers["Strict-Transport-Security"] = self.hsts_header

        return response
