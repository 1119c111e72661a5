"""
Security middleware for FilmFinder API
Adds response hardening headers; the API serves JSON plus the Swagger UI
"""
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

# Swagger UI loads its bundle and styles from jsDelivr
DOCS_PATHS = ("/docs", "/redoc")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers (XSS, CSP, HSTS, etc.)"""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        # XSS Protection & Clickjacking
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"

        # HSTS
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        # Content Security Policy
        if request.url.path.startswith(DOCS_PATHS):
            csp_directives = [
                "default-src 'self'",
                "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
                "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net",
                "img-src 'self' https://fastapi.tiangolo.com data:",
            ]
        else:
            csp_directives = ["default-src 'none'", "frame-ancestors 'none'"]
        response.headers["Content-Security-Policy"] = "; ".join(csp_directives)

        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response
