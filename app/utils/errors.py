"""
Typed error variants raised by the service layer.

Each variant carries the HTTP status it maps to; the handlers registered in
app.main turn them into JSON responses. Services never build HTTP responses
themselves.
"""
from typing import Any, Optional


class FilmFinderError(Exception):
    """Base class for all expected application failures"""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationFailedError(FilmFinderError):
    status_code = 400
    default_message = "Validation failed"


class UnauthorizedError(FilmFinderError):
    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(FilmFinderError):
    """Raised for missing rows AND rows owned by someone else"""
    status_code = 404
    default_message = "Not found or not authorized"


class ConflictError(FilmFinderError):
    status_code = 409
    default_message = "Resource already exists"

    def __init__(self, message: Optional[str] = None, titles: Optional[list] = None):
        self.titles = list(titles or [])
        super().__init__(message, details={"titles": self.titles} if self.titles else None)


class UpstreamFailureError(FilmFinderError):
    """
    A dependency (AI API, model output) failed.
    The client only ever sees a generic message plus the machine-readable code.
    """
    status_code = 500
    default_message = "Upstream service failure"
    code = "UPSTREAM_FAILURE"

    def to_dict(self) -> dict:
        return {"error": "Failed to generate recommendations", "code": self.code}


class RateLimitedError(FilmFinderError):
    status_code = 429
    default_message = "Too many requests. Please try again later."
