"""Input sanitation helpers with XSS protection"""

from datetime import datetime
from typing import Optional
import re
import bleach

# Film descriptions are plain text; every tag is stripped
ALLOWED_TAGS: list[str] = []

MIN_MOVIE_YEAR = 1887  # Roundhay Garden Scene

DANGEROUS_PATTERNS = [
    r'<script[^>]*>',
    r'javascript:',
    r'on\w+\s*=',
    r'<iframe',
]


def current_year() -> int:
    return datetime.now().year


class SafeStringMixin:
    """Mixin for XSS-safe string validation"""

    @staticmethod
    def sanitize_html(value: str) -> str:
        """Remove dangerous HTML/JavaScript"""
        if not value:
            return value
        return bleach.clean(value, tags=ALLOWED_TAGS, strip=True)

    @staticmethod
    def validate_no_script(value: str) -> str:
        """Block common XSS patterns"""
        if not value:
            return value

        for pattern in DANGEROUS_PATTERNS:
            if re.search(pattern, value, re.IGNORECASE):
                raise ValueError("Invalid characters detected")

        return value


def check_year_range(year_from: Optional[int], year_to: Optional[int]) -> None:
    """Shared rule for recommendation criteria and stored preferences"""
    if year_to is not None and year_to > current_year():
        raise ValueError("year_to cannot be in the future")
    if year_from is not None and year_from > current_year():
        raise ValueError("year_from cannot be in the future")
    if year_from is not None and year_to is not None and year_from > year_to:
        raise ValueError("year_to must be greater than or equal to year_from")


def escape_like(value: str, escape_char: str = "\\") -> str:
    """Escape LIKE wildcards so user search text matches literally"""
    return (
        value.replace(escape_char, escape_char * 2)
        .replace("%", f"{escape_char}%")
        .replace("_", f"{escape_char}_")
    )
