"""Lightweight request validation helpers."""

import re
from typing import Any, Iterable, List, Optional, Tuple

# Safe characters for provider IDs (alphanumeric, dash, underscore)
PROVIDER_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')

# Language codes like "en", "ja", "pt-br"
LANGUAGE_PATTERN = re.compile(r'^[a-zA-Z]{2,3}(-[a-zA-Z]{2,4})?$')

# Pagination limits
MAX_PAGE = 1000
MAX_LIMIT = 100
DEFAULT_LIMIT = 20

MAX_QUERY_LENGTH = 200
CHAPTER_ORDERS = ('asc', 'desc')


def validate_pagination(page: Any, limit: Any = None, default_limit: int = DEFAULT_LIMIT) -> Tuple[int, int, Optional[str]]:
    """
    Validate and sanitize pagination parameters.

    Args:
        page: Page number (1-indexed)
        limit: Items per page (optional)

    Returns:
        Tuple of (sanitized_page, sanitized_limit, error_or_none)
    """
    # Validate page
    try:
        page_int = int(page) if page is not None else 1
    except (ValueError, TypeError):
        return 1, default_limit, "Invalid page number"

    if page_int < 1:
        page_int = 1
    elif page_int > MAX_PAGE:
        return 1, default_limit, f"Page number exceeds maximum ({MAX_PAGE})"

    # Validate limit
    try:
        limit_int = int(limit) if limit is not None else default_limit
    except (ValueError, TypeError):
        limit_int = default_limit

    if limit_int < 1:
        limit_int = default_limit
    elif limit_int > MAX_LIMIT:
        limit_int = MAX_LIMIT  # Cap at max instead of error

    return page_int, limit_int, None


def parse_provider_ids(raw: Optional[str]) -> Tuple[Optional[List[str]], Optional[str]]:
    """
    Parse a comma separated provider list ("mangadex,comick").

    Returns:
        (ids or None when absent, error_or_none)
    """
    if not raw:
        return None, None
    ids = [part.strip() for part in raw.split(',') if part.strip()]
    for provider_id in ids:
        if not PROVIDER_ID_PATTERN.match(provider_id):
            return None, f"Invalid provider ID format: {provider_id[:40]}"
    return ids or None, None


def validate_language(lang: Optional[str]) -> Optional[str]:
    """None if valid or absent, else error message."""
    if lang and not LANGUAGE_PATTERN.match(lang):
        return "Invalid language code"
    return None


def validate_order(order: Optional[str]) -> Optional[str]:
    if order and order not in CHAPTER_ORDERS:
        return f"Invalid order (expected one of: {', '.join(CHAPTER_ORDERS)})"
    return None


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    """Query-string flag: 1/true/yes/on."""
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def sanitize_string(value: str, max_length: int = 500, allow_newlines: bool = False) -> str:
    """
    Sanitize a string by removing control characters and limiting length.

    Args:
        value: String to sanitize
        max_length: Maximum allowed length
        allow_newlines: Whether to allow newlines

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return ""

    # Remove control characters (except newlines if allowed)
    if allow_newlines:
        result = ''.join(c for c in value if c >= ' ' or c in '\n\r\t')
    else:
        result = ''.join(c for c in value if c >= ' ')

    # Limit length
    return result[:max_length]


def unknown_keys(payload: dict, allowed: Iterable[str]) -> List[str]:
    allowed = set(allowed)
    return sorted(k for k in payload if k not in allowed)
