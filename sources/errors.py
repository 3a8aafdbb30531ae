"""
Error taxonomy for provider access and aggregation.

Transient errors (timeouts, network failures, HTTP errors, invalid records) are
absorbed by search fan-out and degrade to fewer results. Structural errors
(malformed ids, unknown providers, unsupported page reading) always reach the
caller.
"""

from typing import Optional


class MangaApiError(Exception):
    """Base error raised by the transport, adapters and aggregator."""

    code: str = "API_ERROR"
    http_status: int = 502
    is_retriable: bool = True

    def __init__(
        self,
        provider: str = "",
        status: Optional[int] = None,
        url: Optional[str] = None,
        message: Optional[str] = None
    ):
        self.provider = provider
        self.status = status
        self.url = url
        super().__init__(message or f"API error: {self.code}")

    def to_dict(self) -> dict:
        payload = {"error": str(self), "code": self.code}
        if self.provider:
            payload["provider"] = self.provider
        if self.status is not None:
            payload["status"] = self.status
        return payload


class RequestTimeout(MangaApiError):
    """The request did not complete within its timeout."""
    code = "TIMEOUT"
    http_status = 504

    def __init__(self, host: str, url: str):
        super().__init__(host, None, url, f"Request timeout: {url}")


class NetworkError(MangaApiError):
    """DNS, connection or body decoding failure."""
    code = "NETWORK_ERROR"

    def __init__(self, host: str, url: str, message: str):
        super().__init__(host, None, url, message or "Network error")


class HttpError(MangaApiError):
    """Non-2xx response from a provider."""
    code = "HTTP_ERROR"

    def __init__(self, host: str, status: int, url: str, reason: str = ""):
        message = f"HTTP {status}: {reason}" if reason else f"HTTP {status}"
        super().__init__(host, status, url, message)


class RecordValidationError(MangaApiError):
    """A provider returned a record that failed schema validation."""
    code = "VALIDATION_ERROR"

    def __init__(self, provider: str, message: str, url: Optional[str] = None):
        super().__init__(provider, None, url, message)


class InvalidGlobalIdError(MangaApiError):
    """A global id is not of the form ``provider:rawId``."""
    code = "INVALID_ID"
    http_status = 400
    is_retriable = False

    def __init__(self, value: str):
        self.value = value
        super().__init__("", None, None, f"Invalid id format '{value}'. Expected: provider:id")


class ProviderNotFoundError(MangaApiError):
    """The provider part of a global id is not registered."""
    code = "PROVIDER_NOT_FOUND"
    http_status = 404
    is_retriable = False

    def __init__(self, provider: str):
        super().__init__(provider, None, None, f"Provider not found: {provider}")


class PageReadingUnsupportedError(MangaApiError):
    """The provider does not serve chapter pages."""
    code = "PAGES_UNSUPPORTED"
    http_status = 422
    is_retriable = False

    def __init__(self, provider: str):
        super().__init__(provider, None, None, f"Provider {provider} does not support reading pages")
