"""Exception hierarchy for the HTTP engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .response import Response


class HTTPClientError(Exception):
    """Base exception for HTTP engine errors."""
    pass


class ConstructionError(HTTPClientError):
    """Invalid request description (bad scheme, URL or payload combination)."""
    pass


class NetworkError(HTTPClientError):
    """Error during HTTP transport (connect, read, write, DNS, TLS, timeout)."""

    def __init__(self, message: str, original_error: BaseException | None = None):
        super().__init__(message)
        self.original_error = original_error


class RedirectResolutionError(NetworkError):
    """Redirect status without a usable ``Location`` header."""

    def __init__(
        self,
        message: str,
        location: str | None = None,
        original_error: BaseException | None = None,
    ):
        super().__init__(message, original_error=original_error)
        self.location = location


class TooManyRedirects(NetworkError):
    """Redirect chain longer than the configured hop limit."""

    def __init__(self, url: str, max_redirects: int):
        super().__init__(f"Exceeded {max_redirects} redirects while requesting {url}")
        self.url = url
        self.max_redirects = max_redirects


class DecodingError(NetworkError):
    """Response body could not be decompressed."""
    pass


class StateError(HTTPClientError):
    """Response field accessed after its underlying stream was released."""

    def __init__(self, message: str = "Response stream already released"):
        super().__init__(message)


class HTTPError(HTTPClientError):
    """HTTP error response (4xx, 5xx status codes)."""

    def __init__(self, message: str, response: Response | None = None):
        super().__init__(message)
        self.response = response
