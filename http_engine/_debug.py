"""Debug/verbose mode for the request executor."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Mapping, TextIO

if TYPE_CHECKING:
    from .models import Request
    from .response import Response


@dataclass
class DebugInfo:
    """Debug information for a request/response cycle.

    Captures the request as sent (headers after merging), the redirect chain,
    and the final response or error.
    """

    # Request info
    timestamp: datetime
    method: str
    url: str

    # Request details
    stream: bool = False
    allow_redirects: bool = True
    timeout_ms: int = 0
    request_headers: dict[str, str] = field(default_factory=dict)

    # Response details (populated after request)
    final_url: str | None = None
    status_code: int | None = None
    redirects: list[tuple[int, str]] = field(default_factory=list)
    response_headers: dict[str, str] = field(default_factory=dict)
    content_length: int = 0
    content_preview: str | None = None
    elapsed: float = 0.0

    # Error info
    error: str | None = None

    @classmethod
    def capture(
        cls,
        request: Request,
        default_headers: Mapping[str, str] | None = None,
        response: Response | None = None,
        error: BaseException | None = None,
    ) -> "DebugInfo":
        """Build debug info from a request and its outcome.

        Only fields that are already available are read, so capturing never
        opens a connection or consumes a streamed body.
        """
        headers = request.build_headers(default_headers)
        info = cls(
            timestamp=datetime.now(),
            method=request.method,
            url=request.full_url,
            stream=request.stream,
            allow_redirects=bool(request.allow_redirects),
            timeout_ms=request.timeout_ms,
            request_headers={
                key: _mask_authorization(key, value)
                for key, value in headers.items()
                if value is not None
            },
        )

        if error is not None:
            info.error = f"{type(error).__name__}: {error}"

        if response is not None and response.connection_opened:
            info.final_url = response.url
            info.status_code = response.status_code
            info.redirects = [(hop.status_code, hop.url) for hop in response.history]
            info.response_headers = dict(response.headers.items())
            info.elapsed = response.elapsed
            content = response.buffered_content
            if content is not None:
                info.content_length = len(content)
                info.content_preview = content[:200].decode(response.encoding, errors="replace")

        return info


def _mask_authorization(name: str, value: str) -> str:
    """Hide credentials, keeping the scheme (``Basic ****``)."""
    if name.lower() not in ("authorization", "proxy-authorization"):
        return value
    scheme, _, credentials = value.partition(" ")
    return f"{scheme} ****" if credentials else "****"


class DebugOutput:
    """Handles verbose output formatting and dispatch."""

    def __init__(
        self,
        enabled: bool = False,
        output: TextIO | None = None,
        callback: Callable[[DebugInfo], None] | None = None,
    ):
        """Initialize debug output handler.

        Args:
            enabled: Whether verbose output is enabled.
            output: Output stream (defaults to stderr).
            callback: Optional callback for programmatic capture. Called even
                      when printing is disabled.
        """
        self.enabled = enabled
        self.output = output or sys.stderr
        self.callback = callback

    @property
    def active(self) -> bool:
        """Check if there is anyone to receive debug info."""
        return self.enabled or self.callback is not None

    def log_request(self, info: DebugInfo) -> None:
        """Log debug info for a request/response cycle.

        Args:
            info: Debug information to log.
        """
        if self.callback:
            self.callback(info)

        if self.enabled:
            self._print_formatted(info)

    def _print_formatted(self, info: DebugInfo) -> None:
        """Print formatted debug output to stream.

        Args:
            info: Debug information to format and print.
        """
        out = self.output
        sep = "=" * 80

        # Header
        out.write(f"\n{sep}\n")
        out.write(f"[{info.timestamp.strftime('%Y-%m-%d %H:%M:%S')}] ")
        out.write(f"{info.method} {info.url}\n")
        out.write(f"{sep}\n")

        parts = [
            f"Stream: {'ON' if info.stream else 'OFF'}",
            f"Redirects: {'ON' if info.allow_redirects else 'OFF'}",
            f"Timeout: {info.timeout_ms}ms",
        ]
        out.write(" | ".join(parts) + "\n")

        # Request headers
        if info.request_headers:
            out.write("\n> Request Headers:\n")
            for header, value in info.request_headers.items():
                # Truncate long values
                if len(value) > 80:
                    value = value[:77] + "..."
                out.write(f"  {header}: {value}\n")

        # Response section
        out.write("\n" + "-" * 80 + "\n")

        for status, url in info.redirects:
            out.write(f"< {status} {url}\n")

        if info.error:
            out.write(f"< ERROR: {info.error}\n")
        elif info.status_code is not None:
            out.write(f"< HTTP {info.status_code}")
            if info.elapsed:
                out.write(f"  [{info.elapsed:.3f}s]")
            out.write("\n")

            if info.final_url and info.final_url != info.url:
                out.write(f"< Redirected to: {info.final_url}\n")

            if info.response_headers:
                out.write("\n< Response Headers:\n")
                for header, value in info.response_headers.items():
                    if len(value) > 80:
                        value = value[:77] + "..."
                    out.write(f"  {header}: {value}\n")

            if info.content_length:
                out.write(f"\n< Content Length: {info.content_length:,} bytes\n")

            if info.content_preview:
                preview = info.content_preview
                if len(preview) > 200:
                    preview = preview[:197] + "..."
                # Escape newlines for cleaner output
                preview = preview.replace("\n", "\\n").replace("\r", "\\r")
                out.write(f"< Body Preview: {preview}\n")

        out.write(f"{sep}\n")
        out.flush()
