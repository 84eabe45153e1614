"""Lazy response engine: connection, redirects, decoding and body access."""

from __future__ import annotations

import codecs
import io
import time
from collections.abc import Mapping
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

import httpx

from ._decoders import RawStream, get_decoder
from .exceptions import (
    ConstructionError,
    HTTPError,
    NetworkError,
    RedirectResolutionError,
    StateError,
    TooManyRedirects,
)
from .models import Request
from .params import resolve_url
from .streaming import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_LINE_CHUNK_SIZE,
    ContentIterator,
    LineIterator,
)
from .structures import DEFAULT_HEADERS, HeaderMap

T = TypeVar("T")

REDIRECT_STATUS_CODES = frozenset({301, 302, 303, 307, 308})
DEFAULT_MAX_REDIRECTS = 10
DEFAULT_ENCODING = "UTF-8"


class ResponseState(Enum):
    """Lifecycle of a :class:`Response`."""

    UNCONNECTED = "unconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    BODY_PENDING = "body_pending"
    STREAM_OPEN = "stream_open"
    CLOSED = "closed"
    FAILED = "failed"


class _Status(Enum):
    UNCOMPUTED = "uncomputed"
    COMPUTED = "computed"
    FAILED = "failed"


class Lazy(Generic[T]):
    """A value computed on first access and cached afterwards.

    The state is explicit (uncomputed, computed or failed) so ``None`` can be
    a real value. A failed computation stores its exception and re-raises it
    on every later access instead of running the computation again.
    """

    __slots__ = ("_status", "_value", "_error")

    def __init__(self) -> None:
        self._status = _Status.UNCOMPUTED
        self._value: T | None = None
        self._error: Exception | None = None

    @property
    def is_computed(self) -> bool:
        return self._status is _Status.COMPUTED

    @property
    def is_failed(self) -> bool:
        return self._status is _Status.FAILED

    def get(self, compute: Callable[[], T]) -> T:
        if self._status is _Status.COMPUTED:
            return self._value  # type: ignore[return-value]
        if self._status is _Status.FAILED:
            raise self._error  # type: ignore[misc]
        try:
            value = compute()
        except Exception as e:
            self._status = _Status.FAILED
            self._error = e
            raise
        self.set(value)
        return value

    def set(self, value: T) -> None:
        self._value = value
        self._status = _Status.COMPUTED

    def peek(self) -> T | None:
        """Return the value if computed, else ``None``, without computing."""
        return self._value if self._status is _Status.COMPUTED else None


def detect_encoding(content_type: str | None) -> str:
    """Charset named by a ``Content-Type`` value, UTF-8 if none is usable.

    The first ``charset`` parameter wins; its key is matched ignoring case.
    """
    if not content_type:
        return DEFAULT_ENCODING
    for part in content_type.split(";"):
        key, sep, value = part.partition("=")
        if not sep or key.strip().lower() != "charset":
            continue
        charset = value.strip().strip("'\"").upper()
        try:
            codecs.lookup(charset)
        except LookupError:
            return DEFAULT_ENCODING
        return charset
    return DEFAULT_ENCODING


def _payload(request: Request) -> dict[str, Any]:
    """Keyword arguments describing the request body for httpx."""
    if request.files:
        return {
            "files": [raw_file.to_httpx() for raw_file in request.files],
            "data": dict(request.data or {}),
        }
    if request.body:
        return {"content": request.body}
    if request.json is not None:
        return {"json": request.json}

    data = request.data
    if data is None:
        return {}
    if isinstance(data, Mapping):
        return {"data": dict(data)}
    if isinstance(data, str):
        return {"content": data.encode("utf-8")}
    if isinstance(data, (bytes, bytearray)):
        return {"content": bytes(data)}
    if hasattr(data, "read"):
        return {"content": data.read()}
    return {"content": str(data).encode("utf-8")}


class Response:
    """Response to one :class:`~http_engine.models.Request`, computed lazily.

    Nothing touches the network until a field is read. The first read of
    ``connection`` (directly or through ``status_code``, ``headers``, ``url``,
    ``history``...) opens the connection and follows redirects; ``content``
    and ``text`` are read and decoded once and then cached.

    In stream mode the body stays on the wire: use ``raw``,
    :meth:`iter_content` or :meth:`iter_lines`. Once the body stream has been
    consumed and released, reading a field that is not cached raises
    :class:`~http_engine.exceptions.StateError`.

    Lazy fields are not synchronized. Read a response from one thread, or
    guard it with a lock when sharing it.

    Example:
        with Response(Request("GET", "https://example.com")) as response:
            print(response.status_code, response.encoding)
            print(response.text)
    """

    def __init__(
        self,
        request: Request,
        *,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        verify_ssl: bool = True,
        trust_env: bool = True,
        default_headers: Mapping[str, str] | None = None,
        transport: httpx.BaseTransport | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        line_chunk_size: int = DEFAULT_LINE_CHUNK_SIZE,
    ) -> None:
        """Initialize an unconnected response.

        Args:
            request: The call to perform.
            max_redirects: Maximum redirect hops before giving up.
            verify_ssl: Verify certificates when the request has no
                ``ssl_context`` of its own.
            trust_env: Let httpx read proxy and certificate settings from
                the environment.
            default_headers: Headers sent unless the request overrides or
                suppresses them. Defaults to ``DEFAULT_HEADERS``.
            transport: httpx transport to send through (tests use
                ``httpx.MockTransport``).
            chunk_size: Default chunk size for :meth:`iter_content`.
            line_chunk_size: Default chunk size for :meth:`iter_lines`.
        """
        self.request = request
        self._max_redirects = max_redirects
        self._verify_ssl = verify_ssl
        self._trust_env = trust_env
        self._default_headers = DEFAULT_HEADERS if default_headers is None else default_headers
        self._transport = transport
        self._chunk_size = chunk_size
        self._line_chunk_size = line_chunk_size

        self._client: httpx.Client | None = None
        self._history: tuple[Response, ...] = ()
        self._encoding: str | None = None
        self._elapsed = 0.0
        self._released = False
        self._state = ResponseState.UNCONNECTED

        self._connection: Lazy[httpx.Response] = Lazy()
        self._status_code: Lazy[int] = Lazy()
        self._headers: Lazy[HeaderMap[str]] = Lazy()
        self._raw: Lazy[io.BufferedReader] = Lazy()
        self._content: Lazy[bytes] = Lazy()
        self._text: Lazy[str] = Lazy()

    # -------------------------------------------------------------------------
    # Connecting
    # -------------------------------------------------------------------------

    def _hop_response(self, request: Request) -> "Response":
        return Response(
            request,
            max_redirects=self._max_redirects,
            verify_ssl=self._verify_ssl,
            trust_env=self._trust_env,
            default_headers=self._default_headers,
            transport=self._transport,
            chunk_size=self._chunk_size,
            line_chunk_size=self._line_chunk_size,
        )

    def _send(self, request: Request) -> tuple[httpx.Client, httpx.Response]:
        """Open one connection for ``request`` without following redirects."""
        headers = request.build_headers(self._default_headers)
        client = httpx.Client(
            transport=self._transport,
            verify=request.ssl_context if request.ssl_context is not None else self._verify_ssl,
            timeout=httpx.Timeout(request.timeout),
            follow_redirects=False,
            trust_env=self._trust_env,
        )
        try:
            outgoing = client.build_request(
                request.method,
                request.full_url,
                headers={key: value for key, value in headers.items() if value is not None},
                **_payload(request),
            )
            # None-valued headers suppress httpx's own defaults too
            for key, value in headers.items():
                if value is None:
                    outgoing.headers.pop(key, None)
            return client, client.send(outgoing, stream=True)
        except httpx.HTTPError as e:
            client.close()
            reason = "Timed out" if isinstance(e, httpx.TimeoutException) else "Failed"
            raise NetworkError(
                f"{reason} requesting {request.method} {request.full_url}: {e}",
                original_error=e,
            ) from e
        except Exception:
            client.close()
            raise

    def _resolve_location(self, response: httpx.Response) -> str:
        location = response.headers.get("Location")
        if not location:
            raise RedirectResolutionError(
                f"Redirect {response.status_code} from {response.url} has no Location header"
            )
        try:
            return resolve_url(str(response.url), location)
        except ConstructionError as e:
            raise RedirectResolutionError(
                f"Cannot follow redirect to {location!r}: {e}",
                location=location,
                original_error=e,
            ) from e

    def _adopt(
        self,
        client: httpx.Client,
        connection: httpx.Response,
        history: tuple["Response", ...],
        elapsed: float,
    ) -> None:
        self._client = client
        self._connection.set(connection)
        self._history = history
        self._elapsed = elapsed
        self._state = ResponseState.CONNECTED

    def _open(self) -> httpx.Response:
        """Connect, following redirects when the request allows it."""
        if self._released:
            raise StateError("Response closed before it was connected")

        self._state = ResponseState.CONNECTING
        started = time.perf_counter()
        hop = self.request.replace(allow_redirects=False)
        history: tuple[Response, ...] = ()
        try:
            while True:
                client, connection = self._send(hop)
                if not (
                    self.request.allow_redirects
                    and connection.status_code in REDIRECT_STATUS_CODES
                ):
                    break
                try:
                    if len(history) >= self._max_redirects:
                        raise TooManyRedirects(self.request.full_url, self._max_redirects)
                    next_url = self._resolve_location(connection)
                    previous = self._hop_response(hop)
                    previous._adopt(client, connection, history, time.perf_counter() - started)
                    previous.content
                except Exception:
                    connection.close()
                    client.close()
                    raise
                history = history + (previous,)
                hop = hop.redirected(next_url)
        except Exception:
            self._state = ResponseState.FAILED
            raise

        self._client = client
        self._history = history
        self._elapsed = time.perf_counter() - started
        self._state = ResponseState.CONNECTED
        return connection

    def _release(self) -> None:
        """Close the connection and its client. Runs once."""
        if self._released:
            return
        self._released = True
        if self._state is not ResponseState.FAILED:
            self._state = ResponseState.CLOSED
        connection = self._connection.peek()
        try:
            if connection is not None:
                connection.close()
        finally:
            if self._client is not None:
                self._client.close()

    def open(self) -> "Response":
        """Perform the call: connect, then buffer the body unless streaming."""
        if self.request.stream:
            self.connection
        else:
            self.content
        return self

    def close(self) -> None:
        """Release the connection. Cached fields stay readable."""
        raw = self._raw.peek()
        if raw is not None:
            raw.close()
        self._release()

    def __enter__(self) -> "Response":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Lazy fields
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ResponseState:
        return self._state

    @property
    def connection_opened(self) -> bool:
        """Check if the connection was opened, without opening it."""
        return self._connection.is_computed

    @property
    def buffered_content(self) -> bytes | None:
        """The cached body, or ``None`` if it has not been read."""
        return self._content.peek()

    @property
    def connection(self) -> httpx.Response:
        """Underlying httpx response for the final hop."""
        return self._connection.get(self._open)

    @property
    def status_code(self) -> int:
        return self._status_code.get(lambda: self.connection.status_code)

    def _read_headers(self) -> HeaderMap[str]:
        connection = self.connection
        encoding = connection.headers.encoding
        headers: HeaderMap[str] = HeaderMap()
        for raw_key, raw_value in connection.headers.raw:
            key = raw_key.decode(encoding)
            value = raw_value.decode(encoding)
            headers[key] = f"{headers[key]}, {value}" if key in headers else value
        return headers

    @property
    def headers(self) -> HeaderMap[str]:
        """Response headers; repeated fields are joined with ``", "``."""
        return self._headers.get(self._read_headers)

    def _open_raw(self) -> io.BufferedReader:
        connection = self.connection
        decoder = get_decoder(self.headers.get("Content-Encoding"))
        stream = io.BufferedReader(
            RawStream(connection.iter_raw(), decoder, on_close=self._release)
        )
        if self.request.stream:
            self._state = ResponseState.STREAM_OPEN
        return stream

    @property
    def raw(self) -> io.BufferedReader:
        """Decoded body stream (gzip and deflate are undone)."""
        if self._released:
            raise StateError()
        return self._raw.get(self._open_raw)

    def _read_content(self) -> bytes:
        if self._released:
            raise StateError()
        raw = self.raw
        if not self.request.stream:
            self._state = ResponseState.BODY_PENDING
        try:
            with raw:
                return raw.read()
        except Exception:
            self._state = ResponseState.FAILED
            raise

    @property
    def content(self) -> bytes:
        """Whole body, read once and cached."""
        return self._content.get(self._read_content)

    @property
    def encoding(self) -> str:
        """Charset used by :attr:`text`; from ``Content-Type`` unless set."""
        if self._encoding is not None:
            return self._encoding
        return detect_encoding(self.headers.get("Content-Type"))

    @encoding.setter
    def encoding(self, value: str) -> None:
        codecs.lookup(value)
        self._encoding = value

    @property
    def text(self) -> str:
        """Body decoded with :attr:`encoding`, cached on first read."""
        return self._text.get(lambda: self.content.decode(self.encoding, errors="replace"))

    @property
    def url(self) -> str:
        """Final URL, after any redirects."""
        return str(self.connection.url)

    @property
    def history(self) -> tuple["Response", ...]:
        """Responses of earlier redirect hops, oldest first."""
        self.connection
        return self._history

    @property
    def elapsed(self) -> float:
        """Seconds from the first connect until the final headers arrived."""
        self.connection
        return self._elapsed

    @property
    def ok(self) -> bool:
        """Check if status code indicates success (2xx)."""
        return 200 <= self.status_code < 300

    def raise_for_status(self) -> None:
        """Raise HTTPError if status code indicates an error."""
        if self.status_code >= 400:
            raise HTTPError(f"HTTP {self.status_code} for {self.url}", response=self)

    # -------------------------------------------------------------------------
    # Streaming
    # -------------------------------------------------------------------------

    def iter_content(self, chunk_size: int | None = None) -> ContentIterator:
        """Iterate over the body in chunks of at most ``chunk_size`` bytes.

        Streams from :attr:`raw` in stream mode, otherwise from the buffered
        :attr:`content`.
        """
        chunk_size = chunk_size or self._chunk_size
        if self._content.is_computed or not self.request.stream:
            return ContentIterator(io.BytesIO(self.content), chunk_size)
        return ContentIterator(self.raw, chunk_size)

    def iter_lines(
        self,
        chunk_size: int | None = None,
        delimiter: bytes | str | None = None,
    ) -> LineIterator:
        """Iterate over body lines, split on CR/LF/CRLF or ``delimiter``."""
        chunk_size = chunk_size or self._line_chunk_size
        if isinstance(delimiter, str):
            delimiter = delimiter.encode("utf-8")
        return LineIterator(self.iter_content(chunk_size), delimiter)

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}]>"
