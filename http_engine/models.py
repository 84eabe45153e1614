"""Request descriptor, upload files and re-exported exceptions."""

from __future__ import annotations

import os
import ssl
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, BinaryIO, Sequence

from .auth import Auth
from .exceptions import (
    ConstructionError,
    DecodingError,
    HTTPClientError,
    HTTPError,
    NetworkError,
    RedirectResolutionError,
    StateError,
    TooManyRedirects,
)
from .params import build_url
from .structures import (
    DEFAULT_DATA_HEADERS,
    DEFAULT_FORM_HEADERS,
    DEFAULT_JSON_HEADERS,
    HeaderMap,
    merge_headers,
)

DEFAULT_TIMEOUT = 30.0

__all__ = [
    "DEFAULT_TIMEOUT",
    "RawFile",
    "Request",
    "as_file",
    "ConstructionError",
    "DecodingError",
    "HTTPClientError",
    "HTTPError",
    "NetworkError",
    "RedirectResolutionError",
    "StateError",
    "TooManyRedirects",
]


@dataclass(frozen=True)
class RawFile:
    """A named byte source sent as one part of a multipart upload.

    Attributes:
        name: Form field name.
        content: Bytes, text (sent as UTF-8), a filesystem path or a binary
            file object.
        filename: File name reported to the server. Defaults to the path's
            name for path content, otherwise to ``name``.
        content_type: Optional MIME type of the part.
    """

    name: str
    content: bytes | str | os.PathLike | BinaryIO
    filename: str | None = None
    content_type: str | None = None

    def read(self) -> bytes:
        """Read the whole content as bytes."""
        content = self.content
        if isinstance(content, bytes):
            return content
        if isinstance(content, str):
            return content.encode("utf-8")
        if isinstance(content, os.PathLike):
            return Path(content).read_bytes()
        return content.read()

    @property
    def effective_filename(self) -> str:
        if self.filename:
            return self.filename
        if isinstance(self.content, os.PathLike):
            return Path(self.content).name
        return self.name

    def to_httpx(self) -> tuple[str, tuple[Any, ...]]:
        """Return the ``(field, (filename, bytes[, content_type]))`` httpx form."""
        part: tuple[Any, ...] = (self.effective_filename, self.read())
        if self.content_type:
            part += (self.content_type,)
        return self.name, part


def as_file(path: str | os.PathLike, name: str | None = None) -> RawFile:
    """Build a :class:`RawFile` reading from ``path``."""
    path = Path(path)
    return RawFile(name=name or path.name, content=path, filename=path.name)


def _freeze(value: Any) -> Any:
    """Hashable stand-in for a payload value, used by change keys."""
    if isinstance(value, Mapping):
        return tuple((key, _freeze(item)) for key, item in value.items())
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return frozenset(_freeze(item) for item in value)
    try:
        hash(value)
    except TypeError:
        return ("id", id(value))
    return value


def _is_empty_payload(value: Any) -> bool:
    return value is None or (isinstance(value, (str, bytes, bytearray)) and not value)


@dataclass(frozen=True)
class Request:
    """Immutable description of one HTTP call.

    Attributes:
        method: HTTP verb, normalized to uppercase. Any verb is accepted.
        url: Target URL before params are appended. Must be http or https.
        params: Ordered query parameters.
        headers: Request headers. A ``None`` value removes the default header
            of the same name instead of sending it.
        auth: Strategy producing an authorization header.
        body: Raw request body.
        data: Higher-level body: text, bytes, a binary file object, or a
            mapping sent as a form (or as multipart fields with ``files``).
        json: Value serialized as a JSON body.
        timeout: Seconds allowed for connecting and for each read.
        allow_redirects: Follow 301/302/303/307/308 responses. Defaults to
            True for every verb except HEAD.
        stream: Keep the body on the wire for incremental reads instead of
            buffering it when the call is opened.
        files: Parts of a multipart upload.
        ssl_context: Custom trust/key material for https.

    Raises:
        ConstructionError: On a bad URL or scheme, a non-positive timeout, or
            conflicting payload fields.
    """

    method: str
    url: str
    params: Mapping[str, str] = field(default_factory=dict)
    headers: Mapping[str, str | None] = field(default_factory=dict)
    auth: Auth | None = None
    body: bytes = b""
    data: Any = None
    json: Any = None
    timeout: float = DEFAULT_TIMEOUT
    allow_redirects: bool | None = None
    stream: bool = False
    files: Sequence[RawFile] = ()
    ssl_context: ssl.SSLContext | None = None

    def __post_init__(self) -> None:
        """Normalize fields and validate the description."""
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "params", MappingProxyType(dict(self.params or {})))
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers or {})))
        object.__setattr__(self, "body", bytes(self.body or b""))
        object.__setattr__(self, "files", tuple(self.files or ()))
        if self.allow_redirects is None:
            object.__setattr__(self, "allow_redirects", self.method != "HEAD")

        if self.timeout is None or self.timeout <= 0:
            raise ConstructionError("timeout must be > 0")

        payloads = [
            name for name, value in (("body", self.body), ("data", self.data), ("json", self.json))
            if not _is_empty_payload(value)
        ]
        if len(payloads) > 1:
            raise ConstructionError(f"Only one of {' / '.join(payloads)} may be given")
        if self.files and (self.body or self.json is not None):
            raise ConstructionError("files can only be combined with mapping data")
        if self.files and self.data is not None and not isinstance(self.data, Mapping):
            raise ConstructionError("files can only be combined with mapping data")

        object.__setattr__(self, "_full_url", build_url(self.url, self.params))

    @property
    def full_url(self) -> str:
        """URL with encoded params appended, IDNA-normalized."""
        return self._full_url  # type: ignore[attr-defined]

    @property
    def timeout_ms(self) -> int:
        """Timeout in whole milliseconds."""
        return int(self.timeout * 1000.0)

    def payload_headers(self) -> Mapping[str, str]:
        """Default content type implied by the payload, if any."""
        if self.files:
            # multipart boundary is chosen by the encoder
            return {}
        if self.json is not None:
            return DEFAULT_JSON_HEADERS
        if isinstance(self.data, Mapping):
            return DEFAULT_FORM_HEADERS
        if isinstance(self.data, str) and self.data:
            return DEFAULT_DATA_HEADERS
        return {}

    def build_headers(self, defaults: Mapping[str, str] | None = None) -> HeaderMap[str | None]:
        """Merge explicit headers, defaults, auth and payload content type.

        Explicit headers win over defaults (a ``None`` value suppresses the
        default), the auth header always applies, and the payload content
        type only fills a missing ``Content-Type``.
        """
        merged = merge_headers(self.headers, defaults)
        if self.auth is not None:
            name, value = self.auth.header()
            merged[name] = value
        for key, value in self.payload_headers().items():
            merged.setdefault(key, value)
        return merged

    def change_key(self) -> tuple[Any, ...]:
        """Hashable key over the inputs whose change triggers a new call."""
        return (
            self.url,
            _freeze(self.headers),
            _freeze(self.params),
            self.auth,
            _freeze(self.data),
            _freeze(self.json),
        )

    def replace(self, **changes: Any) -> "Request":
        """Return a copy with ``changes`` applied."""
        return replace(self, **changes)

    def redirected(self, url: str) -> "Request":
        """Descriptor for the next redirect hop to ``url``.

        Everything is cloned except the params, which the redirect target
        already carries in its query, and ``allow_redirects``, which is off
        for the hop itself.
        """
        return replace(self, url=url, params={}, allow_redirects=False)
