"""Blocking request functions.

Each call performs one request on the calling thread and returns an opened
:class:`~http_engine.response.Response`:

    import http_engine

    response = http_engine.get("https://example.com", params={"q": "x y"})
    print(response.status_code, response.text)

    with http_engine.get("https://example.com/feed", stream=True) as response:
        for line in response.iter_lines():
            print(line)

Use :class:`~http_engine.executor.RequestExecutor` to run requests off the
calling thread.
"""

from __future__ import annotations

import ssl
from typing import Any, Mapping, Sequence

import httpx

from .auth import Auth
from .config import EngineConfig
from .executor import RequestExecutor
from .models import RawFile, Request
from .response import Response


def send(
    request: Request,
    config: EngineConfig | None = None,
    transport: httpx.BaseTransport | None = None,
) -> Response:
    """Perform ``request`` and return the opened response.

    Args:
        request: The call to perform.
        config: Engine configuration (defaults to ``EngineConfig()``).
        transport: httpx transport to send through.

    Raises:
        NetworkError: On transport failures, bad redirects or corrupt
            compressed bodies.
    """
    return RequestExecutor(config, transport=transport).call(request)


def request(
    method: str,
    url: str,
    *,
    params: Mapping[str, str] | None = None,
    headers: Mapping[str, str | None] | None = None,
    auth: Auth | None = None,
    body: bytes = b"",
    data: Any = None,
    json: Any = None,
    timeout: float | None = None,
    allow_redirects: bool | None = None,
    stream: bool = False,
    files: Sequence[RawFile] = (),
    ssl_context: ssl.SSLContext | None = None,
    config: EngineConfig | None = None,
    transport: httpx.BaseTransport | None = None,
) -> Response:
    """Build a :class:`~http_engine.models.Request` and send it.

    ``timeout`` falls back to ``config.timeout``. The remaining keywords are
    the request fields of the same name.

    Raises:
        ConstructionError: If the request description is invalid.
        NetworkError: On transport failures.
    """
    config = config or EngineConfig()
    descriptor = Request(
        method=method,
        url=url,
        params=params or {},
        headers=headers or {},
        auth=auth,
        body=body,
        data=data,
        json=json,
        timeout=config.timeout if timeout is None else timeout,
        allow_redirects=allow_redirects,
        stream=stream,
        files=files,
        ssl_context=ssl_context,
    )
    return send(descriptor, config=config, transport=transport)


def get(url: str, params: Mapping[str, str] | None = None, **kwargs: Any) -> Response:
    """Make a GET request."""
    return request("GET", url, params=params, **kwargs)


def post(url: str, data: Any = None, json: Any = None, **kwargs: Any) -> Response:
    """Make a POST request."""
    return request("POST", url, data=data, json=json, **kwargs)


def put(url: str, data: Any = None, json: Any = None, **kwargs: Any) -> Response:
    """Make a PUT request."""
    return request("PUT", url, data=data, json=json, **kwargs)


def patch(url: str, data: Any = None, json: Any = None, **kwargs: Any) -> Response:
    """Make a PATCH request."""
    return request("PATCH", url, data=data, json=json, **kwargs)


def delete(url: str, **kwargs: Any) -> Response:
    """Make a DELETE request."""
    return request("DELETE", url, **kwargs)


def head(url: str, **kwargs: Any) -> Response:
    """Make a HEAD request. Redirects are not followed unless asked for."""
    return request("HEAD", url, **kwargs)


def options(url: str, **kwargs: Any) -> Response:
    """Make an OPTIONS request."""
    return request("OPTIONS", url, **kwargs)
