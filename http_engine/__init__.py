"""Blocking HTTP request engine with lazy responses and streaming bodies.

This package describes a call as an immutable request and computes its
response lazily:

- Case-insensitive headers with default, auth and payload header merging
- Query-parameter encoding and IDNA host normalization
- Redirect following with a recorded history
- gzip/deflate decoding, charset detection and cached text
- Chunk and line iterators over streamed bodies
- A thread pool adapter reporting Loading/Success/Error results

Basic usage:

    import http_engine

    response = http_engine.get("https://example.com", params={"page": "2"})
    print(response.status_code, response.encoding)
    print(response.text)

    # Background execution
    from http_engine import Request, RequestExecutor, Success

    with RequestExecutor() as executor:
        result = executor.execute(Request("GET", "https://example.com"))
        if isinstance(result, Success):
            print(result.response.headers["Content-Type"])

    # Streaming
    with http_engine.get("https://example.com/log", stream=True) as response:
        for line in response.iter_lines():
            print(line.decode())
"""

from .api import delete, get, head, options, patch, post, put, request, send
from .auth import Auth, BasicAuth
from .config import EngineConfig
from .executor import PendingResult, RequestExecutor, RequestState
from .models import (
    ConstructionError,
    DecodingError,
    HTTPClientError,
    HTTPError,
    NetworkError,
    RawFile,
    RedirectResolutionError,
    Request,
    StateError,
    TooManyRedirects,
    as_file,
)
from .response import Response, ResponseState
from .result import LOADING, Error, Loading, Result, Success
from .structures import DEFAULT_HEADERS, HeaderMap

__version__ = "0.1.0"

__all__ = [
    # Verb API
    "request",
    "send",
    "get",
    "post",
    "put",
    "patch",
    "delete",
    "head",
    "options",
    # Execution
    "RequestExecutor",
    "RequestState",
    "PendingResult",
    "Result",
    "Loading",
    "LOADING",
    "Success",
    "Error",
    # Configuration
    "EngineConfig",
    # Models
    "Request",
    "Response",
    "ResponseState",
    "RawFile",
    "as_file",
    "HeaderMap",
    "DEFAULT_HEADERS",
    "Auth",
    "BasicAuth",
    # Exceptions
    "HTTPClientError",
    "ConstructionError",
    "NetworkError",
    "RedirectResolutionError",
    "TooManyRedirects",
    "DecodingError",
    "StateError",
    "HTTPError",
    # Version
    "__version__",
]
