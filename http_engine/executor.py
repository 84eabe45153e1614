"""Thread pool execution adapter turning blocking calls into results.

The blocking unit of work is :meth:`RequestExecutor.call`: build a
:class:`~http_engine.response.Response`, open it (following redirects and,
unless streaming, buffering the body) and return it. The adapter runs that
unit on a worker thread and reports it as one of three states:

    executor = RequestExecutor()
    pending = executor.submit(Request("GET", "https://example.com"))
    pending.result          # Loading until the worker finishes
    result = pending.wait() # Success(response) or Error(error)

:class:`RequestState` is the boundary for reactive callers: it re-runs the
call only when the request's change key differs and publishes every state
to a listener.
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import CancelledError, Executor, Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Sequence

import httpx

from ._debug import DebugInfo, DebugOutput
from .config import EngineConfig
from .exceptions import HTTPClientError
from .models import Request
from .response import Response
from .result import LOADING, Error, Result, Success


class PendingResult:
    """Handle on a call running in the background.

    ``result`` is ``LOADING`` until the call completes, then ``Success`` or
    ``Error``. A cancelled call reports ``Error(CancelledError())`` and any
    response it produced is closed.
    """

    def __init__(self, future: Future) -> None:
        self._future = future
        self._cancelled = False
        self._lock = threading.Lock()

    @property
    def result(self) -> Result:
        """Current state of the call."""
        if self._cancelled or self._future.cancelled():
            return Error(CancelledError())
        if not self._future.done():
            return LOADING
        error = self._future.exception()
        if error is not None:
            return Error(error)
        return Success(self._future.result())

    def done(self) -> bool:
        return self._cancelled or self._future.done()

    def wait(self, timeout: float | None = None) -> Result:
        """Block until the call completes.

        Args:
            timeout: Seconds to wait. ``LOADING`` is returned if it expires.

        Returns:
            The final result, or ``LOADING`` on timeout.
        """
        try:
            self._future.exception(timeout=timeout)
        except FutureTimeoutError:
            return LOADING
        except CancelledError:
            pass
        return self.result

    def cancel(self) -> bool:
        """Cancel the call.

        A queued call never starts. A running call cannot be interrupted; its
        response is closed as soon as it completes.

        Returns:
            True if the call was cancelled before it started.
        """
        with self._lock:
            self._cancelled = True
        if self._future.cancel():
            return True
        self._future.add_done_callback(_close_response)
        return False

    def add_done_callback(self, fn: Callable[[Result], None]) -> None:
        """Call ``fn`` with the final result once the call completes."""
        self._future.add_done_callback(lambda _: fn(self.result))


def _close_response(future: Future) -> None:
    if future.cancelled() or future.exception() is not None:
        return
    future.result().close()


class RequestExecutor:
    """Runs requests on a thread pool and reports Loading/Success/Error.

    No retries are made; every exception raised while connecting or reading
    the body becomes ``Error``.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        transport: httpx.BaseTransport | None = None,
        executor: Executor | None = None,
        debug: DebugOutput | None = None,
    ):
        """Initialize the executor.

        Args:
            config: Engine configuration (defaults to ``EngineConfig()``).
            transport: httpx transport shared by every call.
            executor: Worker pool to run calls on. Created from
                      ``config.max_workers`` if None, and then owned (shut
                      down by :meth:`close`).
            debug: Debug output (created from ``config.verbose`` if None).
        """
        self._config = config or EngineConfig()
        self._transport = transport
        self._executor = executor
        self._owns_executor = executor is None
        self._debug = debug or DebugOutput(enabled=self._config.verbose)
        self._closed = False

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def is_closed(self) -> bool:
        return self._closed

    def _get_executor(self) -> Executor:
        """Get or create thread pool executor."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._config.max_workers,
                thread_name_prefix="http-engine",
            )
        return self._executor

    def create_response(self, request: Request) -> Response:
        """Build an unconnected response bound to this executor's settings."""
        return Response(
            request,
            max_redirects=self._config.max_redirects,
            verify_ssl=self._config.verify_ssl,
            trust_env=self._config.trust_env,
            default_headers=self._config.default_headers,
            transport=self._transport,
            chunk_size=self._config.chunk_size,
            line_chunk_size=self._config.line_chunk_size,
        )

    def _log(
        self,
        request: Request,
        response: Response | None,
        error: BaseException | None = None,
    ) -> None:
        if self._debug.active:
            self._debug.log_request(
                DebugInfo.capture(request, self._config.default_headers, response, error)
            )

    def call(self, request: Request) -> Response:
        """Perform ``request`` on the current thread.

        Returns:
            The opened response: connected, redirects followed, and the body
            buffered unless ``request.stream`` is set.

        Raises:
            NetworkError: On transport failures.
            StateError: If the response was released before use.
        """
        response = self.create_response(request)
        try:
            response.open()
        except Exception as e:
            response.close()
            self._log(request, response, e)
            raise
        self._log(request, response)
        return response

    def submit(self, request: Request) -> PendingResult:
        """Start ``request`` on a worker thread."""
        if self._closed:
            future: Future = Future()
            future.set_exception(HTTPClientError("Executor is closed"))
            return PendingResult(future)
        return PendingResult(self._get_executor().submit(self.call, request))

    def execute(self, request: Request) -> Result:
        """Run ``request`` on a worker thread and wait for its result."""
        return self.submit(request).wait()

    async def execute_async(self, request: Request) -> Result:
        """Run ``request`` on a worker thread without blocking the event loop."""
        if self._closed:
            return Error(HTTPClientError("Executor is closed"))
        future = self._get_executor().submit(self.call, request)
        try:
            response = await asyncio.wrap_future(future)
        except asyncio.CancelledError:
            future.add_done_callback(_close_response)
            raise
        except Exception as e:
            return Error(e)
        return Success(response)

    def execute_many(self, requests: Sequence[Request]) -> list[Result]:
        """Run requests concurrently, one unit of work each.

        Returns:
            Results in the order of ``requests``.
        """
        pending = [self.submit(request) for request in requests]
        return [item.wait() for item in pending]

    def close(self) -> None:
        """Shut down the owned worker pool."""
        if self._executor is not None and self._owns_executor:
            self._executor.shutdown(wait=True)
            self._executor = None
        self._closed = True

    def __enter__(self) -> "RequestExecutor":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    async def __aenter__(self) -> "RequestExecutor":
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.close()


_UNSET = object()


class RequestState:
    """Holds the latest result for a request that may change over time.

    :meth:`update` starts a new call only when the request's change key (url,
    headers, params, auth, data, json) differs from the previous one. Each
    call publishes ``LOADING`` and then its final result to ``listener``.
    Results of superseded calls are dropped and their responses closed.
    """

    def __init__(
        self,
        executor: RequestExecutor,
        listener: Callable[[Result], None] | None = None,
    ):
        self._executor = executor
        self._listener = listener
        self._lock = threading.Lock()
        self._key: Any = _UNSET
        self._generation = 0
        self._value: Result = LOADING
        self._pending: PendingResult | None = None

    @property
    def value(self) -> Result:
        """Latest published result."""
        with self._lock:
            return self._value

    def update(self, request: Request, force: bool = False) -> bool:
        """Run ``request`` if its inputs changed.

        Args:
            request: The current request description.
            force: Run even if the change key is unchanged.

        Returns:
            True if a new call was started.
        """
        key = request.change_key()
        with self._lock:
            if not force and self._key is not _UNSET and key == self._key:
                return False
            self._key = key
            self._generation += 1
            generation = self._generation
            previous, self._pending = self._pending, None
            self._value = LOADING

        if previous is not None:
            previous.cancel()
        self._publish(LOADING)

        pending = self._executor.submit(request)
        with self._lock:
            if generation == self._generation:
                self._pending = pending
        pending.add_done_callback(lambda result: self._complete(generation, result))
        return True

    def _complete(self, generation: int, result: Result) -> None:
        with self._lock:
            current = generation == self._generation
            if current:
                self._value = result
                self._pending = None
        if not current:
            if isinstance(result, Success):
                result.response.close()
            return
        self._publish(result)

    def _publish(self, result: Result) -> None:
        if self._listener is not None:
            self._listener(result)
