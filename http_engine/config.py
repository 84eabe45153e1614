"""Configuration dataclass for the HTTP engine."""

from dataclasses import dataclass, field

from .response import DEFAULT_MAX_REDIRECTS
from .streaming import DEFAULT_CHUNK_SIZE, DEFAULT_LINE_CHUNK_SIZE
from .structures import DEFAULT_HEADERS


@dataclass
class EngineConfig:
    """Configuration for RequestExecutor and the module-level API.

    Attributes:
        timeout: Default request timeout in seconds, used by the verb helpers
                 when no timeout is given.
        max_redirects: Maximum redirect hops before TooManyRedirects.
        chunk_size: Default chunk size for content iteration.
        line_chunk_size: Default chunk size for line iteration.
        max_workers: Thread pool size for background execution.
        verify_ssl: Whether to verify SSL certificates when a request has no
                    ssl_context of its own.
        trust_env: Whether httpx reads proxy settings from the environment.
        verbose: Print a debug block for every request/response cycle.
        default_headers: Headers sent unless a request overrides or
                         suppresses them.
    """

    # Timeouts
    timeout: float = 30.0

    # Redirects
    max_redirects: int = DEFAULT_MAX_REDIRECTS

    # Streaming
    chunk_size: int = DEFAULT_CHUNK_SIZE
    line_chunk_size: int = DEFAULT_LINE_CHUNK_SIZE

    # Concurrency
    max_workers: int = 4

    # Transport
    verify_ssl: bool = True
    trust_env: bool = True

    # Debug output
    verbose: bool = False

    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be >= 0")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if self.line_chunk_size < 1:
            raise ValueError("line_chunk_size must be >= 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
