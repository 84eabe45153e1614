"""Chunk and line iterators over a response body."""

from __future__ import annotations

import re
from collections import deque
from typing import Any, BinaryIO, Callable, Iterator

DEFAULT_CHUNK_SIZE = 1
DEFAULT_LINE_CHUNK_SIZE = 512

_LINE_BREAK = re.compile(rb"\r\n|\r|\n")


def split_lines(data: bytes) -> list[bytes]:
    """Split on CRLF, CR or LF. The last element is the unterminated rest."""
    if not data:
        return []
    return _LINE_BREAK.split(data)


def split(data: bytes, delimiter: bytes) -> list[bytes]:
    """Split on an explicit byte delimiter, left to right."""
    if not delimiter:
        raise ValueError("delimiter must not be empty")
    return data.split(delimiter)


class ContentIterator(Iterator[bytes]):
    """Lazy, single-pass iterator of byte chunks of at most ``chunk_size``.

    ``has_next()`` looks one byte ahead. When the source can ``peek`` the byte
    stays in the source; otherwise it is kept here and prepended to the next
    chunk. The source is closed exactly once, when it runs dry or when
    :meth:`close` is called.
    """

    def __init__(
        self,
        source: BinaryIO,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self._source = source
        self._chunk_size = chunk_size
        self._on_close = on_close
        self._lookahead = b""
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _read(self, size: int) -> bytes:
        read1 = getattr(self._source, "read1", None)
        if read1 is not None:
            return read1(size)
        return self._source.read(size)

    def has_next(self) -> bool:
        """Check whether another chunk is available."""
        if self._closed:
            return False
        if self._lookahead:
            return True

        peek = getattr(self._source, "peek", None)
        if peek is not None:
            available = peek(1)
        else:
            available = self._source.read(1)
            self._lookahead = available

        if not available:
            self.close()
            return False
        return True

    def __iter__(self) -> "ContentIterator":
        return self

    def __next__(self) -> bytes:
        if not self.has_next():
            raise StopIteration

        head, self._lookahead = self._lookahead, b""
        remaining = self._chunk_size - len(head)
        if remaining <= 0:
            return head
        return head + self._read(remaining)

    def close(self) -> None:
        """Close the source. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._source.close()
        finally:
            if self._on_close is not None:
                self._on_close()

    def __enter__(self) -> "ContentIterator":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class LineIterator(Iterator[bytes]):
    """Lazy iterator returning exactly one line per ``next()``.

    Lines are split on CR, LF or CRLF, or on ``delimiter`` when given, and are
    returned without the delimiter. Bytes after the last delimiter of a chunk
    are carried into the next one and extra complete lines are queued. The
    final unterminated fragment is the last line; an empty trailing fragment
    is dropped.
    """

    def __init__(self, chunks: ContentIterator, delimiter: bytes | None = None) -> None:
        if delimiter is not None and not delimiter:
            raise ValueError("delimiter must not be empty")
        self._chunks = chunks
        self._delimiter = delimiter
        self._leftover = b""
        self._overflow: deque[bytes] = deque()
        self._drained = False

    def _split(self, data: bytes) -> list[bytes]:
        if self._delimiter is None:
            return split_lines(data)
        return split(data, self._delimiter)

    def _fill(self) -> None:
        for chunk in self._chunks:
            if not chunk:
                continue
            data = self._leftover + chunk
            # a CR at the boundary may be the first half of CRLF
            if self._delimiter is None and data.endswith(b"\r"):
                self._leftover = data
                continue
            parts = self._split(data)
            if len(parts) >= 2:
                self._leftover = parts[-1]
                self._overflow.extend(parts[:-1])
                return
            self._leftover = data

        if not self._drained:
            self._drained = True
            parts = self._split(self._leftover)
            self._leftover = b""
            if parts and not parts[-1]:
                parts.pop()
            self._overflow.extend(parts)

    def has_next(self) -> bool:
        """Check whether another line is available."""
        if not self._overflow and not self._drained:
            self._fill()
        return bool(self._overflow)

    def __iter__(self) -> "LineIterator":
        return self

    def __next__(self) -> bytes:
        if not self.has_next():
            raise StopIteration
        return self._overflow.popleft()

    def close(self) -> None:
        """Close the underlying chunk iterator."""
        self._chunks.close()

    def __enter__(self) -> "LineIterator":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
