"""Content-Encoding decoders and the decoded raw byte stream."""

from __future__ import annotations

import io
import zlib
from typing import Callable, Iterator

import httpx

from .exceptions import DecodingError, NetworkError


class IdentityDecoder:
    """Passthrough for bodies without a supported Content-Encoding."""

    def decode(self, data: bytes) -> bytes:
        return data

    def flush(self) -> bytes:
        return b""


class GZipDecoder:
    """Decoder for ``Content-Encoding: gzip``."""

    def __init__(self) -> None:
        self._decompressor = zlib.decompressobj(zlib.MAX_WBITS | 16)

    def decode(self, data: bytes) -> bytes:
        try:
            return self._decompressor.decompress(data)
        except zlib.error as e:
            raise DecodingError(f"Invalid gzip data: {e}", original_error=e) from e

    def flush(self) -> bytes:
        try:
            return self._decompressor.flush()
        except zlib.error as e:
            raise DecodingError(f"Invalid gzip data: {e}", original_error=e) from e


class DeflateDecoder:
    """Decoder for ``Content-Encoding: deflate``.

    Accepts zlib-wrapped data and, as many servers send it, raw deflate.
    """

    def __init__(self) -> None:
        self._first_attempt = True
        self._decompressor = zlib.decompressobj()

    def decode(self, data: bytes) -> bytes:
        was_first_attempt = self._first_attempt
        self._first_attempt = False
        try:
            return self._decompressor.decompress(data)
        except zlib.error as e:
            if was_first_attempt:
                self._decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
                return self.decode(data)
            raise DecodingError(f"Invalid deflate data: {e}", original_error=e) from e

    def flush(self) -> bytes:
        try:
            return self._decompressor.flush()
        except zlib.error as e:
            raise DecodingError(f"Invalid deflate data: {e}", original_error=e) from e


SUPPORTED_DECODERS = {
    "gzip": GZipDecoder,
    "deflate": DeflateDecoder,
}


def get_decoder(content_encoding: str | None) -> IdentityDecoder | GZipDecoder | DeflateDecoder:
    """Pick the decoder for a ``Content-Encoding`` header value."""
    decoder_cls = SUPPORTED_DECODERS.get((content_encoding or "").strip().lower())
    return decoder_cls() if decoder_cls is not None else IdentityDecoder()


class RawStream(io.RawIOBase):
    """Readable binary stream over decoded response body chunks.

    Wrap it in ``io.BufferedReader`` to get ``peek``/``read1``. Closing the
    stream runs ``on_close`` once, which releases the connection.
    """

    def __init__(
        self,
        chunks: Iterator[bytes],
        decoder: IdentityDecoder | GZipDecoder | DeflateDecoder | None = None,
        on_close: Callable[[], None] | None = None,
    ) -> None:
        super().__init__()
        self._chunks = chunks
        self._decoder = decoder or IdentityDecoder()
        self._on_close = on_close
        self._pending = b""
        self._exhausted = False

    def readable(self) -> bool:
        return True

    def _next_chunk(self) -> bytes | None:
        try:
            return next(self._chunks)
        except StopIteration:
            return None
        except httpx.TimeoutException as e:
            raise NetworkError(f"Timed out reading response body: {e}", original_error=e) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Failed reading response body: {e}", original_error=e) from e

    def readinto(self, buffer: bytearray | memoryview) -> int:  # type: ignore[override]
        # Decompressors can return nothing for a non-empty chunk; 0 means EOF
        while not self._pending:
            if self._exhausted:
                return 0
            chunk = self._next_chunk()
            if chunk is None:
                self._exhausted = True
                self._pending = self._decoder.flush()
            else:
                self._pending = self._decoder.decode(chunk)

        size = min(len(buffer), len(self._pending))
        buffer[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size

    def close(self) -> None:
        if not self.closed:
            try:
                if self._on_close is not None:
                    self._on_close()
            finally:
                super().close()
