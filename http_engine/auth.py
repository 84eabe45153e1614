"""Authorization strategies and the base64 codec they rely on."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_REVERSE = {char: index for index, char in enumerate(_ALPHABET)}


def b64encode(data: bytes | str) -> str:
    """Encode ``data`` with the standard base64 alphabet and ``=`` padding.

    Every 3 input bytes become 4 output characters. A trailing group of one
    byte is padded with ``==`` and a group of two bytes with ``=``.
    Strings are encoded as UTF-8 first.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")

    output: list[str] = []
    for position in range(0, len(data), 3):
        group = data[position:position + 3]
        padding = 3 - len(group)
        value = int.from_bytes(group + b"\x00" * padding, "big")
        for shift in (18, 12, 6, 0)[: 4 - padding]:
            output.append(_ALPHABET[(value >> shift) & 0x3F])
        output.append("=" * padding)
    return "".join(output)


def b64decode(text: str) -> bytes:
    """Decode text produced by :func:`b64encode`.

    Raises:
        ValueError: On a bad length, bad character or misplaced padding.
    """
    if len(text) % 4:
        raise ValueError("base64 input length must be a multiple of 4")

    output = bytearray()
    for position in range(0, len(text), 4):
        group = text[position:position + 4]
        stripped = group.rstrip("=")
        padding = len(group) - len(stripped)
        if padding > 2 or (padding and position + 4 != len(text)):
            raise ValueError(f"Invalid base64 padding at offset {position}")

        value = 0
        for char in stripped:
            if char not in _REVERSE:
                raise ValueError(f"Invalid base64 character {char!r}")
            value = (value << 6) | _REVERSE[char]
        value <<= 6 * padding
        output += value.to_bytes(3, "big")[: 3 - padding]
    return bytes(output)


class Auth(ABC):
    """Produces the single header that authorizes a request.

    Subclass this to plug a custom scheme (bearer tokens, signed headers)
    into a :class:`~http_engine.models.Request`.
    """

    @abstractmethod
    def header(self) -> tuple[str, str]:
        """Return the (name, value) header pair."""
        raise NotImplementedError


@dataclass(frozen=True)
class BasicAuth(Auth):
    """HTTP Basic authorization from a user name and password."""

    user: str
    password: str = ""

    def header(self) -> tuple[str, str]:
        return "Authorization", "Basic " + b64encode(f"{self.user}:{self.password}")

    def __repr__(self) -> str:
        return f"BasicAuth(user={self.user!r}, password='****')"
