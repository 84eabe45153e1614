"""Case-insensitive header map and the default header sets."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, MutableMapping
from typing import Any, Callable, TypeVar

V = TypeVar("V")

DEFAULT_USER_AGENT = "http-engine/0.1.0"

# Read-only defaults, merged under explicit request headers
DEFAULT_HEADERS: Mapping[str, str] = {
    "Accept": "*/*",
    "Accept-Encoding": "gzip, deflate",
    "User-Agent": DEFAULT_USER_AGENT,
}
DEFAULT_DATA_HEADERS: Mapping[str, str] = {"Content-Type": "text/plain"}
DEFAULT_FORM_HEADERS: Mapping[str, str] = {
    "Content-Type": "application/x-www-form-urlencoded"
}
DEFAULT_JSON_HEADERS: Mapping[str, str] = {"Content-Type": "application/json"}


class HeaderMap(MutableMapping[str, V]):
    """Mapping with case-insensitive string keys.

    Lookups, membership tests and deletion ignore key case, while iteration
    yields each key with the casing it was first inserted with:

        headers = HeaderMap({"Content-Type": "text/html"})
        headers["content-type"]      # "text/html"
        headers["CONTENT-TYPE"] = "text/plain"
        list(headers)                # ["Content-Type"]

    Values are not restricted to strings; request headers use ``None`` to
    mark a default that must not be sent.
    """

    def __init__(self, data: Mapping[str, V] | None = None, **kwargs: V) -> None:
        self._store: dict[str, tuple[str, V]] = {}
        if data is not None:
            self.update(data)
        if kwargs:
            self.update(kwargs)

    def __setitem__(self, key: str, value: V) -> None:
        lowered = key.lower()
        existing = self._store.get(lowered)
        original = existing[0] if existing is not None else key
        self._store[lowered] = (original, value)

    def __getitem__(self, key: str) -> V:
        return self._store[key.lower()][1]

    def __delitem__(self, key: str) -> None:
        del self._store[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._store

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mapping):
            return NotImplemented
        other_map = other if isinstance(other, HeaderMap) else HeaderMap(other)
        return dict(self.lower_items()) == dict(other_map.lower_items())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self.items())!r})"

    def lower_items(self) -> Iterator[tuple[str, V]]:
        """Iterate over (lowercased key, value) pairs."""
        return ((lowered, pair[1]) for lowered, pair in self._store.items())

    def filter(self, predicate: Callable[[str, V], bool]) -> "HeaderMap[V]":
        """Return a new map holding the entries accepted by ``predicate``."""
        result: HeaderMap[V] = HeaderMap()
        for key, value in self._store.values():
            if predicate(key, value):
                result[key] = value
        return result

    def to_sorted_dict(self) -> dict[str, V]:
        """Plain dict ordered by key, ignoring case."""
        return dict(sorted(self._store.values(), key=lambda pair: pair[0].lower()))

    def copy(self) -> "HeaderMap[V]":
        return HeaderMap(dict(self._store.values()))


def merge_headers(
    explicit: Mapping[str, Any] | None,
    defaults: Mapping[str, Any] | None = None,
) -> HeaderMap[Any]:
    """Build a header map from explicit headers, then defaults.

    A default never replaces an explicit key, including one explicitly set to
    ``None``; such keys stay in the map so the default stays suppressed.

    Args:
        explicit: Caller supplied headers (values may be ``None``).
        defaults: Headers applied only where the caller set nothing.

    Returns:
        The merged map, ``None`` values included.
    """
    merged: HeaderMap[Any] = HeaderMap(explicit or {})
    for key, value in (defaults or {}).items():
        merged.setdefault(key, value)
    return merged
