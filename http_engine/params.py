"""Query-string encoding and URL construction."""

from __future__ import annotations

from collections.abc import Mapping
from urllib.parse import quote

import httpx

from .exceptions import ConstructionError

ALLOWED_SCHEMES = ("http", "https")


def encode_params(params: Mapping[str, str] | None) -> str:
    """Encode parameters as ``k1=v1&k2=v2`` in insertion order.

    Keys and values are percent-encoded as UTF-8; a space becomes ``%20``.

    Args:
        params: Ordered mapping of parameter names to values.

    Returns:
        The query string without a leading ``?`` (empty for no params).
    """
    if not params:
        return ""
    return "&".join(
        f"{quote(str(key), safe='')}={quote(str(value), safe='')}"
        for key, value in params.items()
    )


def _parse(url: str) -> httpx.URL:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as e:
        raise ConstructionError(f"Invalid URL {url!r}: {e}") from e
    if parsed.scheme not in ALLOWED_SCHEMES:
        raise ConstructionError(
            f"Invalid scheme in {url!r}. Only http:// and https:// are supported."
        )
    if not parsed.host:
        raise ConstructionError(f"Invalid URL {url!r}: missing host")
    return parsed


def build_url(url: str, params: Mapping[str, str] | None = None) -> str:
    """Append encoded params to ``url`` and normalize it.

    Non-ASCII hosts are IDNA-encoded. No ``?`` is added when there are no
    params; ``&`` is used when the URL already carries a query.

    Raises:
        ConstructionError: If the URL is malformed or not http/https.
    """
    query = encode_params(params)
    url, hash_mark, fragment = url.partition("#")
    if query:
        separator = "&" if "?" in url else "?"
        url = f"{url}{separator}{query}"
    return str(_parse(url + hash_mark + fragment))


def resolve_url(base: str, location: str) -> str:
    """Resolve a redirect ``location`` against ``base`` into an absolute URL.

    Raises:
        ConstructionError: If the result is malformed or not http/https.
    """
    try:
        joined = httpx.URL(base).join(location)
    except (httpx.InvalidURL, TypeError) as e:
        raise ConstructionError(f"Cannot resolve {location!r} against {base!r}: {e}") from e
    return str(_parse(str(joined)))
