"""
Immutable header lists.

Headers travel through the pipeline as a tuple of ``(name, value)`` pairs.
Names compare case-insensitively, order is preserved and a name may repeat
(``Set-Cookie``). Every helper returns a new tuple.
"""

from typing import Iterable, Mapping, Optional, Tuple, Union

Headers = Tuple[Tuple[str, str], ...]

# Hop-by-hop headers that should NOT be forwarded (RFC 2616)
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)


def make_headers(
    source: Union[Mapping[str, str], Iterable[Tuple[str, str]], None],
) -> Headers:
    if source is None:
        return ()
    items = source.items() if isinstance(source, Mapping) else source
    return tuple((str(name), str(value)) for name, value in items)


def get_header(headers: Headers, name: str) -> Optional[str]:
    """First value for ``name`` or None."""
    wanted = name.lower()
    for key, value in headers:
        if key.lower() == wanted:
            return value
    return None


def get_all(headers: Headers, name: str) -> Tuple[str, ...]:
    wanted = name.lower()
    return tuple(value for key, value in headers if key.lower() == wanted)


def has_header(headers: Headers, name: str) -> bool:
    return get_header(headers, name) is not None


def without(headers: Headers, *names: str) -> Headers:
    dropped = {n.lower() for n in names}
    return tuple((k, v) for k, v in headers if k.lower() not in dropped)


def with_header(headers: Headers, name: str, value: str) -> Headers:
    """Replace every ``name`` entry with a single one, appended at the end."""
    return without(headers, name) + ((name, value),)


def with_values(headers: Headers, name: str, values: Iterable[str]) -> Headers:
    """Replace every ``name`` entry with one entry per value."""
    return without(headers, name) + tuple((name, v) for v in values)


def map_values(headers: Headers, name: str, fn) -> Headers:
    """Apply ``fn`` to each value of ``name`` in place."""
    wanted = name.lower()
    return tuple((k, fn(v) if k.lower() == wanted else v) for k, v in headers)
