from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Optional
from urllib.parse import urlsplit

import httpx

from mirror_edge.edge.headers import Headers, get_header, make_headers
from mirror_edge.errors import TransportTimeout, TransportUnreachable


async def _no_body() -> bytes:
    return b""


async def _noop_close() -> None:
    return None


async def _translate_errors(chunks: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
    """Surface httpx failures while reading a body as transport errors."""
    try:
        async for chunk in chunks:
            yield chunk
    except httpx.TimeoutException as e:
        raise TransportTimeout(f"body read timed out: {e!r}") from e
    except httpx.TransportError as e:
        raise TransportUnreachable(f"body read failed: {e!r}") from e


@dataclass(frozen=True)
class IncomingRequest:
    """Read-only view of the client's request."""

    method: str
    url: str
    headers: Headers
    read_body: Callable[[], Awaitable[bytes]] = _no_body
    country: Optional[str] = None

    @property
    def host(self) -> str:
        """Authority the client used, including any port."""
        return get_header(self.headers, "host") or urlsplit(self.url).netloc

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def path_with_query(self) -> str:
        """Path, query and fragment exactly as the client sent them."""
        parts = urlsplit(self.url)
        result = parts.path or "/"
        if parts.query:
            result += f"?{parts.query}"
        if parts.fragment:
            result += f"#{parts.fragment}"
        return result


@dataclass(frozen=True)
class OutboundRequest:
    method: str
    url: str
    headers: Headers
    body: Optional[bytes] = None
    follow_redirects: bool = False


@dataclass(frozen=True)
class OriginResponse:
    """
    Response received from the target.

    ``raw`` yields the bytes exactly as the origin sent them and ``decoded``
    yields them with any Content-Encoding undone. Only one of the two may be
    consumed. ``aclose`` must be awaited once the body is no longer needed.
    """

    status_code: int
    reason_phrase: str
    headers: Headers
    raw: Callable[[], AsyncIterator[bytes]]
    decoded: Callable[[], AsyncIterator[bytes]]
    aclose: Callable[[], Awaitable[None]] = _noop_close

    @classmethod
    def from_httpx(
        cls,
        response: httpx.Response,
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> "OriginResponse":
        async def aclose() -> None:
            try:
                await response.aclose()
            finally:
                if on_close is not None:
                    await on_close()

        return cls(
            status_code=response.status_code,
            reason_phrase=response.reason_phrase,
            headers=make_headers(response.headers.multi_items()),
            raw=lambda: _translate_errors(response.aiter_raw()),
            decoded=lambda: _translate_errors(response.aiter_bytes()),
            aclose=aclose,
        )


@dataclass(frozen=True)
class EdgeResponse:
    """
    Final response handed back to the entry point.

    Exactly one of ``body`` and ``stream`` is set. ``aclose`` releases the
    origin connection once ``stream`` has been drained.
    """

    status_code: int
    headers: Headers = ()
    body: Optional[bytes] = b""
    stream: Optional[AsyncIterator[bytes]] = None
    aclose: Callable[[], Awaitable[None]] = field(default=_noop_close)

    @classmethod
    def text(cls, status_code: int, message: str) -> "EdgeResponse":
        return cls(
            status_code=status_code,
            headers=(("content-type", "text/plain; charset=utf-8"),),
            body=message.encode("utf-8"),
        )
