import asyncio
import logging
from typing import Optional, Protocol

import httpx

from mirror_edge.edge.models import OriginResponse, OutboundRequest
from mirror_edge.errors import TransportTimeout, TransportUnreachable

logger = logging.getLogger("uvicorn.error")


class Transport(Protocol):
    async def send(
        self, outbound: OutboundRequest, timeout_ms: int
    ) -> OriginResponse:
        """Issue ``outbound`` and return the origin's response headers.

        Raises TransportTimeout or TransportUnreachable.
        """
        ...


class HttpxTransport:
    """Transport backed by a fresh ``httpx.AsyncClient`` per request."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    def _client(self, timeout_ms: int) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_ms / 1000),
            follow_redirects=False,  # Handle redirects manually for rewriting
            transport=self._transport,
        )

    async def send(
        self, outbound: OutboundRequest, timeout_ms: int
    ) -> OriginResponse:
        client = self._client(timeout_ms)
        request = client.build_request(
            method=outbound.method,
            url=outbound.url,
            headers=list(outbound.headers),
            content=outbound.body,
        )
        # httpx injects its own Accept-Encoding; the origin must not see one
        if "accept-encoding" in request.headers:
            del request.headers["accept-encoding"]

        try:
            response = await asyncio.wait_for(
                client.send(
                    request, stream=True, follow_redirects=outbound.follow_redirects
                ),
                timeout=timeout_ms / 1000,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            await client.aclose()
            logger.error(f"Proxy timeout for {outbound.url}: {e!r}")
            raise TransportTimeout(f"{outbound.url} timed out after {timeout_ms}ms")
        except httpx.TransportError as e:
            await client.aclose()
            logger.error(f"Failed to connect to target {outbound.url}: {e!r}")
            raise TransportUnreachable(f"{outbound.url} unreachable: {e!r}")
        except BaseException:
            await client.aclose()
            raise

        return OriginResponse.from_httpx(response, on_close=client.aclose)
