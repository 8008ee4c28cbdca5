# Ensure tests import `mirror_edge` from this checkout even without an install.
import os
import sys
from typing import List, Optional

import httpx
import pytest

SERVICE_ROOT = os.path.dirname(__file__)
if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)

from mirror_edge.config import ProxyConfig  # noqa: E402
from mirror_edge.edge.headers import make_headers  # noqa: E402
from mirror_edge.edge.models import (  # noqa: E402
    IncomingRequest,
    OriginResponse,
    OutboundRequest,
)

DEFAULT_CONTENT_TYPES = (
    "text/html",
    "text/css",
    "application/javascript",
    "application/x-javascript",
    "text/javascript",
    "application/json",
)


class FakeTransport:
    """Records outbound requests and answers with a canned response or error."""

    def __init__(self, response=None, error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.sent: List[OutboundRequest] = []
        self.timeouts: List[int] = []

    async def send(self, outbound: OutboundRequest, timeout_ms: int) -> OriginResponse:
        self.sent.append(outbound)
        self.timeouts.append(timeout_ms)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def proxy_config():
    """Factory for ProxyConfig with test-friendly defaults."""

    def _create(**overrides) -> ProxyConfig:
        values = dict(
            own_domain="b.com",
            processable_content_types=DEFAULT_CONTENT_TYPES,
            timeout_ms=10000,
        )
        values.update(overrides)
        return ProxyConfig(**values)

    return _create


@pytest.fixture
def make_incoming():
    """Factory for IncomingRequest objects addressed to the proxy."""

    def _create(
        method="GET",
        host="target.example.b.com",
        path="/",
        headers=None,
        body=b"",
        country=None,
    ) -> IncomingRequest:
        all_headers = {"host": host}
        all_headers.update(headers or {})

        async def read_body() -> bytes:
            return body

        return IncomingRequest(
            method=method,
            url=f"https://{host}{path}",
            headers=make_headers(all_headers),
            read_body=read_body,
            country=country,
        )

    return _create


@pytest.fixture
def origin_response():
    """Factory for OriginResponse objects backed by an in-memory httpx.Response."""

    def _create(status_code=200, headers=None, content=b"", closed=None):
        response = httpx.Response(
            status_code, headers=headers or [], stream=httpx.ByteStream(content)
        )

        async def on_close():
            if closed is not None:
                closed.append(True)

        return OriginResponse.from_httpx(response, on_close=on_close)

    return _create


@pytest.fixture
def fake_transport():
    return FakeTransport
