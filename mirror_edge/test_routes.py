"""
End-to-end tests through the FastAPI application with the transport swapped
out on ``app.state``.
"""

import pytest
from fastapi.testclient import TestClient

from mirror_edge.config import ProxyConfig
from mirror_edge.errors import TransportTimeout
from mirror_edge.server import app

PROXY_HOST = "target.example.b.com"


@pytest.fixture
def client():
    with TestClient(app, base_url=f"http://{PROXY_HOST}") as test_client:
        yield test_client


@pytest.fixture
def use_transport(monkeypatch, fake_transport):
    config = ProxyConfig(
        own_domain="b.com",
        processable_content_types=("text/html", "application/json"),
        timeout_ms=1000,
    )
    monkeypatch.setattr(app.state, "proxy_config", config)
    monkeypatch.setattr(app.state, "access_filter", None)

    def _install(response=None, error=None):
        transport = fake_transport(response=response, error=error)
        monkeypatch.setattr(app.state, "transport", transport)
        return transport

    return _install


def test_robots_txt(client, use_transport):
    transport = use_transport()

    response = client.get("/robots.txt")

    assert response.status_code == 200
    assert response.text == "User-agent: *\nDisallow: /"
    assert transport.sent == []


def test_html_is_rewritten(client, use_transport, origin_response):
    transport = use_transport(
        origin_response(
            200,
            headers=[("content-type", "text/html"), ("x-frame-options", "DENY")],
            content=b'<script src="https://target.example/app.js"></script>',
        )
    )

    response = client.get("/index.html?lang=en")

    assert response.status_code == 200
    assert response.text == f'<script src="https://{PROXY_HOST}/app.js"></script>'
    assert response.headers["access-control-allow-origin"] == "*"
    assert "x-frame-options" not in response.headers
    assert int(response.headers["content-length"]) == len(response.content)
    assert transport.sent[0].url == "https://target.example/index.html?lang=en"


def test_encoded_path_forwarded_unchanged(client, use_transport, origin_response):
    transport = use_transport(origin_response(204))

    client.get("/files/a%2Fb%3Fc.txt?x=1")

    assert transport.sent[0].url == "https://target.example/files/a%2Fb%3Fc.txt?x=1"


def test_post_body_forwarded(client, use_transport, origin_response):
    transport = use_transport(
        origin_response(
            201, headers=[("content-type", "application/json")], content=b'{"id": 1}'
        )
    )

    response = client.post(
        "/api/items",
        content=b'{"name": "test"}',
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 201
    assert transport.sent[0].method == "POST"
    assert transport.sent[0].body == b'{"name": "test"}'


def test_redirect_location_rewritten(client, use_transport, origin_response):
    use_transport(origin_response(302, headers=[("location", "/login")]))

    response = client.get("/account", follow_redirects=False)

    assert response.status_code == 302
    assert response.headers["location"] == f"https://{PROXY_HOST}/login"


def test_set_cookie_headers_stay_separate(client, use_transport, origin_response):
    use_transport(
        origin_response(
            200,
            headers=[
                ("content-type", "text/plain"),
                ("set-cookie", "a=1; Domain=target.example; Path=/"),
                ("set-cookie", "b=2; Expires=Wed, 21 Oct 2037 07:28:00 GMT"),
            ],
            content=b"ok",
        )
    )

    response = client.get("/")

    assert response.headers.get_list("set-cookie") == [
        f"a=1; Domain={PROXY_HOST}; Path=/",
        "b=2; Expires=Wed, 21 Oct 2037 07:28:00 GMT",
    ]


def test_binary_passthrough(client, use_transport, origin_response):
    closed = []
    payload = b"\x00\x01target.example\xff"
    use_transport(
        origin_response(
            200,
            headers=[("content-type", "application/octet-stream")],
            content=payload,
            closed=closed,
        )
    )

    response = client.get("/download.bin")

    assert response.content == payload
    assert closed == [True]


def test_missing_target_is_400(use_transport):
    use_transport()
    with TestClient(app, base_url="http://b.com") as bare_client:
        response = bare_client.get("/")

    assert response.status_code == 400
    assert response.text == "bad request: no target domain specified in host"


def test_transport_timeout_is_502(client, use_transport):
    use_transport(error=TransportTimeout("slow"))

    response = client.get("/")

    assert response.status_code == 502
    assert response.text == "could not reach target server"


def test_metrics_endpoint_not_proxied(client, use_transport):
    transport = use_transport()

    response = client.get("/metrics")

    assert response.status_code == 200
    assert transport.sent == []
