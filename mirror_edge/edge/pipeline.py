import asyncio
import logging
import time
from typing import Optional

from opentelemetry import trace

from mirror_edge.config import ProxyConfig
from mirror_edge.edge.access import AccessFilter
from mirror_edge.edge.body import buffer_body, is_processable, rewrite_body
from mirror_edge.edge.cookies import rewrite_set_cookies
from mirror_edge.edge.domain import require_target_domain
from mirror_edge.edge.finalizer import finalize_headers
from mirror_edge.edge.headers import Headers, get_header, without
from mirror_edge.edge.models import (
    EdgeResponse,
    IncomingRequest,
    OriginResponse,
    OutboundRequest,
)
from mirror_edge.edge.redirects import (
    REDIRECT_STATUSES,
    rewrite_redirect,
    rewrite_url_headers,
)
from mirror_edge.edge.request_builder import build_outbound_request
from mirror_edge.edge.substitution import RewriteContext
from mirror_edge.edge.transport import Transport
from mirror_edge.errors import (
    EdgeProxyError,
    PolicyDenied,
    TransportError,
    TransportTimeout,
)
from mirror_edge.utils.exception_logging import (
    format_exception_message,
    log_exception_with_details,
)
from mirror_edge.utils.traced_requests import traced_request

tracer = trace.get_tracer(__name__)
logger = logging.getLogger("uvicorn.error")

ROBOTS_TXT = "User-agent: *\nDisallow: /"
INTERNAL_ERROR_MESSAGE = "bad gateway"


def is_robots_request(incoming: IncomingRequest) -> bool:
    return incoming.path == "/robots.txt" and incoming.method.upper() in ("GET", "HEAD")


def _declared_length(headers: Headers) -> Optional[int]:
    value = get_header(headers, "content-length")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _finish_headers(headers: Headers, context: RewriteContext) -> Headers:
    return finalize_headers(rewrite_set_cookies(headers, context))


async def handle_request(
    incoming: IncomingRequest,
    config: ProxyConfig,
    transport: Transport,
    access_filter: Optional[AccessFilter] = None,
) -> EdgeResponse:
    """
    Serve one client request through the mirror.

    Always returns a response: known failures map to their fixed-text status
    and anything unexpected becomes a plain 502.
    """
    if is_robots_request(incoming):
        return EdgeResponse(
            status_code=200,
            headers=(("content-type", "text/plain; charset=utf-8"),),
            body=ROBOTS_TXT.encode("utf-8"),
        )

    with traced_request(
        tracer, "proxy_request", incoming.method, incoming.url
    ) as span:
        try:
            response = await _proxy(incoming, config, transport, access_filter, span)
        except TransportError as e:
            logger.error(f"[Proxy] Transport failure ({e.kind}): {e}")
            span.set_attribute("proxy.error", e.kind)
            response = EdgeResponse.text(e.status_code, e.public_message)
        except EdgeProxyError as e:
            logger.info(f"[Proxy] Request rejected: {format_exception_message(e)}")
            span.set_attribute("proxy.error", type(e).__name__)
            response = EdgeResponse.text(e.status_code, e.public_message)
        except Exception as e:
            log_exception_with_details(logger, "[Proxy]", e)
            span.set_attribute("proxy.error", type(e).__name__)
            response = EdgeResponse.text(502, INTERNAL_ERROR_MESSAGE)
        span.set_attribute("proxy.status_code", response.status_code)
        return response


async def _proxy(
    incoming: IncomingRequest,
    config: ProxyConfig,
    transport: Transport,
    access_filter: Optional[AccessFilter],
    span,
) -> EdgeResponse:
    if access_filter is not None and not access_filter(incoming):
        raise PolicyDenied(f"access filter rejected {incoming.host}")

    target_domain = require_target_domain(incoming.host, config.own_domain)
    context = RewriteContext(
        target_domain=target_domain,
        proxy_host=incoming.host.strip().lower(),
        own_domain=config.own_domain,
        mode=config.substitution_mode,
    )
    span.set_attribute("proxy.target_domain", target_domain)

    outbound = await build_outbound_request(incoming, context, config)
    span.set_attribute("proxy.target_url", outbound.url)

    started = time.monotonic()
    origin = await transport.send(outbound, config.timeout_ms)
    try:
        return await _rewrite_response(
            origin, outbound, context, config, span, started
        )
    except BaseException:
        await origin.aclose()
        raise


async def _rewrite_response(
    origin: OriginResponse,
    outbound: OutboundRequest,
    context: RewriteContext,
    config: ProxyConfig,
    span,
    started: float,
) -> EdgeResponse:
    span.set_attribute("proxy.origin_status", origin.status_code)
    logger.debug(
        f"[Proxy] {outbound.url} answered {origin.status_code} {origin.reason_phrase}"
    )

    headers = rewrite_redirect(origin.status_code, origin.headers, outbound.url, context)
    location = get_header(headers, "location")
    if origin.status_code in REDIRECT_STATUSES and location:
        if location != get_header(origin.headers, "location"):
            span.set_attribute("proxy.rewritten_location", location)
        else:
            span.set_attribute("proxy.redirect_passthrough", location)
    headers = rewrite_url_headers(headers, context)

    content_type = get_header(headers, "content-type")
    declared = _declared_length(headers)
    rewritable = (
        outbound.method != "HEAD"
        and is_processable(content_type, config.processable_content_types)
        and (declared is None or declared <= config.max_rewrite_body_bytes)
    )

    if not rewritable:
        span.set_attribute("proxy.body_rewritten", False)
        return EdgeResponse(
            status_code=origin.status_code,
            headers=_finish_headers(headers, context),
            body=None,
            stream=origin.raw(),
            aclose=origin.aclose,
        )

    remaining = config.timeout_seconds - (time.monotonic() - started)
    try:
        body, overflow = await asyncio.wait_for(
            buffer_body(origin.decoded(), config.max_rewrite_body_bytes),
            timeout=max(remaining, 0.001),
        )
    except asyncio.TimeoutError:
        raise TransportTimeout(f"reading body of {outbound.url} timed out")

    # The body is now decoded, so framing headers from the origin no longer apply
    headers = without(headers, "content-encoding", "content-length")

    if overflow is not None:
        logger.warning(
            f"[Proxy] Body of {outbound.url} exceeds {config.max_rewrite_body_bytes} bytes, "
            "passing through unmodified"
        )
        span.set_attribute("proxy.body_rewritten", False)
        return EdgeResponse(
            status_code=origin.status_code,
            headers=_finish_headers(headers, context),
            body=None,
            stream=overflow,
            aclose=origin.aclose,
        )

    await origin.aclose()
    new_body, rewritten = rewrite_body(body, content_type, context)
    span.set_attribute("proxy.body_rewritten", rewritten)
    return EdgeResponse(
        status_code=origin.status_code,
        headers=_finish_headers(headers, context),
        body=new_body,
    )
