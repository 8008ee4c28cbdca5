import logging

from mirror_edge.config import ProxyConfig
from mirror_edge.edge.headers import (
    HOP_BY_HOP_HEADERS,
    Headers,
    get_header,
    with_header,
    without,
)
from mirror_edge.edge.models import IncomingRequest, OutboundRequest
from mirror_edge.edge.substitution import RewriteContext

logger = logging.getLogger("uvicorn.error")

BODYLESS_METHODS = frozenset({"GET", "HEAD"})

# Never copied to the origin; the client library derives them from the
# outbound URL and body, or they describe the hop to the proxy.
_DROPPED_REQUEST_HEADERS = HOP_BY_HOP_HEADERS | {
    "accept-encoding",
    "host",
    "content-length",
}


def build_target_url(target_domain: str, incoming: IncomingRequest) -> str:
    """``https://{target}{path}{query}{fragment}``"""
    return f"https://{target_domain}{incoming.path_with_query}"


def _unproxy(value: str, context: RewriteContext) -> str:
    """Point a proxy-host reference in Origin/Referer back at the target."""
    return value.replace(context.proxy_host, context.target_domain)


def prepare_headers(
    incoming: IncomingRequest, context: RewriteContext, config: ProxyConfig
) -> Headers:
    headers = without(incoming.headers, *_DROPPED_REQUEST_HEADERS)
    for name in ("origin", "referer"):
        value = get_header(headers, name)
        if value:
            headers = with_header(headers, name, _unproxy(value, context))
    if config.forced_user_agent:
        headers = with_header(headers, "user-agent", config.forced_user_agent)
    return headers


async def build_outbound_request(
    incoming: IncomingRequest, context: RewriteContext, config: ProxyConfig
) -> OutboundRequest:
    """
    Construct the request sent to the target.

    Method and path pass through unchanged, the body is buffered for methods
    that carry one, and redirects are never followed so that they can be
    rewritten.
    """
    method = incoming.method.upper()
    body = None
    if method not in BODYLESS_METHODS:
        body = await incoming.read_body()

    outbound = OutboundRequest(
        method=method,
        url=build_target_url(context.target_domain, incoming),
        headers=prepare_headers(incoming, context, config),
        body=body,
        follow_redirects=False,
    )
    logger.debug(f"Outbound request built: {outbound.method} {outbound.url}")
    return outbound
