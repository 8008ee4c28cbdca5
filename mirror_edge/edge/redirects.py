import logging
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

from mirror_edge.edge.headers import Headers, get_header, has_header, map_values, with_header
from mirror_edge.edge.substitution import RewriteContext

logger = logging.getLogger("uvicorn.error")

REDIRECT_STATUSES = frozenset({301, 302, 303, 307, 308})

# Response headers besides Location that carry URLs of the target site
URL_HEADERS = ("content-location", "link", "refresh")


def rewrite_location(
    location: str, base_url: str, context: RewriteContext
) -> Optional[str]:
    """
    Rewrite a redirect target so the client comes back through the proxy.

    ``location`` may be relative; it is resolved against ``base_url``, the
    outbound request URL. Returns None when the redirect leaves the target
    site, in which case the Location is passed through verbatim.
    """
    absolute = urljoin(base_url, location)
    parts = urlsplit(absolute)
    hostname = parts.hostname or ""
    if not context.owns_hostname(hostname):
        return None

    userinfo = ""
    if "@" in parts.netloc:
        userinfo = parts.netloc.rsplit("@", 1)[0] + "@"
    netloc = f"{userinfo}{context.proxy_hostname_for(hostname)}"
    return urlunsplit(parts._replace(netloc=netloc))


def rewrite_redirect(
    status_code: int, headers: Headers, base_url: str, context: RewriteContext
) -> Headers:
    """Return ``headers`` with a rewritten Location for 3xx responses."""
    if status_code not in REDIRECT_STATUSES:
        return headers
    location = get_header(headers, "location")
    if not location:
        return headers

    rewritten = rewrite_location(location, base_url, context)
    if rewritten is None:
        logger.info(
            f"Redirect to foreign host passed through for {context.target_domain}: {location}"
        )
        return headers
    logger.debug(f"Rewrote Location {location} -> {rewritten}")
    return with_header(headers, "location", rewritten)


def rewrite_url_headers(headers: Headers, context: RewriteContext) -> Headers:
    """Substitute the target domain inside Content-Location, Link and Refresh."""
    for name in URL_HEADERS:
        if has_header(headers, name):
            headers = map_values(headers, name, context.substitute)
    return headers
