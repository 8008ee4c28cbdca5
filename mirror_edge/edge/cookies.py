import re
from typing import List

from mirror_edge.edge.domain import split_host_port
from mirror_edge.edge.headers import Headers, get_all, has_header, with_values
from mirror_edge.edge.substitution import RewriteContext

# A comma separates two cookies only when a ``name=`` pair follows it. The
# comma inside ``Expires=Wed, 21 Oct 2015 ...`` is followed by a bare date.
_COOKIE_SEPARATOR_RE = re.compile(r",\s*(?=[^;,\s=]+=)")

_DOMAIN_ATTRIBUTE_RE = re.compile(
    r"(;\s*domain\s*=\s*)(\.?)([^;\s]+)(?=\s*(?:;|$))", re.IGNORECASE
)


def split_set_cookie_header(value: str) -> List[str]:
    """Split a Set-Cookie value that was flattened into one comma-joined string."""
    return [part.strip() for part in _COOKIE_SEPARATOR_RE.split(value) if part.strip()]


def rewrite_cookie_domain(cookie: str, context: RewriteContext) -> str:
    """
    Point a ``Domain=`` attribute owned by the target at the proxy.

    Ownership follows the substitution mode, the same way redirects do:
    ``global`` also maps subdomains of the target, ``main-domain`` only the
    target itself. The proxy port is never written into the attribute.
    """

    def _replace(match: re.Match) -> str:
        domain = match.group(3)
        if not context.owns_hostname(domain):
            return match.group(0)
        hostname = split_host_port(context.proxy_hostname_for(domain))[0]
        return f"{match.group(1)}{match.group(2)}{hostname}"

    return _DOMAIN_ATTRIBUTE_RE.sub(_replace, cookie)


def rewrite_set_cookies(
    headers: Headers, context: RewriteContext, flattened: bool = False
) -> Headers:
    """
    Rewrite every Set-Cookie, emitting one header entry per cookie.

    Each entry is taken as one cookie. Pass ``flattened=True`` only for
    headers from a source that folded several Set-Cookie lines into one
    comma-joined value; those are split first.
    """
    if not has_header(headers, "set-cookie"):
        return headers
    values = get_all(headers, "set-cookie")
    if flattened:
        values = [cookie for value in values for cookie in split_set_cookie_header(value)]
    return with_values(
        headers, "set-cookie", [rewrite_cookie_domain(cookie, context) for cookie in values]
    )
