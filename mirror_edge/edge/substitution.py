"""
Target-to-proxy domain substitution shared by every rewriter.

Two modes exist:

``global``
    Every literal occurrence of the target domain is replaced, except where it
    is already followed by ``.<own domain>`` (i.e. it is already a proxy host).

``main-domain``
    Only occurrences that form a whole hostname are replaced, so the target
    ``dmhy.org`` leaves ``dl.dmhy.org`` and ``dmhy.org.cn`` alone.
"""

import re
from dataclasses import dataclass
from functools import cached_property

from mirror_edge.edge.domain import split_host_port

GLOBAL = "global"
MAIN_DOMAIN = "main-domain"

_HOST_CHAR = r"[A-Za-z0-9_.\-]"


@dataclass(frozen=True)
class RewriteContext:
    """Everything a rewriter needs to map one target onto one proxy host."""

    target_domain: str
    proxy_host: str
    own_domain: str
    mode: str = GLOBAL

    @property
    def proxy_hostname(self) -> str:
        """Proxy host without its port, as used in cookie Domain attributes."""
        return split_host_port(self.proxy_host)[0]

    @cached_property
    def pattern(self) -> re.Pattern:
        target = re.escape(self.target_domain)
        already_proxied = rf"(?!\.{re.escape(self.own_domain)}(?![A-Za-z0-9\-]))"
        if self.mode == MAIN_DOMAIN:
            return re.compile(
                rf"(?<!{_HOST_CHAR}){target}(?![A-Za-z0-9_\-]|\.[A-Za-z0-9]){already_proxied}",
                re.IGNORECASE,
            )
        return re.compile(rf"{target}{already_proxied}", re.IGNORECASE)

    def substitute(self, text: str) -> str:
        return self.pattern.sub(lambda _m: self.proxy_host, text)

    def owns_hostname(self, hostname: str) -> bool:
        """Whether a redirect to ``hostname`` should be routed back through us."""
        hostname = hostname.lower().rstrip(".")
        target = self.target_domain.lower()
        if hostname == target:
            return True
        if self.mode == MAIN_DOMAIN:
            return False
        return hostname.endswith(f".{target}")

    def proxy_hostname_for(self, hostname: str) -> str:
        """Map a target-side hostname onto the proxy: ``www.t.org`` -> ``www.t.org.b.com``."""
        hostname = hostname.lower().rstrip(".")
        prefix = hostname[: len(hostname) - len(self.target_domain)]
        return f"{prefix}{self.proxy_host}"
