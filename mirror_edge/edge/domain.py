from mirror_edge.errors import ClientConfigurationError


def split_host_port(authority: str) -> tuple[str, str]:
    """Split ``host[:port]`` (IPv6 literals included) into its two parts."""
    authority = authority.strip()
    if authority.startswith("["):
        end = authority.find("]")
        if end != -1:
            rest = authority[end + 1 :]
            return authority[: end + 1], rest[1:] if rest.startswith(":") else ""
    host, sep, port = authority.rpartition(":")
    if sep and port.isdigit():
        return host, port
    return authority, ""


def resolve_target_domain(host: str, own_domain: str) -> str:
    """
    Derive the target domain encoded in ``host``.

    ``"example.org.b.com"`` with own domain ``"b.com"`` resolves to
    ``"example.org"``. Hosts outside the own domain (including the own domain
    itself) resolve to ``""``.
    """
    hostname, _ = split_host_port(host)
    hostname = hostname.strip().rstrip(".").lower()
    suffix = f".{own_domain.strip('.').lower()}"
    if not hostname.endswith(suffix):
        return ""
    return hostname.split(suffix, 1)[0]


def require_target_domain(host: str, own_domain: str) -> str:
    target = resolve_target_domain(host, own_domain)
    if not target:
        raise ClientConfigurationError(f"host {host!r} carries no target domain")
    return target
