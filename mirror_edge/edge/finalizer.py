from mirror_edge.edge.headers import HOP_BY_HOP_HEADERS, Headers, with_header, without

# These would stop the mirrored page from working under the proxy host
STRIPPED_SECURITY_HEADERS = ("content-security-policy", "x-frame-options")


def finalize_headers(headers: Headers) -> Headers:
    headers = without(headers, *STRIPPED_SECURITY_HEADERS, *HOP_BY_HOP_HEADERS)
    return with_header(headers, "access-control-allow-origin", "*")
