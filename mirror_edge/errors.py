"""
Error taxonomy of the edge proxy.

Every error that can end a request carries the fixed text and status code the
client sees. Internal details stay in the logs.
"""


class EdgeProxyError(Exception):
    status_code = 502
    public_message = "bad gateway"


class ClientConfigurationError(EdgeProxyError):
    """The incoming host does not name a target domain."""

    status_code = 400
    public_message = "bad request: no target domain specified in host"


class PolicyDenied(EdgeProxyError):
    """The access-control pre-filter rejected the request."""

    status_code = 403
    public_message = "access denied"


class TransportError(EdgeProxyError):
    status_code = 502
    public_message = "could not reach target server"
    kind = "transport"


class TransportTimeout(TransportError):
    kind = "timeout"


class TransportUnreachable(TransportError):
    kind = "unreachable"


class DecodingError(EdgeProxyError):
    """Body bytes could not be converted with the declared charset.

    Never surfaced to the client: the body is passed through untouched instead.
    """

    def __init__(self, encoding: str, reason: str):
        super().__init__(f"cannot convert body using {encoding!r}: {reason}")
        self.encoding = encoding
