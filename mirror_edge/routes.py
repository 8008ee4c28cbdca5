import logging

from fastapi import APIRouter, Request
from fastapi.responses import Response, StreamingResponse
from starlette.background import BackgroundTask

from mirror_edge.edge.models import EdgeResponse, IncomingRequest
from mirror_edge.edge.headers import make_headers
from mirror_edge.edge.pipeline import handle_request

router = APIRouter()
logger = logging.getLogger("uvicorn.error")

PROXIED_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]


def raw_request_url(request: Request) -> str:
    """
    The URL exactly as the client sent it.

    ``request.url`` is rebuilt from the percent-decoded path, which would turn
    ``%2F`` into a path separator on the way to the origin.
    """
    scope = request.scope
    raw_path = scope.get("raw_path")
    if raw_path:
        path = raw_path.split(b"?", 1)[0].decode("latin-1")
    else:
        path = request.url.path
    url = f"{request.url.scheme}://{request.url.netloc}{path}"
    query = scope.get("query_string", b"").decode("latin-1")
    return f"{url}?{query}" if query else url


def to_incoming_request(request: Request, country_header: str) -> IncomingRequest:
    """Adapt a Starlette request into the pipeline's read-only view."""
    return IncomingRequest(
        method=request.method,
        url=raw_request_url(request),
        headers=make_headers(request.headers.items()),
        read_body=request.body,
        country=request.headers.get(country_header),
    )


def to_starlette_response(edge: EdgeResponse) -> Response:
    if edge.stream is not None:
        response = StreamingResponse(
            edge.stream,
            status_code=edge.status_code,
            background=BackgroundTask(edge.aclose),
        )
    else:
        response = Response(content=edge.body or b"", status_code=edge.status_code)
    # One header line per value so that Set-Cookie entries stay separate
    for name, value in edge.headers:
        response.headers.append(name, value)
    return response


@router.api_route("/{path:path}", methods=PROXIED_METHODS)
async def proxy_all(request: Request, path: str):
    """Catch-all route that mirrors every request onto its target domain."""
    state = request.app.state
    incoming = to_incoming_request(request, state.proxy_config.country_header)
    edge = await handle_request(
        incoming,
        state.proxy_config,
        state.transport,
        access_filter=state.access_filter,
    )
    return to_starlette_response(edge)
