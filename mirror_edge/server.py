from typing import Sequence

from fastapi import FastAPI
from opentelemetry import trace
from prometheus_client import Info
from prometheus_fastapi_instrumentator import Instrumentator
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

from mirror_edge.config import load_proxy_config
from mirror_edge.edge.access import country_filter
from mirror_edge.edge.transport import HttpxTransport
from mirror_edge.vars import OTLP_ENDPOINT, OTLP_HEADERS, SERVICE_NAME
from .routes import router


class StreamingNoiseFilter(SpanExporter):
    """
    Drops the per-chunk ASGI send spans before they reach the real exporter.

    A pass-through download or an overflowing body is relayed chunk by chunk,
    and the FastAPI instrumentation records one ``http.response.body`` span
    per chunk. The ``proxy_request`` span already carries what matters.
    """

    def __init__(self, exporter: SpanExporter):
        self.exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        kept = [span for span in spans if not _is_body_chunk(span)]
        if not kept:
            return SpanExportResult.SUCCESS
        return self.exporter.export(kept)

    def shutdown(self):
        return self.exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000):
        return self.exporter.force_flush(timeout_millis)


def _is_body_chunk(span: ReadableSpan) -> bool:
    attributes = span.attributes or {}
    return attributes.get("asgi.event.type") == "http.response.body"


def configure_tracing(app: FastAPI) -> None:
    trace.set_tracer_provider(
        TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
    )
    tracer_provider = trace.get_tracer_provider()
    if OTLP_ENDPOINT:
        otlp_exporter = OTLPSpanExporter(
            endpoint=OTLP_ENDPOINT,
            headers=((OTLP_HEADERS).split(",") if OTLP_HEADERS else None),
        )
        tracer_provider.add_span_processor(
            BatchSpanProcessor(StreamingNoiseFilter(otlp_exporter))
        )
    FastAPIInstrumentor.instrument_app(app, excluded_urls="/metrics")


def create_app() -> FastAPI:
    app = FastAPI()

    # Loaded once; every request shares this immutable config
    app.state.proxy_config = load_proxy_config()
    app.state.transport = HttpxTransport()
    app.state.access_filter = country_filter(app.state.proxy_config)

    # /metrics must be registered before the catch-all proxy route
    Instrumentator().instrument(app).expose(app)
    configure_tracing(app)
    app.include_router(router)
    return app


app = create_app()

# Add app_name to the metrics
app_info = Info("fastapi_app_info", "Application Info")
app_info.info({"app_name": SERVICE_NAME})
