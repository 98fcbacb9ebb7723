from typing import Optional

from opentelemetry import propagate, trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from .src.config import Settings, settings as default_settings

def _exporter(settings: Settings) -> SpanExporter:
    if not settings.use_cloud_trace:
        return ConsoleSpanExporter()

    # pip: opentelemetry-exporter-gcp-trace opentelemetry-propagator-gcp
    from opentelemetry.exporter.cloud_trace import CloudTraceSpanExporter
    from opentelemetry.propagators.cloud_trace_propagator import CloudTraceFormatPropagator

    # Server spans continue the X-Cloud-Trace-Context trace, so log entries
    # written by the middleware's logger can carry their span id
    propagate.set_global_textmap(CloudTraceFormatPropagator())
    return CloudTraceSpanExporter(project_id=settings.project_id)

def init_tracing(app, settings: Optional[Settings] = None, service_version: str = "v1") -> trace.Tracer:
    settings = settings or default_settings
    resource = Resource.create({
        "service.name": settings.service_name,
        "service.version": service_version,
        "deployment.environment": settings.environment,
    })
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(_exporter(settings)))
    trace.set_tracer_provider(provider)

    FastAPIInstrumentor.instrument_app(app, tracer_provider=provider)

    return provider.get_tracer(settings.service_name)
