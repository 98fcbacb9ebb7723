from typing import Optional

from fastapi import FastAPI, Request

from .otel import init_tracing
from .src.config import Settings, settings as default_settings
from .src.logger import Logger
from .src.middleware import TraceContextMiddleware, default_logger

def create_app(settings: Optional[Settings] = None, logger: Optional[Logger] = None) -> FastAPI:
    settings = settings or default_settings
    # Resolve the monitored resource now; its metadata server probes block
    # and must not run on the event loop during the first request
    logger = logger or default_logger(settings)

    app = FastAPI(title="Cloud Logging Example", version="1.0.0")
    app.state.logger = logger
    app.state.tracer = None
    app.add_middleware(TraceContextMiddleware, logger=logger, settings=settings)

    if settings.enable_tracing:
        app.state.tracer = init_tracing(app, settings=settings, service_version="v1")

    @app.get("/")
    def index(request: Request):
        request_logger: Logger = request.state.logger
        request_logger.info("Hello from the example app", path=request.url.path)
        return {"trace_id": request_logger.trace_id}

    @app.get("/health")
    def health():
        return {"status": "ok", "service": settings.service_name}

    return app

app = create_app()
