import re
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple, Union

from .config import Settings, settings as default_settings
from .logger import Logger
from .resource import build_monitored_resource

TRACE_CONTEXT_HEADER = "x-cloud-trace-context"
# request.state.logger in Starlette / FastAPI handlers
LOGGER_STATE_KEY = "logger"

_TRACE_ID_RE = re.compile(r"^([^/]+)")

Headers = Union[Mapping[str, str], Iterable[Tuple[bytes, bytes]]]

def _header_value(headers: Headers, name: str) -> Optional[str]:
    if isinstance(headers, Mapping):
        items = headers.items()
    else:
        items = headers
    for key, value in items:
        if isinstance(key, bytes):
            key = key.decode("latin-1")
        if key.lower() == name:
            return value.decode("latin-1") if isinstance(value, bytes) else value
    return None

def extract_trace_id(headers: Headers) -> Optional[str]:
    """
    Trace ID from an X-Cloud-Trace-Context header ("TRACE_ID/SPAN_ID;o=OPTIONS").
    Returns None when the header is absent or has nothing before the first '/'.
    """
    value = _header_value(headers, TRACE_CONTEXT_HEADER)
    if not value:
        return None
    match = _TRACE_ID_RE.match(value.strip())
    return match.group(1) if match else None

def default_logger(config: Settings) -> Logger:
    resource = build_monitored_resource(config.monitored_resource_type, config.monitored_resource_labels)
    return Logger(config.log_name, resource, labels=config.log_labels, project_id=config.project_id)

class TraceContextMiddleware:
    """
    ASGI middleware that hands every HTTP request a logger bound to the
    request's Cloud Trace ID.

    The logger is stored in the request state (request.state.logger) and the
    trace ID from X-Cloud-Trace-Context is attached to it while the wrapped
    app runs. The trace ID is detached on the way out whether the app
    returns or raises; exceptions are re-raised untouched.

    Example:
        app = FastAPI()
        app.add_middleware(TraceContextMiddleware, logger=my_logger)
    """

    def __init__(self, app: Any, logger: Optional[Logger] = None, settings: Optional[Settings] = None):
        self.app = app
        self.settings = settings or default_settings
        self.logger = logger or default_logger(self.settings)

    async def __call__(self, scope: dict, receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        trace_id = self.extract_trace_id(scope.get("headers") or [])
        scope.setdefault("state", {})[LOGGER_STATE_KEY] = self.logger

        with self.logger.trace_context(trace_id):
            await self.app(scope, receive, send)

    def extract_trace_id(self, headers: Headers) -> Optional[str]:
        return extract_trace_id(headers)
