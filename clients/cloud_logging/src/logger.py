import contextvars
import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from .logging import current_span_ids

TRACE_FIELD = "logging.googleapis.com/trace"
SPAN_FIELD = "logging.googleapis.com/spanId"
LABELS_FIELD = "logging.googleapis.com/labels"

# Cloud Logging severities and the stdlib level each one is written at
SEVERITIES: Dict[str, int] = {
    "DEFAULT": logging.NOTSET,
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "NOTICE": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
    "ALERT": logging.CRITICAL,
    "EMERGENCY": logging.CRITICAL,
}

class Logger:
    """
    Structured logger bound to one log name and monitored resource.

    Each entry is a single JSON line in the shape Cloud Logging's agents
    parse. A trace ID added with add_trace_id() is stamped on every entry
    written from the same context (thread or asyncio task) until
    delete_trace_id() is called, so one instance can be shared by
    concurrent requests.
    """

    def __init__(
        self,
        log_name: str,
        resource: Any,
        labels: Optional[Dict[str, str]] = None,
        project_id: Optional[str] = None,
    ):
        self.log_name = log_name
        self.resource = resource
        self.labels = dict(labels or {})
        self.project_id = project_id
        self._trace_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
            f"trace_id[{log_name}:{id(self):x}]", default=None
        )
        self._logger = logging.getLogger(log_name)

    # -----------------------
    # Trace association
    # -----------------------

    @property
    def trace_id(self) -> Optional[str]:
        return self._trace_id.get()

    def add_trace_id(self, trace_id: Optional[str]) -> None:
        self._trace_id.set(trace_id)

    def delete_trace_id(self) -> None:
        self._trace_id.set(None)

    @contextmanager
    def trace_context(self, trace_id: Optional[str]) -> Iterator["Logger"]:
        """Bind trace_id for the duration of the block; always unbinds on exit."""
        self.add_trace_id(trace_id)
        try:
            yield self
        finally:
            self.delete_trace_id()

    # -----------------------
    # Writing entries
    # -----------------------

    def debug(self, message: Any, **fields: Any) -> None:
        self.log("DEBUG", message, **fields)

    def info(self, message: Any, **fields: Any) -> None:
        self.log("INFO", message, **fields)

    def notice(self, message: Any, **fields: Any) -> None:
        self.log("NOTICE", message, **fields)

    def warning(self, message: Any, **fields: Any) -> None:
        self.log("WARNING", message, **fields)

    def error(self, message: Any, **fields: Any) -> None:
        self.log("ERROR", message, **fields)

    def critical(self, message: Any, **fields: Any) -> None:
        self.log("CRITICAL", message, **fields)

    def log(self, severity: str, message: Any, **fields: Any) -> Dict[str, Any]:
        entry = self.build_entry(severity, message, **fields)
        level = SEVERITIES[entry["severity"]]
        # NOTSET would be dropped by every handler; DEFAULT goes out at INFO
        self._logger.log(level or logging.INFO, json.dumps(entry, ensure_ascii=False, default=str))
        return entry

    def build_entry(self, severity: str, message: Any, **fields: Any) -> Dict[str, Any]:
        severity = str(severity).upper()
        if severity not in SEVERITIES:
            severity = "DEFAULT"

        entry: Dict[str, Any] = {
            "severity": severity,
            "message": message,
            "logName": self.log_name,
            "resource": self._resource_dict(),
        }
        if self.labels:
            entry[LABELS_FIELD] = dict(self.labels)

        trace_id = self.trace_id
        if trace_id:
            entry[TRACE_FIELD] = self.trace_path(trace_id)

            # the span only means something inside the trace named by the header
            otel_trace_id, span_id = current_span_ids()
            if span_id and otel_trace_id == trace_id.lower():
                entry[SPAN_FIELD] = span_id

        entry.update(fields)
        return entry

    def trace_path(self, trace_id: str) -> str:
        if self.project_id:
            return f"projects/{self.project_id}/traces/{trace_id}"
        return trace_id

    def _resource_dict(self) -> Any:
        to_dict = getattr(self.resource, "to_dict", None)
        return to_dict() if callable(to_dict) else self.resource
