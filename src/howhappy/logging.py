import logging
import sys
from typing import TextIO

from ddtrace import tracer
from pythonjsonlogger import jsonlogger

REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"authorization", "password", "response_token", "secret", "token"})


class _ContextFilter(logging.Filter):
    """Stamps service and trace correlation ids, and masks credential-bearing extras."""

    def __init__(self, service: str | None, tracing: bool):
        super().__init__()
        self._service = service
        self._tracing = tracing

    def filter(self, record: logging.LogRecord) -> bool:
        if self._service and not hasattr(record, "service"):
            record.service = self._service

        span = tracer.current_span() if self._tracing else None
        record.trace_id = span.trace_id if span else 0
        record.span_id = span.span_id if span else 0

        for key in SENSITIVE_KEYS & record.__dict__.keys():
            setattr(record, key, REDACTED)
        return True


def setup_logging(
    level: str = "INFO",
    service: str | None = None,
    tracing: bool = False,
    stream: TextIO | None = None,
):
    """
    Configures structured JSON logging for the API and the workers.

    Every record is written as one JSON object carrying the ``extra`` fields
    passed at the call site, ``service`` when given, and the ddtrace
    ``trace_id``/``span_id`` of the active span (0 when tracing is off).
    Extras named like credentials (``token``, ``authorization``, ...) are
    masked. The uvicorn loggers share the same handler so the API emits a
    single format.

    Returns:
        logging.Logger: The configured root logger instance.
    """
    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s %(trace_id)s %(span_id)s"
    )
    stream_handler = logging.StreamHandler(stream or sys.stdout)
    stream_handler.setFormatter(formatter)
    stream_handler.addFilter(_ContextFilter(service, tracing))

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    root_logger.handlers = []
    root_logger.addHandler(stream_handler)

    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error"]:
        u_logger = logging.getLogger(logger_name)
        u_logger.setLevel(level.upper())
        u_logger.handlers = []
        u_logger.addHandler(stream_handler)
        u_logger.propagate = False

    return root_logger
