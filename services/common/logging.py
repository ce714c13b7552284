import logging
from contextvars import ContextVar
from typing import Literal

from opentelemetry import trace

from .config import ServiceSettings


_PLACEHOLDER = "-"
_LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | user=%(user_id)s "
    "trace_id=%(trace_id)s span_id=%(span_id)s | %(message)s"
)

_CURRENT_USER_ID: ContextVar[str | None] = ContextVar("storefront_user_id", default=None)


def bind_user_id(user_id: str | None) -> None:
    """Attach the signed-in user id to log records emitted in this context."""

    _CURRENT_USER_ID.set(user_id)


def _format_trace_id(value: int, length: int) -> str:
    return format(value, f"0{length}x")


class RequestContextFilter(logging.Filter):
    """Populate user and trace/span identifiers on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.user_id = _CURRENT_USER_ID.get() or _PLACEHOLDER

        span = trace.get_current_span()
        span_context = span.get_span_context() if span is not None else None
        if span_context is not None and span_context.is_valid:
            record.trace_id = _format_trace_id(span_context.trace_id, 32)
            record.span_id = _format_trace_id(span_context.span_id, 16)
        else:
            record.trace_id = _PLACEHOLDER
            record.span_id = _PLACEHOLDER
        return True


def configure_logging(settings: ServiceSettings) -> None:
    """Configure root logging level and format."""

    logging_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = settings.log_level
    logging.basicConfig(level=logging_level, format=_LOG_FORMAT)
    root_logger = logging.getLogger()
    existing_filter = next(
        (f for f in root_logger.filters if isinstance(f, RequestContextFilter)),
        None,
    )
    context_filter = existing_filter or RequestContextFilter()
    if existing_filter is None:
        root_logger.addFilter(context_filter)
    for handler in root_logger.handlers:
        if not any(isinstance(f, RequestContextFilter) for f in handler.filters):
            handler.addFilter(context_filter)
