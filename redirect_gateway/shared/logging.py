"""Logging configuration for the redirect gateway."""

import logging
import sys

from opentelemetry import trace


class TraceContextFilter(logging.Filter):
    """Stamps every record with the ids of the span active when it was logged."""

    def filter(self, record: logging.LogRecord) -> bool:
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            record.trace_id = trace.format_trace_id(span_context.trace_id)
            record.span_id = trace.format_span_id(span_context.span_id)
        else:
            record.trace_id = "-"
            record.span_id = "-"
        return True


def setup_logging(level: int | str = logging.INFO) -> None:
    """
    Configure logging for the application.

    Args:
        level: Logging level (default: INFO)
    """
    if isinstance(level, str):
        level = level.upper()

    format_string = (
        "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d"
        " | trace=%(trace_id)s span=%(span_id)s | %(message)s"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.addFilter(TraceContextFilter())

    formatter = logging.Formatter(format_string, datefmt="%Y-%m-%d %H:%M:%S")
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
