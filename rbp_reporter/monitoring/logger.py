"""
Logging for the RBP reporters.

Text output goes through rich, json output is one object per line. Reporter
context (variant name, test number, event type) travels as record extras so
both formats can show it.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

from rbp_reporter.config.settings import get_settings

EVENT_LOGGER = "rbp_reporter.test_events"
TEXT_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """Render records as single-line JSON objects."""

    EXTRA_FIELDS = ("reporter", "test_num", "event_type", "file_name", "status")

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        payload.update(
            (name, getattr(record, name))
            for name in self.EXTRA_FIELDS
            if hasattr(record, name)
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class ReporterLogAdapter(logging.LoggerAdapter):
    """Logger adapter that merges fixed reporter context into every record."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple[str, Dict[str, Any]]:
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs


def _build_handler(target: Optional[str], format_type: str, level: int) -> logging.Handler:
    """Console handler when target is None, file handler otherwise."""
    if target is None:
        if format_type == "json":
            handler: logging.Handler = logging.StreamHandler(sys.stdout)
        else:
            handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)
    else:
        handler = logging.FileHandler(target, encoding="utf-8")
        if format_type != "json":
            handler.setFormatter(logging.Formatter(TEXT_FILE_FORMAT))

    if format_type == "json":
        handler.setFormatter(JSONFormatter())
    handler.setLevel(level)
    return handler


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the root logger, replacing any handlers it already has.

    Arguments left as None fall back to the ``RBP_LOG_*`` settings.

    Returns:
        The root logger
    """
    settings = get_settings()
    level_name = (log_level or settings.log_level).upper()
    format_type = log_format or settings.log_format
    file_path = log_file or settings.log_file
    level = getattr(logging, level_name)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    root.addHandler(_build_handler(None, format_type, level))
    if file_path:
        root.addHandler(_build_handler(str(file_path), format_type, level))
    root.setLevel(level)

    logging.getLogger("rbp_reporter").debug(
        "Logging configured: level=%s format=%s file=%s", level_name, format_type, file_path
    )
    return root


def get_logger(name: str, **context: Any) -> logging.Logger:
    """Return the named logger, wrapped in a ReporterLogAdapter when context is given."""
    logger = logging.getLogger(name)
    return ReporterLogAdapter(logger, context) if context else logger


def log_test_event(
    event_type: str,
    reporter: str,
    test_num: Optional[int] = None,
    data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Emit a structured reporter lifecycle event at DEBUG level.

    Args:
        event_type: run_begin, test_end, run_end, ...
        reporter: Reporter variant name
        test_num: Sequence number of the test, if the event concerns one
        data: Extra fields copied onto the record
    """
    extra: Dict[str, Any] = dict(data or {})
    extra.update(event_type=event_type, reporter=reporter)
    if test_num is not None:
        extra["test_num"] = test_num

    logging.getLogger(EVENT_LOGGER).debug(f"Reporter event: {event_type}", extra=extra)
