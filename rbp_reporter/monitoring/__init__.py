"""
Monitoring module exports.
"""

from rbp_reporter.monitoring.logger import (
    JSONFormatter,
    ReporterLogAdapter,
    get_logger,
    log_test_event,
    setup_logging,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "log_test_event",
    "JSONFormatter",
    "ReporterLogAdapter",
]
