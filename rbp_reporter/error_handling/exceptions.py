"""
Exception hierarchy for the RBP reporters.

None of these errors ever reach the test runner: they are raised where a
reporting step fails and caught at the handler boundary, where the failure is
logged and a safe default is used instead.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class ReporterError(Exception):
    """Base exception for all reporter errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None
        }


class AttachmentError(ReporterError):
    """Error raised when an attachment cannot be relocated."""

    def __init__(
        self,
        message: str,
        source_path: str,
        destination: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.source_path = source_path
        self.destination = destination
        self.details.update({
            "source_path": source_path,
            "destination": destination
        })


class RenderError(ReporterError):
    """Error raised when a report document cannot be rendered or written."""

    def __init__(
        self,
        message: str,
        template_name: str,
        output_path: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.template_name = template_name
        self.output_path = output_path
        self.details.update({
            "template_name": template_name,
            "output_path": output_path
        })


class StateFileError(ReporterError):
    """Error raised when the shared state file cannot be read or written."""

    def __init__(
        self,
        message: str,
        state_file: str,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.state_file = state_file
        self.details.update({"state_file": state_file})


class EventError(ReporterError):
    """Error raised when a runner event cannot be converted into a record."""

    def __init__(
        self,
        message: str,
        event: str,
        test_title: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.event = event
        self.test_title = test_title
        self.details.update({
            "event": event,
            "test_title": test_title
        })
