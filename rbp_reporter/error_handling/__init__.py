"""
Error types for the RBP reporters.
"""

from .exceptions import (
    AttachmentError,
    EventError,
    RenderError,
    ReporterError,
    StateFileError,
)

__all__ = [
    "ReporterError",
    "AttachmentError",
    "RenderError",
    "StateFileError",
    "EventError",
]
