"""
Configuration module exports.
"""

from rbp_reporter.config.settings import REPORTER_TYPES, Settings, get_settings

__all__ = [
    "REPORTER_TYPES",
    "Settings",
    "get_settings",
]
