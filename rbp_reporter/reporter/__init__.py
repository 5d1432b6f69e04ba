"""
Reporter variants and the components they are built from.
"""

from typing import Optional

from rbp_reporter.config.settings import REPORTER_TYPES, Settings, get_settings

from .aggregator import AggregatorState, ReporterOptions, RunAggregator, grouping_key, is_flaky
from .attachments import AttachmentRelocator, RelocationResult, rewrite_references
from .environment import collect_environment
from .helpers import FileHelper, ansi_to_html, format_duration, status_icon
from .prompt_generator import PromptGenerator, clean_error_message
from .renderer import ReportRenderer
from .specs_reporter import SpecsReporter
from .state import ReporterStateStore
from .step_reporter import StepReporter

REPORTERS = {
    StepReporter.name: StepReporter,
    SpecsReporter.name: SpecsReporter,
}


def create_reporter(
    reporter_type: Optional[str] = None,
    settings: Optional[Settings] = None,
    **kwargs,
) -> RunAggregator:
    """
    Create the reporter variant selected by name or by the ``RBP_REPORTER_TYPE`` setting.

    Raises:
        ValueError: if the reporter type is unknown
    """
    settings = settings or get_settings()
    kind = (reporter_type or settings.reporter_type).strip().lower()
    if kind not in REPORTERS:
        raise ValueError(
            f"Invalid reporter type: {kind}. Allowed values: {list(REPORTER_TYPES)}"
        )
    return REPORTERS[kind](settings=settings, **kwargs)


__all__ = [
    "AggregatorState",
    "AttachmentRelocator",
    "FileHelper",
    "PromptGenerator",
    "REPORTERS",
    "RelocationResult",
    "ReportRenderer",
    "ReporterOptions",
    "ReporterStateStore",
    "RunAggregator",
    "SpecsReporter",
    "StepReporter",
    "ansi_to_html",
    "clean_error_message",
    "collect_environment",
    "create_reporter",
    "format_duration",
    "grouping_key",
    "is_flaky",
    "rewrite_references",
    "status_icon",
]
