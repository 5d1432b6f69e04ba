"""
Steps report: one page per test with its steps and conditions.
"""

from pathlib import Path
from typing import Optional, Union

from rbp_reporter.config.settings import Settings, get_settings
from rbp_reporter.reporter.aggregator import ReporterOptions, RunAggregator
from rbp_reporter.reporter.helpers import FileHelper


class StepReporter(RunAggregator):
    """Copies attachments as soon as a test ends and writes ``summary.html``."""

    name = "steps"

    def __init__(
        self,
        report_root: Optional[Union[str, Path]] = None,
        settings: Optional[Settings] = None,
        **kwargs,
    ):
        settings = settings or get_settings()
        root = Path(report_root or settings.report_dir_for("steps"))
        options = ReporterOptions(
            name=self.name,
            report_root=root,
            summary_name="summary.html",
            title="RBP Steps Report",
            defer_attachments=False,
            generate_prompts=False,
        )
        kwargs.setdefault("file_helper", FileHelper(root))
        super().__init__(options, settings=settings, **kwargs)
