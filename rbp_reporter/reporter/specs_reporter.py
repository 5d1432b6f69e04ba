"""
Specs report: the steps report plus debugging prompts for failed tests.

Attachments are relocated after the run, once the automation library has
flushed them to disk. With ``persist_state`` enabled the summary survives the
reporter being instantiated more than once during a run.
"""

from pathlib import Path
from typing import Optional, Union

from rbp_reporter.config.settings import Settings, get_settings
from rbp_reporter.reporter.aggregator import ReporterOptions, RunAggregator
from rbp_reporter.reporter.helpers import FileHelper


class SpecsReporter(RunAggregator):
    """Deferred attachment relocation, prompts for failures, ``index.html`` summary."""

    name = "specs"

    def __init__(
        self,
        report_root: Optional[Union[str, Path]] = None,
        state_file: Optional[Union[str, Path]] = None,
        settings: Optional[Settings] = None,
        **kwargs,
    ):
        settings = settings or get_settings()
        root = Path(report_root or settings.report_dir_for("specs"))

        if state_file is None and settings.persist_state:
            state_file = settings.state_file

        options = ReporterOptions(
            name=self.name,
            report_root=root,
            summary_name="index.html",
            title="RBP Specs Report",
            defer_attachments=True,
            generate_prompts=True,
            state_file=Path(state_file) if state_file else None,
            run_id=settings.run_id,
        )
        kwargs.setdefault("file_helper", FileHelper(root))
        super().__init__(options, settings=settings, **kwargs)
