"""
Run aggregation shared by every reporter variant.

The aggregator consumes the runner events (run begin, test end, run end),
turns every finished test into a ``TestResultRecord``, keeps the running
summary and renders the report pages. A reporting failure never propagates
to the test runner: every handler logs and swallows its own exceptions.
"""

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from rbp_reporter.config.settings import Settings, get_settings
from rbp_reporter.core.types import (
    AnnotationType,
    Attachment,
    AttachmentRef,
    ReporterState,
    RunConfig,
    RunResult,
    RunSummary,
    TestCaseInfo,
    TestResultInfo,
    TestResultRecord,
    TestStatus,
)
from rbp_reporter.error_handling import EventError, ReporterError
from rbp_reporter.monitoring.logger import get_logger, log_test_event
from rbp_reporter.reporter.attachments import AttachmentRelocator, RelocationResult
from rbp_reporter.reporter.environment import collect_environment
from rbp_reporter.reporter.helpers import FileHelper, ansi_to_html, format_duration, status_icon
from rbp_reporter.reporter.prompt_generator import PromptGenerator
from rbp_reporter.reporter.renderer import ReportRenderer
from rbp_reporter.reporter.state import PROCESS_RUN_ID, ReporterStateStore
from rbp_reporter.tags.utils import get_tag_warnings, process_tags

TEST_DOCUMENT = "index.html"

NO_STEPS = "No steps"
NO_PRE_CONDITIONS = "No pre conditions"
NO_POST_CONDITIONS = "No post conditions"
NO_DESCRIPTION = "No Description"
NO_BROWSER = "No browser"
NO_ERRORS = "No errors"

# Annotation types that are not rendered as steps
NON_STEP_ANNOTATIONS = frozenset({
    AnnotationType.PRECONDITION.value,
    AnnotationType.POSTCONDITION.value,
    AnnotationType.DESCRIPTION.value,
    AnnotationType.A11Y.value,
})


class AggregatorState(str, Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    FINALIZED = "finalized"


@dataclass
class ReporterOptions:
    """What distinguishes one reporter variant from another."""

    name: str
    report_root: Path
    summary_name: str = "index.html"
    title: str = "RBP Test Report"
    defer_attachments: bool = False
    generate_prompts: bool = False
    state_file: Optional[Path] = None
    run_id: Optional[str] = None
    test_dir: Optional[Path] = None


def grouping_key(file_path: str, test_dir: os.PathLike) -> str:
    """
    Path of a test file relative to the test root, with forward slashes.

    The same source file maps to the same key whatever separator the runner
    used. Files outside the test root keep their relative ``..`` prefix.
    """
    normalized = str(file_path).replace("\\", "/")
    root = str(test_dir).replace("\\", "/")
    try:
        relative = os.path.relpath(normalized, root)
    except ValueError:
        # Different drives on Windows
        relative = normalized
    return relative.replace(os.sep, "/").replace("\\", "/")


def is_flaky(test_case: TestCaseInfo, test_result: TestResultInfo) -> bool:
    """A test is flaky when it needed more than one attempt to pass."""
    return len(test_case.results) > 1 and test_result.status == TestStatus.PASSED


class RunAggregator:
    """Accumulates test records into a run summary and renders the report."""

    def __init__(
        self,
        options: ReporterOptions,
        renderer: Optional[ReportRenderer] = None,
        prompt_generator: Optional[PromptGenerator] = None,
        file_helper: Optional[FileHelper] = None,
        settings: Optional[Settings] = None,
    ):
        self.options = options
        self.settings = settings or get_settings()
        self.renderer = renderer or ReportRenderer()
        self.prompt_generator = prompt_generator or PromptGenerator()
        self.file_helper = file_helper or FileHelper(options.report_root)
        self.relocator = AttachmentRelocator(self.file_helper)
        self.run_id = options.run_id or PROCESS_RUN_ID
        self.store = (
            ReporterStateStore(options.state_file, run_id=self.run_id)
            if options.state_file
            else None
        )

        self.state = AggregatorState.UNINITIALIZED
        self.summary = RunSummary()
        self.next_num = 1
        self.test_dir = Path(options.test_dir or self.settings.test_dir)

        self.logger = get_logger(__name__, reporter=options.name)

    @property
    def report_root(self) -> Path:
        return Path(self.options.report_root)

    @property
    def summary_path(self) -> Path:
        return self.report_root / self.options.summary_name

    def test_folder(self, num: int) -> Path:
        return self.report_root / str(num)

    # ------------------------------------------------------------------ #
    # Event handlers
    # ------------------------------------------------------------------ #
    def on_begin(self, config: Optional[RunConfig] = None) -> None:
        """Start the run: resolve the test root and collect the environment."""
        if self.state is not AggregatorState.UNINITIALIZED:
            self.logger.warning(f"Ignoring run begin while {self.state.value}")
            return

        self.state = AggregatorState.RUNNING
        try:
            config = config or RunConfig()
            if config.root_dir:
                self.test_dir = Path(config.root_dir)

            self.summary.environment = collect_environment(config)
            self._sync_state()

            log_test_event(
                "run_begin",
                self.options.name,
                data={"file_name": str(self.test_dir)},
            )
        except Exception:
            self.logger.error("Failed to handle run begin", exc_info=True)

    def on_test_end(
        self,
        test_case: TestCaseInfo,
        test_result: TestResultInfo,
    ) -> Optional[TestResultRecord]:
        """
        Record a finished test and render its page.

        Returns:
            The record added to the summary, or None when the event was ignored
        """
        if self.state is AggregatorState.FINALIZED:
            self.logger.warning(f"Ignoring result of '{test_case.title}' after run end")
            return None
        if self.state is AggregatorState.UNINITIALIZED:
            self.logger.warning("Test ended before run begin; starting the run implicitly")
            self.on_begin()

        try:
            self._sync_state()
            num = self.next_num
            self.next_num += 1

            try:
                record = self.build_record(test_case, test_result, num)
            except Exception as e:
                error = EventError(
                    f"Failed to build record: {e}",
                    event="test_end",
                    test_title=test_case.title,
                    cause=e,
                )
                self.logger.warning(
                    error.message,
                    exc_info=True,
                    extra={"error_code": error.error_code, "test_num": num},
                )
                record = self._fallback_record(test_case, test_result, num)

            if self.options.generate_prompts and record.status == TestStatus.FAILED.value:
                self._attach_prompts(record)

            self.summary.add_record(record, flaky=is_flaky(test_case, test_result))

            for warning in get_tag_warnings(record.tag_details):
                self.logger.warning(warning, extra={"test_num": num})

            self._render_test(record)

            if self.options.defer_attachments:
                self.relocator.record(
                    num, self.test_folder(num), self._attachments_to_relocate(test_result)
                )

            self._save_state()

            log_test_event(
                "test_end",
                self.options.name,
                test_num=num,
                data={"status": record.status, "file_name": record.file_name},
            )
            return record
        except Exception:
            self.logger.error(
                f"Failed to handle result of '{test_case.title}'", exc_info=True
            )
            return None

    def on_end(self, run_result: RunResult) -> Optional[Path]:
        """
        Finalize the run: relocate deferred attachments and write the summary.

        Returns:
            Path of the summary page, or None when it could not be written
        """
        if self.state is AggregatorState.FINALIZED:
            self.logger.warning("Ignoring duplicate run end")
            return None

        self.state = AggregatorState.FINALIZED
        try:
            self._sync_state()

            if self.options.defer_attachments:
                for relocation in self.relocator.flush_and_rewrite(TEST_DOCUMENT):
                    self._apply_relocation(relocation)

            self.summary.duration = format_duration(run_result.duration)
            self.summary.status = run_result.status
            self.summary.status_icon = status_icon(run_result.status)

            path = self.renderer.render_summary(
                self.summary, self.summary_path, title=self.options.title
            )
            self._save_state(finalized=True)

            log_test_event(
                "run_end",
                self.options.name,
                data={"status": run_result.status, "file_name": str(path)},
            )
            self.logger.info(
                f"Report written to {path} "
                f"({self.summary.total_passed} passed, {self.summary.total_failed} failed, "
                f"{self.summary.total_skipped} skipped, {self.summary.total_flaky} flaky)"
            )
            return path
        except ReporterError as e:
            self.logger.error(
                f"Failed to write the run summary: {e.message}",
                extra={"error_code": e.error_code},
            )
        except Exception:
            self.logger.error("Failed to handle run end", exc_info=True)
        return None

    # ------------------------------------------------------------------ #
    # Record construction
    # ------------------------------------------------------------------ #
    def build_record(
        self,
        test_case: TestCaseInfo,
        test_result: TestResultInfo,
        num: int,
    ) -> TestResultRecord:
        """Normalise one test case and its final attempt into a record."""
        pre_conditions, steps, post_conditions, description = self._split_annotations(test_case)
        tag_details = process_tags(test_case.tags)
        status = test_result.status.value

        attachments, video_path, screenshot_paths = self._report_attachments(
            test_result, self.test_folder(num)
        )

        return TestResultRecord(
            num=num,
            title=test_case.title,
            file_name=grouping_key(test_case.location.file, self.test_dir),
            time_duration=test_result.duration,
            duration=format_duration(test_result.duration),
            description=description,
            status=status,
            status_icon=status_icon(status),
            browser=test_case.project_name or self.settings.project_name or NO_BROWSER,
            tags=[tag.normalized for tag in tag_details],
            tag_details=tag_details,
            pre_conditions=pre_conditions or [NO_PRE_CONDITIONS],
            steps=steps or [NO_STEPS],
            post_conditions=post_conditions or [NO_POST_CONDITIONS],
            attachments=attachments,
            video_path=video_path,
            screenshot_paths=screenshot_paths,
            errors=[ansi_to_html(error.message or NO_ERRORS) for error in test_result.errors],
        )

    @staticmethod
    def _split_annotations(
        test_case: TestCaseInfo,
    ) -> Tuple[List[str], List[str], List[str], str]:
        pre_conditions: List[str] = []
        steps: List[str] = []
        post_conditions: List[str] = []
        description = None

        for annotation in test_case.annotations:
            if annotation.type == AnnotationType.PRECONDITION.value:
                pre_conditions.append(annotation.description or NO_PRE_CONDITIONS)
            elif annotation.type == AnnotationType.POSTCONDITION.value:
                post_conditions.append(annotation.description or NO_POST_CONDITIONS)
            elif annotation.type == AnnotationType.DESCRIPTION.value:
                if description is None:
                    description = annotation.description
            elif annotation.type not in NON_STEP_ANNOTATIONS:
                steps.append(annotation.description or NO_STEPS)

        return pre_conditions, steps, post_conditions, description or NO_DESCRIPTION

    def _report_attachments(
        self,
        test_result: TestResultInfo,
        folder: Path,
    ) -> Tuple[List[AttachmentRef], str, List[str]]:
        """Attachment references of a test page.

        Inline mode copies the files now. Deferred mode references each file by
        its logical name; the copy and the rewrite happen at run end.
        """
        others = [a for a in test_result.attachments if _is_other_attachment(a)]

        if self.options.defer_attachments:
            video = next((a for a in test_result.attachments if a.name == "video"), None)
            return (
                [AttachmentRef(name=a.name, path=a.name) for a in others],
                video.name if video else "",
                [a.name for a in test_result.attachments if a.name == "screenshot"],
            )

        return (
            [
                AttachmentRef(
                    name=a.name,
                    path=self.file_helper.copy_file_to_results(folder, a.path),
                )
                for a in others
            ],
            self.file_helper.copy_video(test_result, folder),
            self.file_helper.copy_screenshots(test_result, folder),
        )

    @staticmethod
    def _attachments_to_relocate(test_result: TestResultInfo) -> List[Attachment]:
        """Attachments in the order their references appear on the test page."""
        screenshots = [a for a in test_result.attachments if a.name == "screenshot"]
        video = next((a for a in test_result.attachments if a.name == "video"), None)
        others = [a for a in test_result.attachments if _is_other_attachment(a)]
        return screenshots + ([video] if video else []) + others

    def _apply_relocation(self, relocation: RelocationResult) -> None:
        """Point the stored record at the files copied for it."""
        record = self.summary.find_record(relocation.test_num)
        if record is None:
            return

        screenshots = [name for name in relocation.copied.get("screenshot", []) if name]
        if screenshots:
            record.screenshot_paths = screenshots

        video = next((name for name in relocation.copied.get("video", []) if name), "")
        if video:
            record.video_path = video

        seen: Dict[str, int] = {}
        for attachment in record.attachments:
            index = seen.get(attachment.name, 0)
            seen[attachment.name] = index + 1
            copied = relocation.copied.get(attachment.name, [])
            if index < len(copied) and copied[index]:
                attachment.path = copied[index]

    def _fallback_record(
        self,
        test_case: TestCaseInfo,
        test_result: TestResultInfo,
        num: int,
    ) -> TestResultRecord:
        """Minimal record for a test whose metadata could not be extracted."""
        status = test_result.status.value
        try:
            file_name = grouping_key(test_case.location.file, self.test_dir)
        except Exception:
            file_name = "unknown"

        return TestResultRecord(
            num=num,
            title=test_case.title,
            file_name=file_name,
            time_duration=test_result.duration,
            duration=format_duration(test_result.duration),
            status=status,
            status_icon=status_icon(status),
            browser=test_case.project_name or NO_BROWSER,
        )

    def _attach_prompts(self, record: TestResultRecord) -> None:
        try:
            record.prompts = self.prompt_generator.generate_bundle(record)
        except Exception:
            self.logger.warning(
                f"Failed to generate prompts for test {record.num}",
                exc_info=True,
                extra={"test_num": record.num},
            )

    def _render_test(self, record: TestResultRecord) -> None:
        try:
            self.renderer.render_test(
                record,
                self.test_folder(record.num) / TEST_DOCUMENT,
                summary_name=self.options.summary_name,
            )
        except ReporterError as e:
            self.logger.warning(
                f"Failed to render test {record.num}: {e.message}",
                extra={"error_code": e.error_code, "test_num": record.num},
            )

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #
    def snapshot(self) -> ReporterState:
        """Current in-memory state in its persisted form."""
        return ReporterState(
            run_id=self.run_id,
            summary=self.summary,
            pending_attachments=list(self.relocator.pending),
            next_num=self.next_num,
        )

    def restore(self, state: ReporterState) -> None:
        self.summary = state.summary
        self.relocator.pending = list(state.pending_attachments)
        self.next_num = state.next_num

    def _sync_state(self) -> None:
        """Merge in whatever other instances of this run persisted."""
        if self.store is None:
            return
        loaded = self.store.load()
        if loaded is not None:
            self.restore(self.store.merge(self.snapshot(), loaded))

    def _save_state(self, finalized: bool = False) -> None:
        if self.store is None:
            return
        state = self.snapshot()
        state.finalized = finalized
        try:
            self.store.save(state)
        except ReporterError as e:
            self.logger.warning(
                f"Failed to persist reporter state: {e.message}",
                extra={"error_code": e.error_code},
            )


def _is_other_attachment(attachment: Attachment) -> bool:
    return (
        attachment.name not in ("screenshot", "video")
        and "allure" not in attachment.name.lower()
    )
