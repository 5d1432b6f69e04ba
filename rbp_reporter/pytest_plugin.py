"""
pytest plugin feeding test outcomes to an RBP reporter.

Enable it with ``-p rbp_reporter.pytest_plugin --rbp-report=specs`` (or
``steps``). Tests describe themselves with markers::

    @pytest.mark.description("Guest books a room")
    @pytest.mark.precondition("Room 101 exists")
    @pytest.mark.step("Open the booking page", "Pick two nights")
    @pytest.mark.assert_step("Confirmation is shown")
    @pytest.mark.tag("@smoke", "booking")
    def test_booking(record_property):
        record_property("attachment:trace", "trace.zip")

Attachments are user properties named ``attachment:<name>`` whose value is a
file path; ``screenshot`` and ``video`` get their own sections in the report.
Attempts reported as ``rerun`` (pytest-rerunfailures) count as earlier
attempts of the same test, so a test that passes on a rerun is flaky.
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from rbp_reporter.config.settings import REPORTER_TYPES, get_settings
from rbp_reporter.core.types import (
    Annotation,
    AnnotationType,
    Attachment,
    ProjectConfig,
    RunConfig,
    RunResult,
    TestCaseInfo,
    TestError,
    TestLocation,
    TestResultInfo,
    TestStatus,
)
from rbp_reporter.monitoring.logger import get_logger
from rbp_reporter.reporter import RunAggregator, create_reporter

logger = get_logger(__name__)

PLUGIN_NAME = "rbp-reporter"
ATTACHMENT_PREFIX = "attachment:"

MARKER_ANNOTATIONS = {
    "description": AnnotationType.DESCRIPTION,
    "precondition": AnnotationType.PRECONDITION,
    "postcondition": AnnotationType.POSTCONDITION,
    "goto": AnnotationType.GO_TO,
    "step": AnnotationType.STEP,
    "assert_step": AnnotationType.ASSERT,
    "mock": AnnotationType.MOCK,
    "a11y": AnnotationType.A11Y,
}

MARKERS = (
    "description(text): free-text description shown in the RBP report",
    "precondition(*texts): preconditions of the test",
    "postcondition(*texts): postconditions of the test",
    "goto(*urls): navigation steps",
    "step(*texts): steps of the test",
    "assert_step(*texts): assertion steps",
    "mock(*texts): mocked dependencies",
    "a11y(*texts): accessibility checks, not listed as steps",
    "tag(*tags): tags of the test, optionally @-prefixed",
)

# pytest exit codes that mean the session was cut short
INTERRUPTED_EXIT_CODES = (pytest.ExitCode.INTERRUPTED,)


def pytest_addoption(parser):
    group = parser.getgroup("rbp-reporter", "RBP HTML reports")
    group.addoption(
        "--rbp-report",
        action="store",
        choices=REPORTER_TYPES,
        default=None,
        help="Write an RBP report of the given type (steps or specs)",
    )
    group.addoption(
        "--rbp-report-dir",
        action="store",
        default=None,
        help="Output folder of the RBP report (default depends on the report type)",
    )


def pytest_configure(config):
    for marker in MARKERS:
        config.addinivalue_line("markers", marker)

    kind = config.getoption("rbp_report")
    if not kind:
        return

    # Only the xdist controller writes the report
    if hasattr(config, "workerinput"):
        return

    reporter = create_reporter(kind, report_root=config.getoption("rbp_report_dir"))
    config.pluginmanager.register(RBPReporterPlugin(config, reporter), PLUGIN_NAME)


def pytest_unconfigure(config):
    plugin = config.pluginmanager.get_plugin(PLUGIN_NAME)
    if plugin is not None:
        config.pluginmanager.unregister(plugin, PLUGIN_NAME)


def annotations_from_markers(item) -> List[Annotation]:
    """Annotations in reading order: outer scopes first, decorators top to bottom."""
    annotations = []
    for marker in reversed(list(item.iter_markers())):
        annotation_type = MARKER_ANNOTATIONS.get(marker.name)
        if annotation_type is None:
            continue
        texts = marker.args or (marker.kwargs.get("text"),)
        for text in texts:
            annotations.append(
                Annotation(type=annotation_type.value, description=None if text is None else str(text))
            )
    return annotations


def tags_from_markers(item) -> List[str]:
    tags = []
    for marker in reversed(list(item.iter_markers("tag"))):
        tags.extend(str(tag) for tag in marker.args)
    return tags


def attachments_from_properties(user_properties) -> List[Attachment]:
    attachments = []
    for name, value in user_properties:
        if isinstance(name, str) and name.startswith(ATTACHMENT_PREFIX) and value:
            attachments.append(Attachment(name=name[len(ATTACHMENT_PREFIX):], path=str(value)))
    return attachments


def phase_status(report) -> Optional[TestStatus]:
    """Status a single setup/call/teardown report contributes, None if it passed."""
    if report.failed:
        if "Timeout >" in report.longreprtext:
            return TestStatus.TIMED_OUT
        return TestStatus.FAILED
    if report.skipped:
        return TestStatus.SKIPPED
    return None


@dataclass
class _Attempt:
    """Outcome of one attempt, built up phase by phase."""

    status: TestStatus = TestStatus.PASSED
    duration: float = 0.0
    errors: List[TestError] = field(default_factory=list)

    def update(self, report) -> None:
        self.duration += report.duration * 1000
        status = phase_status(report)
        if status is None:
            return
        if status is TestStatus.SKIPPED:
            if self.status is TestStatus.PASSED:
                self.status = status
            return
        if self.status is not TestStatus.TIMED_OUT:
            self.status = status
        self.errors.append(TestError(message=report.longreprtext))

    def to_result(self, attachments: List[Attachment], retry: int) -> TestResultInfo:
        return TestResultInfo(
            status=self.status,
            duration=self.duration,
            errors=list(self.errors),
            attachments=attachments,
            retry=retry,
        )


class RBPReporterPlugin:
    """Translates pytest reports into reporter events."""

    def __init__(self, config, reporter: RunAggregator):
        self.config = config
        self.reporter = reporter
        self.settings = get_settings()
        self.cases: Dict[str, TestCaseInfo] = {}
        self.attempts: Dict[str, _Attempt] = {}
        self.previous: Dict[str, List[TestResultInfo]] = {}
        self.reran: Dict[str, bool] = {}
        self.report_path: Optional[Path] = None
        self._started = time.perf_counter()

    # ------------------------------------------------------------------ #
    # Run
    # ------------------------------------------------------------------ #
    def browsers(self) -> List[str]:
        browsers = self.config.getoption("browser", default=None) or []
        if isinstance(browsers, str):
            browsers = [browsers]
        if not browsers and self.settings.project_name:
            browsers = [self.settings.project_name]
        return list(browsers)

    def test_root(self) -> Path:
        root = Path(self.config.rootpath) / self.settings.test_dir
        return root if root.is_dir() else Path(self.config.rootpath)

    def pytest_sessionstart(self, session):
        self._started = time.perf_counter()
        self.reporter.on_begin(
            RunConfig(
                root_dir=str(self.test_root()),
                projects=[ProjectConfig(name=name) for name in self.browsers()],
            )
        )

    def pytest_collection_modifyitems(self, session, config, items):
        for item in items:
            self.cases[item.nodeid] = self.case_from_item(item)

    def pytest_sessionfinish(self, session, exitstatus):
        if exitstatus in INTERRUPTED_EXIT_CODES:
            status = "interrupted"
        elif exitstatus == pytest.ExitCode.OK:
            status = "passed"
        else:
            status = "failed"

        duration = (time.perf_counter() - self._started) * 1000
        self.report_path = self.reporter.on_end(RunResult(status=status, duration=duration))

    def pytest_terminal_summary(self, terminalreporter):
        if self.report_path:
            terminalreporter.write_sep("-", f"RBP {self.reporter.options.name} report: {self.report_path}")

    # ------------------------------------------------------------------ #
    # Tests
    # ------------------------------------------------------------------ #
    def project_name(self, item) -> Optional[str]:
        callspec = getattr(item, "callspec", None)
        if callspec is not None and "browser_name" in callspec.params:
            return str(callspec.params["browser_name"])
        browsers = self.browsers()
        return browsers[0] if browsers else None

    def case_from_item(self, item) -> TestCaseInfo:
        _, lineno, _ = item.location
        return TestCaseInfo(
            title=item.name,
            tags=tags_from_markers(item),
            annotations=annotations_from_markers(item),
            location=TestLocation(file=str(item.path), line=(lineno or 0) + 1),
            project_name=self.project_name(item),
        )

    def case_from_report(self, report) -> TestCaseInfo:
        """Test case of a report whose item was never seen (xdist controller)."""
        file_name, lineno, domain = report.location
        return TestCaseInfo(
            title=domain.split(".")[-1],
            location=TestLocation(
                file=str(Path(self.config.rootpath) / file_name),
                line=(lineno or 0) + 1,
            ),
            project_name=self.browsers()[0] if self.browsers() else None,
        )

    def pytest_runtest_logreport(self, report):
        nodeid = report.nodeid
        attempt = self.attempts.setdefault(nodeid, _Attempt())

        if report.outcome == "rerun":
            attempt.duration += report.duration * 1000
            if report.failed or report.longrepr is not None:
                attempt.errors.append(TestError(message=report.longreprtext))
            attempt.status = TestStatus.FAILED
            self.reran[nodeid] = True
            return

        attempt.update(report)

        if report.when != "teardown":
            return

        del self.attempts[nodeid]
        attachments = attachments_from_properties(report.user_properties)
        previous = self.previous.setdefault(nodeid, [])

        if self.reran.pop(nodeid, False):
            previous.append(attempt.to_result(attachments, retry=len(previous)))
            return

        result = attempt.to_result(attachments, retry=len(previous))
        case = self.cases.get(nodeid) or self.case_from_report(report)
        case = case.model_copy(update={"results": previous + [result]})
        self.previous.pop(nodeid, None)

        self.reporter.on_test_end(case, result)
