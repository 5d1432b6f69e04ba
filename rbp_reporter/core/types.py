"""
Core data models for the RBP reporters.

Input models mirror the events emitted by the test runner; output models are
the records handed to the report templates and persisted between reporter
instantiations.
"""

from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field


class TestStatus(str, Enum):
    """Terminal status of a single test attempt."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    TIMED_OUT = "timedOut"
    INTERRUPTED = "interrupted"


class AnnotationType(str, Enum):
    """Annotation types understood by the reporters."""

    PRECONDITION = "Pre Condition"
    POSTCONDITION = "Post Condition"
    DESCRIPTION = "Description"
    GO_TO = "Go To"
    STEP = "Step"
    ASSERT = "Assert"
    MOCK = "Mock"
    A11Y = "A11y"


STATUS_ICONS: Mapping[str, str] = MappingProxyType({
    "passed": "check_circle",
    "failed": "cancel",
    "skipped": "skip_next",
    "flaky": "warning",
    "timedOut": "hourglass_empty",
})


# --------------------------------------------------------------------------- #
# Runner events
# --------------------------------------------------------------------------- #
class Annotation(BaseModel):
    """Typed key/description pair attached to a test."""

    type: str
    description: Optional[str] = None


class Attachment(BaseModel):
    """Binary artifact produced by a test attempt."""

    name: str
    path: Optional[str] = Field(None, description="Location on disk, if any")
    content_type: Optional[str] = None


class TestError(BaseModel):
    """Error raised by a test attempt."""

    message: Optional[str] = None


class TestLocation(BaseModel):
    """Source location of a test."""

    file: str
    line: int = 0
    column: int = 0


class TestResultInfo(BaseModel):
    """Outcome of one attempt of a test."""

    status: TestStatus
    duration: float = Field(0, description="Duration in milliseconds")
    errors: List[TestError] = Field(default_factory=list)
    attachments: List[Attachment] = Field(default_factory=list)
    retry: int = 0


class TestCaseInfo(BaseModel):
    """Static description of a test plus every attempt recorded so far."""

    title: str
    tags: List[str] = Field(default_factory=list)
    annotations: List[Annotation] = Field(default_factory=list)
    location: TestLocation
    project_name: Optional[str] = Field(
        None, description="Name of the execution target (browser project)"
    )
    results: List[TestResultInfo] = Field(default_factory=list)


class ProjectConfig(BaseModel):
    """A configured execution target."""

    name: str


class RunConfig(BaseModel):
    """Configuration handed to the reporter when the run begins."""

    root_dir: Optional[str] = None
    projects: List[ProjectConfig] = Field(default_factory=list)
    automation_library: str = "playwright"


class RunResult(BaseModel):
    """Overall outcome of a run."""

    status: str
    duration: float = 0


# --------------------------------------------------------------------------- #
# Report records
# --------------------------------------------------------------------------- #
class TagMeta(BaseModel):
    """Display metadata of a tag category."""

    model_config = ConfigDict(frozen=True)

    category: Optional[str] = None
    color: str
    icon: str


class NormalizedTag(BaseModel):
    """A raw tag after normalisation, validation and classification."""

    original: str
    normalized: str
    category: Optional[str] = None
    color: str
    icon: str
    valid: bool
    error: Optional[str] = None


class PromptBundle(BaseModel):
    """The three diagnostic prompts generated for a failed test."""

    model_config = ConfigDict(frozen=True)

    full: str
    quick: str
    debug: str


class AttachmentRef(BaseModel):
    """Attachment as referenced from a test page."""

    name: str
    path: str = ""


class TestResultRecord(BaseModel):
    """Normalised snapshot of one completed test."""

    num: int = Field(..., ge=1)
    title: str
    file_name: str
    time_duration: float = 0
    duration: str = ""
    description: Optional[str] = "No Description"
    status: str
    status_icon: str = ""
    browser: str = "No browser"
    tags: List[str] = Field(default_factory=list)
    tag_details: List[NormalizedTag] = Field(default_factory=list)
    pre_conditions: List[str] = Field(default_factory=lambda: ["No pre conditions"])
    steps: List[str] = Field(default_factory=lambda: ["No steps"])
    post_conditions: List[str] = Field(default_factory=lambda: ["No post conditions"])
    attachments: List[AttachmentRef] = Field(default_factory=list)
    video_path: str = ""
    screenshot_paths: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    prompts: Optional[PromptBundle] = None


class EnvironmentInfo(BaseModel):
    """Description of the machine and targets a run executed on."""

    os: str = ""
    python_version: str = ""
    automation_version: str = ""
    browsers: List[str] = Field(default_factory=list)
    timestamp: str = ""

    def is_empty(self) -> bool:
        """True when nothing but (possibly) a timestamp was collected."""
        return not (self.os or self.python_version or self.automation_version or self.browsers)

    def merged_with(self, other: Optional["EnvironmentInfo"]) -> "EnvironmentInfo":
        """Merge field by field; values already present here win."""
        if other is None:
            return self.model_copy(deep=True)
        return EnvironmentInfo(
            os=self.os or other.os,
            python_version=self.python_version or other.python_version,
            automation_version=self.automation_version or other.automation_version,
            browsers=list(self.browsers or other.browsers),
            timestamp=self.timestamp or other.timestamp,
        )


class RunSummary(BaseModel):
    """Run-scoped aggregate of all test records plus counters."""

    duration: str = ""
    status: str = ""
    status_icon: str = ""
    total: int = 0
    total_passed: int = 0
    total_failed: int = 0
    total_flaky: int = 0
    total_skipped: int = 0
    grouped_results: Dict[str, List[TestResultRecord]] = Field(default_factory=dict)
    environment: Optional[EnvironmentInfo] = None

    def add_record(self, record: TestResultRecord, flaky: bool = False) -> None:
        """Append a record to its file group and update the counters.

        Timed out and interrupted tests count as failures so that ``total``
        always equals passed + failed + skipped. Flaky is an overlay on passed.
        """
        self.grouped_results.setdefault(record.file_name, []).append(record)

        if record.status == TestStatus.PASSED.value:
            self.total_passed += 1
            if flaky:
                self.total_flaky += 1
        elif record.status == TestStatus.SKIPPED.value:
            self.total_skipped += 1
        else:
            self.total_failed += 1

        self.total += 1

    def find_record(self, num: int) -> Optional[TestResultRecord]:
        """Look up a record by its sequence number."""
        for records in self.grouped_results.values():
            for record in records:
                if record.num == num:
                    return record
        return None

    def all_records(self) -> List[TestResultRecord]:
        """All records ordered by sequence number."""
        records = [r for group in self.grouped_results.values() for r in group]
        return sorted(records, key=lambda r: r.num)


class PendingAttachments(BaseModel):
    """Relocation intent recorded for one test, executed at run end."""

    test_num: int
    folder: str
    attachments: List[Attachment] = Field(default_factory=list)


class ReporterState(BaseModel):
    """Everything a reporter needs to resume in a new instantiation."""

    run_id: Optional[str] = None
    summary: RunSummary = Field(default_factory=RunSummary)
    pending_attachments: List[PendingAttachments] = Field(default_factory=list)
    next_num: int = Field(1, ge=1)
    finalized: bool = False
