"""
Core module exports.
"""

from rbp_reporter.core.types import (
    STATUS_ICONS,
    Annotation,
    AnnotationType,
    Attachment,
    AttachmentRef,
    EnvironmentInfo,
    NormalizedTag,
    PendingAttachments,
    ProjectConfig,
    PromptBundle,
    ReporterState,
    RunConfig,
    RunResult,
    RunSummary,
    TagMeta,
    TestCaseInfo,
    TestError,
    TestLocation,
    TestResultInfo,
    TestResultRecord,
    TestStatus,
)

__all__ = [
    "STATUS_ICONS",
    "Annotation",
    "AnnotationType",
    "Attachment",
    "AttachmentRef",
    "EnvironmentInfo",
    "NormalizedTag",
    "PendingAttachments",
    "ProjectConfig",
    "PromptBundle",
    "ReporterState",
    "RunConfig",
    "RunResult",
    "RunSummary",
    "TagMeta",
    "TestCaseInfo",
    "TestError",
    "TestLocation",
    "TestResultInfo",
    "TestResultRecord",
    "TestStatus",
]
