"""
Shared fixtures and factories for the reporter tests.
"""

from pathlib import Path
from typing import List, Optional

import pytest

from rbp_reporter.config.settings import Settings
from rbp_reporter.core.types import (
    Annotation,
    Attachment,
    TestCaseInfo,
    TestError,
    TestLocation,
    TestResultInfo,
    TestResultRecord,
)

pytest_plugins = ["pytester"]


def make_result(
    status: str = "passed",
    duration: float = 1000,
    errors: Optional[List[str]] = None,
    attachments: Optional[List[Attachment]] = None,
    retry: int = 0,
) -> TestResultInfo:
    return TestResultInfo(
        status=status,
        duration=duration,
        errors=[TestError(message=message) for message in errors or []],
        attachments=attachments or [],
        retry=retry,
    )


def make_case(
    title: str = "Test A",
    file: str = "tests/e2e/booking.spec.py",
    tags: Optional[List[str]] = None,
    annotations: Optional[List[Annotation]] = None,
    project_name: Optional[str] = "chromium",
    results: Optional[List[TestResultInfo]] = None,
) -> TestCaseInfo:
    return TestCaseInfo(
        title=title,
        tags=tags or [],
        annotations=annotations or [],
        location=TestLocation(file=file, line=10, column=5),
        project_name=project_name,
        results=results or [],
    )


def make_record(**overrides) -> TestResultRecord:
    values = dict(
        num=1,
        title="Login works",
        file_name="e2e/login.spec.py",
        time_duration=2000,
        duration="2s 0ms",
        description="User logs in with valid credentials",
        status="failed",
        status_icon="cancel",
        browser="rbp-chromium",
        tags=["smoke", "auth"],
        pre_conditions=["User exists"],
        steps=["Open login page", "Submit credentials"],
        post_conditions=["Session is cleared"],
        errors=["Error: expected dashboard"],
    )
    values.update(overrides)
    return TestResultRecord(**values)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing every output folder into the test's tmp dir."""
    return Settings(
        test_dir=tmp_path / "tests",
        steps_report_dir=tmp_path / "steps-report",
        specs_report_dir=tmp_path / "specs-report",
        state_file=tmp_path / "state.json",
        project_name=None,
        run_id=None,
    )


@pytest.fixture
def write_file(tmp_path: Path):
    """Create a source file to attach, returning its path as a string."""

    def _write(name: str, content: str = "data") -> str:
        path = tmp_path / "artifacts" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        return str(path)

    return _write
