"""
Formatting and file helpers shared by the reporters.
"""

import html
import math
import shutil
from pathlib import Path
from typing import List, Optional, Union

from rbp_reporter.core.types import STATUS_ICONS, TestResultInfo, TestStatus
from rbp_reporter.error_handling import AttachmentError
from rbp_reporter.monitoring.logger import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]

ANSI_REPLACEMENTS = (
    ("\x1b[31m", '<span style="color: red;">'),
    ("\x1b[32m", '<span style="color: green;">'),
    ("\x1b[33m", '<span style="color: yellow;">'),
    ("\x1b[0m", "</span>"),
    ("\n", "<br>"),
)


def format_duration(duration: float) -> str:
    """
    Format a duration in milliseconds as ``1m 5s 500ms``.

    Leading zero units are omitted. Fractional milliseconds are floored and
    negative durations are formatted from their magnitude with a leading
    minus sign.

    Args:
        duration: Duration in milliseconds

    Returns:
        Human readable duration
    """
    total_ms = math.floor(duration)
    if total_ms < 0:
        return f"-{format_duration(-total_ms)}"

    seconds = total_ms // 1000
    minutes = seconds // 60
    remaining_seconds = seconds % 60
    milliseconds = total_ms % 1000

    if minutes > 0:
        return f"{minutes}m {remaining_seconds}s {milliseconds}ms"
    if remaining_seconds > 0:
        return f"{remaining_seconds}s {milliseconds}ms"
    return f"{milliseconds}ms"


def status_icon(status: Union[str, TestStatus, None]) -> str:
    """Material icon name for a status, empty for unknown statuses."""
    if status is None:
        return ""
    key = status.value if isinstance(status, TestStatus) else str(status)
    return STATUS_ICONS.get(key, "")


def ansi_to_html(text: Optional[str]) -> str:
    """
    Convert the red/green/yellow/reset ANSI codes and newlines to HTML.

    The text is HTML-escaped first. Other escape codes are left untouched.
    """
    if not text:
        return ""

    converted = html.escape(str(text), quote=False)
    for code, replacement in ANSI_REPLACEMENTS:
        converted = converted.replace(code, replacement)
    return converted


class FileHelper:
    """Copies test artifacts next to the test pages of a report."""

    def __init__(self, folder_results: PathLike = "steps-report"):
        self.folder_results = Path(folder_results)

    def copy_file_to_results(self, folder_test: PathLike, source_path: Optional[str]) -> str:
        """
        Copy a file into a test folder, keeping its base name.

        Relocation is best effort: a blank or missing source, or a failed
        copy, gives an empty string instead of an exception.

        Args:
            folder_test: Destination folder (created when missing)
            source_path: File to copy

        Returns:
            Base name of the copied file, or "" when nothing was copied
        """
        if not source_path or not source_path.strip():
            return ""

        source = Path(source_path)
        if not source.is_file():
            logger.debug(f"Attachment source does not exist: {source_path}")
            return ""

        try:
            return self._copy(source, Path(folder_test))
        except AttachmentError as e:
            logger.warning(
                f"Failed to copy file {source_path}: {e.message}",
                extra={"error_code": e.error_code, **e.details},
            )
            return ""

    def _copy(self, source: Path, folder_test: Path) -> str:
        destination = folder_test / source.name
        try:
            folder_test.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, destination)
        except OSError as e:
            raise AttachmentError(
                str(e),
                source_path=str(source),
                destination=str(destination),
                cause=e,
            ) from e
        return source.name

    def copy_video(self, result: TestResultInfo, folder_test: PathLike) -> str:
        """Copy the first ``video`` attachment of a result."""
        for attachment in result.attachments:
            if attachment.name == "video" and attachment.path:
                return self.copy_file_to_results(folder_test, attachment.path)
        return ""

    def copy_screenshots(self, result: TestResultInfo, folder_test: PathLike) -> List[str]:
        """Copy every ``screenshot`` attachment, dropping failed copies."""
        copied = [
            self.copy_file_to_results(folder_test, attachment.path)
            for attachment in result.attachments
            if attachment.name == "screenshot"
        ]
        return [name for name in copied if name]
