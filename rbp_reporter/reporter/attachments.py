"""
Deferred relocation of test attachments.

Some artifacts (videos in particular) are only flushed to disk by the
automation library once the whole run has finished. Relocation therefore runs
in two phases: while tests finish only the intent is recorded, and at run end
every intent is executed and the already written test pages are rewritten so
their placeholder references point at the copied files.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

from markupsafe import escape

from rbp_reporter.core.types import Attachment, PendingAttachments
from rbp_reporter.monitoring.logger import get_logger
from rbp_reporter.reporter.helpers import FileHelper

logger = get_logger(__name__)


@dataclass
class RelocationResult:
    """Files copied for one test, keyed by attachment name in original order.

    Entries are "" where the copy did not happen.
    """

    test_num: int
    folder: Path
    copied: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def copied_files(self) -> List[str]:
        return [name for names in self.copied.values() for name in names if name]


def rewrite_references(content: str, relocations: Mapping[str, List[str]]) -> str:
    """
    Replace ``src``/``href`` placeholders with relocated file names.

    The n-th reference to a logical name gets the n-th relocated file of that
    name; later references reuse the last file. References whose copy failed
    are left untouched.
    """
    for name, files in relocations.items():
        if not any(files):
            continue

        pattern = re.compile(r'(src|href)="' + re.escape(str(escape(name))) + '"')
        occurrence = 0

        def _replace(match: "re.Match[str]") -> str:
            nonlocal occurrence
            index = min(occurrence, len(files) - 1)
            occurrence += 1
            target = files[index]
            if not target:
                return match.group(0)
            return f'{match.group(1)}="{target}"'

        content = pattern.sub(_replace, content)

    return content


class AttachmentRelocator:
    """Records relocation intents and executes them in a single pass."""

    def __init__(self, file_helper: Optional[FileHelper] = None):
        self.file_helper = file_helper or FileHelper()
        self.pending: List[PendingAttachments] = []

    def record(
        self,
        test_num: int,
        folder: Union[str, Path],
        attachments: Iterable[Attachment],
    ) -> PendingAttachments:
        """Remember what to copy for a test. Does not touch the filesystem."""
        intent = PendingAttachments(
            test_num=test_num,
            folder=str(folder),
            attachments=[attachment.model_copy() for attachment in attachments],
        )
        self.pending.append(intent)
        return intent

    def relocate(self, intent: PendingAttachments) -> RelocationResult:
        """Copy the files of one intent into its test folder."""
        result = RelocationResult(test_num=intent.test_num, folder=Path(intent.folder))
        for attachment in intent.attachments:
            copied = ""
            if attachment.path:
                copied = self.file_helper.copy_file_to_results(intent.folder, attachment.path)
            result.copied.setdefault(attachment.name, []).append(copied)
        return result

    def flush(self) -> List[RelocationResult]:
        """Execute and clear every pending intent."""
        results = []
        pending, self.pending = self.pending, []
        for intent in pending:
            try:
                results.append(self.relocate(intent))
            except Exception:
                logger.warning(
                    f"Failed to copy attachments for test {intent.test_num}",
                    exc_info=True,
                )
        return results

    def rewrite_document(self, document: Union[str, Path], relocation: RelocationResult) -> bool:
        """Point the references of an already written page at the copied files.

        Returns True when the document was changed.
        """
        document = Path(document)
        if not relocation.copied_files or not document.exists():
            return False

        original = document.read_text(encoding="utf-8")
        updated = rewrite_references(original, relocation.copied)
        if updated == original:
            return False

        document.write_text(updated, encoding="utf-8")
        return True

    def flush_and_rewrite(self, document_name: str = "index.html") -> List[RelocationResult]:
        """Run both phases: copy all pending files, then fix each test page."""
        results = self.flush()
        for relocation in results:
            try:
                self.rewrite_document(relocation.folder / document_name, relocation)
            except OSError:
                logger.warning(
                    f"Failed to update attachment references for test {relocation.test_num}",
                    exc_info=True,
                )
        return results
