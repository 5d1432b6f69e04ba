"""
Prompt generation for failed tests.

Builds three plain-text prompts from a test record: a full context dump, a
short triage prompt and a debugging-focused prompt. The three templates share
helpers but are kept separate because they include different fields.
"""

import html
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from rbp_reporter.core.types import PromptBundle, TestResultRecord

ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")
HTML_SPAN = re.compile(r'<span style="color: [a-z]+;">|</span>')
HTML_BREAK = re.compile(r"<br\s*/?>")
BLANK_LINES = re.compile(r"\n\s*\n")

NO_DESCRIPTION = "No Description"
NO_STEPS = "No steps"
NO_PRE_CONDITIONS = "No pre conditions"
NO_POST_CONDITIONS = "No post conditions"


def _without(values, placeholder: str) -> List[str]:
    """Drop the report placeholder an empty section was filled with."""
    return [value for value in values if value != placeholder]


@dataclass
class PromptData:
    """Fields of a test record as used by the prompt templates."""

    test_title: str
    test_description: Optional[str]
    test_steps: List[str]
    pre_conditions: List[str]
    post_conditions: List[str]
    browser: str
    test_status: str
    duration: str
    error_messages: List[str]
    file: str
    tags: List[str]
    timestamp: str
    screenshots: List[str] = field(default_factory=list)
    videos: List[str] = field(default_factory=list)
    traces: List[str] = field(default_factory=list)
    other: List[str] = field(default_factory=list)

    @property
    def has_attachments(self) -> bool:
        return bool(self.screenshots or self.videos or self.traces or self.other)


def clean_error_message(error: str) -> str:
    """
    Remove ANSI codes and report markup from an error message.

    Runs of blank lines collapse to a single line break and the result is
    trimmed.
    """
    text = HTML_BREAK.sub("\n", error or "")
    text = HTML_SPAN.sub("", text)
    text = html.unescape(text)
    text = ANSI_ESCAPE.sub("", text)
    text = BLANK_LINES.sub("\n", text)
    return text.strip()


def _numbered(items: List[str]) -> List[str]:
    return [f"{index}. {item}" for index, item in enumerate(items, 1)]


class PromptGenerator:
    """Generates AI-friendly prompts from failed test records."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def extract_prompt_data(self, record: TestResultRecord) -> PromptData:
        """Collect the fields the templates need from a record."""
        data = PromptData(
            test_title=record.title,
            test_description=record.description,
            test_steps=_without(record.steps, NO_STEPS),
            pre_conditions=_without(record.pre_conditions, NO_PRE_CONDITIONS),
            post_conditions=_without(record.post_conditions, NO_POST_CONDITIONS),
            browser=record.browser,
            test_status=record.status,
            duration=record.duration,
            error_messages=list(record.errors),
            file=record.file_name,
            tags=list(record.tags),
            timestamp=self._clock().isoformat(),
            screenshots=list(record.screenshot_paths),
            videos=[record.video_path] if record.video_path else [],
        )

        for attachment in record.attachments:
            location = attachment.path or attachment.name
            if "trace" in attachment.name.lower():
                data.traces.append(location)
            else:
                data.other.append(location)

        return data

    def generate_full(self, record: TestResultRecord) -> str:
        """Generate the comprehensive analysis prompt."""
        data = self.extract_prompt_data(record)
        lines: List[str] = []

        lines.append("# Playwright Test Failure Analysis")
        lines.append("")
        lines.append(f"**Test:** {data.test_title}")
        lines.append(f"**Status:** {data.test_status.upper()}")
        lines.append(f"**Browser:** {data.browser}")
        lines.append(f"**Duration:** {data.duration}")
        lines.append(f"**Timestamp:** {data.timestamp}")
        lines.append("")

        if data.test_description and data.test_description != NO_DESCRIPTION:
            lines.append("## Test Description")
            lines.append(data.test_description)
            lines.append("")

        for heading, items in (
            ("## Test Steps", data.test_steps),
            ("## Pre-conditions", data.pre_conditions),
            ("## Post-conditions", data.post_conditions),
        ):
            if items:
                lines.append(heading)
                lines.extend(_numbered(items))
                lines.append("")

        if data.error_messages:
            lines.append("## Error Details")
            for index, error in enumerate(data.error_messages, 1):
                lines.append(f"### Error {index}")
                lines.append("```")
                lines.append(clean_error_message(error))
                lines.append("```")
                lines.append("")

        lines.append("## Test Location")
        lines.append(f"**File:** {data.file}")
        lines.append("")

        if data.tags:
            lines.append("## Tags")
            lines.append(", ".join(data.tags))
            lines.append("")

        lines.append("## Available Attachments")
        if data.has_attachments:
            for heading, items in (
                ("### Screenshots", data.screenshots),
                ("### Videos", data.videos),
                ("### Traces", data.traces),
                ("### Other Attachments", data.other),
            ):
                if items:
                    lines.append(heading)
                    lines.extend(_numbered(items))
                    lines.append("")
        else:
            lines.append("No attachments available.")
            lines.append("")

        lines.append("## AI Analysis Request")
        lines.append("")
        lines.append("Please analyze this test failure and provide:")
        lines.append("")
        lines.append("1. **Root Cause Analysis:** What likely caused this test to fail?")
        lines.append("2. **Potential Fixes:** Specific steps to resolve the issue")
        lines.append("3. **Prevention Strategies:** How to prevent similar failures in the future")
        lines.append("4. **Code Suggestions:** If applicable, provide code examples or modifications")
        lines.append("5. **Additional Context:** Any other insights that might be helpful")
        lines.append("")
        lines.append(
            "Focus on actionable solutions and consider the test steps, error messages, "
            "and available attachments when providing your analysis."
        )

        return "\n".join(lines)

    def generate_quick(self, record: TestResultRecord) -> str:
        """Generate a short prompt for fast triage."""
        data = self.extract_prompt_data(record)
        lines = [
            f"# Quick Test Failure Analysis: {data.test_title}",
            "",
            f"**Status:** {data.test_status} | **Browser:** {data.browser} | **Duration:** {data.duration}",
            "",
        ]

        if data.error_messages:
            lines.extend(["## Error", "```", clean_error_message(data.error_messages[0]), "```", ""])

        lines.append("## Request")
        lines.append("Please provide a quick analysis of this test failure and suggest the most likely fix.")

        return "\n".join(lines)

    def generate_debug(self, record: TestResultRecord) -> str:
        """Generate a prompt focused on debugging assistance."""
        data = self.extract_prompt_data(record)
        lines = [
            f"# Debugging Assistance: {data.test_title}",
            "",
            f"**Test:** {data.test_title}",
            f"**Browser:** {data.browser}",
            f"**File:** {data.file}",
            "",
        ]

        if data.test_steps:
            lines.append("## Test Steps")
            lines.extend(_numbered(data.test_steps))
            lines.append("")

        if data.error_messages:
            lines.extend(["## Error Details", "```", clean_error_message(data.error_messages[0]), "```", ""])

        lines.append("## Debugging Request")
        lines.append("Help me debug this test failure. Focus on:")
        lines.append("- What went wrong and why")
        lines.append("- How to reproduce the issue")
        lines.append("- Specific debugging steps to take")
        lines.append("- What to look for in the screenshots/videos/traces")

        return "\n".join(lines)

    def generate_bundle(self, record: TestResultRecord) -> PromptBundle:
        """Generate all three prompts for a record."""
        return PromptBundle(
            full=self.generate_full(record),
            quick=self.generate_quick(record),
            debug=self.generate_debug(record),
        )
