"""
HTML rendering of test pages and the run summary.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from jinja2 import DictLoader, Environment, StrictUndefined, TemplateError, select_autoescape

from rbp_reporter.core.types import RunSummary, TestResultRecord
from rbp_reporter.error_handling import RenderError
from rbp_reporter.monitoring.logger import get_logger
from rbp_reporter.reporter.templates import SUMMARY_TEMPLATE, TEST_TEMPLATE
from rbp_reporter.tags.utils import get_tag_stats, sort_tags_by_category, tag_badge_css

logger = get_logger(__name__)

TEST_TEMPLATE_NAME = "test.html"
SUMMARY_TEMPLATE_NAME = "summary.html"


def create_environment() -> Environment:
    """Jinja2 environment holding the report templates.

    Undefined variables raise, so a page is never written with an unresolved
    placeholder.
    """
    env = Environment(
        loader=DictLoader({
            TEST_TEMPLATE_NAME: TEST_TEMPLATE,
            SUMMARY_TEMPLATE_NAME: SUMMARY_TEMPLATE,
        }),
        autoescape=select_autoescape(default=True, default_for_string=True),
        undefined=StrictUndefined,
    )
    env.filters["sort_tags"] = sort_tags_by_category
    env.filters["badge_css"] = tag_badge_css
    return env


class ReportRenderer:
    """Render report documents and write them to disk."""

    def __init__(self, environment: Optional[Environment] = None):
        self.environment = environment or create_environment()

    def render(self, template_name: str, **context: Any) -> str:
        """
        Render a template to a string.

        Raises:
            RenderError: if the template fails or references missing data
        """
        try:
            template = self.environment.get_template(template_name)
            return template.render(**context)
        except TemplateError as e:
            raise RenderError(
                f"Failed to render {template_name}: {e}",
                template_name=template_name,
                cause=e,
            ) from e

    def write(self, template_name: str, output_path: Union[str, Path], **context: Any) -> Path:
        """Render a template and write it, creating the parent folder first."""
        content = self.render(template_name, **context)
        output_path = Path(output_path)
        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise RenderError(
                f"Failed to write {output_path}: {e}",
                template_name=template_name,
                output_path=str(output_path),
                cause=e,
            ) from e

        logger.debug(f"Rendered {template_name} to {output_path}")
        return output_path

    def render_test(
        self,
        record: TestResultRecord,
        output_path: Union[str, Path],
        summary_name: str = "index.html",
    ) -> Path:
        """Write the page of a single test."""
        return self.write(
            TEST_TEMPLATE_NAME, output_path, record=record, summary_name=summary_name
        )

    def render_summary(
        self,
        summary: RunSummary,
        output_path: Union[str, Path],
        title: str = "RBP Test Report",
    ) -> Path:
        """Write the aggregate page of a run."""
        all_tags = [
            tag for record in summary.all_records() for tag in record.tag_details
        ]
        return self.write(
            SUMMARY_TEMPLATE_NAME,
            output_path,
            summary=summary,
            title=title,
            tag_stats=get_tag_stats(all_tags),
            generated_at=datetime.now(timezone.utc).isoformat(),
        )
