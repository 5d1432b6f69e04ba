"""
RBP reporter command line.

Inspect tags and work with the state file a specs report leaves behind.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from rbp_reporter import __version__
from rbp_reporter.core.types import ReporterState
from rbp_reporter.error_handling import ReporterError
from rbp_reporter.monitoring.logger import get_logger, setup_logging
from rbp_reporter.reporter.prompt_generator import PromptGenerator
from rbp_reporter.reporter.renderer import ReportRenderer
from rbp_reporter.reporter.state import ReporterStateStore
from rbp_reporter.tags import (
    TAG_CATEGORIES,
    get_all_tags,
    group_tags_by_category,
    is_tag_in_category,
    process_tags,
    sort_tags_by_category,
)

console = Console()
logger = get_logger("rbp_reporter.main")

PROMPT_KINDS = ("full", "quick", "debug")


def create_parser() -> argparse.ArgumentParser:
    """Create command line argument parser."""
    parser = argparse.ArgumentParser(
        prog="rbp-report",
        description=f"RBP test reporter tools v{__version__}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Classify and validate tags
  rbp-report tags @smoke @critical booking

  # List the known tags of one category
  rbp-report tags --list --category priority

  # Print the quick prompt of test 3
  rbp-report prompt .rbp-reporter-state.json 3 --kind quick

  # Re-render the summary page from a state file
  rbp-report summary .rbp-reporter-state.json -o specs-report/index.html
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    tags_parser = subparsers.add_parser("tags", help="Normalise, validate and classify tags")
    tags_parser.add_argument("tags", nargs="*", help="Raw tags, optionally @-prefixed")
    tags_parser.add_argument(
        "--list",
        action="store_true",
        help="List the known tags instead of classifying input",
    )
    tags_parser.add_argument(
        "--category",
        choices=list(TAG_CATEGORIES),
        help="Restrict --list to one category",
    )

    prompt_parser = subparsers.add_parser("prompt", help="Print the prompt of a failed test")
    prompt_parser.add_argument("state_file", type=Path, help="Reporter state file")
    prompt_parser.add_argument("num", type=int, help="Sequence number of the test")
    prompt_parser.add_argument(
        "--kind",
        choices=PROMPT_KINDS,
        default="full",
        help="Prompt to print (default: full)",
    )

    summary_parser = subparsers.add_parser("summary", help="Re-render the summary page")
    summary_parser.add_argument("state_file", type=Path, help="Reporter state file")
    summary_parser.add_argument(
        "-o", "--output",
        type=Path,
        default=Path("specs-report") / "index.html",
        help="Output file (default: specs-report/index.html)",
    )
    summary_parser.add_argument(
        "--title",
        default="RBP Specs Report",
        help="Page title",
    )

    return parser


def show_tags(raw_tags: List[str]) -> int:
    """Print a table of processed tags. Returns 1 if any tag is invalid."""
    processed = process_tags(raw_tags)

    table = Table(title="Tags")
    table.add_column("Original")
    table.add_column("Normalized", style="cyan")
    table.add_column("Category")
    table.add_column("Icon")
    table.add_column("Valid")

    for tag in sort_tags_by_category(processed):
        valid = "[green]yes[/green]" if tag.valid else f"[red]no[/red] ({escape(tag.error or '')})"
        table.add_row(
            escape(tag.original),
            escape(tag.normalized),
            f"[{tag.color}]{tag.category or 'uncategorized'}[/{tag.color}]",
            tag.icon,
            valid,
        )

    console.print(table)

    grouped = group_tags_by_category(processed)
    counts = ", ".join(f"{category}: {len(tags)}" for category, tags in grouped.items() if tags)
    if counts:
        console.print(f"[dim]{counts}[/dim]")

    return 0 if all(tag.valid for tag in processed) else 1


def list_tags(category: Optional[str] = None) -> int:
    table = Table(title="Known tags")
    table.add_column("Category")
    table.add_column("Tag", style="cyan")

    for tag in get_all_tags():
        for name in TAG_CATEGORIES:
            if category and name != category:
                continue
            if is_tag_in_category(tag, name):
                table.add_row(name, tag)

    console.print(table)
    return 0


def load_state(state_file: Path) -> Optional[ReporterState]:
    """Read a state file, printing an error when it is missing or corrupt."""
    try:
        state = ReporterStateStore(state_file).read()
    except ReporterError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        return None

    if state is None:
        console.print(f"[red]Error: State file not found: {escape(str(state_file))}[/red]")
    return state


def show_prompt(state_file: Path, num: int, kind: str = "full") -> int:
    """Print a stored prompt, generating it when the record has none."""
    state = load_state(state_file)
    if state is None:
        return 1

    record = state.summary.find_record(num)
    if record is None:
        console.print(f"[red]Error: No test #{num} in {escape(str(state_file))}[/red]")
        return 1

    prompts = record.prompts or PromptGenerator().generate_bundle(record)
    # Plain output so the prompt can be piped
    console.print(getattr(prompts, kind), markup=False, highlight=False, soft_wrap=True)
    return 0


def render_summary(state_file: Path, output: Path, title: str) -> int:
    state = load_state(state_file)
    if state is None:
        return 1

    try:
        path = ReportRenderer().render_summary(state.summary, output, title=title)
    except ReporterError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        return 1

    console.print(f"[green]Summary saved to:[/green] {path}")
    return 0


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point of the ``rbp-report`` command.

    Args:
        args: Command line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    setup_logging(log_level="DEBUG" if parsed.debug else None)

    try:
        if parsed.command == "tags":
            if parsed.list:
                return list_tags(parsed.category)
            if not parsed.tags:
                parser.error("tags: give at least one tag or --list")
            return show_tags(parsed.tags)
        if parsed.command == "prompt":
            return show_prompt(parsed.state_file, parsed.num, parsed.kind)
        if parsed.command == "summary":
            return render_summary(parsed.state_file, parsed.output, parsed.title)
    except Exception as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]Fatal error: {escape(str(e))}[/red]")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
