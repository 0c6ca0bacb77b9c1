"""Report rendering and terminal summary.

``ResponseRenderer`` turns the backend's markdown into the final report:
required sections are checked, the title is bound to the review label and a
token/cost line is appended. ``RichReviewSummary`` prints the short status
block shown on stderr after a review.
"""

import re
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from diffreview.llm.pricing import format_cost
from diffreview.review.errors import MalformedResponseError
from diffreview.review.models import ChangeStatus, ReviewOutcome, ReviewResult

DEFAULT_REQUIRED_SECTIONS = ("Summary", "Key Review Points")

TITLE_TEMPLATE = "# Code Review: {label}"

METADATA_PREFIX = "---\n*Tokens: "

# "## Summary", "### 1. Summary", "## **Summary**:"
_HEADING_RE = re.compile(r"^\s{0,3}#{1,6}\s+(?:\d+[.)]\s*)?\**(?P<title>.+?)\**\s*:?\s*#*\s*$")
_H1_RE = re.compile(r"^\s{0,3}#(?!#)\s+(?P<title>.*?)\s*#*\s*$")
_PLACEHOLDER_RE = re.compile(r"\{\{?\s*label\s*\}?\}|<label>|\[label\]", re.IGNORECASE)


def _headings(lines: Sequence[str]) -> List[str]:
    titles = []
    in_fence = False
    for line in lines:
        if line.lstrip().startswith("```"):
            in_fence = not in_fence
            continue
        if in_fence:
            continue
        match = _HEADING_RE.match(line)
        if match:
            titles.append(match.group("title").strip().lower())
    return titles


def _strip_metadata(markdown: str) -> str:
    """Drop a metadata footer left by an earlier render."""
    index = markdown.rfind(METADATA_PREFIX)
    if index != -1 and "\n" not in markdown[index + len(METADATA_PREFIX):].rstrip("\n"):
        return markdown[:index].rstrip("\n")
    return markdown.rstrip("\n")


def format_metadata(result: ReviewResult) -> str:
    """``Tokens: 1200 in / 340 out | Estimated cost: $0.009 | Model: ...``"""
    return (
        f"{METADATA_PREFIX}{result.input_tokens} in / {result.output_tokens} out"
        f" | Estimated cost: {format_cost(result.estimated_cost_usd)}"
        f" | Model: {result.model or 'unknown'}*"
    )


class ResponseRenderer:
    """Validate and finalise backend markdown."""

    def __init__(self, required_sections: Optional[Sequence[str]] = None):
        if required_sections is None:
            required_sections = DEFAULT_REQUIRED_SECTIONS
        self.required_sections = tuple(required_sections)

    def render(self, result: ReviewResult, label: str) -> str:
        """Render ``result`` as the final report for ``label``.

        Raises:
            MalformedResponseError: If a required section heading is missing.
        """
        body = _strip_metadata(result.raw_markdown)
        lines = body.split("\n")

        self.validate(lines)
        lines = self._bind_title(lines, label)

        return "\n".join(lines).rstrip("\n") + "\n\n" + format_metadata(result) + "\n"

    def validate(self, lines: Sequence[str]) -> None:
        titles = _headings(lines)
        missing = [
            section for section in self.required_sections
            if not any(t == section.lower() or t.startswith(section.lower() + " ") for t in titles)
        ]
        if missing:
            raise MalformedResponseError(missing)

    def _bind_title(self, lines: List[str], label: str) -> List[str]:
        lines = list(lines)
        title_line = TITLE_TEMPLATE.format(label=label)

        in_fence = False
        for i, line in enumerate(lines):
            if line.lstrip().startswith("```"):
                in_fence = not in_fence
                continue
            if in_fence:
                continue
            match = _H1_RE.match(line)
            if not match:
                continue

            title = match.group("title")
            if label in title:
                return lines
            if _PLACEHOLDER_RE.search(title):
                lines[i] = "# " + _PLACEHOLDER_RE.sub(lambda _: label, title)
            else:
                lines[i] = title_line
            return lines

        # Drop leading blank lines so the title sits at the top
        while lines and not lines[0].strip():
            lines.pop(0)
        return [title_line, ""] + lines


def write_output(path: Optional[Path], content: str) -> None:
    """Write the report to ``path`` (overwriting) or to stdout."""
    if path is None:
        sys.stdout.write(content)
        sys.stdout.flush()
        return
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


_STATUS_STYLES = {
    ChangeStatus.ADDED: ("A", "green"),
    ChangeStatus.MODIFIED: ("M", "yellow"),
    ChangeStatus.DELETED: ("D", "red"),
    ChangeStatus.RENAMED: ("R", "cyan"),
}


class RichReviewSummary:
    """Short terminal summary printed after a review."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False):
        self.console = console or Console(stderr=True)
        self.verbose = verbose

    def print_outcome(self, outcome: ReviewOutcome) -> None:
        self._print_header(outcome)
        if self.verbose:
            self._print_files(outcome)
            self._print_footer(outcome)

    def _print_header(self, outcome: ReviewOutcome) -> None:
        result = outcome.result
        dry_run = result is not None and result.dry_run

        text = Text()
        n_files = len(outcome.changes)
        text.append(f"{n_files} file{'s' if n_files != 1 else ''}")
        text.append(f"  +{outcome.total_additions} -{outcome.total_deletions}")
        if outcome.request is not None and outcome.request.omitted_paths:
            text.append(f"  {len(outcome.request.omitted_paths)} omitted", style="yellow")
        text.append("\n")

        if dry_run:
            text.append("Dry run: request not sent", style="dim")
            border = "blue"
        elif result is not None:
            text.append(f"Tokens: {result.input_tokens} in / {result.output_tokens} out")
            text.append(f"  Cost: {format_cost(result.estimated_cost_usd)}", style="bold")
            border = "green"
        else:
            border = "white"

        self.console.print(
            Panel(text, title=f"[bold]Review: {escape(outcome.label)}[/bold]", border_style=border)
        )

    def _print_files(self, outcome: ReviewOutcome) -> None:
        if not outcome.changes:
            return

        omitted = set(outcome.request.omitted_paths) if outcome.request else set()
        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 1))
        table.add_column("", width=1)
        table.add_column("File")
        table.add_column("Changes", justify="right")

        for change in outcome.changes:
            status_char, style = _STATUS_STYLES.get(change.status, ("?", "white"))
            path = change.path + (" (omitted)" if change.path in omitted else "")
            changes = "binary" if change.is_binary else f"+{change.additions} -{change.deletions}"
            table.add_row(Text(status_char, style=style), Text(path), changes)

        self.console.print(table)

    def _print_footer(self, outcome: ReviewOutcome) -> None:
        if not outcome.stage_timings:
            return
        timing_parts = [
            f"{stage}={ms:.0f}ms" for stage, ms in outcome.stage_timings.items()
        ]
        self.console.print(f"  [dim]{' '.join(timing_parts)}[/dim]")
