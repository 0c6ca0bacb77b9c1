"""Review data models.

Contains all data structures passed between the review pipeline stages.
Every model is immutable once constructed.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple, Union

from diffreview.review.errors import InvalidReviewModeError


# --- Review modes ---


@dataclass(frozen=True)
class LastCommit:
    """Review HEAD against its parent."""

    @property
    def name(self) -> str:
        return "last-commit"


@dataclass(frozen=True)
class CommitRef:
    """Review a single commit against its parent."""

    ref: str

    def __post_init__(self):
        if not self.ref or not self.ref.strip():
            raise InvalidReviewModeError("commit reference must not be empty")

    @property
    def name(self) -> str:
        return "commit"


@dataclass(frozen=True)
class BranchDiff:
    """Review commits on ``head`` since it diverged from ``base``."""

    base: str
    head: str = "HEAD"

    def __post_init__(self):
        if not self.base or not self.base.strip():
            raise InvalidReviewModeError("base reference must not be empty")
        if not self.head or not self.head.strip():
            raise InvalidReviewModeError("head reference must not be empty")
        if self.base == self.head:
            raise InvalidReviewModeError(
                f"base and head must be different references (both are '{self.base}')"
            )

    @property
    def name(self) -> str:
        return "branch"


@dataclass(frozen=True)
class Staged:
    """Review the index against HEAD."""

    @property
    def name(self) -> str:
        return "staged"


ReviewMode = Union[LastCommit, CommitRef, BranchDiff, Staged]


def select_mode(
    commit: Optional[str] = None,
    base: Optional[str] = None,
    head: Optional[str] = None,
    staged: bool = False,
) -> ReviewMode:
    """Map mutually exclusive CLI flags to exactly one review mode.

    Args:
        commit: Commit reference (``--commit``).
        base: Base branch (``--base``).
        head: Head branch (``--head``), only valid together with ``base``.
        staged: Review staged changes (``--staged``).

    Returns:
        The selected ReviewMode. No flags selects LastCommit.

    Raises:
        InvalidReviewModeError: If flags conflict.
    """
    selected = [
        flag for flag, value in (
            ("--commit", commit),
            ("--base", base),
            ("--staged", staged),
        )
        if value
    ]
    if len(selected) > 1:
        raise InvalidReviewModeError(
            f"{' and '.join(selected)} cannot be combined; choose one review mode"
        )
    if head and not base:
        raise InvalidReviewModeError("--head requires --base")

    if commit:
        return CommitRef(commit)
    if base:
        return BranchDiff(base, head or "HEAD")
    if staged:
        return Staged()
    return LastCommit()


# --- Diff structures ---


class ChangeStatus(str, Enum):
    """File-level change status."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


class LineMarker(str, Enum):
    """Line role inside a hunk."""

    CONTEXT = " "
    ADDED = "+"
    REMOVED = "-"


@dataclass(frozen=True)
class DiffLine:
    """A single line of a hunk."""

    marker: LineMarker
    text: str


@dataclass(frozen=True)
class DiffHunk:
    """A contiguous block of changes within one file."""

    old_start: int
    old_len: int
    new_start: int
    new_len: int
    lines: Tuple[DiffLine, ...] = ()

    @property
    def header(self) -> str:
        return f"@@ -{self.old_start},{self.old_len} +{self.new_start},{self.new_len} @@"


@dataclass(frozen=True)
class FileChange:
    """Represents changes to a single file."""

    path: str
    status: ChangeStatus
    hunks: Tuple[DiffHunk, ...] = ()
    old_path: Optional[str] = None  # renames only
    is_binary: bool = False
    additions: int = 0
    deletions: int = 0

    @property
    def status_label(self) -> str:
        if self.status == ChangeStatus.RENAMED and self.old_path:
            label = f"renamed from {self.old_path}"
        else:
            label = self.status.value
        if self.is_binary:
            label += ", binary"
        return label


# --- Request / result ---


@dataclass(frozen=True)
class ReviewRequest:
    """A fully built request for the review backend."""

    system_prompt: str
    label: str
    changes: Tuple[FileChange, ...]
    max_output_tokens: int
    user_message: str = ""
    omitted_paths: Tuple[str, ...] = ()
    budget_chars: int = 0

    @property
    def included_changes(self) -> Tuple[FileChange, ...]:
        omitted = set(self.omitted_paths)
        return tuple(c for c in self.changes if c.path not in omitted)

    def to_text(self) -> str:
        """Render the complete request for inspection (dry-run)."""
        return (
            f"# Review request: {self.label}\n\n"
            f"max_output_tokens: {self.max_output_tokens}\n\n"
            "## System prompt\n\n"
            f"{self.system_prompt.rstrip()}\n\n"
            "## User message\n\n"
            f"{self.user_message.rstrip()}\n"
        )


@dataclass(frozen=True)
class ReviewResult:
    """Raw backend answer plus usage accounting."""

    raw_markdown: str
    input_tokens: int = 0
    output_tokens: int = 0
    estimated_cost_usd: Optional[Decimal] = None  # None = unknown model
    model: str = ""
    dry_run: bool = False


@dataclass(frozen=True)
class ReviewOutcome:
    """What the pipeline hands back to the CLI."""

    report: str
    label: str = ""
    nothing_to_review: bool = False
    changes: Tuple[FileChange, ...] = ()
    request: Optional[ReviewRequest] = None
    result: Optional[ReviewResult] = None
    stage_timings: dict = field(default_factory=dict)

    @property
    def total_additions(self) -> int:
        return sum(c.additions for c in self.changes)

    @property
    def total_deletions(self) -> int:
        return sum(c.deletions for c in self.changes)
