"""Code review module for diffreview.

Resolves git changes, builds a bounded review request and renders the
backend's answer as a markdown report.
"""

from diffreview.review.errors import DiffReviewError
from diffreview.review.models import (
    BranchDiff,
    ChangeStatus,
    CommitRef,
    FileChange,
    LastCommit,
    ReviewMode,
    ReviewOutcome,
    ReviewRequest,
    ReviewResult,
    Staged,
    select_mode,
)

__all__ = [
    "DiffReviewError",
    "BranchDiff",
    "ChangeStatus",
    "CommitRef",
    "FileChange",
    "LastCommit",
    "ReviewMode",
    "ReviewOutcome",
    "ReviewRequest",
    "ReviewResult",
    "Staged",
    "select_mode",
]
