"""Select which changed files are sent for review.

Supports:
- include globs from configuration (empty list = include everything)
- exclude globs from configuration
- `.reviewignore` file: project-wide glob patterns, one per line

Format of `.reviewignore`:
    docs/**            - exclude everything under docs/
    *.snap             - exclude matching files anywhere
    # comment          - ignored
    (blank lines)      - ignored
"""

import fnmatch
from pathlib import Path
from typing import Iterable, List, Optional

from diffreview.review.models import FileChange
from diffreview.utils.logging import get_logger

logger = get_logger("review.filter")


def _matches(path: str, pattern: str) -> bool:
    """Glob match against the full path and, for bare patterns, the file name."""
    if pattern.endswith("/"):
        # "docs/" means everything under docs
        pattern += "**"
    if fnmatch.fnmatch(path, pattern):
        return True
    if "/" not in pattern and fnmatch.fnmatch(path.rsplit("/", 1)[-1], pattern):
        return True
    # "dir/**" and "dir/*" also cover nested paths
    if pattern.endswith("/*") or pattern.endswith("/**"):
        prefix = pattern.rsplit("/", 1)[0]
        if "*" not in prefix and (path.startswith(prefix + "/")):
            return True
    return False


class ChangeFilter:
    """Include/exclude filter for file changes."""

    def __init__(
        self,
        include_patterns: Optional[List[str]] = None,
        exclude_patterns: Optional[List[str]] = None,
        ignore_patterns: Optional[List[str]] = None,
    ):
        self.include_patterns: List[str] = list(include_patterns or [])
        self.exclude_patterns: List[str] = list(exclude_patterns or [])
        self.ignore_patterns: List[str] = list(ignore_patterns or [])

    @classmethod
    def load(
        cls,
        project_path: Path,
        include_patterns: Optional[List[str]] = None,
        exclude_patterns: Optional[List[str]] = None,
        ignore_file: str = ".reviewignore",
    ) -> "ChangeFilter":
        """Build a filter, reading the ignore file from the project root."""
        return cls(
            include_patterns,
            exclude_patterns,
            read_ignore_file(Path(project_path) / ignore_file),
        )

    def is_included(self, path: str) -> bool:
        if self.include_patterns and not any(_matches(path, p) for p in self.include_patterns):
            return False
        for pattern in self.exclude_patterns:
            if _matches(path, pattern):
                return False
        for pattern in self.ignore_patterns:
            if _matches(path, pattern):
                return False
        return True

    def apply(self, changes: Iterable[FileChange]) -> List[FileChange]:
        """Keep included changes, preserving order.

        A rename is kept when either side of it is included.
        """
        kept = []
        dropped = []
        for change in changes:
            paths = [change.path] + ([change.old_path] if change.old_path else [])
            if any(self.is_included(p) for p in paths):
                kept.append(change)
            else:
                dropped.append(change.path)

        if dropped:
            logger.info(f"Excluded {len(dropped)} file(s) from review: {', '.join(dropped)}")
        return kept

    @property
    def is_empty(self) -> bool:
        return not (self.include_patterns or self.exclude_patterns or self.ignore_patterns)


def read_ignore_file(ignore_file: Path) -> List[str]:
    """Read glob patterns from an ignore file; a missing file yields none."""
    if not ignore_file.exists():
        return []

    patterns: List[str] = []
    try:
        for line in ignore_file.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            patterns.append(line)
    except OSError as e:
        logger.warning(f"Could not read {ignore_file.name}: {e}")
    return patterns
