"""Resolve a review mode to the exact set of file-level diffs.

Git is queried read-only as a subprocess. Each resolution issues three
diffs over the same range:

- ``--name-status -z`` for status, paths and git's native path order
- ``--numstat -z`` for binary detection and line counts
- the unified patch, parsed with unidiff, for hunks
"""

import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from unidiff import PatchSet
from unidiff.errors import UnidiffParseError

from diffreview.review.errors import (
    DiffParseError,
    GitCommandError,
    NoCommitsError,
    NoCommonAncestorError,
    NotAGitRepositoryError,
    UnresolvableRefError,
)
from diffreview.review.models import (
    BranchDiff,
    ChangeStatus,
    CommitRef,
    DiffHunk,
    DiffLine,
    FileChange,
    LastCommit,
    LineMarker,
    ReviewMode,
    Staged,
)
from diffreview.utils.logging import get_logger

logger = get_logger("review.diff")

# git's well-known empty tree object
EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

_STATUS_MAP = {
    "A": ChangeStatus.ADDED,
    "C": ChangeStatus.ADDED,
    "D": ChangeStatus.DELETED,
    "M": ChangeStatus.MODIFIED,
    "R": ChangeStatus.RENAMED,
    "T": ChangeStatus.MODIFIED,
    "U": ChangeStatus.MODIFIED,
}

_MARKERS = {
    "+": LineMarker.ADDED,
    "-": LineMarker.REMOVED,
    " ": LineMarker.CONTEXT,
    "": LineMarker.CONTEXT,
}

# Options shared by every diff so the three queries agree on paths
_DIFF_OPTIONS = (
    "--no-color",
    "--no-ext-diff",
    "--find-renames",
)

# Escapes git uses in C-quoted path names
_C_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "t": 0x09,
    "n": 0x0A,
    "v": 0x0B,
    "f": 0x0C,
    "r": 0x0D,
    '"': 0x22,
    "\\": 0x5C,
}


def find_git_root(start_path: Path) -> Path:
    """Find the work tree root containing ``start_path``.

    Raises:
        NotAGitRepositoryError: If ``start_path`` is not inside a work tree.
    """
    start_path = Path(start_path)
    if not start_path.is_dir():
        raise NotAGitRepositoryError(f"{start_path} is not a directory")
    try:
        proc = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=start_path,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except FileNotFoundError as e:
        raise NotAGitRepositoryError("git executable not found on PATH") from e
    if proc.returncode != 0:
        raise NotAGitRepositoryError(
            f"{start_path} is not inside a git repository: {proc.stderr.strip()}"
        )
    return Path(proc.stdout.strip())


class DiffExtractor:
    """Resolve review modes against a local git checkout.

    Usage::

        extractor = DiffExtractor(Path("."))
        changes = extractor.resolve(BranchDiff("main", "feature"))
    """

    def __init__(self, repo_path: Path):
        self.repo_path = find_git_root(Path(repo_path).resolve())

    # --- Public API ---

    def resolve(self, mode: ReviewMode) -> List[FileChange]:
        """Return the file changes selected by ``mode``, in git path order.

        Raises:
            NoCommitsError: LastCommit without a parent commit.
            UnresolvableRefError: A reference is not a commit.
            NoCommonAncestorError: BranchDiff over disjoint histories.
        """
        range_args = self._range_args(mode)
        logger.debug(f"Resolving {mode.name} changes with range {' '.join(range_args)}")

        statuses = self._name_status(range_args)
        if not statuses:
            return []

        numstats = self._numstat(range_args)
        hunks = self._hunks(range_args)

        changes = []
        for status_code, path, old_path in statuses:
            status = _STATUS_MAP.get(status_code[0], ChangeStatus.MODIFIED)
            additions, deletions, is_binary = numstats.get(path, (0, 0, False))
            file_hunks = () if is_binary else hunks.get(path, ())
            if not file_hunks and not is_binary and (additions or deletions):
                raise DiffParseError(f"no hunks parsed for {path} ({additions}+ {deletions}-)")
            if status_code[0] == "C":
                # Copies are reviewed as new files
                old_path = None
            changes.append(
                FileChange(
                    path=path,
                    status=status,
                    hunks=file_hunks,
                    old_path=old_path if status == ChangeStatus.RENAMED else None,
                    is_binary=is_binary,
                    additions=additions,
                    deletions=deletions,
                )
            )

        logger.debug(f"Resolved {len(changes)} changed files")
        return changes

    def describe(self, mode: ReviewMode) -> str:
        """Human-readable label for the report title."""
        if isinstance(mode, LastCommit):
            sha = self._verify_commit("HEAD")
            return self._short(sha) if sha else "HEAD"
        if isinstance(mode, CommitRef):
            return mode.ref
        if isinstance(mode, BranchDiff):
            return f"{mode.base}...{mode.head}"
        if isinstance(mode, Staged):
            return "staged changes"
        raise TypeError(f"unknown review mode: {mode!r}")

    # --- Range resolution ---

    def _range_args(self, mode: ReviewMode) -> List[str]:
        if isinstance(mode, LastCommit):
            head = self._verify_commit("HEAD")
            if head is None:
                raise NoCommitsError("repository has no commits")
            parent = self._verify_commit(f"{head}^")
            if parent is None:
                raise NoCommitsError("HEAD has no parent commit to compare against")
            return [parent, head]

        if isinstance(mode, CommitRef):
            sha = self._verify_commit(mode.ref)
            if sha is None:
                raise UnresolvableRefError(mode.ref)
            parent = self._verify_commit(f"{sha}^")
            return [parent or EMPTY_TREE, sha]

        if isinstance(mode, BranchDiff):
            base = self._verify_commit(mode.base)
            if base is None:
                raise UnresolvableRefError(mode.base)
            head = self._verify_commit(mode.head)
            if head is None:
                raise UnresolvableRefError(mode.head)
            merge_base = self._merge_base(base, head)
            if merge_base is None:
                raise NoCommonAncestorError(mode.base, mode.head)
            return [merge_base, head]

        if isinstance(mode, Staged):
            return ["--cached"]

        raise TypeError(f"unknown review mode: {mode!r}")

    def _verify_commit(self, ref: str) -> Optional[str]:
        """Full SHA of ``ref`` if it names a commit, else None."""
        if ref.startswith("-"):
            return None
        proc = self._run(
            "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}",
            check=False,
        )
        if proc.returncode != 0:
            return None
        return proc.stdout.strip() or None

    def _merge_base(self, base: str, head: str) -> Optional[str]:
        proc = self._run("merge-base", base, head, check=False)
        if proc.returncode == 1:
            return None
        if proc.returncode != 0:
            raise GitCommandError(["merge-base", base, head], proc.stderr)
        return proc.stdout.strip() or None

    def _short(self, sha: str) -> str:
        proc = self._run("rev-parse", "--short", sha, check=False)
        return proc.stdout.strip() if proc.returncode == 0 else sha[:7]

    # --- Diff queries ---

    def _name_status(self, range_args: Sequence[str]) -> List[Tuple[str, str, Optional[str]]]:
        """Parse ``--name-status -z`` into (status, path, old_path) tuples."""
        out = self._diff(range_args, "--name-status", "-z").stdout
        tokens = out.split("\0")
        results: List[Tuple[str, str, Optional[str]]] = []
        i = 0
        while i < len(tokens):
            code = tokens[i]
            i += 1
            if not code:
                continue
            if code[0] in ("R", "C"):
                old_path, new_path = tokens[i], tokens[i + 1]
                i += 2
                results.append((code, new_path, old_path))
            else:
                path = tokens[i]
                i += 1
                results.append((code, path, None))
        return results

    def _numstat(self, range_args: Sequence[str]) -> Dict[str, Tuple[int, int, bool]]:
        """Parse ``--numstat -z`` into path -> (additions, deletions, is_binary)."""
        out = self._diff(range_args, "--numstat", "-z").stdout
        tokens = out.split("\0")
        stats: Dict[str, Tuple[int, int, bool]] = {}
        i = 0
        while i < len(tokens):
            head = tokens[i]
            i += 1
            if not head:
                continue
            added, deleted, path = head.split("\t", 2)
            if not path:
                # Rename: old and new paths follow as separate tokens
                path = tokens[i + 1]
                i += 2
            is_binary = added == "-" and deleted == "-"
            stats[path] = (
                0 if is_binary else int(added),
                0 if is_binary else int(deleted),
                is_binary,
            )
        return stats

    def _hunks(self, range_args: Sequence[str]) -> Dict[str, Tuple[DiffHunk, ...]]:
        """Parse the unified patch into path -> hunks."""
        out = self._diff(
            range_args,
            "--unified=3",
            "--src-prefix=a/",
            "--dst-prefix=b/",
        ).stdout
        try:
            patch = PatchSet(out)
        except UnidiffParseError as e:
            raise DiffParseError(str(e)) from e

        hunks_by_path: Dict[str, Tuple[DiffHunk, ...]] = {}
        for patched_file in patch:
            path = _patched_path(patched_file)
            if path is None:
                continue
            hunks_by_path[path] = tuple(_convert_hunk(h) for h in patched_file)
        return hunks_by_path

    def _diff(self, range_args: Sequence[str], *options: str) -> subprocess.CompletedProcess:
        return self._run("diff", *_DIFF_OPTIONS, *options, *range_args, "--")

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        # Captured as bytes; text mode would turn a lone \r into a newline
        proc = subprocess.run(
            ["git", "-c", "core.quotePath=false", *args],
            cwd=self.repo_path,
            capture_output=True,
            check=False,
        )
        proc.stdout = proc.stdout.decode("utf-8", "replace")
        proc.stderr = proc.stderr.decode("utf-8", "replace")
        if check and proc.returncode != 0:
            raise GitCommandError(args, proc.stderr)
        return proc


def _patched_path(patched_file) -> Optional[str]:
    """Post-image path of a unidiff PatchedFile (pre-image for deletions)."""
    target = unquote_git_path(patched_file.target_file or "")
    source = unquote_git_path(patched_file.source_file or "")
    if target.startswith("b/"):
        return target[2:]
    if source.startswith("a/"):
        return source[2:]
    return None


def unquote_git_path(name: str) -> str:
    r"""Undo git's C-style path quoting: ``"b/we\"ird.py"`` becomes ``b/we"ird.py``."""
    if len(name) < 2 or not (name.startswith('"') and name.endswith('"')):
        return name
    body = name[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            if nxt in "01234567":
                digits = body[i + 1:i + 4]
                out.append(int(digits, 8) & 0xFF)
                i += 1 + len(digits)
                continue
            if nxt in _C_ESCAPES:
                out.append(_C_ESCAPES[nxt])
                i += 2
                continue
        out.extend(ch.encode("utf-8"))
        i += 1
    return out.decode("utf-8", "replace")


def _convert_hunk(hunk) -> DiffHunk:
    lines = []
    for line in hunk:
        marker = _MARKERS.get(line.line_type)
        if marker is None:
            # "\ No newline at end of file" and similar annotations
            continue
        text = line.value
        if text.endswith("\n"):
            text = text[:-1]
        lines.append(DiffLine(marker=marker, text=text))
    return DiffHunk(
        old_start=hunk.source_start,
        old_len=hunk.source_length,
        new_start=hunk.target_start,
        new_len=hunk.target_length,
        lines=tuple(lines),
    )
