"""Optional project guidance for the reviewer.

Style guides live under ``<style_dir>/<language>.md``; the language is
derived from the extensions of the changed files. The project README is
included as background. Both are optional: missing files are skipped, and
files resolving outside the project root are refused.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from diffreview.review.errors import PathTraversalError
from diffreview.review.models import FileChange
from diffreview.utils.logging import get_logger

logger = get_logger("review.context")

EXTENSION_LANGUAGES: Dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".rs": "rust",
    ".go": "go",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".java": "java",
    ".kt": "kotlin",
    ".rb": "ruby",
    ".c": "c",
    ".h": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".cs": "csharp",
    ".swift": "swift",
    ".sh": "shell",
    ".sql": "sql",
}

README_CANDIDATES = ("README.md", "readme.md", "README.rst", "README")


@dataclass(frozen=True)
class ReviewContext:
    """Guidance loaded from the project."""

    style_guides: Dict[str, str] = field(default_factory=dict)  # language -> text
    project_readme: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.style_guides and not self.project_readme


def detect_languages(changes: Iterable[FileChange]) -> List[str]:
    """Sorted distinct languages among the changed files."""
    languages = set()
    for change in changes:
        suffix = Path(change.path).suffix.lower()
        language = EXTENSION_LANGUAGES.get(suffix)
        if language:
            languages.add(language)
    return sorted(languages)


def validate_path_within_root(path: Path, root: Path) -> Path:
    """Resolve ``path`` and make sure it stays inside ``root``.

    Raises:
        PathTraversalError: If the resolved path escapes ``root``.
    """
    resolved = path.resolve()
    root = root.resolve()
    if resolved != root and root not in resolved.parents:
        raise PathTraversalError(str(resolved))
    return resolved


def _read_capped(path: Path, max_chars: int) -> str:
    text = path.read_text(encoding="utf-8", errors="replace")
    if max_chars and len(text) > max_chars:
        text = text[:max_chars].rstrip() + "\n\n[... truncated]"
    return text


def load_style_guides(
    style_dir: Path,
    project_root: Path,
    languages: Iterable[str],
    max_chars: int = 8000,
) -> Dict[str, str]:
    """Load ``<style_dir>/<language>.md`` for each language that has one."""
    guides: Dict[str, str] = {}
    for language in languages:
        path = style_dir / f"{language}.md"
        if not path.is_file():
            continue
        try:
            resolved = validate_path_within_root(path, project_root)
            guides[language] = _read_capped(resolved, max_chars)
        except PathTraversalError as e:
            logger.warning(f"Skipping style guide: {e}")
        except OSError as e:
            logger.warning(f"Could not read style guide {path}: {e}")
    return guides


def load_readme(project_root: Path, max_chars: int = 8000) -> Optional[str]:
    """Load the first README found at the project root."""
    for name in README_CANDIDATES:
        path = project_root / name
        if not path.is_file():
            continue
        try:
            resolved = validate_path_within_root(path, project_root)
            return _read_capped(resolved, max_chars)
        except PathTraversalError as e:
            logger.warning(f"Skipping README: {e}")
            return None
        except OSError as e:
            logger.warning(f"Could not read {name}: {e}")
            return None
    return None


def build_context(
    changes: Iterable[FileChange],
    project_root: Path,
    style_dir: str = "docs/styles",
    include_readme: bool = True,
    max_chars: int = 8000,
) -> ReviewContext:
    """Collect style guides and README for a change set."""
    changes = list(changes)
    project_root = Path(project_root)
    style_path = Path(style_dir)
    if not style_path.is_absolute():
        style_path = project_root / style_path

    guides = load_style_guides(style_path, project_root, detect_languages(changes), max_chars)
    readme = load_readme(project_root, max_chars) if include_readme else None

    logger.debug(
        f"Loaded context: {len(guides)} style guide(s), "
        f"README {'present' if readme else 'absent'}"
    )
    return ReviewContext(style_guides=guides, project_readme=readme)
