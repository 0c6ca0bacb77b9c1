"""Tests for style guide and README loading."""

import pytest

from diffreview.review.context import (
    build_context,
    detect_languages,
    load_readme,
    load_style_guides,
    validate_path_within_root,
)
from diffreview.review.errors import PathTraversalError
from diffreview.review.models import ChangeStatus, FileChange


def _change(path):
    return FileChange(path=path, status=ChangeStatus.MODIFIED)


class TestDetectLanguages:
    def test_distinct_sorted_languages(self):
        changes = [_change("a.py"), _change("b.ts"), _change("c.PY"), _change("Makefile")]
        assert detect_languages(changes) == ["python", "typescript"]


class TestPathValidation:
    def test_inside_root(self, tmp_path):
        target = tmp_path / "docs" / "python.md"
        assert validate_path_within_root(target, tmp_path) == target.resolve()

    def test_outside_root(self, tmp_path):
        with pytest.raises(PathTraversalError):
            validate_path_within_root(tmp_path / ".." / "secret.md", tmp_path)


class TestStyleGuides:
    def test_loads_matching_guides(self, tmp_path):
        styles = tmp_path / "docs" / "styles"
        styles.mkdir(parents=True)
        (styles / "python.md").write_text("Prefer pathlib.")
        (styles / "go.md").write_text("gofmt everything.")

        guides = load_style_guides(styles, tmp_path, ["python", "rust"])

        assert guides == {"python": "Prefer pathlib."}

    def test_guides_are_size_capped(self, tmp_path):
        styles = tmp_path / "styles"
        styles.mkdir()
        (styles / "python.md").write_text("x" * 100)

        guides = load_style_guides(styles, tmp_path, ["python"], max_chars=10)

        assert guides["python"].startswith("x" * 10)
        assert guides["python"].endswith("[... truncated]")

    def test_style_dir_outside_project_is_skipped(self, tmp_path):
        project = tmp_path / "project"
        project.mkdir()
        outside = tmp_path / "elsewhere"
        outside.mkdir()
        (outside / "python.md").write_text("leaked")

        assert load_style_guides(outside, project, ["python"]) == {}

    def test_symlink_escaping_project_is_skipped(self, tmp_path):
        project = tmp_path / "project"
        styles = project / "styles"
        styles.mkdir(parents=True)
        secret = tmp_path / "secret.md"
        secret.write_text("leaked")
        (styles / "python.md").symlink_to(secret)

        assert load_style_guides(styles, project, ["python"]) == {}


class TestReadme:
    def test_loads_readme(self, tmp_path):
        (tmp_path / "README.md").write_text("# Project\n")
        assert load_readme(tmp_path) == "# Project\n"

    def test_missing_readme(self, tmp_path):
        assert load_readme(tmp_path) is None


class TestBuildContext:
    def test_collects_guides_and_readme(self, tmp_path):
        (tmp_path / "README.md").write_text("About.")
        styles = tmp_path / "docs" / "styles"
        styles.mkdir(parents=True)
        (styles / "python.md").write_text("PEP 8.")

        context = build_context([_change("src/app.py")], tmp_path)

        assert context.style_guides == {"python": "PEP 8."}
        assert context.project_readme == "About."
        assert not context.is_empty

    def test_readme_can_be_disabled(self, tmp_path):
        (tmp_path / "README.md").write_text("About.")
        context = build_context([_change("app.py")], tmp_path, include_readme=False)
        assert context.is_empty

    def test_custom_style_dir(self, tmp_path):
        (tmp_path / "guides").mkdir()
        (tmp_path / "guides" / "rust.md").write_text("clippy clean.")
        context = build_context([_change("src/lib.rs")], tmp_path, style_dir="guides")
        assert context.style_guides == {"rust": "clippy clean."}
