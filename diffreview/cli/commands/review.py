"""Review command for diffreview CLI."""

from pathlib import Path
from typing import Optional

import typer

from diffreview.cli.utils.console import get_console, print_info, print_success, print_warning
from diffreview.cli.utils.decorators import handle_errors


@handle_errors
def review(
    project: str = typer.Option(
        ".",
        "--project",
        "-p",
        help="Path inside the git repository to review",
    ),
    # Review modes (mutually exclusive)
    commit: Optional[str] = typer.Option(
        None,
        "--commit",
        "-c",
        help="Review a single commit against its parent",
    ),
    base: Optional[str] = typer.Option(
        None,
        "--base",
        "-b",
        help="Review changes on --head since it diverged from this branch",
    ),
    head: Optional[str] = typer.Option(
        None,
        "--head",
        help="Branch to review with --base (default: HEAD)",
    ),
    staged: bool = typer.Option(
        False,
        "--staged",
        "-s",
        help="Review staged changes",
    ),
    # Output options
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the report to a file instead of stdout",
    ),
    style_dir: Optional[str] = typer.Option(
        None,
        "--style-dir",
        help="Directory of per-language style guides (default: docs/styles)",
    ),
    # Backend options
    model: Optional[str] = typer.Option(
        None,
        "--model",
        "-m",
        help="Model id to review with",
    ),
    max_tokens: Optional[int] = typer.Option(
        None,
        "--max-tokens",
        help="Maximum tokens in the review response",
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Print the request that would be sent instead of sending it",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show progress logs, changed files and stage timings",
    ),
    log_json: bool = typer.Option(
        False,
        "--log-json",
        help="Emit logs as JSON lines on stderr",
    ),
) -> None:
    """Review git changes with an AI model.

    Without a mode flag the last commit is reviewed.

    Examples:
      diffreview review                          # HEAD against its parent
      diffreview review --commit a1b2c3d         # a specific commit
      diffreview review --base main              # HEAD since it left main
      diffreview review --base main --head feat  # feat since it left main
      diffreview review --staged                 # the index against HEAD
      diffreview review --staged --dry-run       # inspect the request only
    """
    from diffreview.review.diff import find_git_root
    from diffreview.review.models import select_mode
    from diffreview.review.output import RichReviewSummary, write_output
    from diffreview.review.pipeline import ReviewPipeline
    from diffreview.utils.config import Config
    from diffreview.utils.logging import setup_logging

    setup_logging("INFO" if verbose else "WARNING", json_format=log_json)
    console = get_console()

    mode = select_mode(commit=commit, base=base, head=head, staged=staged)

    project_path = find_git_root(Path(project).resolve())
    config = Config.load(project_path)

    # Command-line overrides
    if model:
        config.llm.model = model
    if max_tokens is not None:
        config.llm.max_tokens = max_tokens
    if style_dir:
        config.review.style_dir = style_dir

    config.validate(require_api_key=not dry_run)

    if verbose:
        print_info(f"Reviewing {mode.name} in {project_path} with {config.llm.model}")

    pipeline = ReviewPipeline(config, dry_run=dry_run)
    if dry_run or log_json:
        outcome = pipeline.run(mode)
    else:
        with console.status("[dim]Reviewing changes...[/dim]"):
            outcome = pipeline.run(mode)

    output_path = Path(output) if output else None

    if outcome.nothing_to_review:
        print_warning(outcome.report.strip())
        if output_path is not None:
            # Replace any report left over from an earlier run
            write_output(output_path, outcome.report)
        return

    write_output(output_path, outcome.report)
    if output_path is not None:
        print_success(f"Review written to {output_path}")

    RichReviewSummary(console, verbose=verbose).print_outcome(outcome)
