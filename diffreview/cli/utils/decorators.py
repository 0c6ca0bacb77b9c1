"""Command decorators."""

import functools

import typer

from diffreview.cli.utils.console import print_error, print_warning
from diffreview.review.errors import DiffReviewError
from diffreview.utils.logging import get_logger

logger = get_logger("cli")

EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def handle_errors(func):
    """Turn pipeline failures into a one-line message and exit code.

    DiffReviewError and unexpected exceptions exit 1; Ctrl-C exits 130.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (typer.Exit, typer.Abort):
            raise
        except KeyboardInterrupt:
            print_warning("Interrupted")
            raise typer.Exit(EXIT_INTERRUPTED)
        except DiffReviewError as e:
            logger.debug("Review failed", exc_info=True)
            print_error(str(e))
            raise typer.Exit(EXIT_ERROR)
        except Exception as e:
            logger.debug("Unexpected error", exc_info=True)
            print_error(f"Unexpected error: {e}")
            raise typer.Exit(EXIT_ERROR)

    return wrapper
