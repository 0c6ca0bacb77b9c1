"""Command modules for diffreview CLI."""

from diffreview.cli.commands.review import review
from diffreview.cli.commands.version import version

__all__ = [
    "review",
    "version",
]
