"""diffreview - LLM-assisted code review for git changes."""

__version__ = "0.1.0"
