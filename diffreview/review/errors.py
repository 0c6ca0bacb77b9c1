"""Error taxonomy for the review pipeline.

Every stage raises a typed failure rather than returning a partial result.
The CLI surfaces the message of any ``DiffReviewError`` verbatim.
"""

from typing import Iterable, Optional


class DiffReviewError(Exception):
    """Base exception for all diffreview failures."""
    pass


class ConfigError(DiffReviewError):
    """Invalid or unreadable configuration."""
    pass


# --- Change resolution ---


class ResolveError(DiffReviewError):
    """Failed to determine the set of changes to review."""
    pass


class InvalidReviewModeError(ResolveError):
    """Conflicting or incomplete review mode selection."""
    pass


class NotAGitRepositoryError(ResolveError):
    """The project path is not inside a git work tree."""
    pass


class GitCommandError(ResolveError):
    """A git query failed unexpectedly."""

    def __init__(self, args: Iterable[str], stderr: str):
        self.command = "git " + " ".join(args)
        self.stderr = stderr.strip()
        super().__init__(f"{self.command} failed: {self.stderr or 'no error output'}")


class NoCommitsError(ResolveError):
    """The repository has no commit history to review."""
    pass


class UnresolvableRefError(ResolveError):
    """A reference does not resolve to a commit."""

    def __init__(self, ref: str):
        self.ref = ref
        super().__init__(f"'{ref}' does not resolve to a commit")


class NoCommonAncestorError(ResolveError):
    """Two references share no history."""

    def __init__(self, base: str, head: str):
        self.base = base
        self.head = head
        super().__init__(f"'{base}' and '{head}' have no common ancestor")


class DiffParseError(ResolveError):
    """git produced a patch that could not be mapped onto file changes."""

    def __init__(self, detail: str):
        super().__init__(f"could not parse git diff output: {detail}")


# --- Prompt building ---


class BuildError(DiffReviewError):
    """Failed to build a review request."""
    pass


class EmptyChangeSetError(BuildError):
    """No changes were handed to the prompt builder."""

    def __init__(self, message: str = "cannot build a review request from an empty change set"):
        super().__init__(message)


class PayloadTooLargeAfterTruncation(BuildError):
    """Not even a single file fits inside the payload budget."""

    def __init__(self, budget_chars: int, smallest_required: Optional[int] = None):
        self.budget_chars = budget_chars
        self.smallest_required = smallest_required
        detail = f" (needs at least {smallest_required})" if smallest_required else ""
        super().__init__(
            f"review payload does not fit in {budget_chars} characters "
            f"even after omitting files{detail}"
        )


# --- Review backend ---


class ClientError(DiffReviewError):
    """Failure talking to the review backend."""
    pass


class AuthError(ClientError):
    """Missing or rejected credentials."""
    pass


class TransientNetworkError(ClientError):
    """Connection or server failure that persisted through every retry."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class RateLimitExceeded(TransientNetworkError):
    """HTTP 429 persisted through every retry."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        super().__init__(message, status_code=429)


class ClientTimeoutError(ClientError):
    """The request deadline expired."""
    pass


class RequestRejectedError(ClientError):
    """Non-transient HTTP error from the backend."""

    def __init__(self, status_code: int, detail: str = ""):
        self.status_code = status_code
        self.detail = detail
        message = f"review backend rejected the request (HTTP {status_code})"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class BadResponseError(ClientError):
    """The backend answered 2xx with a body we cannot interpret."""
    pass


# --- Rendering ---


class RenderError(DiffReviewError):
    """Failed to render the backend response."""
    pass


class MalformedResponseError(RenderError):
    """The response lacks required report structure."""

    def __init__(self, missing_sections: Iterable[str]):
        self.missing_sections = list(missing_sections)
        super().__init__(
            "review response is missing required sections: "
            + ", ".join(self.missing_sections)
        )


# --- Context loading ---


class ContextError(DiffReviewError):
    """Failed to load optional review context."""
    pass


class PathTraversalError(ContextError):
    """A context file resolves outside the project root."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"path traversal detected: {path} is outside project root")
