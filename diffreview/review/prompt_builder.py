"""Turn a change set into a bounded review request.

Each file becomes one canonical text block. When the blocks do not fit in
the character budget, the builder keeps the longest prefix of whole files
that fits together with an omission marker naming every file left out.
"""

from typing import List, Sequence

from diffreview.review.errors import EmptyChangeSetError, PayloadTooLargeAfterTruncation
from diffreview.review.models import FileChange, LineMarker, ReviewRequest
from diffreview.review.prompts import BINARY_NOTE, OMISSION_HEADER, USER_PREAMBLE
from diffreview.utils.logging import get_logger

logger = get_logger("review.prompt_builder")


def render_file_change(change: FileChange) -> str:
    """Render one file as a header line plus unified-diff-style hunks."""
    lines = [f"### {change.path} ({change.status_label})\n"]

    if change.is_binary:
        lines.append(BINARY_NOTE)
    elif change.hunks:
        lines.append("```diff\n")
        for hunk in change.hunks:
            lines.append(hunk.header + "\n")
            for line in hunk.lines:
                if line.marker == LineMarker.CONTEXT:
                    lines.append(line.text + "\n")
                else:
                    lines.append(line.marker.value + line.text + "\n")
        lines.append("```\n")
    else:
        lines.append("No content changes.\n")

    lines.append("\n")
    return "".join(lines)


def render_omission_marker(paths: Sequence[str]) -> str:
    """Marker listing omitted files; empty when nothing is omitted."""
    if not paths:
        return ""
    noun = "file" if len(paths) == 1 else "files"
    parts = [OMISSION_HEADER.format(count=len(paths), noun=noun)]
    parts.extend(f"- {path}\n" for path in paths)
    return "".join(parts)


class PromptBuilder:
    """Builds ReviewRequest objects under a character budget."""

    def __init__(self, max_payload_chars: int, max_output_tokens: int = 4096):
        if max_payload_chars <= 0:
            raise ValueError("max_payload_chars must be positive")
        self.max_payload_chars = max_payload_chars
        self.max_output_tokens = max_output_tokens

    def build(
        self,
        system_prompt: str,
        label: str,
        changes: Sequence[FileChange],
    ) -> ReviewRequest:
        """Build a request for ``changes``.

        Raises:
            EmptyChangeSetError: If ``changes`` is empty.
            PayloadTooLargeAfterTruncation: If no file fits in the budget.
        """
        changes = tuple(changes)
        if not changes:
            raise EmptyChangeSetError()

        preamble = USER_PREAMBLE.format(label=label)
        blocks = [render_file_change(c) for c in changes]
        keep = self._files_that_fit(preamble, blocks, [c.path for c in changes])

        omitted = tuple(c.path for c in changes[keep:])
        user_message = preamble + "".join(blocks[:keep])
        if omitted:
            user_message += render_omission_marker(omitted)
            logger.warning(
                f"Payload over budget ({self.max_payload_chars} chars): "
                f"omitted {len(omitted)} of {len(changes)} files"
            )

        logger.debug(f"Built review request: {len(user_message)} chars, {keep} files")
        return ReviewRequest(
            system_prompt=system_prompt,
            label=label,
            changes=changes,
            max_output_tokens=self.max_output_tokens,
            user_message=user_message,
            omitted_paths=omitted,
            budget_chars=self.max_payload_chars,
        )

    def _files_that_fit(self, preamble: str, blocks: List[str], paths: List[str]) -> int:
        """Largest k such that preamble + blocks[:k] + marker(paths[k:]) fits."""
        n = len(blocks)

        # marker_len[k] = length of the marker naming paths[k:]
        marker_len = [0] * (n + 1)
        for k in range(n - 1, -1, -1):
            marker_len[k] = len(render_omission_marker(paths[k:]))

        best = None
        used = len(preamble)
        for k in range(n + 1):
            if k > 0:
                used += len(blocks[k - 1])
            if used + marker_len[k] <= self.max_payload_chars:
                best = k

        if not best:
            smallest = len(preamble) + len(blocks[0]) + marker_len[1]
            raise PayloadTooLargeAfterTruncation(self.max_payload_chars, smallest)
        return best
