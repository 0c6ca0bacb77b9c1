"""Prompts and templates for the review backend."""

from diffreview.review.context import ReviewContext

# ============================================================================
# System prompt
# ============================================================================

SYSTEM_PROMPT = """You are a senior software engineer performing a code review.

You will receive a set of changes as unified diffs, one section per file.
Context lines are unprefixed, added lines start with "+" and removed lines
start with "-". Files listed as omitted were too large to include; mention
that they were not reviewed instead of guessing at their contents.

Focus on, in order of priority:
- Correctness: logic errors, missing edge cases, broken error handling
- Security: injection, unsafe input handling, leaked secrets
- Concurrency and resource handling
- Maintainability: naming, structure, duplication, missing tests
- Consistency with the project conventions provided below

Guidelines:
- Be specific: cite the file path and, where possible, the line
- Prioritise real problems over stylistic nitpicks
- Say so when the change looks good; do not invent issues
- Do not restate the diff

Respond in GitHub-flavoured markdown using exactly this structure:

# Code Review: {label}

## Summary
Two to four sentences on what the change does and its overall quality.

## Key Review Points
A numbered list of the most important findings, most severe first. Prefix
each with a severity tag: [critical], [major], [minor] or [nit].

## Suggestions
Optional concrete improvements, with short code snippets where useful.
"""

STYLE_GUIDE_SECTION = """
## Project style guide ({language})

{content}
"""

README_SECTION = """
## Project README

{content}
"""

# ============================================================================
# User message fragments
# ============================================================================

USER_PREAMBLE = "Please review the following changes ({label}).\n\n"

BINARY_NOTE = "Binary file; contents not shown.\n"

OMISSION_HEADER = "[{count} {noun} omitted, see below]\n"


def build_system_prompt(label: str, context: ReviewContext = None) -> str:
    """Fill the system template and append any project guidance."""
    parts = [SYSTEM_PROMPT.format(label=label)]
    if context is not None:
        for language in sorted(context.style_guides):
            parts.append(
                STYLE_GUIDE_SECTION.format(
                    language=language,
                    content=context.style_guides[language].strip(),
                )
            )
        if context.project_readme:
            parts.append(README_SECTION.format(content=context.project_readme.strip()))
    return "".join(parts)
