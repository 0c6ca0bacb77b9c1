"""Tests for the review pipeline orchestrator."""

from decimal import Decimal
from unittest.mock import MagicMock

import httpx
import pytest
import respx

from diffreview.review.errors import (
    MalformedResponseError,
    NoCommitsError,
    PayloadTooLargeAfterTruncation,
)
from diffreview.review.models import LastCommit, ReviewResult, Staged
from diffreview.review.pipeline import ReviewPipeline
from diffreview.utils.config import Config, LLMConfig, ReviewConfig

GOOD_REVIEW = (
    "## Summary\n"
    "Small, safe change.\n"
    "\n"
    "## Key Review Points\n"
    "1. [nit] Consider a docstring.\n"
)


def _config(repo, **review_overrides):
    return Config(
        project_path=repo.path,
        llm=LLMConfig(api_key="test-key", model="claude-sonnet-4-20250514"),
        review=ReviewConfig(**review_overrides),
    )


def _fake_client(markdown=GOOD_REVIEW):
    client = MagicMock()
    client.send.return_value = ReviewResult(
        raw_markdown=markdown,
        input_tokens=900,
        output_tokens=120,
        estimated_cost_usd=Decimal("0.0045"),
        model="claude-sonnet-4-20250514",
    )
    return client


# ---------------------------------------------------------------------------
# Nothing to review
# ---------------------------------------------------------------------------


class TestNothingToReview:
    def test_clean_index_never_calls_backend(self, seeded_repo):
        client = _fake_client()

        outcome = ReviewPipeline(_config(seeded_repo), client=client).run(Staged())

        assert outcome.nothing_to_review
        assert "Nothing to review" in outcome.report
        assert outcome.label == "staged changes"
        client.send.assert_not_called()

    def test_everything_filtered_out(self, seeded_repo):
        seeded_repo.write("package-lock.json", "{}\n")
        seeded_repo.git("add", "package-lock.json")
        client = _fake_client()

        outcome = ReviewPipeline(_config(seeded_repo), client=client).run(Staged())

        assert outcome.nothing_to_review
        client.send.assert_not_called()


# ---------------------------------------------------------------------------
# Full runs
# ---------------------------------------------------------------------------


class TestReviewRun:
    def test_renders_report(self, seeded_repo):
        seeded_repo.write("app.py", "def main():\n    return 2\n")
        sha = seeded_repo.commit("bump")
        client = _fake_client()

        outcome = ReviewPipeline(_config(seeded_repo), client=client).run(LastCommit())

        assert not outcome.nothing_to_review
        assert sha.startswith(outcome.label)
        assert outcome.report.startswith(f"# Code Review: {outcome.label}\n")
        assert "Small, safe change." in outcome.report
        assert "900 in / 120 out" in outcome.report
        assert "$0.005" in outcome.report
        assert [c.path for c in outcome.changes] == ["app.py"]
        assert set(outcome.stage_timings) == {
            "resolve", "filter", "context", "build", "send", "render",
        }

        request = client.send.call_args[0][0]
        assert "### app.py (modified)" in request.user_message
        assert "+    return 2" in request.user_message

    def test_context_goes_into_system_prompt(self, seeded_repo):
        seeded_repo.write("README.md", "Widget service.\n")
        seeded_repo.write("docs/styles/python.md", "Use early returns.\n")
        seeded_repo.commit("docs")
        seeded_repo.write("app.py", "def main():\n    return 3\n")
        seeded_repo.git("add", "app.py")
        client = _fake_client()

        ReviewPipeline(_config(seeded_repo), client=client).run(Staged())

        request = client.send.call_args[0][0]
        assert "Widget service." in request.system_prompt
        assert "Use early returns." in request.system_prompt
        assert "Widget service." not in request.user_message

    def test_malformed_response_aborts(self, seeded_repo):
        seeded_repo.write("new.py", "x = 1\n")
        seeded_repo.git("add", "new.py")

        pipeline = ReviewPipeline(_config(seeded_repo), client=_fake_client("LGTM"))

        with pytest.raises(MalformedResponseError):
            pipeline.run(Staged())

    def test_resolve_failure_aborts_before_backend(self, seeded_repo):
        client = _fake_client()

        with pytest.raises(NoCommitsError):
            ReviewPipeline(_config(seeded_repo), client=client).run(LastCommit())

        client.send.assert_not_called()

    def test_budget_too_small(self, seeded_repo):
        seeded_repo.write("new.py", "x = 1\n" * 50)
        seeded_repo.git("add", "new.py")
        client = _fake_client()

        pipeline = ReviewPipeline(_config(seeded_repo, max_payload_chars=80), client=client)

        with pytest.raises(PayloadTooLargeAfterTruncation):
            pipeline.run(Staged())
        client.send.assert_not_called()


class TestDryRun:
    def test_returns_request_text(self, seeded_repo):
        seeded_repo.write("feature.py", "ENABLED = True\n")
        seeded_repo.git("add", "feature.py")
        config = _config(seeded_repo)
        config.llm.api_key = None

        outcome = ReviewPipeline(config, dry_run=True).run(Staged())

        assert outcome.result.dry_run
        assert outcome.report == outcome.request.to_text()
        assert outcome.report.startswith("# Review request: staged changes\n")
        assert "### feature.py (added)" in outcome.report
        assert "+ENABLED = True" in outcome.report


class TestAgainstBackend:
    @respx.mock
    def test_end_to_end(self, seeded_repo):
        route = respx.post("https://api.anthropic.com/v1/messages").mock(
            return_value=httpx.Response(
                200,
                json={
                    "content": [{"type": "text", "text": "# Review\n\n" + GOOD_REVIEW}],
                    "usage": {"input_tokens": 2000, "output_tokens": 500},
                },
            )
        )
        seeded_repo.write("app.py", "def main():\n    return 4\n")
        seeded_repo.git("add", "app.py")

        outcome = ReviewPipeline(_config(seeded_repo)).run(Staged())

        assert route.call_count == 1
        assert outcome.report.startswith("# Code Review: staged changes\n")
        assert "Estimated cost: $0.014" in outcome.report
        assert outcome.result.estimated_cost_usd == Decimal("0.0135")
