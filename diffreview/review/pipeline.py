"""Review pipeline orchestrator.

Runs the stages strictly in order:

    resolve -> filter -> context -> build -> send -> render

The first failure aborts the run. An empty change set (nothing changed, or
everything filtered out) ends the run early without contacting the backend.
"""

import logging
from typing import Dict

from diffreview.review.models import ReviewMode, ReviewOutcome
from diffreview.utils.config import Config
from diffreview.utils.logging import get_logger, log_operation

logger = get_logger("review.pipeline")

NOTHING_TO_REVIEW = "Nothing to review: no changes found for {label}.\n"


class ReviewPipeline:
    """Orchestrates one review.

    Usage::

        pipeline = ReviewPipeline(config)
        outcome = pipeline.run(LastCommit())
        print(outcome.report)
    """

    def __init__(
        self,
        config: Config,
        dry_run: bool = False,
        extractor=None,
        client=None,
    ):
        self.config = config
        self.dry_run = dry_run

        # Lazy-loaded components
        self._extractor = extractor
        self._client = client
        self._change_filter = None

    @property
    def extractor(self):
        if self._extractor is None:
            from diffreview.review.diff import DiffExtractor
            self._extractor = DiffExtractor(self.config.project_path)
        return self._extractor

    @property
    def client(self):
        if self._client is None:
            from diffreview.llm.client import ReviewClient
            self._client = ReviewClient(self.config.llm, dry_run=self.dry_run)
        return self._client

    @property
    def change_filter(self):
        if self._change_filter is None:
            from diffreview.review.filter import ChangeFilter
            self._change_filter = ChangeFilter.load(
                self.extractor.repo_path,
                include_patterns=self.config.filter.include_patterns,
                exclude_patterns=self.config.filter.exclude_patterns,
                ignore_file=self.config.filter.ignore_file,
            )
        return self._change_filter

    def run(self, mode: ReviewMode) -> ReviewOutcome:
        """Review the changes selected by ``mode``.

        Returns:
            ReviewOutcome with the final report, or ``nothing_to_review`` set.

        Raises:
            DiffReviewError: Whatever the failing stage raised.
        """
        from diffreview.review.context import build_context
        from diffreview.review.output import ResponseRenderer
        from diffreview.review.prompt_builder import PromptBuilder
        from diffreview.review.prompts import build_system_prompt

        stage_timings: Dict[str, float] = {}

        # Step 1: Resolve changes
        with log_operation(logger, f"resolve ({mode.name})") as timing:
            changes = self.extractor.resolve(mode)
            label = self.extractor.describe(mode)
        stage_timings["resolve"] = timing["duration_ms"]
        logger.info(f"Resolved {len(changes)} changed file(s) for {label}")

        # Step 2: Filter
        with log_operation(logger, "filter") as timing:
            changes = self.change_filter.apply(changes)
        stage_timings["filter"] = timing["duration_ms"]

        if not changes:
            logger.info("Nothing to review")
            return ReviewOutcome(
                report=NOTHING_TO_REVIEW.format(label=label),
                label=label,
                nothing_to_review=True,
                stage_timings=stage_timings,
            )

        # Step 3: Project context
        review_config = self.config.review
        with log_operation(logger, "context") as timing:
            context = build_context(
                changes,
                self.extractor.repo_path,
                style_dir=review_config.style_dir,
                include_readme=review_config.include_readme,
                max_chars=review_config.max_context_chars,
            )
        stage_timings["context"] = timing["duration_ms"]

        # Step 4: Build request
        with log_operation(logger, "build") as timing:
            builder = PromptBuilder(
                max_payload_chars=review_config.payload_budget(self.config.llm.context_window),
                max_output_tokens=self.config.llm.max_tokens,
            )
            request = builder.build(build_system_prompt(label, context), label, changes)
        stage_timings["build"] = timing["duration_ms"]

        # Step 5: Send
        with log_operation(logger, "send", level=logging.INFO) as timing:
            result = self.client.send(request)
        stage_timings["send"] = timing["duration_ms"]

        # Step 6: Render
        with log_operation(logger, "render") as timing:
            if result.dry_run:
                report = result.raw_markdown
            else:
                renderer = ResponseRenderer(review_config.required_sections)
                report = renderer.render(result, label)
        stage_timings["render"] = timing["duration_ms"]

        return ReviewOutcome(
            report=report,
            label=label,
            changes=tuple(changes),
            request=request,
            result=result,
            stage_timings=stage_timings,
        )
