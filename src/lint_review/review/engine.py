import logging
from dataclasses import dataclass, field

from lint_review.linters.dispatcher import Dispatcher
from lint_review.platforms.base import Provider
from lint_review.workspace import checkout
from .reporter import Reporter


logger = logging.getLogger(__name__)


@dataclass
class EngineReviewResult:
    """Result of linting a merge/pull request."""
    linters_run: list[str] = field(default_factory=list)
    failed_linters: list[str] = field(default_factory=list)
    comments_created: int = 0
    comments_deleted: int = 0
    findings_count: int = 0

    @property
    def summary(self) -> str:
        if not self.linters_run:
            return "No linters applied"
        text = (
            f"Ran {', '.join(self.linters_run)}: {self.findings_count} findings, "
            f"{self.comments_created} comments posted, {self.comments_deleted} removed"
        )
        if self.failed_linters:
            text += f" (failed: {', '.join(self.failed_linters)})"
        return text


class ReviewEngine:
    def __init__(
        self,
        dispatcher: Dispatcher,
        reviewer_name: str = "Lint Review",
        workspace_root: str | None = None,
    ):
        self.dispatcher = dispatcher
        self.reviewer_name = reviewer_name
        self.workspace_root = workspace_root

    async def review(self, provider: Provider, request_id: str | None = None) -> EngineReviewResult:
        """Lint a review and reconcile the bot's comments with the results."""
        info = await provider.get_review_info()
        files = await provider.get_files()
        if not self.dispatcher.select(info.org, info.repo, files):
            logger.info(f"No linters apply to {info.url}")
            return EngineReviewResult()

        async with checkout(info, provider.git_auth_header(), self.workspace_root) as repo_dir:
            runs = await self.dispatcher.run(provider, repo_dir, request_id=request_id)

        report_type = self.dispatcher.config.report_type
        reporter = Reporter(provider, reviewer_name=self.reviewer_name)
        result = EngineReviewResult()

        for name, run in runs.items():
            result.linters_run.append(name)
            if run.failed:
                result.failed_linters.append(name)

            # even without findings the report removes stale comments
            findings = run.all_findings()
            result.findings_count += len(findings)
            report = await reporter.report(name, findings, report_type)
            result.comments_created += report.created
            result.comments_deleted += report.deleted

        logger.info(f"Review of {info.url} done: {result.summary}")
        return result
