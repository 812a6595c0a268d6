import logging
from dataclasses import dataclass

import httpx

from lint_review.models.config import ReportType
from lint_review.models.finding import Finding
from lint_review.platforms.base import Provider
from .reconcile import comment_marker, fingerprint, reconcile


logger = logging.getLogger(__name__)


@dataclass
class ReportResult:
    created: int = 0
    deleted: int = 0
    kept: int = 0
    failed: int = 0


class Reporter:
    def __init__(
        self,
        provider: Provider,
        reviewer_name: str = "Lint Review",
        only_changed_lines: bool = True,
    ):
        self.provider = provider
        self.reviewer_name = reviewer_name
        self.only_changed_lines = only_changed_lines
        self._changed_lines: dict[str, set[int]] | None = None

    async def report(
        self,
        linter: str,
        findings: list[Finding],
        report_type: ReportType = ReportType.PR_REVIEW,
    ) -> ReportResult:
        """Publish one linter's findings, replacing what it posted before.

        Must be called even with no findings so stale comments get removed.
        """
        try:
            findings = await self._reportable(findings)
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch changed lines for {linter}: {e}")
            return ReportResult(failed=1)

        if report_type is ReportType.CHECK_RUN and self.provider.supports_check_runs:
            return await self._report_check_run(linter, findings)
        return await self._report_comments(linter, findings)

    async def _reportable(self, findings: list[Finding]) -> list[Finding]:
        if self._changed_lines is None:
            self._changed_lines = await self.provider.get_changed_lines()
        changed = self._changed_lines

        reportable = []
        for finding in findings:
            lines = changed.get(finding.file)
            if lines is None:
                continue
            if self.only_changed_lines and finding.line not in lines:
                continue
            reportable.append(finding)
        return reportable

    async def _report_comments(self, linter: str, findings: list[Finding]) -> ReportResult:
        try:
            existing = await self.provider.list_comments(linter)
        except httpx.HTTPError as e:
            logger.error(f"Failed to list {linter} comments: {e}")
            return ReportResult(failed=1)
        to_create, to_delete = reconcile(existing, findings)
        result = ReportResult(kept=len(existing) - len(to_delete))

        for comment in to_delete:
            try:
                await self.provider.delete_comment(comment)
                result.deleted += 1
            except httpx.HTTPError as e:
                logger.error(f"Failed to delete comment {comment.id}: {e}")
                result.failed += 1

        for finding in to_create:
            try:
                await self.provider.post_comment(finding, self.format_comment(linter, finding))
                result.created += 1
            except httpx.HTTPError as e:
                logger.error(f"Failed to post comment on {finding.file}:{finding.line}: {e}")
                result.failed += 1

        logger.info(
            f"{linter}: {result.created} created, {result.deleted} deleted, "
            f"{result.kept} kept, {result.failed} failed"
        )
        return result

    async def _report_check_run(self, linter: str, findings: list[Finding]) -> ReportResult:
        try:
            await self.provider.create_check_run(linter, findings)
        except httpx.HTTPError as e:
            logger.error(f"Failed to create check run for {linter}: {e}")
            return ReportResult(failed=1)
        return ReportResult(created=len(findings))

    def format_comment(self, linter: str, finding: Finding) -> str:
        """Format comment body; the trailing marker identifies it on later runs."""
        header = f"**{self.reviewer_name}** | `{linter}`"
        if finding.severity:
            header += f" | `{finding.severity.value}`"
        marker = comment_marker(linter, fingerprint(finding))
        return f"{header}\n\n{finding.message}\n\n{marker}"
