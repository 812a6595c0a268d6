import asyncio
import logging
import posixpath
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from lint_review.models.config import Config, LinterSettings
from lint_review.models.finding import Finding
from lint_review.models.review import NotificationPayload, ReviewInfo
from lint_review.notify import Notifier, limit_join
from lint_review.platforms.base import Provider
from .parsers import FindingMap
from .registry import LinterRegistry, LinterSpec
from .runner import ExecResult, ExecutionError, exec_run


logger = logging.getLogger(__name__)

Executor = Callable[[str, list[str], Path, float | None], Awaitable[ExecResult]]


@dataclass
class LinterRun:
    """Outcome of running one linter on a review."""
    linter: str
    findings: FindingMap = field(default_factory=dict)
    unexpected: list[str] = field(default_factory=list)
    failed: bool = False
    returncode: int | None = None

    def all_findings(self) -> list[Finding]:
        return [f for file_findings in self.findings.values() for f in file_findings]


def _clean_dir(work_dir: str) -> str:
    cleaned = posixpath.normpath(work_dir.strip()).strip("/")
    return "" if cleaned == "." else cleaned


def _relative_to(files: list[str], work_dir: str) -> list[str]:
    if not work_dir:
        return files
    prefix = work_dir + "/"
    return [f[len(prefix):] for f in files if f.startswith(prefix)]


def _with_prefix(findings: FindingMap, work_dir: str) -> FindingMap:
    if not work_dir:
        return findings
    prefixed: FindingMap = {}
    for path, items in findings.items():
        full_path = posixpath.normpath(posixpath.join(work_dir, path))
        prefixed[full_path] = [f.model_copy(update={"file": full_path}) for f in items]
    return prefixed


class Dispatcher:
    def __init__(
        self,
        registry: LinterRegistry,
        config: Config,
        executor: Executor = exec_run,
        notifier: Notifier | None = None,
        timeout: float = 600.0,
        max_concurrency: int = 4,
    ):
        self.registry = registry
        self.config = config
        self.executor = executor
        self.notifier = notifier
        self.timeout = timeout
        self.max_concurrency = max(1, max_concurrency)

    def select(self, org: str, repo: str, files: list[str]) -> list[tuple[LinterSpec, LinterSettings]]:
        """Linters with a matching changed file that are enabled for org/repo."""
        selected = []
        for spec in self.registry:
            if not spec.matching_files(files):
                continue
            settings = self.config.get(org, repo, spec.name)
            if not settings.enabled:
                logger.info(f"{spec.name} is not enabled for {org}/{repo}, skipping")
                continue
            selected.append((spec, settings))
        return selected

    def build_args(self, spec: LinterSpec, settings: LinterSettings, files: list[str]) -> list[str]:
        if settings.args is not None:
            args = list(settings.args)
        else:
            args = spec.default_args(files)
        if settings.config_path and spec.config_flag:
            args = [*args, spec.config_flag, settings.config_path]
        return args

    async def run(
        self,
        provider: Provider,
        repo_dir: str | Path,
        request_id: str | None = None,
    ) -> dict[str, LinterRun]:
        """Run every selected linter on the review concurrently."""
        request_id = request_id or uuid.uuid4().hex[:12]
        info = await provider.get_review_info()
        files = await provider.get_files()

        selected = self.select(info.org, info.repo, files)
        if not selected:
            logger.info(f"[{request_id}] No linters to run for {info.url}")
            return {}

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def worker(spec: LinterSpec, settings: LinterSettings) -> LinterRun:
            async with semaphore:
                return await self._run_linter(
                    spec, settings, files, Path(repo_dir), info, request_id, deadline
                )

        runs = await asyncio.gather(*(worker(spec, settings) for spec, settings in selected))
        return {run.linter: run for run in runs}

    async def _run_linter(
        self,
        spec: LinterSpec,
        settings: LinterSettings,
        files: list[str],
        repo_dir: Path,
        info: ReviewInfo,
        request_id: str,
        deadline: float,
    ) -> LinterRun:
        work_dir = _clean_dir(settings.work_dir)
        linter_files = _relative_to(spec.matching_files(files), work_dir)
        if not linter_files:
            logger.info(f"[{request_id}] {spec.name}: no changed files under '{work_dir}'")
            return LinterRun(linter=spec.name)

        args = self.build_args(spec, settings, linter_files)
        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            logger.warning(f"[{request_id}] {spec.name}: deadline exceeded before start")
            return LinterRun(linter=spec.name, failed=True)

        logger.info(f"[{request_id}] Running {spec.command} {' '.join(args)}")
        try:
            result = await self.executor(
                spec.command, args, repo_dir / work_dir if work_dir else repo_dir, remaining
            )
        except ExecutionError as e:
            logger.warning(f"[{request_id}] {spec.name} failed: {e}, no findings reported")
            return LinterRun(linter=spec.name, failed=True)
        except asyncio.CancelledError:
            task = asyncio.current_task()
            # the whole run is being cancelled, not just this invocation
            if task is not None and task.cancelling():
                raise
            logger.warning(f"[{request_id}] {spec.name} was cancelled, no findings reported")
            return LinterRun(linter=spec.name, failed=True)
        except Exception:
            logger.exception(f"[{request_id}] {spec.name} crashed, no findings reported")
            return LinterRun(linter=spec.name, failed=True)

        if not result.ok:
            logger.warning(
                f"[{request_id}] {spec.command} exited with {result.returncode}, mark and continue"
            )

        findings, unexpected = self.registry.parse(spec.name, result.output)
        findings = _with_prefix(findings, work_dir)
        if unexpected:
            await self._report_unexpected(spec.name, unexpected, info, request_id)

        return LinterRun(
            linter=spec.name,
            findings=findings,
            unexpected=unexpected,
            returncode=result.returncode,
        )

    async def _report_unexpected(
        self,
        linter: str,
        unexpected: list[str],
        info: ReviewInfo,
        request_id: str,
    ) -> None:
        message = limit_join(unexpected, 1000)
        logger.warning(f"[{request_id}] Unexpected output from {linter}: {message}")
        if self.notifier is None:
            return
        await self.notifier.notify(
            NotificationPayload(
                org=info.org,
                repo=info.repo,
                url=info.url,
                request_id=request_id,
                linter=linter,
                message=message,
            )
        )
