import logging
import re
import shutil
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from lint_review.linters.runner import ExecutionError, exec_run
from lint_review.models.review import ReviewInfo


logger = logging.getLogger(__name__)

GIT_TIMEOUT = 300.0


class CheckoutError(Exception):
    """Error while fetching the reviewed revision."""
    pass


def _sanitize(text: str) -> str:
    text = re.sub(r"(Authorization: \w+ )\S+", r"\1[REDACTED]", text)
    return re.sub(r"://[^:/@]+:[^@]+@", "://[REDACTED]@", text)


async def _git(args: list[str], cwd: Path, auth_header: str | None = None) -> None:
    command = ["-c", f"http.extraHeader=Authorization: {auth_header}"] if auth_header else []
    try:
        result = await exec_run("git", [*command, *args], cwd, GIT_TIMEOUT)
    except ExecutionError as e:
        raise CheckoutError(_sanitize(str(e))) from None
    if not result.ok:
        output = result.output.decode("utf-8", errors="replace")
        raise CheckoutError(f"git {args[0]} failed: {_sanitize(output)}")


@asynccontextmanager
async def checkout(
    info: ReviewInfo,
    auth_header: str | None = None,
    root: str | None = None,
) -> AsyncIterator[Path]:
    """Shallow checkout of the review head into a temporary directory."""
    ref = info.fetch_ref or info.head_sha
    if not info.clone_url or not ref:
        raise CheckoutError(f"No clone url or ref for {info.url}")

    if root:
        Path(root).mkdir(parents=True, exist_ok=True)
    repo_dir = Path(tempfile.mkdtemp(prefix=f"{info.org}-{info.repo}-", dir=root))
    try:
        logger.info(f"Fetching {info.full_name} {ref} into {repo_dir}")
        await _git(["init", "--quiet"], repo_dir)
        await _git(["fetch", "--quiet", "--depth", "1", info.clone_url, ref], repo_dir, auth_header)
        await _git(["checkout", "--quiet", "FETCH_HEAD"], repo_dir)
        yield repo_dir
    finally:
        shutil.rmtree(repo_dir, ignore_errors=True)
