import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path


logger = logging.getLogger(__name__)


class ExecutionError(Exception):
    """Linter could not be run to completion."""
    pass


@dataclass
class ExecResult:
    command: str
    args: list[str]
    returncode: int
    output: bytes

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def exec_run(
    command: str,
    args: list[str],
    work_dir: str | Path | None = None,
    timeout: float | None = None,
) -> ExecResult:
    """Run a linter and capture stdout and stderr combined.

    Raises ExecutionError when the process cannot be spawned or does not
    finish in time. A non-zero exit status is returned, not raised.
    """
    env = os.environ.copy()
    env["GIT_TERMINAL_PROMPT"] = "0"

    try:
        process = await asyncio.create_subprocess_exec(
            command,
            *args,
            cwd=str(work_dir) if work_dir else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            env=env,
        )
    except OSError as e:
        raise ExecutionError(f"Failed to start {command}: {e}") from e

    try:
        output, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(process)
        raise ExecutionError(f"{command} timed out after {timeout}s") from None
    except asyncio.CancelledError:
        await _kill(process)
        raise

    return ExecResult(
        command=command,
        args=list(args),
        returncode=process.returncode,
        output=output or b"",
    )


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        return
    await process.wait()
