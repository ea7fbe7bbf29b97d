# modules/pipeline_executor.py
"""Run audit command pipelines without a shell."""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass, field
from typing import List, Sequence


class CommandError(Exception):
    """Исключение, возникающее при ошибке выполнения внешней команды."""

    def __init__(
        self,
        message: str,
        stderr: str = "",
        returncode: int | None = None,
        stdout: str = "",
    ):
        super().__init__(message)
        self.stderr = stderr
        self.returncode = returncode
        self.stdout = stdout


@dataclass
class PipelineResult:
    stdout: str
    returncodes: List[int] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def missing_executables(commands: Sequence[Sequence[str]]) -> List[str]:
    """Return the stage executables that cannot be resolved on ``PATH``."""

    missing = []
    for argv in commands:
        if not argv:
            continue
        if shutil.which(argv[0]) is None:
            missing.append(argv[0])
    return missing


def run_pipeline(
    commands: Sequence[Sequence[str]],
    timeout: int = 30,
) -> PipelineResult:
    """Run *commands* as a pipeline and return the output of the last stage.

    Each stage receives the stdout of the previous one on stdin. A non-zero
    exit code is not an error (``grep`` without a match exits with 1); the
    codes and stderr of every stage are recorded in the result.

    Args:
        commands: Список стадий, каждая стадия это argv без оболочки.
        timeout: Максимальное время выполнения одной стадии в секундах.

    Raises:
        CommandError: Если исполняемый файл не найден или стадия не уложилась
            в таймаут.
    """

    result = PipelineResult(stdout="")
    data: str | None = None
    for argv in commands:
        if not argv:
            continue
        try:
            completed = subprocess.run(
                list(argv),
                input=data,
                text=True,
                capture_output=True,
                timeout=timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandError(
                f"Command '{' '.join(argv)}' timed out after {timeout} seconds.",
                stderr=str(e.stderr or ""),
            ) from e
        except FileNotFoundError as e:
            raise CommandError(f"Executable not found: {argv[0]}") from e
        except OSError as e:
            raise CommandError(f"Failed to start '{argv[0]}': {e}") from e

        result.returncodes.append(completed.returncode)
        stderr = (completed.stderr or "").strip()
        if stderr:
            result.errors.append(f"{argv[0]}: {stderr}")
        data = completed.stdout or ""

    result.stdout = data or ""
    return result
