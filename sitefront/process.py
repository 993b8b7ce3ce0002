"""Blocking child-process execution with buffered output."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .errors import BuildFailure, ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ProcessRunner:
    """Runs an argument vector and waits for it to finish."""

    def run(
        self,
        argv: list[str],
        env: dict[str, str] | None = None,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> ProcessResult:
        if not argv:
            raise ConfigurationError("No command given")
        logger.debug("Running %s", " ".join(argv))
        try:
            completed = subprocess.run(
                argv,
                env=env,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise ConfigurationError(f"Command not found: {argv[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise BuildFailure(
                f"{' '.join(argv)} timed out after {timeout} seconds",
                stdout=_text(e.stdout),
                stderr=_text(e.stderr),
            ) from e
        return ProcessResult(completed.returncode, completed.stdout or "", completed.stderr or "")


def _text(output: str | bytes | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode(errors="replace")
    return output
