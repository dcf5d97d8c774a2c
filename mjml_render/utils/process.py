"""
External command execution.

Thin wrapper over subprocess.run that captures stdout/stderr/exit status.
Used by engine discovery (version checks, package-manager queries) and by
the subprocess renderer.
"""

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class ProcessResult:
    """
    Captured result of one external command.

    Attributes:
        returncode: Process exit status
        stdout: Standard output (decoded, invalid bytes replaced)
        stderr: Standard error (decoded, invalid bytes replaced)
    """

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def status(self) -> str:
        """Human-readable exit status, e.g. 'exit 1'."""
        if self.returncode < 0:
            return f"signal {-self.returncode}"
        return f"exit {self.returncode}"


class ProcessRunner:
    """
    Runs external commands without a shell.

    Raises whatever subprocess raises: FileNotFoundError when the executable is
    missing, subprocess.TimeoutExpired when the timeout elapses.
    """

    def run(
        self,
        command: List[str],
        timeout: Optional[float] = None,
        input_text: Optional[str] = None,
        cwd: Optional[Path] = None,
    ) -> ProcessResult:
        result = subprocess.run(
            command,
            cwd=cwd,
            input=input_text,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",  # Replace invalid UTF-8 bytes instead of crashing
            timeout=timeout,
        )
        return ProcessResult(
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )
