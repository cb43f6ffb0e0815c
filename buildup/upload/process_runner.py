"""
Thin wrapper around subprocess for invoking the version-control executable.
"""

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class ProcessResult:
    stdout: str
    stderr: str
    returncode: Optional[int]
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.returncode == 0


class ProcessRunner:
    """Runs external commands, capturing stdout, stderr and exit status"""

    def __init__(self, cwd: Optional[str] = None, timeout: Optional[int] = GIT_TIMEOUT_SECONDS):
        self.cwd = cwd
        self.timeout = timeout

    def which(self, name: str) -> Optional[str]:
        return shutil.which(name)

    def run(self, name: str, *args: str) -> ProcessResult:
        """Run `name args...`; failures to launch are reported, not raised."""
        try:
            result = subprocess.run(
                [name, *args],
                cwd=self.cwd or os.getcwd(),
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except (subprocess.TimeoutExpired, FileNotFoundError, OSError) as e:
            logger.debug(f"Failed to run {name} {' '.join(args)}: {e}")
            return ProcessResult(stdout="", stderr="", returncode=None, error=str(e))

        stdout = result.stdout.rstrip("\n")
        stderr = result.stderr.rstrip("\n")

        if result.returncode != 0:
            logger.debug(f"{name} {' '.join(args)} exited with {result.returncode}: {stderr}")
            return ProcessResult(
                stdout=stdout,
                stderr=stderr,
                returncode=result.returncode,
                error=f"exit status {result.returncode}"
            )

        return ProcessResult(stdout=stdout, stderr=stderr, returncode=result.returncode)
