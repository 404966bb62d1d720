"""
Thin wrapper around subprocess for the Windows command-line tools.

Commands are always passed as argument lists (never through a shell) so
registry paths with spaces need no quoting.
"""

import logging
import subprocess
from dataclasses import dataclass

from msp_toolkit.exceptions import CommandFailedError, CommandNotAvailableError

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return (self.stdout + self.stderr).strip()

    def check(self) -> "CommandResult":
        """Raise CommandFailedError unless the command succeeded."""
        if not self.ok:
            raise CommandFailedError(self.args, self.returncode, self.output)
        return self


class CommandRunner:
    """Runs commands and captures their output."""

    def __init__(self, timeout: float | None = 120):
        self.timeout = timeout

    def run(self, args: list[str]) -> CommandResult:
        """
        Run a command without raising on a non-zero exit code.

        Raises:
            CommandNotAvailableError: If the executable is not on PATH
        """
        logger.debug(f"Running: {' '.join(args)}")
        try:
            completed = subprocess.run(
                args,
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise CommandNotAvailableError(args[0]) from e
        except subprocess.TimeoutExpired as e:
            raise CommandFailedError(args, -1, f"timed out after {self.timeout}s") from e

        return CommandResult(
            args=list(args),
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
