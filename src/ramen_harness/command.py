"""Synchronous execution of the program under test.

A non-zero exit status or output on stderr is data for the calling step, not
an error of the harness, so nothing here raises on a failing subprocess.
"""

import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .shared.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Observable outcome of one command."""

    stdout: str
    stderr: str
    exit_code: int

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    def as_dict(self) -> dict[str, Any]:
        """Return the result keyed the way step definitions read it."""
        return {"stdout": self.stdout, "stderr": self.stderr, "status": self.exit_code}


def build_command_line(program: str | Path, arguments: str = "") -> str:
    """Join a program path and its argument string with a space."""
    if not arguments:
        return str(program)
    return f"{program} {arguments}"


class CommandRunner:
    """Runs command lines through the shell and captures their output.

    No timeout is applied: the call blocks until the command exits.
    """

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        cwd: str | Path | None = None,
    ):
        """Initialize CommandRunner.

        Args:
            env: Environment for the child, inherited from this process if None
            cwd: Working directory for the child, current directory if None
        """
        self.env = dict(env) if env is not None else None
        self.cwd = cwd

    def run(self, program: str | Path, arguments: str = "") -> CommandResult:
        """Run program with arguments and wait for it to finish.

        Args:
            program: Path or name of the program
            arguments: Single argument string, passed through the shell as is

        Returns:
            CommandResult with stdout, stderr and exit code
        """
        command_line = build_command_line(program, arguments)
        logger.debug("Running command", command=command_line)

        completed = subprocess.run(
            command_line,
            shell=True,
            capture_output=True,
            text=True,
            env=self.env,
            cwd=self.cwd,
        )

        logger.debug("Command finished", command=command_line, exit_code=completed.returncode)
        return CommandResult(
            stdout=completed.stdout,
            stderr=completed.stderr,
            exit_code=completed.returncode,
        )


def run_command(program: str | Path, arguments: str = "") -> CommandResult:
    """Run a command with the current environment and working directory."""
    return CommandRunner().run(program, arguments)
