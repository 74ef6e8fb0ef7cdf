"""Running git for bucket checkouts.

Buckets that are git clones are refreshed by shelling out to the git
executable. Prompts are disabled so a bucket needing credentials fails
instead of hanging.
"""

import os
import shutil
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

GIT_TIMEOUT = 300.0

# Never ask for credentials or open an editor
_GIT_ENV = {"GIT_TERMINAL_PROMPT": "0", "GIT_EDITOR": "true"}


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured outcome of a finished command.

    Attributes:
        stdout: Standard output.
        stderr: Standard error.
        returncode: Exit code.
        args: Command line that was run.
    """

    stdout: str
    stderr: str
    returncode: int
    args: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        """Check if the command exited with code 0."""
        return self.returncode == 0

    @property
    def error_message(self) -> str:
        """Last line of stderr, or the exit code when stderr is empty."""
        lines = [line for line in self.stderr.strip().splitlines() if line.strip()]
        if lines:
            return lines[-1].strip()
        program = self.args[0] if self.args else "command"
        return f"{program} exited with {self.returncode}"


def run_command(
    args: list[str],
    *,
    timeout: float | None = 60.0,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    """Run a command and capture its output.

    Args:
        args: Command and arguments.
        timeout: Seconds to wait before giving up.
        cwd: Working directory.
        env: Variables added to the inherited environment.

    Raises:
        subprocess.TimeoutExpired: If the command exceeds the timeout.
        FileNotFoundError: If the executable is not found.
    """
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        check=False,
        timeout=timeout,
        cwd=cwd,
        env={**os.environ, **env} if env else None,
    )
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
        args=tuple(args),
    )


def run_git(repo: Path, *args: str, timeout: float = GIT_TIMEOUT) -> CommandResult:
    """Run a git subcommand inside a checkout, without prompts."""
    return run_command(["git", "-C", str(repo), *args], timeout=timeout, env=_GIT_ENV)


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH."""
    return shutil.which(name) is not None
