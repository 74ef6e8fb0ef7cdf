"""Unit tests for running git and other commands."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from bucketctl.utils.shell import CommandResult, command_exists, run_command, run_git


class TestCommandResult:
    """Tests for CommandResult."""

    def test_success(self) -> None:
        """Exit code 0 is success."""
        assert CommandResult(stdout="", stderr="", returncode=0).success
        assert not CommandResult(stdout="", stderr="", returncode=1).success

    def test_error_message_last_stderr_line(self) -> None:
        """The last non-empty stderr line is the error message."""
        result = CommandResult(
            stdout="",
            stderr="hint: diverging branches\nfatal: Not possible to fast-forward\n\n",
            returncode=128,
        )

        assert result.error_message == "fatal: Not possible to fast-forward"

    def test_error_message_without_stderr(self) -> None:
        """Without stderr the exit code is reported."""
        result = CommandResult(stdout="", stderr="  ", returncode=2, args=("git", "pull"))

        assert result.error_message == "git exited with 2"


class TestRunCommand:
    """Tests for run_command function."""

    @patch("bucketctl.utils.shell.subprocess.run")
    def test_captures_output(self, mock_run: MagicMock) -> None:
        """run_command returns the output, exit code and command line."""
        mock_run.return_value = MagicMock(stdout="ok\n", stderr="", returncode=0)

        result = run_command(["git", "--version"])

        assert result == CommandResult(
            stdout="ok\n", stderr="", returncode=0, args=("git", "--version")
        )
        assert mock_run.call_args.kwargs["capture_output"] is True
        assert mock_run.call_args.kwargs["env"] is None

    @patch("bucketctl.utils.shell.subprocess.run")
    def test_env_extends_environment(
        self, mock_run: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Extra variables are layered over the inherited environment."""
        monkeypatch.setenv("HOME", "/home/user")
        mock_run.return_value = MagicMock(stdout="", stderr="", returncode=0)

        run_command(["git", "status"], env={"GIT_TERMINAL_PROMPT": "0"}, cwd="/tmp")

        env = mock_run.call_args.kwargs["env"]
        assert env["GIT_TERMINAL_PROMPT"] == "0"
        assert env["HOME"] == "/home/user"
        assert mock_run.call_args.kwargs["cwd"] == "/tmp"

    @patch("bucketctl.utils.shell.subprocess.run")
    def test_timeout_propagates(self, mock_run: MagicMock) -> None:
        """A timeout is raised to the caller."""
        mock_run.side_effect = subprocess.TimeoutExpired(["git"], 5.0)

        with pytest.raises(subprocess.TimeoutExpired):
            run_command(["git", "pull"], timeout=5.0)

    def test_raises_file_not_found(self) -> None:
        """run_command raises FileNotFoundError for missing commands."""
        with pytest.raises(FileNotFoundError):
            run_command(["nonexistent_command_xyz_12345"])


class TestRunGit:
    """Tests for run_git function."""

    @patch("bucketctl.utils.shell.subprocess.run")
    def test_runs_in_checkout_without_prompts(self, mock_run: MagicMock) -> None:
        """git runs against the checkout with terminal prompts disabled."""
        mock_run.return_value = MagicMock(stdout="", stderr="", returncode=0)

        run_git(Path("/buckets/main"), "pull", "--ff-only")

        assert mock_run.call_args.args[0] == ["git", "-C", "/buckets/main", "pull", "--ff-only"]
        assert mock_run.call_args.kwargs["env"]["GIT_TERMINAL_PROMPT"] == "0"
        assert mock_run.call_args.kwargs["timeout"] == 300.0


class TestCommandExists:
    """Tests for command_exists function."""

    @patch("bucketctl.utils.shell.shutil.which")
    def test_found(self, mock_which: MagicMock) -> None:
        """A command on PATH exists."""
        mock_which.return_value = "/usr/bin/git"

        assert command_exists("git") is True

    @patch("bucketctl.utils.shell.shutil.which")
    def test_missing(self, mock_which: MagicMock) -> None:
        """A command missing from PATH does not."""
        mock_which.return_value = None

        assert command_exists("git") is False
