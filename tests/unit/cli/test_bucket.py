"""Unit tests for the bucket commands."""

from pathlib import Path
from unittest.mock import MagicMock, patch

from bucketctl.cli.main import app
from bucketctl.utils.shell import CommandResult
from fakes import write_manifest
from typer.testing import CliRunner

runner = CliRunner()


class TestBucketList:
    """Tests for bucket list."""

    def test_no_buckets(self, isolated_home: Path) -> None:
        """A missing buckets directory lists nothing."""
        result = runner.invoke(app, ["bucket", "list"])

        assert result.exit_code == 0
        assert "No buckets found" in result.output

    def test_lists_buckets(self, isolated_home: Path) -> None:
        """Buckets are listed with their manifest count."""
        write_manifest(isolated_home / "buckets" / "main", "git")
        write_manifest(isolated_home / "buckets" / "extras", "vscode")

        result = runner.invoke(app, ["bucket", "list"])

        assert result.exit_code == 0
        assert "Buckets" in result.output
        assert "main" in result.output
        assert "extras" in result.output


class TestBucketUpdate:
    """Tests for bucket update."""

    def test_unknown_bucket(self, isolated_home: Path) -> None:
        """Naming a bucket that does not exist exits with code 1."""
        write_manifest(isolated_home / "buckets" / "main", "git")

        result = runner.invoke(app, ["bucket", "update", "nope"])

        assert result.exit_code == 1
        assert "Unknown bucket(s): nope" in result.output

    def test_plain_directories_refresh(self, isolated_home: Path) -> None:
        """Buckets that are not git checkouts count as refreshed."""
        write_manifest(isolated_home / "buckets" / "main", "git")

        result = runner.invoke(app, ["bucket", "update"])

        assert result.exit_code == 0
        assert "Refreshed 1 bucket(s)." in result.output

    @patch("bucketctl.core.buckets.command_exists", return_value=True)
    @patch("bucketctl.core.buckets.run_git")
    def test_git_failure(
        self, mock_run: MagicMock, _mock_exists: MagicMock, isolated_home: Path
    ) -> None:
        """A failing pull is reported and exits with code 1."""
        main = isolated_home / "buckets" / "main"
        write_manifest(main, "git")
        (main / ".git").mkdir()
        write_manifest(isolated_home / "buckets" / "extras", "vscode")
        mock_run.return_value = CommandResult(stdout="", stderr="diverged", returncode=1)

        result = runner.invoke(app, ["bucket", "update"])

        assert result.exit_code == 1
        assert "main: diverged" in result.output
        assert "1 refreshed" in result.output
        mock_run.assert_called_once()
