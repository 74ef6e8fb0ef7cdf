"""Unit tests for the cleanup command."""

from pathlib import Path

from bucketctl.backends.local import LocalFilesystem
from bucketctl.cli.main import app
from bucketctl.core.cache import cache_path_for, list_cache
from bucketctl.core.state import InstallStateStore
from bucketctl.models.package import InstalledSet
from fakes import make_record
from typer.testing import CliRunner

runner = CliRunner()


def _install(root: Path, name: str, *versions: str) -> None:
    """Lay out version directories with current on the last one."""
    fs = LocalFilesystem(root)
    for version in versions:
        fs.stage_version_dir(name, version)
        fs.commit_version_dir(name, version)
        fs.finalize_version_dir(name, version)
    fs.update_current(name, fs.version_dir(name, versions[-1]))


def _seed(root: Path) -> None:
    _install(root, "git", "2.44", "2.45")
    _install(root, "jq", "1.7")
    InstallStateStore(root).save(
        InstalledSet.of(make_record("git", "2.45"), make_record("jq", "1.7"))
    )


def _versions(root: Path, name: str) -> list[str]:
    return sorted(p.name for p in (root / "apps" / name).iterdir())


class TestCleanup:
    """Tests for cleanup."""

    def test_named_package(self, isolated_home: Path) -> None:
        """Old versions of a named package are removed."""
        _seed(isolated_home)

        result = runner.invoke(app, ["cleanup", "git"])

        assert result.exit_code == 0
        assert "Removed git 2.44" in result.output
        assert _versions(isolated_home, "git") == ["2.45", "current"]

    def test_already_clean(self, isolated_home: Path) -> None:
        """A package with one version is reported as clean."""
        _seed(isolated_home)

        result = runner.invoke(app, ["cleanup", "jq"])

        assert result.exit_code == 0
        assert "jq is already clean." in result.output

    def test_all(self, isolated_home: Path) -> None:
        """--all cleans every installed package."""
        _seed(isolated_home)
        _install(isolated_home, "jq", "1.6", "1.7")

        result = runner.invoke(app, ["cleanup", "--all"])

        assert result.exit_code == 0
        assert "Cleaned 2 package(s)." in result.output
        assert _versions(isolated_home, "git") == ["2.45", "current"]
        assert _versions(isolated_home, "jq") == ["1.7", "current"]

    def test_cache(self, isolated_home: Path) -> None:
        """--cache drops downloads of versions no longer installed."""
        _seed(isolated_home)
        cache = isolated_home / "cache"
        cache.mkdir()
        cache_path_for(cache, "git", "2.44", "https://example.com/git.zip").write_bytes(b"old")
        cache_path_for(cache, "git", "2.45", "https://example.com/git.zip").write_bytes(b"new")

        result = runner.invoke(app, ["cleanup", "git", "--cache"])

        assert result.exit_code == 0
        assert "freed" in result.output
        assert [f.version for f in list_cache(cache)] == ["2.45"]

    def test_not_installed(self, isolated_home: Path) -> None:
        """An unknown package exits with code 1 and the rest is cleaned."""
        _seed(isolated_home)

        result = runner.invoke(app, ["cleanup", "nope", "git"])

        assert result.exit_code == 1
        assert "nope is not installed" in result.output
        assert _versions(isolated_home, "git") == ["2.45", "current"]

    def test_requires_target(self, isolated_home: Path) -> None:
        """Without names or --all nothing happens."""
        result = runner.invoke(app, ["cleanup"])

        assert result.exit_code == 1
        assert "--all" in result.output
