"""Unit tests for the cache commands."""

from pathlib import Path

from bucketctl.cli.main import app
from bucketctl.core.cache import cache_path_for
from typer.testing import CliRunner

runner = CliRunner()


def _seed_cache(root: Path) -> Path:
    cache = root / "cache"
    cache.mkdir(parents=True)
    cache_path_for(cache, "git", "2.45", "https://example.com/git.zip").write_bytes(b"x" * 2048)
    cache_path_for(cache, "jq", "1.7", "https://example.com/jq.exe").write_bytes(b"y" * 10)
    return cache


class TestCacheList:
    """Tests for cache list."""

    def test_empty(self, isolated_home: Path) -> None:
        """An empty cache lists nothing."""
        result = runner.invoke(app, ["cache", "list"])

        assert result.exit_code == 0
        assert "No cached downloads match." in result.output

    def test_lists_entries(self, isolated_home: Path) -> None:
        """Entries are listed with a total."""
        _seed_cache(isolated_home)

        result = runner.invoke(app, ["cache", "list"])

        assert result.exit_code == 0
        assert "Download Cache" in result.output
        assert "2 file(s)" in result.output

    def test_query(self, isolated_home: Path) -> None:
        """A query limits the listing to matching packages."""
        _seed_cache(isolated_home)

        result = runner.invoke(app, ["cache", "list", "git"])

        assert "1 file(s), 2.0 KB total" in result.output


class TestCacheRemove:
    """Tests for cache rm."""

    def test_remove_one(self, isolated_home: Path) -> None:
        """rm deletes matching entries and reports the freed size."""
        cache = _seed_cache(isolated_home)

        result = runner.invoke(app, ["cache", "rm", "git"])

        assert result.exit_code == 0
        assert "Removed 1 file(s)." in result.output
        assert "2.0 KB freed" in result.output
        assert len(list(cache.iterdir())) == 1

    def test_remove_all(self, isolated_home: Path) -> None:
        """'*' empties the cache."""
        cache = _seed_cache(isolated_home)

        result = runner.invoke(app, ["cache", "rm", "*"])

        assert result.exit_code == 0
        assert "Removed 2 file(s)." in result.output
        assert list(cache.iterdir()) == []

    def test_no_match(self, isolated_home: Path) -> None:
        """A query matching nothing removes nothing."""
        _seed_cache(isolated_home)

        result = runner.invoke(app, ["cache", "rm", "nope"])

        assert result.exit_code == 0
        assert "No cached downloads match." in result.output
