"""Unit tests for query models."""

import pytest
from bucketctl.models.query import (
    OperationKind,
    QueryOptions,
    QuerySpec,
    is_wildcard,
    split_qualified,
)


class TestQuerySpec:
    """Tests for QuerySpec validation."""

    def test_defaults(self) -> None:
        """Options default to all flags off."""
        spec = QuerySpec(kind=OperationKind.INSTALL, patterns=("git",))
        assert spec.options == QueryOptions()

    def test_requires_pattern(self) -> None:
        """At least one pattern is required."""
        with pytest.raises(ValueError, match="At least one package pattern"):
            QuerySpec(kind=OperationKind.INSTALL, patterns=())

    @pytest.mark.parametrize("pattern", ["", "main/"])
    def test_invalid_patterns(self, pattern: str) -> None:
        """Empty names and bare bucket prefixes are rejected."""
        with pytest.raises(ValueError, match="Invalid package pattern"):
            QuerySpec(kind=OperationKind.UNINSTALL, patterns=(pattern,))


class TestNameHelpers:
    """Tests for split_qualified and is_wildcard."""

    def test_split_plain(self) -> None:
        """Plain names have no bucket."""
        assert split_qualified("git") == (None, "git")

    def test_split_qualified(self) -> None:
        """Qualified names split at the first slash."""
        assert split_qualified("extras/vscode") == ("extras", "vscode")

    @pytest.mark.parametrize(
        ("pattern", "expected"),
        [("py*", True), ("gi?", True), ("[ab]c", True), ("git", False), ("main/git", False)],
    )
    def test_is_wildcard(self, pattern: str, expected: bool) -> None:
        """Wildcards are detected by fnmatch metacharacters."""
        assert is_wildcard(pattern) is expected
