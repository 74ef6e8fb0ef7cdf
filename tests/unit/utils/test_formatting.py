"""Unit tests for console formatting helpers."""

import pytest
from bucketctl.models.package import Package
from bucketctl.utils.formatting import create_package_table, format_package_row, format_size
from fakes import make_manifest, make_record


class TestFormatSize:
    """Tests for format_size function."""

    @pytest.mark.parametrize(
        ("num_bytes", "expected"),
        [
            (0, "0 B"),
            (512, "512 B"),
            (1536, "1.5 KB"),
            (5 * 1024 * 1024, "5.0 MB"),
            (3 * 1024**3, "3.0 GB"),
            (2048 * 1024**3, "2048.0 GB"),
        ],
    )
    def test_units(self, num_bytes: int, expected: str) -> None:
        """Sizes use the largest fitting unit up to GB."""
        assert format_size(num_bytes) == expected


class TestPackageRow:
    """Tests for installed package rows."""

    def test_current_package(self) -> None:
        """An up-to-date package has no latest column."""
        package = Package(
            name="git",
            bucket="main",
            manifest=make_manifest("git", "2.45", description="Version control"),
            installed=make_record("git", "2.45"),
        )

        icon, name, version, bucket, latest, description = format_package_row(package)

        assert "package_installed" in icon
        assert "git" in name
        assert "2.45" in version
        assert bucket == "main"
        assert latest == ""
        assert "Version control" in description

    def test_upgradable_held_package(self) -> None:
        """Held packages get the held style and show the newer version."""
        package = Package(
            name="git",
            bucket="main",
            manifest=make_manifest("git", "2.46"),
            installed=make_record("git", "2.45", held=True),
        )

        icon, name, _, _, latest, description = format_package_row(package)

        assert "package_held" in icon
        assert "package_held" in name
        assert "2.46" in latest
        assert "-" in description

    def test_orphaned_package(self) -> None:
        """A package without a manifest still renders."""
        package = Package(
            name="git", bucket="gone", manifest=None, installed=make_record("git", "2.45")
        )

        row = format_package_row(package)

        assert row[4] == ""


class TestPackageTable:
    """Tests for create_package_table function."""

    def test_columns(self) -> None:
        """The table has the installed-package columns."""
        table = create_package_table()

        assert [c.header for c in table.columns] == [
            "",
            "Package",
            "Version",
            "Bucket",
            "Latest",
            "Description",
        ]
        assert table.title == "Installed Packages"
