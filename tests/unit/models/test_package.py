"""Unit tests for package models.

Tests for InstalledRecord, InstalledSet and the resolved Package entity.
"""

import pytest
from bucketctl.models.package import InstalledRecord, InstalledSet, Package, dependency_name
from fakes import make_manifest, make_record


class TestInstalledRecord:
    """Tests for InstalledRecord dataclass."""

    def test_round_trip_preserves_fields(self) -> None:
        """to_dict and from_dict preserve every field."""
        record = make_record(
            "git", "2.45", held=True, dependencies=("main/7zip",), shims=("git", "bash")
        )
        assert InstalledRecord.from_dict(record.to_dict()) == record

    def test_from_dict_defaults(self) -> None:
        """Optional fields get defaults when absent."""
        record = InstalledRecord.from_dict({"name": "git", "version": "2.45", "bucket": "main"})
        assert record.held is False
        assert record.dependencies == ()
        assert record.installed_at

    def test_from_dict_missing_required(self) -> None:
        """A record without version cannot be loaded."""
        with pytest.raises(KeyError):
            InstalledRecord.from_dict({"name": "git", "bucket": "main"})

    def test_empty_name_rejected(self) -> None:
        """Empty names are invalid."""
        with pytest.raises(ValueError, match="name cannot be empty"):
            InstalledRecord(name="", version="1.0", bucket="main")

    def test_dependency_names_strip_bucket(self) -> None:
        """dependency_names drops bucket qualifiers."""
        record = make_record("app", dependencies=("extras/lib", "zlib"))
        assert record.dependency_names == ("lib", "zlib")


class TestDependencyName:
    """Tests for dependency_name function."""

    @pytest.mark.parametrize(
        ("entry", "expected"),
        [("lib", "lib"), ("extras/lib", "lib")],
    )
    def test_strips_qualifier(self, entry: str, expected: str) -> None:
        """Bucket qualifiers are removed."""
        assert dependency_name(entry) == expected


class TestInstalledSet:
    """Tests for InstalledSet mapping."""

    def test_names_sorted(self) -> None:
        """names() is sorted regardless of insertion order."""
        installed = InstalledSet.of(make_record("zlib"), make_record("app"))
        assert installed.names() == ["app", "zlib"]

    def test_updates_return_new_sets(self) -> None:
        """with_record and without leave the original untouched."""
        installed = InstalledSet.of(make_record("app"))
        added = installed.with_record(make_record("lib"))
        removed = added.without("app")

        assert "lib" not in installed
        assert added.names() == ["app", "lib"]
        assert removed.names() == ["lib"]

    def test_dependents_of(self) -> None:
        """dependents_of finds records depending on a name, qualified or not."""
        installed = InstalledSet.of(
            make_record("app", dependencies=("lib",)),
            make_record("tool", dependencies=("main/lib",)),
            make_record("lib"),
        )
        assert [r.name for r in installed.dependents_of("lib")] == ["app", "tool"]


class TestPackage:
    """Tests for Package entity."""

    def test_identity_is_bucket_and_name(self) -> None:
        """Packages with the same name in different buckets differ."""
        manifest = make_manifest("foo")
        a = Package(name="foo", bucket="main", manifest=manifest)
        b = Package(name="foo", bucket="extras", manifest=manifest)
        assert a.ident == "main/foo"
        assert a != b
        assert a == Package(name="foo", bucket="main", manifest=make_manifest("foo", "2.0"))

    def test_requires_manifest_or_record(self) -> None:
        """A package needs a manifest or an install record."""
        with pytest.raises(ValueError, match="needs a manifest"):
            Package(name="foo", bucket="main", manifest=None)

    def test_up_to_date_requires_same_bucket(self) -> None:
        """An install from another bucket is not up to date."""
        manifest = make_manifest("foo", "1.0")
        same = Package("foo", "main", manifest, installed=make_record("foo", "1.0", "main"))
        other = Package("foo", "main", manifest, installed=make_record("foo", "1.0", "extras"))
        old = Package("foo", "main", manifest, installed=make_record("foo", "0.9", "main"))

        assert same.is_up_to_date
        assert not other.is_up_to_date
        assert not old.is_up_to_date
        assert old.installed_version == "0.9"

    def test_version_falls_back_to_record(self) -> None:
        """Without manifest the installed version and dependencies are used."""
        record = make_record("foo", "0.9", dependencies=("lib",))
        package = Package("foo", "main", None, installed=record)
        assert package.version == "0.9"
        assert package.dependencies == ["lib"]

    def test_orphan_keeps_record(self) -> None:
        """A package without manifest cannot drop its install record."""
        package = Package("foo", "main", None, installed=make_record("foo"))

        with pytest.raises(ValueError, match="needs a manifest"):
            package.with_installed(None)

    def test_held(self) -> None:
        """is_held reflects the install record."""
        package = Package(
            "foo", "main", make_manifest("foo"), installed=make_record("foo", held=True)
        )
        assert package.is_held
        assert not package.with_installed(None).is_held
