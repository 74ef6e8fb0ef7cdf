"""Fixtures for CLI command tests."""

from pathlib import Path

import pytest
from fakes import FakeDownloader, artifact_fields, write_manifest

BAR_URL = "https://example.com/bar.exe"
FOO_URL = "https://example.com/foo.exe"
PAYLOADS = {BAR_URL: b"bar binary", FOO_URL: b"foo binary"}


@pytest.fixture
def main_bucket(isolated_home: Path) -> Path:
    """A ``main`` bucket where foo depends on bar."""
    bucket = isolated_home / "buckets" / "main"
    write_manifest(
        bucket, "bar", "1.0", **artifact_fields(BAR_URL, PAYLOADS[BAR_URL], bin="bar.exe")
    )
    write_manifest(
        bucket,
        "foo",
        "1.0",
        depends="bar",
        description="Foo tool",
        **artifact_fields(FOO_URL, PAYLOADS[FOO_URL]),
    )
    return bucket


@pytest.fixture
def downloader(monkeypatch: pytest.MonkeyPatch) -> FakeDownloader:
    """Serve downloads from memory instead of the network."""
    fake = FakeDownloader(PAYLOADS)
    monkeypatch.setattr("bucketctl.cli.session.HttpDownloader", lambda **_: fake)
    return fake
