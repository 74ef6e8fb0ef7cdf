"""Backends performing network, hashing and filesystem work for sync."""

from bucketctl.backends.base import Downloader, Filesystem, Hasher
from bucketctl.backends.hashing import HashlibHasher
from bucketctl.backends.http import HttpDownloader
from bucketctl.backends.local import LocalFilesystem

__all__ = [
    "Downloader",
    "Filesystem",
    "Hasher",
    "HashlibHasher",
    "HttpDownloader",
    "LocalFilesystem",
]
