"""Digest computation with hashlib."""

import hashlib
from pathlib import Path

from bucketctl.backends.base import Hasher
from bucketctl.models.manifest import HASH_ALGORITHMS

_CHUNK_SIZE = 1024 * 1024


class HashlibHasher(Hasher):
    """Hasher streaming files through hashlib."""

    def digest(self, algorithm: str, path: Path) -> str:
        if algorithm not in HASH_ALGORITHMS:
            msg = f"Unsupported hash algorithm: {algorithm}"
            raise ValueError(msg)

        hasher = hashlib.new(algorithm)
        with open(path, "rb") as f:
            while chunk := f.read(_CHUNK_SIZE):
                hasher.update(chunk)
        return hasher.hexdigest()
