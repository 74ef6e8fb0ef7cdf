"""Manifest models for bucket package definitions.

This module defines the Pydantic models representing a bucket manifest
JSON file, which describes one installable version of a package.

Many manifest fields accept either a single string or an array of strings.
They are normalised to tuples on load so the rest of the code never has to
care which form the bucket author used.
"""

import re
from dataclasses import dataclass
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Architecture identifiers as used in manifest `architecture` blocks
ArchitectureType = Literal["32bit", "64bit", "arm64"]

HASH_ALGORITHMS: tuple[str, ...] = ("md5", "sha1", "sha256", "sha512")

# Hex digest length per algorithm, used to validate declared hashes
_DIGEST_LENGTHS: dict[str, int] = {"md5": 32, "sha1": 40, "sha256": 64, "sha512": 128}

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")

# Implicit dependency pulled in by Inno Setup based manifests
INNOSETUP_DEPENDENCY = "innounp"


def _vectorize(value: object) -> tuple[str, ...] | None:
    """Normalise a "string or array of strings" value to a tuple."""
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    msg = f"expected string or array of strings, got {type(value).__name__}"
    raise ValueError(msg)


def _vectorize_nested(value: object) -> tuple[tuple[str, ...], ...] | None:
    """Normalise a `bin`/`persist` style value to a tuple of string tuples."""
    if value is None:
        return None
    if isinstance(value, str):
        return ((value,),)
    if isinstance(value, (list, tuple)):
        entries: list[tuple[str, ...]] = []
        for item in value:
            if isinstance(item, str):
                entries.append((item,))
            elif isinstance(item, (list, tuple)) and item:
                entries.append(tuple(str(v) for v in item))
            else:
                msg = f"invalid entry: {item!r}"
                raise ValueError(msg)
        return tuple(entries)
    msg = f"expected string or array, got {type(value).__name__}"
    raise ValueError(msg)


def parse_hash(value: str) -> tuple[str, str]:
    """Split a declared hash string into algorithm and lowercase hex digest.

    A bare digest without an ``algo:`` prefix is a SHA-256 digest.

    Args:
        value: Declared hash, e.g. ``"sha1:abc..."`` or ``"abc..."``.

    Returns:
        Tuple of (algorithm, digest).

    Raises:
        ValueError: If the algorithm is unknown or the digest is malformed.
    """
    algorithm, sep, digest = value.strip().partition(":")
    if not sep:
        algorithm, digest = "sha256", algorithm
    algorithm = algorithm.lower()

    if algorithm not in _DIGEST_LENGTHS:
        msg = f"Unsupported hash algorithm: {algorithm}"
        raise ValueError(msg)
    if len(digest) != _DIGEST_LENGTHS[algorithm] or not _HEX_RE.match(digest):
        msg = f"Invalid {algorithm} digest: {digest!r}"
        raise ValueError(msg)
    return algorithm, digest.lower()


def _validate_hashes(value: object) -> tuple[str, ...] | None:
    hashes = _vectorize(value)
    if hashes is not None:
        for item in hashes:
            parse_hash(item)
    return hashes


class License(BaseModel):
    """License information of a package.

    Attributes:
        identifier: SPDX identifier or free-form license name.
        url: Optional link to the license text.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    identifier: str
    url: str | None = None


class ArchitectureSpec(BaseModel):
    """Architecture-specific overrides of a manifest."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: tuple[str, ...] | None = None
    hash: tuple[str, ...] | None = None
    extract_dir: tuple[str, ...] | None = None
    bin: tuple[tuple[str, ...], ...] | None = None

    @field_validator("url", "extract_dir", mode="before")
    @classmethod
    def _normalize_list(cls, value: Any) -> tuple[str, ...] | None:
        return _vectorize(value)

    @field_validator("hash", mode="before")
    @classmethod
    def _normalize_hash(cls, value: Any) -> tuple[str, ...] | None:
        return _validate_hashes(value)

    @field_validator("bin", mode="before")
    @classmethod
    def _normalize_bin(cls, value: Any) -> tuple[tuple[str, ...], ...] | None:
        return _vectorize_nested(value)


class Architecture(BaseModel):
    """The `architecture` block of a manifest."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    ia32: Annotated[ArchitectureSpec | None, Field(alias="32bit")] = None
    amd64: Annotated[ArchitectureSpec | None, Field(alias="64bit")] = None
    aarch64: Annotated[ArchitectureSpec | None, Field(alias="arm64")] = None

    def get(self, arch: ArchitectureType) -> ArchitectureSpec | None:
        """Return the block for the given architecture, if declared."""
        return {"32bit": self.ia32, "64bit": self.amd64, "arm64": self.aarch64}[arch]


@dataclass(frozen=True, slots=True)
class Artifact:
    """A downloadable file declared by a manifest.

    Attributes:
        url: Download URL, possibly carrying a ``#/name.ext`` rename fragment.
        algorithm: Hash algorithm of the declared digest.
        digest: Declared lowercase hex digest, or None when undeclared.
        extract_dir: Directory inside the archive to extract from.
        extract_to: Directory inside the install dir to extract into.
    """

    url: str
    algorithm: str = "sha256"
    digest: str | None = None
    extract_dir: str | None = None
    extract_to: str | None = None

    @property
    def filename(self) -> str:
        """File name of the artifact, honouring a ``#/rename`` fragment."""
        base, _, fragment = self.url.partition("#")
        if fragment.startswith("/") and len(fragment) > 1:
            return fragment[1:]
        name = base.split("?", 1)[0].rstrip("/").rsplit("/", 1)[-1]
        return name or "download"


class Manifest(BaseModel):
    """A package manifest as declared by a bucket.

    The manifest is immutable once loaded; resolution structures refer to
    it and never copy it.

    Attributes:
        name: Package name (the manifest file stem).
        version: Version string of the package.
        description: Short human-readable description.
        homepage: Project homepage.
        license: License information.
        depends: Explicit dependencies (``name`` or ``bucket/name``).
        suggest: Optional companion packages keyed by feature.
        notes: Post-install notes for the user.
        cookie: Cookies required to download the artifacts.
        url: Architecture-independent download URLs.
        hash: Declared hashes matching ``url`` one to one.
        extract_dir: Directories to extract from archives.
        extract_to: Directories to extract into.
        bin: Executables to shim, optionally with alias.
        persist: Paths of user data kept across versions.
        innosetup: Whether the artifact is an Inno Setup installer.
        architecture: Per-architecture overrides.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: Annotated[str, Field(min_length=1)]
    version: Annotated[str, Field(min_length=1)]
    description: str | None = None
    homepage: str | None = None
    license: License | None = None
    depends: tuple[str, ...] = ()
    suggest: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    notes: tuple[str, ...] = ()
    cookie: dict[str, str] | None = None
    url: tuple[str, ...] | None = None
    hash: tuple[str, ...] | None = None
    extract_dir: tuple[str, ...] | None = None
    extract_to: tuple[str, ...] | None = None
    bin: tuple[tuple[str, ...], ...] | None = None
    persist: tuple[tuple[str, ...], ...] | None = None
    innosetup: bool = False
    architecture: Architecture | None = None

    @field_validator("license", mode="before")
    @classmethod
    def _normalize_license(cls, value: Any) -> Any:
        if isinstance(value, str):
            return {"identifier": value}
        return value

    @field_validator("depends", "notes", mode="before")
    @classmethod
    def _normalize_list(cls, value: Any) -> tuple[str, ...]:
        return _vectorize(value) or ()

    @field_validator("url", "extract_dir", "extract_to", mode="before")
    @classmethod
    def _normalize_optional_list(cls, value: Any) -> tuple[str, ...] | None:
        return _vectorize(value)

    @field_validator("hash", mode="before")
    @classmethod
    def _normalize_hash(cls, value: Any) -> tuple[str, ...] | None:
        return _validate_hashes(value)

    @field_validator("bin", "persist", mode="before")
    @classmethod
    def _normalize_nested(cls, value: Any) -> tuple[tuple[str, ...], ...] | None:
        return _vectorize_nested(value)

    @field_validator("suggest", mode="before")
    @classmethod
    def _normalize_suggest(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return {str(k): _vectorize(v) or () for k, v in value.items()}
        return value

    @property
    def is_nightly(self) -> bool:
        """Check if this is a nightly (unversioned, unhashed) manifest."""
        return self.version == "nightly"

    def _arch_field(self, arch: ArchitectureType, field_name: str) -> Any:
        """Return an architecture-specific field, falling back to the top level."""
        if self.architecture is not None:
            spec = self.architecture.get(arch)
            if spec is not None:
                value = getattr(spec, field_name)
                if value is not None:
                    return value
        return getattr(self, field_name)

    def supported_architectures(self) -> list[ArchitectureType]:
        """List architectures with a dedicated block in this manifest."""
        if self.architecture is None:
            return []
        arches: list[ArchitectureType] = ["32bit", "64bit", "arm64"]
        return [a for a in arches if self.architecture.get(a) is not None]

    def dependencies(self) -> list[str]:
        """Return all dependencies, including implicit ones.

        Returns:
            Dependency names in declaration order, without duplicates.
            Entries may be bucket-qualified (``bucket/name``).
        """
        deps: list[str] = []
        for dep in self.depends:
            if dep not in deps:
                deps.append(dep)
        if self.innosetup and not any(
            d.rsplit("/", 1)[-1] == INNOSETUP_DEPENDENCY for d in deps
        ):
            deps.append(INNOSETUP_DEPENDENCY)
        return deps

    def artifacts(self, arch: ArchitectureType) -> list[Artifact]:
        """Return the download artifacts for an architecture.

        URLs are paired with hashes by position; a URL without a matching
        hash (nightly builds) has no declared digest.

        Args:
            arch: Target architecture.

        Returns:
            List of artifacts, empty if the manifest declares no URL.
        """
        urls: tuple[str, ...] = self._arch_field(arch, "url") or ()
        hashes: tuple[str, ...] = self._arch_field(arch, "hash") or ()
        extract_dirs: tuple[str, ...] = self._arch_field(arch, "extract_dir") or ()
        extract_tos: tuple[str, ...] = self.extract_to or ()

        artifacts: list[Artifact] = []
        for index, url in enumerate(urls):
            algorithm, digest = "sha256", None
            if index < len(hashes):
                algorithm, digest = parse_hash(hashes[index])
            artifacts.append(
                Artifact(
                    url=url,
                    algorithm=algorithm,
                    digest=digest,
                    extract_dir=extract_dirs[index] if index < len(extract_dirs) else None,
                    extract_to=extract_tos[index] if index < len(extract_tos) else None,
                )
            )
        return artifacts

    def shims(self, arch: ArchitectureType) -> list[tuple[str, str]]:
        """Return the executables to shim as (target, alias) pairs.

        The alias defaults to the target's file stem.
        """
        entries: tuple[tuple[str, ...], ...] = self._arch_field(arch, "bin") or ()
        shims: list[tuple[str, str]] = []
        for entry in entries:
            target = entry[0]
            if len(entry) > 1 and entry[1]:
                alias = entry[1]
            else:
                alias = target.replace("\\", "/").rsplit("/", 1)[-1].rsplit(".", 1)[0]
            shims.append((target, alias))
        return shims

    def persist_entries(self) -> list[tuple[str, str]]:
        """Return persisted paths as (source, target) pairs."""
        entries = self.persist or ()
        return [(e[0], e[1] if len(e) > 1 and e[1] else e[0]) for e in entries]
