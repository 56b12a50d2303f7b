"""
Script: ci_release/bundle.py
What: Default collaborators for the release driver: signer, checksums, bundle sync, and the staging bundle.
Doing: Signs files with `gpg --detach-sign`, adds md5/sha1 digests, and writes the result into the bundle directory.
Why: The release driver only needs narrow interfaces; these are the plain implementations used from the CLI.
Goal: Turn `{path: bytes}` artifacts into a complete, signed staging bundle on disk.
"""

from __future__ import annotations

import hashlib
import shutil
import tempfile
from pathlib import Path, PurePosixPath
from typing import Mapping, NamedTuple, Protocol, Sequence

from ci_release.common import CiReleaseError, run_cmd


DEFAULT_DIGESTS = ("md5", "sha1")
SIGNATURE_SUFFIX = ".asc"


class Signer(Protocol):
    def sign(self, files: Mapping[str, bytes]) -> dict[str, bytes]: ...


class Bundle(Protocol):
    bundle_directory: Path

    def clean(self) -> None: ...

    def release(self) -> None: ...


class GpgSigner:
    """
    Sign each file with the key already imported into the gpg keyring.

    Returns the input files plus one armored detached signature per file
    (`<name>.asc`), which is what Sonatype staging expects next to artifacts.
    """

    def __init__(self, *, key_id: str = "", passphrase: str = "", gpg_version: int = 2) -> None:
        self.key_id = key_id
        self.passphrase = passphrase
        self.gpg_version = gpg_version

    def sign_command(self, source: Path, signature: Path) -> list[str]:
        command = ["gpg", "--batch", "--yes", "--armor", "--detach-sign"]
        if self.key_id:
            command.extend(["--local-user", self.key_id])
        if self.passphrase:
            # Passphrase goes through stdin so it never shows in the process list.
            # gpg 1.x has no pinentry modes and reads --passphrase-fd directly.
            if self.gpg_version >= 2:
                command.extend(["--pinentry-mode", "loopback"])
            command.extend(["--passphrase-fd", "0"])
        command.extend(["--output", str(signature), str(source)])
        return command

    def sign(self, files: Mapping[str, bytes]) -> dict[str, bytes]:
        signed = dict(files)
        with tempfile.TemporaryDirectory(prefix="ci-release-sign-") as tmp:
            for name, content in sorted(files.items()):
                source = Path(tmp) / safe_relative_path(name)
                source.parent.mkdir(parents=True, exist_ok=True)
                source.write_bytes(content)
                signature = source.with_name(source.name + SIGNATURE_SUFFIX)
                run_cmd(
                    self.sign_command(source, signature),
                    input=self.passphrase or None,
                )
                signed[name + SIGNATURE_SUFFIX] = signature.read_bytes()
        return signed


def checksums(
    files: Mapping[str, bytes],
    algorithms: Sequence[str] = DEFAULT_DIGESTS,
) -> dict[str, bytes]:
    """Return `files` plus a `<name>.<algorithm>` hex digest file for each entry."""
    digested = dict(files)
    for name, content in files.items():
        for algorithm in algorithms:
            digest = hashlib.new(algorithm, content).hexdigest()
            digested[f"{name}.{algorithm}"] = digest.encode("ascii")
    return digested


def safe_relative_path(name: str) -> PurePosixPath:
    """
    Validate a bundle entry name.

    Entries must be relative and must not climb out of the bundle with `..`.
    """
    path = PurePosixPath(name)
    if not name or path.is_absolute() or ".." in path.parts:
        raise CiReleaseError(f"Refusing unsafe bundle path: {name!r}")
    return path


def normalize_entries(files: Mapping[str, bytes]) -> dict[str, bytes]:
    """
    Key `files` by their normalized bundle path (`./a.jar` becomes `a.jar`).

    Two keys naming the same path are rejected.
    """
    normalized: dict[str, bytes] = {}
    for name, content in files.items():
        key = safe_relative_path(name).as_posix()
        if key in normalized:
            raise CiReleaseError(f"Duplicate bundle path: {name!r} and another entry both write {key}")
        normalized[key] = content
    return normalized


class SyncReport(NamedTuple):
    created: list[str]
    changed: list[str]
    unchanged: list[str]
    deleted: list[str]

    def summary(self) -> str:
        return (
            f"{len(self.created)} created, {len(self.changed)} changed, "
            f"{len(self.unchanged)} unchanged, {len(self.deleted)} deleted"
        )


def _existing_files(target_dir: Path) -> set[str]:
    if not target_dir.exists():
        return set()
    return {path.relative_to(target_dir).as_posix() for path in target_dir.rglob("*") if path.is_file()}


def sync_bytes(
    target_dir: Path,
    files: Mapping[str, bytes],
    *,
    delete_unknowns: bool = True,
    soft: bool = False,
) -> SyncReport:
    """
    Make `target_dir` hold exactly `files` (or at least `files` when not deleting unknowns).

    `soft=True` computes the report without writing or deleting anything.
    """
    existing = _existing_files(target_dir)
    wanted = normalize_entries(files)
    created: list[str] = []
    changed: list[str] = []
    unchanged: list[str] = []

    for name, content in sorted(wanted.items()):
        path = target_dir / name
        if name in existing:
            if path.read_bytes() == content:
                unchanged.append(name)
                continue
            changed.append(name)
        else:
            created.append(name)
        if not soft:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)

    deleted = sorted(existing - set(wanted)) if delete_unknowns else []
    if not soft:
        for name in deleted:
            (target_dir / name).unlink()

    return SyncReport(created=created, changed=changed, unchanged=unchanged, deleted=deleted)


class StagingBundle:
    """Staging bundle directory plus the command that uploads and releases it."""

    def __init__(self, bundle_directory: Path, release_command: Sequence[str] | None = None) -> None:
        self.bundle_directory = bundle_directory
        self.release_command = list(release_command) if release_command else None

    def clean(self) -> None:
        # Start from an empty bundle so nothing from an earlier run gets released.
        shutil.rmtree(self.bundle_directory, ignore_errors=True)

    def release(self) -> None:
        if not self.release_command:
            raise CiReleaseError(
                f"No bundle release command configured; bundle left at {self.bundle_directory}"
            )
        run_cmd(self.release_command, capture_output=False)
