"""
Script: ci_release/release.py
What: Runs the ci-release flow for one CI job.
Doing: Gates on secure env access, imports the signing key, then signs, digests, and syncs artifacts into the staging bundle on tag pushes.
Why: Keeps the release decision (tag push vs snapshot) in one place instead of duplicating it per CI provider.
Goal: Publish a signed, checksummed staging bundle for every tag push and refuse everything else clearly.
"""

from __future__ import annotations

import shlex
from pathlib import Path
from typing import Callable, Mapping

from ci_release.bundle import Bundle, GpgSigner, Signer, StagingBundle, checksums, sync_bytes
from ci_release.common import CiReleaseError, env_flag, optional_env, require_env, run_cmd
from ci_release.environment import current_branch, is_secure, is_snapshot_version, is_tag
from ci_release.gpg import gpg_major_version, setup_gpg
from ci_release.pipe import LineSink, print_sink


def require_secure(env: Mapping[str, str] | None = None) -> None:
    if not is_secure(env):
        raise CiReleaseError("No access to secret variables, doing nothing")


def collect_files(directory: Path) -> dict[str, bytes]:
    """Read every file under `directory` as `{relative posix path: content}`."""
    if not directory.is_dir():
        raise CiReleaseError(f"Artifact directory not found: {directory}")
    return {
        path.relative_to(directory).as_posix(): path.read_bytes()
        for path in sorted(directory.rglob("*"))
        if path.is_file()
    }


def publish_bundle(files: Mapping[str, bytes], *, bundle: Bundle, signer: Signer) -> None:
    """Clean the bundle, then sign, digest, sync, and release it."""
    bundle.clean()

    print(f"Signing {len(files)} files")
    signed = signer.sign(files)
    print(f"Digesting {len(signed)} files")
    digested = checksums(signed)

    print(f"[{bundle.bundle_directory}] Writing bundle of {len(digested)} files")
    report = sync_bytes(bundle.bundle_directory, digested, delete_unknowns=True, soft=False)
    print(f"Wrote staging bundle to {bundle.bundle_directory}: {report.summary()}")

    bundle.release()


def ci_release(
    files: Mapping[str, bytes],
    *,
    version: str,
    bundle: Bundle,
    signer: Signer,
    snapshots_enabled: bool = False,
    env: Mapping[str, str] | None = None,
    sink: LineSink | None = None,
    setup: Callable[..., None] = setup_gpg,
) -> None:
    """
    Release `files` if this CI run is a tag push with access to secrets.

    The secure check runs before gpg is touched. The key is imported before
    the tag decision, so a broken secret fails branch builds too.
    """
    require_secure(env)

    print(f"[{current_branch(env)}] Running ci-release")
    setup(env=env, sink=sink)

    if not is_tag(env):
        if is_snapshot_version(version):
            print("No tag push, publishing SNAPSHOT")
            if not snapshots_enabled:
                raise CiReleaseError("SONATYPE_SNAPSHOTS must be true to publish snapshots")
            raise CiReleaseError("publish snapshots not implemented yet")
        # Happens when a tag is pushed right after a merge: the branch job picks
        # up the tagged (non-SNAPSHOT) version although this run is not a tag.
        raise CiReleaseError("Snapshot releases must have -SNAPSHOT version number, doing nothing")

    print("Tag push detected, publishing a stable release")
    publish_bundle(files, bundle=bundle, signer=signer)


def main() -> None:
    # Fail before reading any inputs when secrets are not available.
    require_secure()

    # Workflow inputs are supplied through environment variables.
    version = require_env("RELEASE_VERSION")
    artifacts_dir = Path(require_env("ARTIFACTS_DIR"))
    bundle_dir = Path(require_env("BUNDLE_DIR"))
    release_command = shlex.split(optional_env("BUNDLE_RELEASE_COMMAND"))

    signer = GpgSigner(
        key_id=optional_env("PGP_KEY_ID"),
        passphrase=optional_env("PGP_PASSPHRASE"),
        gpg_version=gpg_major_version(run_cmd(["gpg", "--version"])),
    )
    bundle = StagingBundle(bundle_dir, release_command)

    ci_release(
        collect_files(artifacts_dir),
        version=version,
        bundle=bundle,
        signer=signer,
        snapshots_enabled=env_flag("SONATYPE_SNAPSHOTS"),
        sink=print_sink,
    )


if __name__ == "__main__":
    main()
