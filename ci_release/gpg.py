"""
Script: ci_release/gpg.py
What: Imports the PGP signing key from the `PGP_SECRET` CI variable.
Doing: Detects the gpg major version, then imports either a zipped key (Azure) or a base64 key piped through `base64 --decode`.
Why: Artifacts must be signed with the project key before they go into the staging bundle.
Goal: Leave the signing key in the runner's keyring for later `gpg --detach-sign` calls.
"""

from __future__ import annotations

import base64
import binascii
import re
from pathlib import Path
from typing import Mapping

from ci_release.common import CiReleaseError, require_env, run_cmd
from ci_release.environment import is_azure
from ci_release.pipe import LineSink, print_sink, run_piped


TAGGED_VERSION_RE = re.compile(r"(\d{1,14})([\.\d{1,14}]*)((?:-\w+)*)")
AZURE_ARCHIVE_NAME = "gpg.zip"
AZURE_KEY_NAME = "gpg.key"


def gpg_major_version(version_output: str) -> int:
    """
    Parse the major version from `gpg --version` output.

    Example first line: `gpg (GnuPG) 2.2.27` gives `2`.
    Anything unparseable gives `0`.
    """
    lines = version_output.splitlines()
    if not lines or not lines[0].split():
        return 0
    match = TAGGED_VERSION_RE.fullmatch(lines[0].split()[-1])
    if not match:
        return 0
    return int(match.group(1))


def import_args(major_version: int) -> list[str]:
    """Return gpg import flags; gpg 2+ needs `--batch` to import secret keys without a tty."""
    # https://dev.gnupg.org/T2313
    if major_version < 2:
        return ["--import"]
    return ["--batch", "--import"]


def _run_logged(args: list[str], *, cwd: str, sink: LineSink | None, operation: str) -> None:
    output = run_cmd(args, cwd=cwd)
    if sink is not None:
        for line in output.splitlines():
            sink(operation, line)


def import_zipped_key(secret: str, gpg_import: list[str], *, workdir: Path, sink: LineSink | None) -> None:
    """
    Import a key shipped as a base64 zip archive holding `gpg.key`.

    Azure variables are capped at 4k; a compressed key fits, a base64 one does not.
    """
    try:
        archive = base64.b64decode(secret, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise CiReleaseError("PGP_SECRET is not valid base64") from exc

    workdir.mkdir(parents=True, exist_ok=True)
    (workdir / AZURE_ARCHIVE_NAME).write_bytes(archive)
    _run_logged(["unzip", "-o", AZURE_ARCHIVE_NAME], cwd=str(workdir), sink=sink, operation="ci-release")
    _run_logged(["gpg", *gpg_import, AZURE_KEY_NAME], cwd=str(workdir), sink=sink, operation="ci-release")


def import_piped_key(secret: str, gpg_import: list[str], *, sink: LineSink | None) -> None:
    """Import a base64 key via `base64 --decode | gpg --import`."""
    run_piped(
        ["base64", "--decode"],
        ["gpg", *gpg_import],
        first_input=secret.encode("utf-8"),
        sink=sink,
        operation="ci-release",
    )


def setup_gpg(
    *,
    env: Mapping[str, str] | None = None,
    workdir: Path | None = None,
    sink: LineSink | None = None,
) -> None:
    """Import the signing key from `PGP_SECRET` into the local gpg keyring."""
    version_output = run_cmd(["gpg", "--version"])
    gpg_import = import_args(gpg_major_version(version_output))
    secret = require_env("PGP_SECRET", env)

    if is_azure(env):
        import_zipped_key(secret, gpg_import, workdir=workdir or Path.cwd(), sink=sink)
    else:
        import_piped_key(secret, gpg_import, sink=sink)


def main() -> None:
    setup_gpg(sink=print_sink)
    print("Imported PGP signing key")


if __name__ == "__main__":
    main()
