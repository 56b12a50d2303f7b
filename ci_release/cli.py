"""
Script: ci_release/cli.py
What: Single entry point for the release helpers (`ci-release <command>`).
Doing: Maps command names to module `main()` functions and turns known failures into one stderr line plus exit 1.
Why: CI configs call one stable command per release step instead of importing modules.
Goal: Make a failed release step readable in the CI log without a Python traceback.
"""

from __future__ import annotations

import argparse
import subprocess
import sys
from collections.abc import Callable, Mapping

from ci_release.common import CiReleaseError


COMMAND_HELP = {
    "ci-info": "print and export tag, branch, secure-context, and provider details",
    "setup-gpg": "import the PGP_SECRET signing key into the gpg keyring",
    "infer-scm": "export SCM url and connection strings from the origin remote",
    "release": "sign, checksum, and stage artifacts, then release the bundle on tag pushes",
}


def command_map() -> dict[str, Callable[[], None]]:
    """Map each release step name to the `main()` that runs it."""
    from ci_release.environment import main as ci_info
    from ci_release.gpg import main as setup_gpg
    from ci_release.release import main as release
    from ci_release.scm import main as infer_scm

    return {
        "ci-info": ci_info,
        "setup-gpg": setup_gpg,
        "infer-scm": infer_scm,
        "release": release,
    }


def build_parser(commands: Mapping[str, Callable[[], None]]) -> argparse.ArgumentParser:
    steps = "\n".join(
        f"  {name:<10} {COMMAND_HELP.get(name, '')}".rstrip() for name in sorted(commands)
    )
    parser = argparse.ArgumentParser(
        prog="ci-release",
        description="Publish signed build artifacts from CI to a staging repository.",
        epilog=f"release steps:\n{steps}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("command", choices=sorted(commands.keys()), metavar="command")
    return parser


def run_command(command: str, commands: Mapping[str, Callable[[], None]]) -> None:
    """
    Run one release step.

    `commands` is passed in to keep this function easy to test.
    """
    commands[command]()


def main(argv: list[str] | None = None) -> None:
    commands = command_map()
    args = build_parser(commands).parse_args(argv)

    # A pipe stage that fails silently raises CalledProcessError; a missing
    # gpg/base64/unzip binary raises OSError.
    try:
        run_command(args.command, commands)
    except (CiReleaseError, subprocess.CalledProcessError, OSError) as exc:
        print(f"ci-release {args.command}: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
