"""
Script: ci_release/common.py
What: Shared helper functions used by all `ci_release` modules.
Doing: Wraps env reads, command execution, and GitHub step output writes.
Why: Avoids duplicated helper code.
Goal: Keep behavior consistent across all release helper modules.
"""

from __future__ import annotations

import os
import subprocess
from typing import Mapping, Sequence


class CiReleaseError(RuntimeError):
    """Raised when a release helper hits a known error condition."""


def _lookup(env: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if env is None else env


def require_env(name: str, env: Mapping[str, str] | None = None) -> str:
    """Return a required environment variable or raise a clear error."""
    value = _lookup(env).get(name)
    if value is None or value == "":
        raise CiReleaseError(f"Missing required environment variable: {name}")
    return value


def optional_env(name: str, default: str = "", env: Mapping[str, str] | None = None) -> str:
    """Return an environment variable with a fallback default."""
    return _lookup(env).get(name, default)


def env_flag(name: str, env: Mapping[str, str] | None = None) -> bool:
    """True when the variable is set to `true` (any case)."""
    return optional_env(name, "false", env).strip().lower() == "true"


def run_cmd(
    args: Sequence[str],
    *,
    capture_output: bool = True,
    cwd: str | None = None,
    input: str | None = None,
) -> str:
    """Run a command and return stdout, raising a readable error on failure."""
    try:
        result = subprocess.run(
            list(args),
            check=True,
            text=True,
            capture_output=capture_output,
            cwd=cwd,
            input=input,
        )
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        stdout = (exc.stdout or "").strip()
        details = stderr or stdout or str(exc)
        raise CiReleaseError(f"Command failed: {' '.join(args)}\n{details}") from exc

    if not capture_output:
        return ""
    return result.stdout


def write_github_outputs(values: Mapping[str, str], env: Mapping[str, str] | None = None) -> None:
    """
    Write step outputs for GitHub Actions.

    GitHub provides a file path in `GITHUB_OUTPUT`; writing `name=value` lines
    there makes that value available to later steps in the same job.
    Outside GitHub Actions (no `GITHUB_OUTPUT`) this does nothing, so the same
    commands also run on other CI providers.
    """
    output_file = optional_env("GITHUB_OUTPUT", env=env)
    if not output_file:
        return
    with open(output_file, "a", encoding="utf-8") as handle:
        for key, value in values.items():
            handle.write(f"{key}={value}\n")


def bool_output(value: bool) -> str:
    """Render a boolean the way workflow expressions compare it."""
    return "true" if value else "false"
