"""
Script: ci_release/scm.py
What: Infers SCM metadata (web URL and connection strings) from the `origin` git remote.
Doing: Reads `git ls-remote --get-url origin` and matches the HTTPS, git:// and SSH GitHub remote forms.
Why: Published POMs need SCM info, and the remote already says where the code lives.
Goal: Produce SCM info for GitHub projects and "unknown" for everything else, never an error.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from ci_release.common import CiReleaseError, run_cmd, write_github_outputs


_IDENTIFIER = r"([^/]+?)"
GITHUB_REMOTE_RES = (
    re.compile(rf"https://github\.com/{_IDENTIFIER}/{_IDENTIFIER}(?:\.git)?"),
    re.compile(rf"git://github\.com:{_IDENTIFIER}/{_IDENTIFIER}(?:\.git)?"),
    re.compile(rf"git@github\.com:{_IDENTIFIER}/{_IDENTIFIER}(?:\.git)?"),
)


class ScmInfo(NamedTuple):
    url: str
    connection: str
    developer_connection: str


def github_scm_info(user: str, repo: str) -> ScmInfo:
    return ScmInfo(
        url=f"https://github.com/{user}/{repo}",
        connection=f"scm:git:https://github.com/{user}/{repo}.git",
        developer_connection=f"scm:git:git@github.com:{user}/{repo}.git",
    )


def parse_remote(remote: str) -> ScmInfo | None:
    """Return SCM info for a GitHub remote URL, or None for any other remote."""
    remote = remote.strip()
    for pattern in GITHUB_REMOTE_RES:
        match = pattern.fullmatch(remote)
        if match:
            return github_scm_info(match.group(1), match.group(2))
    return None


def infer_scm_info(*, cwd: str | None = None) -> ScmInfo | None:
    """Look up the `origin` remote; a missing git, repo or remote all give None."""
    try:
        remote = run_cmd(["git", "ls-remote", "--get-url", "origin"], cwd=cwd)
    except (CiReleaseError, OSError):
        return None
    return parse_remote(remote)


def main() -> None:
    info = infer_scm_info()
    if info is None:
        print("No GitHub SCM info found for remote origin")
        write_github_outputs({"scm_url": "", "scm_connection": "", "scm_developer_connection": ""})
        return

    write_github_outputs(
        {
            "scm_url": info.url,
            "scm_connection": info.connection,
            "scm_developer_connection": info.developer_connection,
        }
    )
    print(f"SCM url: {info.url}")
    print(f"SCM connection: {info.connection}")
    print(f"SCM developer connection: {info.developer_connection}")


if __name__ == "__main__":
    main()
