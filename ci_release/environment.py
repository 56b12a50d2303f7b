"""
Script: ci_release/environment.py
What: Answers questions about the CI run from environment variables.
Doing: Checks provider-specific variables in a fixed order (tag, branch, secure context, provider).
Why: Each CI provider names the same concept differently; this module is the one place that knows the order.
Goal: Let the release flow gate on "secure" and "tag push" without special-casing providers.
"""

from __future__ import annotations

import os
from typing import Mapping, Sequence

from ci_release.common import bool_output, write_github_outputs


UNKNOWN = "<unknown>"
TAG_REF_PREFIX = "refs/tags"
SNAPSHOT_SUFFIX = "-SNAPSHOT"

# Provider-specific variables come before the generic ref variables.
TAG_VARS = ("TRAVIS_TAG", "CIRCLE_TAG", "CI_COMMIT_TAG")
REF_VARS = ("BUILD_SOURCEBRANCH", "GITHUB_REF")
RELEASE_TAG_VARS = ("TRAVIS_TAG", "BUILD_SOURCEBRANCH", "GITHUB_REF", "CIRCLE_TAG", "CI_COMMIT_TAG")
BRANCH_VARS = ("TRAVIS_BRANCH", "BUILD_SOURCEBRANCH", "GITHUB_REF", "CIRCLE_BRANCH", "CI_COMMIT_BRANCH")


def _env(env: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if env is None else env


def first_non_empty(names: Sequence[str], env: Mapping[str, str] | None = None) -> str | None:
    """
    Return the value of the first variable in `names` that is set and non-empty.

    Unset and empty variables both fall through to the next name.
    """
    values = _env(env)
    for name in names:
        value = values.get(name)
        if value:
            return value
    return None


def is_secure(env: Mapping[str, str] | None = None) -> bool:
    """True when this run can see secret variables."""
    values = _env(env)
    return (
        values.get("TRAVIS_SECURE_ENV_VARS") == "true"
        or values.get("BUILD_REASON") == "IndividualCI"
        or values.get("PGP_SECRET") is not None
    )


def is_tag(env: Mapping[str, str] | None = None) -> bool:
    values = _env(env)
    if any(values.get(name) for name in TAG_VARS):
        return True
    ref = first_non_empty(REF_VARS, values)
    return ref is not None and ref.startswith(TAG_REF_PREFIX)


def release_tag(env: Mapping[str, str] | None = None) -> str:
    value = first_non_empty(RELEASE_TAG_VARS, env)
    return UNKNOWN if value is None else value


def current_branch(env: Mapping[str, str] | None = None) -> str:
    value = first_non_empty(BRANCH_VARS, env)
    return UNKNOWN if value is None else value


def is_snapshot_version(version: str) -> bool:
    return version.endswith(SNAPSHOT_SUFFIX)


def is_azure(env: Mapping[str, str] | None = None) -> bool:
    return _env(env).get("TF_BUILD") == "True"


def is_github(env: Mapping[str, str] | None = None) -> bool:
    return _env(env).get("GITHUB_ACTION") is not None


def is_circle_ci(env: Mapping[str, str] | None = None) -> bool:
    return _env(env).get("CIRCLECI") == "true"


def is_gitlab(env: Mapping[str, str] | None = None) -> bool:
    return _env(env).get("GITLAB_CI") == "true"


def ci_provider(env: Mapping[str, str] | None = None) -> str:
    """Name the CI provider running this build, or `unknown`."""
    values = _env(env)
    if is_azure(values):
        return "azure"
    if is_github(values):
        return "github"
    if is_circle_ci(values):
        return "circleci"
    if is_gitlab(values):
        return "gitlab"
    if values.get("TRAVIS") == "true":
        return "travis"
    return "unknown"


def describe_environment(env: Mapping[str, str] | None = None) -> dict[str, str]:
    """Collect every classifier answer as step-output strings."""
    values = _env(env)
    return {
        "ci_provider": ci_provider(values),
        "is_secure": bool_output(is_secure(values)),
        "is_tag": bool_output(is_tag(values)),
        "release_tag": release_tag(values),
        "current_branch": current_branch(values),
    }


def main() -> None:
    outputs = describe_environment()
    write_github_outputs(outputs)
    for key, value in outputs.items():
        print(f"{key}: {value}")


if __name__ == "__main__":
    main()
