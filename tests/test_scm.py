from __future__ import annotations

import unittest
from unittest import mock

from ci_release.common import CiReleaseError
from ci_release.scm import ScmInfo, infer_scm_info, parse_remote


EXPECTED = ScmInfo(
    url="https://github.com/foo/bar",
    connection="scm:git:https://github.com/foo/bar.git",
    developer_connection="scm:git:git@github.com:foo/bar.git",
)


class ParseRemoteTests(unittest.TestCase):
    def test_ssh_remote(self) -> None:
        self.assertEqual(parse_remote("git@github.com:foo/bar.git"), EXPECTED)

    def test_https_remote_with_and_without_suffix(self) -> None:
        self.assertEqual(parse_remote("https://github.com/foo/bar.git"), EXPECTED)
        self.assertEqual(parse_remote("https://github.com/foo/bar"), EXPECTED)

    def test_git_protocol_remote(self) -> None:
        self.assertEqual(parse_remote("git://github.com:foo/bar.git"), EXPECTED)

    def test_trailing_newline_from_git_is_ignored(self) -> None:
        self.assertEqual(parse_remote("git@github.com:foo/bar.git\n"), EXPECTED)

    def test_non_github_remote(self) -> None:
        self.assertIsNone(parse_remote("git@gitlab.com:foo/bar.git"))
        self.assertIsNone(parse_remote("https://github.com/foo/bar/baz"))
        self.assertIsNone(parse_remote("origin"))


class InferScmInfoTests(unittest.TestCase):
    def test_uses_origin_remote(self) -> None:
        with mock.patch("ci_release.scm.run_cmd", return_value="git@github.com:foo/bar.git\n") as run_cmd:
            self.assertEqual(infer_scm_info(), EXPECTED)
        self.assertEqual(run_cmd.call_args.args[0], ["git", "ls-remote", "--get-url", "origin"])

    def test_git_failure_gives_none(self) -> None:
        with mock.patch("ci_release.scm.run_cmd", side_effect=CiReleaseError("not a git repository")):
            self.assertIsNone(infer_scm_info())

    def test_missing_git_gives_none(self) -> None:
        with mock.patch("ci_release.scm.run_cmd", side_effect=FileNotFoundError("git")):
            self.assertIsNone(infer_scm_info())


if __name__ == "__main__":
    unittest.main()
