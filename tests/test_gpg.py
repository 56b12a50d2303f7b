"""
Script: tests/test_gpg.py
What: Tests for signing-key import helpers in `ci_release/gpg.py`.
Doing: Checks gpg version parsing, import flags, and which commands `setup_gpg` runs per provider.
Why: gpg 1.x and 2.x need different import flags, and Azure ships the key zipped.
Goal: Keep key import working across gpg versions and CI providers.
"""

from __future__ import annotations

import base64
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from ci_release.common import CiReleaseError
from ci_release.gpg import gpg_major_version, import_args, setup_gpg


GPG2_VERSION_OUTPUT = "gpg (GnuPG) 2.2.27\nlibgcrypt 1.8.8\nCopyright (C) 2021 Free Software Foundation, Inc.\n"


class GpgVersionTests(unittest.TestCase):
    def test_parses_major_version(self) -> None:
        self.assertEqual(gpg_major_version(GPG2_VERSION_OUTPUT), 2)
        self.assertEqual(gpg_major_version("gpg (GnuPG) 1.4.23\n"), 1)
        self.assertEqual(gpg_major_version("gpg (GnuPG/MacGPG2) 2.4.0-beta1\n"), 2)

    def test_unparseable_version_is_zero(self) -> None:
        self.assertEqual(gpg_major_version(""), 0)
        self.assertEqual(gpg_major_version("gpg (GnuPG) unknown\n"), 0)

    def test_import_args(self) -> None:
        self.assertEqual(import_args(0), ["--import"])
        self.assertEqual(import_args(1), ["--import"])
        self.assertEqual(import_args(2), ["--batch", "--import"])


class SetupGpgTests(unittest.TestCase):
    def test_pipes_base64_secret_into_gpg(self) -> None:
        with mock.patch("ci_release.gpg.run_cmd", return_value=GPG2_VERSION_OUTPUT), mock.patch(
            "ci_release.gpg.run_piped"
        ) as run_piped:
            setup_gpg(env={"PGP_SECRET": "c2VjcmV0"})

        args, kwargs = run_piped.call_args
        self.assertEqual(args, (["base64", "--decode"], ["gpg", "--batch", "--import"]))
        self.assertEqual(kwargs["first_input"], b"c2VjcmV0")

    def test_requires_pgp_secret(self) -> None:
        with mock.patch("ci_release.gpg.run_cmd", return_value=GPG2_VERSION_OUTPUT):
            with self.assertRaises(CiReleaseError):
                setup_gpg(env={})

    def test_azure_unzips_key_archive(self) -> None:
        archive = b"PK\x03\x04 fake zip"
        env = {"TF_BUILD": "True", "PGP_SECRET": base64.b64encode(archive).decode("ascii")}
        calls: list[list[str]] = []

        def fake_run_cmd(args, **_kwargs):
            calls.append(list(args))
            return GPG2_VERSION_OUTPUT if args[:2] == ["gpg", "--version"] else ""

        with tempfile.TemporaryDirectory() as tmp, mock.patch(
            "ci_release.gpg.run_cmd", side_effect=fake_run_cmd
        ):
            setup_gpg(env=env, workdir=Path(tmp))
            self.assertEqual((Path(tmp) / "gpg.zip").read_bytes(), archive)

        self.assertEqual(
            calls,
            [
                ["gpg", "--version"],
                ["unzip", "-o", "gpg.zip"],
                ["gpg", "--batch", "--import", "gpg.key"],
            ],
        )


if __name__ == "__main__":
    unittest.main()
