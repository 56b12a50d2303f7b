"""
Script: ci_release/pipe.py
What: Runs two commands where the first command's stdout becomes the second command's stdin.
Doing: Runs the first command to completion, keeps its stdout in memory, and remembers its last stderr line.
Why: A plain shell pipe reports the second command's broken-pipe error and hides why the first command failed.
Goal: Surface the first command's own diagnostic when a pipe like `base64 --decode | gpg --import` fails.
"""

from __future__ import annotations

import subprocess
from typing import Callable, Mapping, NamedTuple, Sequence, Union

from ci_release.common import CiReleaseError


LineSink = Callable[[str, str], None]


class PipeFailError(CiReleaseError):
    """Raised when the first command of a pipe fails and printed something to stderr."""


class Command(NamedTuple):
    """An argument vector plus the optional working directory and environment to run it with."""

    args: Sequence[str]
    cwd: str | None = None
    env: Mapping[str, str] | None = None

    def display(self) -> str:
        return " ".join(self.args)


CommandLike = Union[Command, Sequence[str]]


class ErrorRecord:
    """
    Most recent non-blank stderr line seen from one command.

    Each new line replaces the previous one, so after a failure this holds the
    last thing the command complained about. One record belongs to one
    `run_piped` call.
    """

    def __init__(self) -> None:
        self.last_line: str | None = None

    def err(self, line: str) -> None:
        if line.strip():
            self.last_line = line


def print_sink(operation: str, line: str) -> None:
    """Default sink: print each command line labeled with the operation name."""
    print(f"[{operation}] {line}")


def as_command(command: CommandLike) -> Command:
    if isinstance(command, Command):
        return command
    if isinstance(command, (str, bytes)):
        # A bare string would be split into characters by subprocess on POSIX.
        raise TypeError("Commands must be argument lists, not strings")
    return Command(args=list(command))


def _decode_lines(data: bytes | None) -> list[str]:
    if not data:
        return []
    return data.decode("utf-8", errors="replace").splitlines()


def _run(command: Command, stdin_data: bytes | None) -> subprocess.CompletedProcess:
    return subprocess.run(
        list(command.args),
        input=stdin_data,
        capture_output=True,
        check=False,
        cwd=command.cwd,
        env=dict(command.env) if command.env is not None else None,
    )


def run_first(
    command: Command,
    *,
    record: ErrorRecord,
    first_input: bytes | None = None,
    sink: LineSink | None = None,
    operation: str = "pipe",
) -> bytes:
    """
    Run the first stage of a pipe and return its stdout bytes.

    Stdout is never passed to `sink` because it can hold secret material
    (decoded signing keys). Stderr lines go to both `record` and `sink`.
    Raises `subprocess.CalledProcessError` on a non-zero exit and lets
    `OSError` from a failed launch propagate.
    """
    result = _run(command, first_input)
    for line in _decode_lines(result.stderr):
        record.err(line)
        if sink is not None:
            sink(operation, line)
    result.check_returncode()
    return result.stdout


def run_piped(
    first: CommandLike,
    second: CommandLike,
    *,
    first_input: bytes | None = None,
    sink: LineSink | None = None,
    operation: str = "pipe",
    check: bool = True,
) -> subprocess.CompletedProcess:
    """
    Run `first`, then feed its stdout to `second` and return the second result.

    If `first` fails, the raised error prefers the last stderr line it printed:
    `PipeFailError(<line>)` chained to the `CalledProcessError`. When `first`
    printed nothing to stderr, the process error is re-raised unchanged.
    In both cases the second command never starts.

    If `second` fails and `check` is true, a `CiReleaseError` with the command
    line and its stderr is raised. With `check=False` its completed process is
    returned whatever the exit code.
    """
    first_command = as_command(first)
    second_command = as_command(second)

    record = ErrorRecord()
    try:
        buffered = run_first(
            first_command,
            record=record,
            first_input=first_input,
            sink=sink,
            operation=operation,
        )
    except subprocess.CalledProcessError as exc:
        if record.last_line is None:
            raise
        raise PipeFailError(record.last_line) from exc

    result = _run(second_command, buffered)
    if sink is not None:
        for line in _decode_lines(result.stdout) + _decode_lines(result.stderr):
            sink(operation, line)

    if check:
        try:
            result.check_returncode()
        except subprocess.CalledProcessError as exc:
            details = "\n".join(_decode_lines(result.stderr)).strip() or str(exc)
            raise CiReleaseError(
                f"Command failed: {first_command.display()} | {second_command.display()}\n{details}"
            ) from exc
    return result
