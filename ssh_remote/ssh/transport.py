"""Utilities for executing SSH commands."""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass
from typing import Any, List, Mapping, Sequence

from .auth import resolve_auth
from .commands import build_ssh_command, credential_file

logger = logging.getLogger(__name__)

NOT_FOUND_MARKER = "No such file or directory"
WRITE_TIMEOUT = 10


class SSHCommandError(RuntimeError):
    """Raised when an SSH command cannot be executed."""


class RemoteCommandFailed(SSHCommandError):
    """Raised when a remote command exits with a non-zero status."""

    def __init__(self, command: Sequence[str], exit_code: int, output: str):
        self.command = list(command)
        self.exit_code = exit_code
        self.output = output
        detail = output.strip() or "no output"
        super().__init__(f"Command '{_format_command(command)}' failed with exit code {exit_code}: {detail}")


class RemoteTimeout(SSHCommandError):
    """Raised when a remote command does not finish in time."""

    def __init__(self, command: Sequence[str], timeout: float):
        self.command = list(command)
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout}s waiting for command: {_format_command(command)}")


@dataclass
class SSHResult:
    command: List[str]
    exit_code: int
    stdout: str
    stderr: str
    not_found: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


class CommandExecutor:
    """Runs external programs on behalf of the SSH and rsync helpers."""

    def execute(self, command: Sequence[str]) -> SSHResult:
        """Run a command to completion and capture its output."""
        logger.debug("Running %s", _format_command(command))
        try:
            completed = subprocess.run(
                list(command),
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise SSHCommandError(f"Failed to execute command: {exc}") from exc
        return _make_result(command, completed.returncode, completed.stdout, completed.stderr)

    def start(self, command: Sequence[str], *, stdin: Any = subprocess.PIPE) -> subprocess.Popen:
        """Start a command with piped output for interactive use."""
        logger.debug("Starting %s", _format_command(command))
        try:
            return subprocess.Popen(
                list(command),
                stdin=stdin,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as exc:
            raise SSHCommandError(f"Failed to execute command: {exc}") from exc


def check_result(result: SSHResult) -> SSHResult:
    """Pass through successes and missing paths, raise on any other failure."""
    if result.ok or result.not_found:
        return result
    raise RemoteCommandFailed(result.command, result.exit_code, result.output)


def run_ssh(
    remote: Mapping[str, Any],
    parameters: Mapping[str, Any],
    *command: str,
    executor: CommandExecutor | None = None,
) -> SSHResult:
    """Run a command on the remote host and classify the outcome.

    A result with ``not_found`` set means the remote reported a missing path;
    callers decide whether that is an error.
    """
    executor = executor or CommandExecutor()
    auth = resolve_auth(remote, parameters)
    with credential_file() as path:
        args = build_ssh_command(remote, auth, path, True, *command)
        result = executor.execute(args)
    if result.not_found:
        logger.debug("Remote path not found for %s", _format_command(command))
    return check_result(result)


def write_file_ssh(
    remote: Mapping[str, Any],
    parameters: Mapping[str, Any],
    path: str,
    content: str,
    *,
    executor: CommandExecutor | None = None,
    timeout: float = WRITE_TIMEOUT,
) -> SSHResult:
    """Write ``content`` to ``path`` on the remote host through ``cat``."""
    executor = executor or CommandExecutor()
    auth = resolve_auth(remote, parameters)
    with credential_file() as cred_path:
        args = build_ssh_command(remote, auth, cred_path, True, "sh", "-c", f"cat > {path}")
        process = executor.start(args)
        try:
            stdout, stderr = process.communicate(input=content, timeout=timeout)
        except subprocess.TimeoutExpired:
            process.kill()
            process.communicate()
            raise RemoteTimeout(args, timeout) from None
        result = _make_result(args, process.returncode, stdout or "", stderr or "")
    logger.debug("Wrote %d characters to %s", len(content), path)
    return check_result(result)


def _make_result(command: Sequence[str], exit_code: int, stdout: str, stderr: str) -> SSHResult:
    not_found = exit_code != 0 and NOT_FOUND_MARKER in stdout + stderr
    return SSHResult(
        command=list(command),
        exit_code=exit_code,
        stdout=stdout,
        stderr=stderr,
        not_found=not_found,
    )


def _format_command(parts: Sequence[str]) -> str:
    return " ".join(shlex.quote(part) for part in parts)


__all__ = [
    "CommandExecutor",
    "NOT_FOUND_MARKER",
    "RemoteCommandFailed",
    "RemoteTimeout",
    "SSHCommandError",
    "SSHResult",
    "WRITE_TIMEOUT",
    "check_result",
    "run_ssh",
    "write_file_ssh",
]
