"""SSH helpers for ssh_remote."""

from .auth import resolve_auth
from .commands import HOST_KEY_OPTIONS, build_ssh_command, credential_file
from .rsync import RsyncExecutor
from .transport import (
    CommandExecutor,
    RemoteCommandFailed,
    RemoteTimeout,
    SSHCommandError,
    SSHResult,
    run_ssh,
    write_file_ssh,
)

__all__ = [
    "CommandExecutor",
    "HOST_KEY_OPTIONS",
    "RemoteCommandFailed",
    "RemoteTimeout",
    "RsyncExecutor",
    "SSHCommandError",
    "SSHResult",
    "build_ssh_command",
    "credential_file",
    "resolve_auth",
    "run_ssh",
    "write_file_ssh",
]
