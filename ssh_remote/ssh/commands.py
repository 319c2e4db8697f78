"""SSH argument construction and credential file handling."""

from __future__ import annotations

import os
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Mapping

from ssh_remote.types import ResolvedAuth

CREDENTIAL_PREFIX = "ssh_remote_cred"
HOST_KEY_OPTIONS: tuple[str, ...] = (
    "-o",
    "StrictHostKeyChecking=no",
    "-o",
    "UserKnownHostsFile=/dev/null",
)


@contextmanager
def credential_file() -> Iterator[Path]:
    """Allocate a private temp file for a credential and always remove it."""
    fd, name = tempfile.mkstemp(prefix=CREDENTIAL_PREFIX)
    os.close(fd)
    path = Path(name)
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)


def write_credential(path: Path, secret: str) -> None:
    """Write a secret to ``path`` and leave it readable by the owner only."""
    path.write_text(secret)
    os.chmod(path, stat.S_IRUSR)


def build_ssh_command(
    remote: Mapping[str, Any],
    auth: ResolvedAuth,
    credential_path: Path | str,
    include_address: bool,
    *command: str,
) -> List[str]:
    """Build an ssh invocation, writing the credential to ``credential_path``.

    Host key checking is disabled; remotes are treated as managed endpoints.
    Trailing command tokens are passed through as-is.
    """
    path = str(credential_path)
    write_credential(Path(path), auth.secret)
    if auth.is_password:
        args = ["sshpass", "-f", path, "ssh"]
    else:
        args = ["ssh", "-i", path]

    if remote.get("port") is not None:
        args.extend(["-p", str(remote["port"])])

    args.extend(HOST_KEY_OPTIONS)
    if include_address:
        args.append(f"{remote['username']}@{remote['address']}")
    args.extend(command)
    return args


__all__ = ["HOST_KEY_OPTIONS", "build_ssh_command", "credential_file", "write_credential"]
