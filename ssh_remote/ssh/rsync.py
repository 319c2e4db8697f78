"""Volume data transfer with rsync tunneled over ssh."""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
import threading
from typing import IO, Any, List, Mapping, Optional

from ssh_remote.types import ProgressCallback, ProgressEntry, ProgressType, ResolvedAuth
from .commands import build_ssh_command, credential_file
from .transport import CommandExecutor, RemoteCommandFailed

logger = logging.getLogger(__name__)

RSYNC_FLAGS: tuple[str, ...] = ("-aS", "--delete", "--info=progress2")

# --info=progress2 lines, e.g.
#     1,238,099 100%  146.38kB/s    0:00:08 (xfr#5, to-chk=169/396)
_PROGRESS_LINE = re.compile(
    r"^\s*(?P<bytes>[\d,.]+)\s+(?P<percent>\d+)%\s+(?P<rate>\S+/s)\s+(?P<eta>\d+:\d{2}:\d{2})"
)
_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")


def parse_progress(line: str) -> Optional[ProgressEntry]:
    """Turn one line of rsync progress output into a progress entry."""
    match = _PROGRESS_LINE.match(line)
    if not match:
        return None
    transferred = int(re.sub(r"[,.]", "", match.group("bytes")))
    percent = int(match.group("percent"))
    message = f"{format_bytes(transferred)} ({percent}%) {match.group('rate')}"
    return ProgressEntry(type=ProgressType.PROGRESS, message=message, percent=percent)


def format_bytes(count: int) -> str:
    """Render a byte count with a decimal unit suffix, e.g. ``1.2MB``."""
    value = float(count)
    for unit in _UNITS:
        if value < 1000 or unit == _UNITS[-1]:
            return f"{int(value)}{unit}" if unit == "B" else f"{value:.1f}{unit}"
        value /= 1000
    return f"{count}B"  # pragma: no cover


class RsyncExecutor:
    """Copies ``src`` to ``dst`` with rsync, reusing the ssh credential semantics."""

    def __init__(
        self,
        update_progress: ProgressCallback,
        remote: Mapping[str, Any],
        auth: ResolvedAuth,
        src: str,
        dst: str,
        executor: CommandExecutor | None = None,
    ):
        self.update_progress = update_progress
        self.remote = remote
        self.auth = auth
        self.src = src
        self.dst = dst
        self.executor = executor or CommandExecutor()

    def build_command(self, credential_path: str) -> List[str]:
        ssh_args = build_ssh_command(self.remote, self.auth, credential_path, False)
        return ["rsync", *RSYNC_FLAGS, "-e", shlex.join(ssh_args), self.src, self.dst]

    def run(self) -> None:
        """Run the transfer, reporting progress until rsync exits.

        stderr is drained on a separate thread while stdout is parsed, so a
        chatty rsync cannot block on a full pipe.
        """
        with credential_file() as path:
            args = self.build_command(str(path))
            logger.info("Syncing %s to %s", self.src, self.dst)
            self.update_progress(ProgressEntry(type=ProgressType.START, message=f"Syncing {self.src} to {self.dst}"))
            process = self.executor.start(args, stdin=subprocess.DEVNULL)
            stderr_chunks: List[str] = []
            reader = threading.Thread(
                target=_drain, args=(process.stderr, stderr_chunks), name="rsync-stderr", daemon=True
            )
            reader.start()
            try:
                for line in process.stdout:
                    entry = parse_progress(line)
                    if entry is not None:
                        self.update_progress(entry)
                exit_code = process.wait()
                reader.join()
            except BaseException:
                process.kill()
                process.wait()
                reader.join(timeout=1)
                raise
        stderr = "".join(stderr_chunks)
        if exit_code != 0:
            self.update_progress(ProgressEntry(type=ProgressType.FAILED, message=stderr.strip() or None))
            raise RemoteCommandFailed(args, exit_code, stderr)
        self.update_progress(ProgressEntry(type=ProgressType.END, message="Sync complete", percent=100))


def _drain(stream: IO[str], chunks: List[str]) -> None:
    for line in stream:
        chunks.append(line)


__all__ = ["RSYNC_FLAGS", "RsyncExecutor", "format_bytes", "parse_progress"]
