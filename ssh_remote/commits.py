"""Commit metadata stored as JSON files on the remote host."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from ssh_remote.types import Commit
from ssh_remote.ssh.transport import CommandExecutor, RemoteCommandFailed, run_ssh, write_file_ssh

logger = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"
TagFilter = Sequence[Tuple[str, Optional[str]]]

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def metadata_path(remote: Mapping[str, Any], commit_id: str) -> str:
    """Return the remote path of a commit's metadata document."""
    return f"{remote['path']}/{commit_id}/{METADATA_FILE}"


def get_commit(
    remote: Mapping[str, Any],
    parameters: Mapping[str, Any],
    commit_id: str,
    *,
    executor: CommandExecutor | None = None,
) -> Optional[Commit]:
    """Read a commit's metadata, or None when it doesn't exist on the remote.

    An empty metadata file, or one that does not hold a JSON object, counts
    as missing.
    """
    result = run_ssh(remote, parameters, "cat", metadata_path(remote, commit_id), executor=executor)
    if result.not_found or not result.stdout.strip():
        return None
    commit = json.loads(result.stdout)
    if not isinstance(commit, dict):
        logger.debug("Ignoring metadata for %s, expected an object.", commit_id)
        return None
    return commit


def list_commits(
    remote: Mapping[str, Any],
    parameters: Mapping[str, Any],
    tags: TagFilter | None = None,
    *,
    executor: CommandExecutor | None = None,
) -> List[Tuple[str, Commit]]:
    """List commits under the remote path, newest first.

    Every directory entry is fetched with its own ``get_commit`` call. Entries
    without metadata are skipped.
    """
    result = run_ssh(remote, parameters, "ls", "-1", str(remote["path"]), executor=executor)
    commits: List[Tuple[str, Commit]] = []
    for line in result.stdout.splitlines():
        commit_id = line.strip()
        if not commit_id:
            continue
        commit = get_commit(remote, parameters, commit_id, executor=executor)
        if commit is None:
            logger.debug("Skipping %s, no metadata found.", commit_id)
            continue
        if match_tags(commit, tags or []):
            commits.append((commit_id, commit))
    return sort_descending(commits)


def put_metadata(
    remote: Mapping[str, Any],
    parameters: Mapping[str, Any],
    commit_id: str,
    commit: Commit,
    *,
    executor: CommandExecutor | None = None,
) -> None:
    """Write a commit's metadata document to the remote."""
    path = metadata_path(remote, commit_id)
    result = write_file_ssh(remote, parameters, path, json.dumps(commit), executor=executor)
    if result.not_found:
        raise RemoteCommandFailed(result.command, result.exit_code, result.output)
    logger.info("Wrote metadata for commit %s.", commit_id)


def match_tags(commit: Mapping[str, Any], tags: TagFilter) -> bool:
    """Return True if the commit carries every tag, with the value when one is given."""
    if not tags:
        return True
    commit_tags = commit.get("tags") or {}
    for key, value in tags:
        if key not in commit_tags:
            return False
        if value is not None and commit_tags[key] != value:
            return False
    return True


def sort_descending(commits: Iterable[Tuple[str, Commit]]) -> List[Tuple[str, Commit]]:
    """Sort (id, commit) pairs by timestamp, newest first."""
    return sorted(commits, key=lambda item: _parse_timestamp(item[1].get("timestamp")), reverse=True)


def _parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str):
        return _OLDEST
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return _OLDEST
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = [
    "METADATA_FILE",
    "get_commit",
    "list_commits",
    "match_tags",
    "metadata_path",
    "put_metadata",
    "sort_descending",
]
