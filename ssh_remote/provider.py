"""Remote provider interface and its SSH implementation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple, Type

from ssh_remote import commits, config
from ssh_remote.commits import TagFilter
from ssh_remote.ssh.auth import resolve_auth
from ssh_remote.ssh.rsync import RsyncExecutor
from ssh_remote.ssh.transport import CommandExecutor, run_ssh
from ssh_remote.types import Commit, OperationType, SyncOperation

logger = logging.getLogger(__name__)


class RemoteProvider(Protocol):
    """Operations a host application expects from every remote provider."""

    def get_provider(self) -> str: ...

    def validate_remote(self, remote: Mapping[str, Any]) -> Dict[str, Any]: ...

    def validate_parameters(self, parameters: Mapping[str, Any]) -> Mapping[str, Any]: ...

    def get_commit(
        self, remote: Mapping[str, Any], parameters: Mapping[str, Any], commit_id: str
    ) -> Optional[Commit]: ...

    def list_commits(
        self, remote: Mapping[str, Any], parameters: Mapping[str, Any], tags: TagFilter
    ) -> List[Tuple[str, Commit]]: ...

    def sync_data_start(self, operation: SyncOperation) -> Any: ...

    def sync_data_end(self, operation: SyncOperation, operation_data: Any, is_successful: bool) -> None: ...

    def get_remote_path(self, operation: SyncOperation, operation_data: Any, volume: str) -> str: ...

    def get_rsync(self, operation: SyncOperation, operation_data: Any, src: str, dst: str) -> RsyncExecutor: ...

    def push_metadata(self, operation: SyncOperation, commit: Commit, is_update: bool) -> None: ...


class SshRemoteProvider:
    """Stores commits in directories on a host reachable over ssh.

    Layout under the remote ``path``::

        <path>/<commit_id>/metadata.json
        <path>/<commit_id>/data/<volume>/

    Metadata moves over plain ssh commands, volume data over rsync.
    """

    def __init__(self, *, executor: CommandExecutor | None = None, use_sudo: bool = True):
        self.executor = executor or CommandExecutor()
        self.use_sudo = use_sudo

    def get_provider(self) -> str:
        return "ssh"

    def validate_remote(self, remote: Mapping[str, Any]) -> Dict[str, Any]:
        return config.validate_remote(remote)

    def validate_parameters(self, parameters: Mapping[str, Any]) -> Mapping[str, Any]:
        return config.validate_parameters(parameters)

    def get_commit(
        self, remote: Mapping[str, Any], parameters: Mapping[str, Any], commit_id: str
    ) -> Optional[Commit]:
        return commits.get_commit(remote, parameters, commit_id, executor=self.executor)

    def list_commits(
        self, remote: Mapping[str, Any], parameters: Mapping[str, Any], tags: TagFilter | None = None
    ) -> List[Tuple[str, Commit]]:
        return commits.list_commits(remote, parameters, tags, executor=self.executor)

    def sync_data_start(self, operation: SyncOperation) -> Any:
        return None

    def sync_data_end(self, operation: SyncOperation, operation_data: Any, is_successful: bool) -> None:
        return None

    def get_remote_path(self, operation: SyncOperation, operation_data: Any, volume: str) -> str:
        """Return the rsync endpoint for a volume of the operation's commit."""
        remote = operation.remote
        remote_dir = f"{remote['path']}/{operation.commit_id}/data/{volume}"
        return f"{remote['username']}@{remote['address']}:{remote_dir}/"

    def get_rsync(self, operation: SyncOperation, operation_data: Any, src: str, dst: str) -> RsyncExecutor:
        """Prepare the destination and return an rsync transfer from ``src`` to ``dst``."""
        if operation.type == OperationType.PUSH:
            remote_dir = dst.split(":", 1)[1]
            mkdir = ["mkdir", "-p", remote_dir]
            if self.use_sudo:
                mkdir.insert(0, "sudo")
            run_ssh(operation.remote, operation.parameters, *mkdir, executor=self.executor)

        auth = resolve_auth(operation.remote, operation.parameters)
        return RsyncExecutor(
            operation.update_progress,
            operation.remote,
            auth,
            f"{src.rstrip('/')}/",
            dst,
            self.executor,
        )

    def sync_volume(self, operation: SyncOperation, volume: str, local_path: Path | str) -> None:
        """Push or pull one volume between ``local_path`` and the remote."""
        operation_data = self.sync_data_start(operation)
        success = False
        try:
            remote_path = self.get_remote_path(operation, operation_data, volume)
            if operation.type == OperationType.PUSH:
                src, dst = str(local_path), remote_path
            else:
                src, dst = remote_path, str(local_path)
            logger.info("Starting %s of volume %s for commit %s.", operation.type.value, volume, operation.commit_id)
            self.get_rsync(operation, operation_data, src, dst).run()
            success = True
        finally:
            self.sync_data_end(operation, operation_data, success)

    def push_metadata(self, operation: SyncOperation, commit: Commit, is_update: bool) -> None:
        commits.put_metadata(
            operation.remote, operation.parameters, operation.commit_id, commit, executor=self.executor
        )


PROVIDERS: Dict[str, Type[SshRemoteProvider]] = {"ssh": SshRemoteProvider}


def get_provider(name: str, **kwargs: Any) -> RemoteProvider:
    """Instantiate a registered provider by name."""
    try:
        factory = PROVIDERS[name]
    except KeyError:
        raise config.InvalidConfiguration(f"unknown remote provider '{name}'") from None
    return factory(**kwargs)


__all__ = ["PROVIDERS", "RemoteProvider", "SshRemoteProvider", "get_provider"]
