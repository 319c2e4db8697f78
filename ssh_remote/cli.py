"""Command-line interface for ssh_remote."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import argcomplete

from . import __version__, config, types, uri
from .logging import configure_logging
from .provider import SshRemoteProvider
from .ssh.transport import SSHCommandError

Handler = Callable[[argparse.Namespace, SshRemoteProvider], int]
logger = logging.getLogger(__name__)
PASSWORD_ENV = "SSH_REMOTE_PASSWORD"


def build_parser() -> argparse.ArgumentParser:
    """Create the CLI parser with all supported subcommands."""
    parser = argparse.ArgumentParser(
        prog="ssh-remote",
        description="Inspect and synchronize commits stored on an SSH remote.",
        epilog=f"Set {PASSWORD_ENV} to supply a password without putting it in the URI.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (can be repeated).",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Decrease logging verbosity (can be repeated).",
    )
    parser.add_argument(
        "-k",
        "--key-file",
        help="Private key used to authenticate (stored as the remote's keyFile).",
    )
    parser.add_argument(
        "--no-sudo",
        action="store_true",
        help="Create remote data directories without sudo.",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    list_parser = subparsers.add_parser("list", help="List commits on the remote, newest first.")
    list_parser.add_argument("uri", help="Remote URI, e.g. ssh://user@host/path.")
    list_parser.add_argument(
        "-t",
        "--tag",
        action="append",
        default=[],
        metavar="KEY[=VALUE]",
        help="Only show commits carrying this tag (can be repeated).",
    )
    list_parser.add_argument("--json", action="store_true", help="Print commits as JSON.")
    list_parser.set_defaults(func=_handle_list)

    get_parser = subparsers.add_parser("get", help="Print a commit's metadata.")
    get_parser.add_argument("uri", help="Remote URI.")
    get_parser.add_argument("commit", help="Commit identifier.")
    get_parser.set_defaults(func=_handle_get)

    metadata_parser = subparsers.add_parser("push-metadata", help="Upload commit metadata from a JSON file.")
    metadata_parser.add_argument("uri", help="Remote URI.")
    metadata_parser.add_argument("commit", help="Commit identifier.")
    metadata_parser.add_argument("file", help="JSON document to upload ('-' for stdin).")
    metadata_parser.set_defaults(func=_handle_push_metadata)

    for name, operation_type in (("push", types.OperationType.PUSH), ("pull", types.OperationType.PULL)):
        sync_parser = subparsers.add_parser(name, help=f"{name.capitalize()} a volume's data with rsync.")
        sync_parser.add_argument("uri", help="Remote URI.")
        sync_parser.add_argument("commit", help="Commit identifier.")
        sync_parser.add_argument("volume", help="Volume name.")
        sync_parser.add_argument("local_path", help="Local directory holding the volume data.")
        sync_parser.set_defaults(func=_handle_sync, operation_type=operation_type)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    argcomplete.autocomplete(parser)
    args = parser.parse_args(argv)
    configure_logging(verbose=args.verbose, quiet=args.quiet)
    provider = SshRemoteProvider(use_sudo=not args.no_sudo)
    handler: Handler = args.func
    try:
        return handler(args, provider)
    except config.InvalidConfiguration as exc:
        logger.error("%s", exc)
        return 2
    except (SSHCommandError, OSError, ValueError) as exc:
        logger.error("%s", exc)
        return 1


def _handle_list(args: argparse.Namespace, provider: SshRemoteProvider) -> int:
    remote, parameters = _load_remote(args)
    tags = [_parse_tag(raw) for raw in args.tag]
    commits = provider.list_commits(remote, parameters, tags)
    if args.json:
        print(json.dumps([{"id": commit_id, **commit} for commit_id, commit in commits], indent=2))
        return 0
    if not commits:
        print("No commits found.")
        return 0
    for commit_id, commit in commits:
        print(f"{commit_id}\t{commit.get('timestamp', '-')}\t{_format_tags(commit.get('tags'))}")
    return 0


def _handle_get(args: argparse.Namespace, provider: SshRemoteProvider) -> int:
    remote, parameters = _load_remote(args)
    commit = provider.get_commit(remote, parameters, args.commit)
    if commit is None:
        logger.error("Commit '%s' not found.", args.commit)
        return 1
    print(json.dumps(commit, indent=2))
    return 0


def _handle_push_metadata(args: argparse.Namespace, provider: SshRemoteProvider) -> int:
    remote, parameters = _load_remote(args)
    text = sys.stdin.read() if args.file == "-" else Path(args.file).read_text()
    commit = json.loads(text)
    if not isinstance(commit, dict):
        raise ValueError("Commit metadata must be a JSON object.")
    operation = types.SyncOperation(
        type=types.OperationType.PUSH,
        remote=remote,
        parameters=parameters,
        commit_id=args.commit,
    )
    provider.push_metadata(operation, commit, False)
    return 0


def _handle_sync(args: argparse.Namespace, provider: SshRemoteProvider) -> int:
    remote, parameters = _load_remote(args)
    operation = types.SyncOperation(
        type=args.operation_type,
        remote=remote,
        parameters=parameters,
        commit_id=args.commit,
        update_progress=_log_progress,
    )
    provider.sync_volume(operation, args.volume, args.local_path)
    return 0


def _load_remote(args: argparse.Namespace) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    properties = {"keyFile": args.key_file} if args.key_file else {}
    remote = config.validate_remote(uri.parse_uri(args.uri, properties))
    parameters = config.get_parameters(remote)
    password = os.environ.get(PASSWORD_ENV)
    if password and "key" not in parameters:
        parameters["password"] = password
    config.validate_parameters(parameters)
    display, _ = uri.to_uri(remote)
    logger.info("Using remote %s.", display)
    return remote, parameters


def _parse_tag(raw: str) -> Tuple[str, Optional[str]]:
    key, sep, value = raw.partition("=")
    if not key:
        raise config.InvalidConfiguration(f"invalid tag filter '{raw}'")
    return key, (value if sep else None)


def _format_tags(tags: Any) -> str:
    if not tags:
        return "-"
    parts: List[str] = []
    for key, value in tags.items():
        parts.append(key if value is None else f"{key}={value}")
    return ",".join(parts)


def _log_progress(entry: types.ProgressEntry) -> None:
    if entry.type == types.ProgressType.FAILED:
        logger.warning("Transfer failed: %s", entry.message or "unknown error")
    elif entry.message:
        logger.info("%s", entry.message)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
