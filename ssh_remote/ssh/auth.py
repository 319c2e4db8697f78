"""Password versus key authentication selection."""

from __future__ import annotations

from typing import Any, Mapping

from ssh_remote.config import InvalidConfiguration
from ssh_remote.types import ResolvedAuth


def resolve_auth(remote: Mapping[str, Any], parameters: Mapping[str, Any]) -> ResolvedAuth:
    """Decide whether to use password or key authentication.

    A password passed in the parameters overrides one stored in the remote.
    Keys are only ever supplied per call, never stored in the remote.
    """
    password = parameters.get("password")
    key = parameters.get("key")
    if password is not None and key is not None:
        raise InvalidConfiguration("only one of password or key can be specified")
    if password is not None or remote.get("password") is not None:
        resolved = password if password is not None else remote["password"]
        return ResolvedAuth(password=str(resolved))
    if key is not None:
        return ResolvedAuth(key=str(key))
    raise InvalidConfiguration("one of password or key must be specified")


__all__ = ["resolve_auth"]
