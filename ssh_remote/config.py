"""Remote configuration and per-call parameter validation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Mapping

logger = logging.getLogger(__name__)

REQUIRED_REMOTE_KEYS: tuple[str, ...] = ("username", "address", "path")
OPTIONAL_REMOTE_KEYS: tuple[str, ...] = ("password", "port", "keyFile")
PARAMETER_KEYS: tuple[str, ...] = ("password", "key")


class InvalidConfiguration(ValueError):
    """Raised when remote configuration or parameters are invalid."""

    pass


def validate_remote(remote: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate a remote configuration and return its normalized form.

    Required properties are (username, address, path). Optional properties are
    (password, port, keyFile). Ports decoded from JSON may arrive as floats and
    are truncated to integers.
    """
    validated: Dict[str, Any] = {}
    for key in REQUIRED_REMOTE_KEYS:
        if key not in remote:
            raise InvalidConfiguration(f"missing required remote property '{key}'")
        validated[key] = str(remote[key])

    for key in OPTIONAL_REMOTE_KEYS:
        if key not in remote:
            continue
        if key == "port":
            validated[key] = _validate_port(remote[key])
        else:
            validated[key] = str(remote[key])

    for key in remote:
        if key not in validated:
            raise InvalidConfiguration(f"invalid property '{key}'")
    return validated


def validate_parameters(parameters: Mapping[str, Any]) -> Mapping[str, Any]:
    """Validate per-call parameters, which may contain either password or key."""
    for key in parameters:
        if key not in PARAMETER_KEYS:
            raise InvalidConfiguration(f"invalid property '{key}'")
    return parameters


def get_parameters(remote: Mapping[str, Any]) -> Dict[str, Any]:
    """Build per-call parameters for a stored remote.

    Keys are never persisted in the remote itself, only the path to one. A
    remote without a key file yields no parameters; any stored password is
    picked up from the remote during authentication.
    """
    key_file = remote.get("keyFile")
    if key_file is None:
        return {}
    path = Path(str(key_file)).expanduser()
    try:
        key = path.read_text()
    except OSError as exc:
        raise InvalidConfiguration(f"unable to read key file {path}: {exc}") from exc
    logger.debug("Loaded SSH key from %s.", path)
    return {"key": key}


def _validate_port(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidConfiguration("port must be a number or integer")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    raise InvalidConfiguration("port must be a number or integer")


__all__ = [
    "InvalidConfiguration",
    "OPTIONAL_REMOTE_KEYS",
    "PARAMETER_KEYS",
    "REQUIRED_REMOTE_KEYS",
    "get_parameters",
    "validate_parameters",
    "validate_remote",
]
