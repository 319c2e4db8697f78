"""SSH remote provider for versioned volume synchronization."""

__version__ = "0.1.0"

from .config import InvalidConfiguration
from .provider import PROVIDERS, RemoteProvider, SshRemoteProvider

__all__ = [
    "__version__",
    "InvalidConfiguration",
    "PROVIDERS",
    "RemoteProvider",
    "SshRemoteProvider",
]
