"""apollosub - Publish Apollo namespaces as serialized config with hot reload."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("apollosub")
except PackageNotFoundError:
    __version__ = "0+local"
from apollosub.config import ApolloClientConfig, ApolloConf, ConfigFormat, DispatchPolicy
from apollosub.dispatch import ChangeDispatcher
from apollosub.exceptions import (
    ApolloConfigError,
    ApolloError,
    ApolloKeyNotFoundError,
    ApolloNoSnapshotError,
    ApolloSerializationError,
    ApolloUnavailableError,
)
from apollosub.extract import extract_snapshot
from apollosub.serialize import serialize, to_text
from apollosub.store import ConfigStore, MemoryStore
from apollosub.subscriber import ApolloSubscriber

__all__ = [
    "__version__",
    "ApolloClientConfig",
    "ApolloConf",
    "ApolloConfigError",
    "ApolloError",
    "ApolloKeyNotFoundError",
    "ApolloNoSnapshotError",
    "ApolloSerializationError",
    "ApolloSubscriber",
    "ApolloUnavailableError",
    "ChangeDispatcher",
    "ConfigFormat",
    "ConfigStore",
    "DispatchPolicy",
    "MemoryStore",
    "extract_snapshot",
    "serialize",
    "to_text",
]
