"""Custom exception hierarchy for apollosub."""

from __future__ import annotations


class ApolloError(Exception):
    """Base exception for all apollosub errors."""


class ApolloConfigError(ApolloError):
    """Invalid or missing configuration."""


class ApolloKeyNotFoundError(ApolloError):
    """Watched key is absent from the namespace."""

    def __init__(
        self,
        message: str,
        *,
        namespace: str = "",
        key: str = "",
    ) -> None:
        self.namespace = namespace
        self.key = key
        super().__init__(message)


class ApolloUnavailableError(ApolloError):
    """The upstream store could not serve a read."""

    def __init__(self, message: str, *, namespace: str = "") -> None:
        self.namespace = namespace
        super().__init__(message)


class ApolloNoSnapshotError(ApolloError):
    """No snapshot has been loaded successfully yet."""


class ApolloSerializationError(ApolloError):
    """Snapshot could not be encoded into the selected format."""
