"""Snapshot extraction from the upstream store cache."""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any

from apollosub.exceptions import ApolloError, ApolloUnavailableError
from apollosub.store import ConfigStore

_logger = logging.getLogger(__name__)


def extract_snapshot(store: ConfigStore, namespace: str, key: str | None = None) -> Any:
    """Read a point-in-time snapshot of *namespace*.

    With *key* set, returns that key's raw value; a missing key raises
    ``ApolloKeyNotFoundError`` and is never replaced by a default. Without a
    key, returns a copy of every key/value pair currently cached.

    Store failures that are not already library errors are wrapped in
    :class:`ApolloUnavailableError`.
    """
    try:
        if key:
            return store.get(namespace, key)
        values = store.enumerate(namespace)
    except ApolloError:
        raise
    except Exception as exc:
        raise ApolloUnavailableError(
            f"Store read failed for namespace {namespace!r}: {exc}",
            namespace=namespace,
        ) from exc

    if not isinstance(values, Mapping):
        raise ApolloUnavailableError(
            f"Store returned {type(values).__name__} for namespace {namespace!r}, expected a mapping",
            namespace=namespace,
        )

    snapshot: dict[str, Any] = {str(k): copy.deepcopy(v) for k, v in values.items()}
    _logger.debug("Extracted namespace=%s keys=%d", namespace, len(snapshot))
    return snapshot
