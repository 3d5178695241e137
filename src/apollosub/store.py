"""Upstream configuration store boundary.

The subscriber only needs three things from a store: a point read, a full
enumeration of a namespace and a payload-free change subscription. Polling,
long-polling and local backup all live behind this interface.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from apollosub.exceptions import ApolloKeyNotFoundError, ApolloUnavailableError

_logger = logging.getLogger(__name__)

_MISSING = object()

ChangeCallback = Callable[[], None]


class ConfigStore(Protocol):
    """Structural store interface used by the subscriber.

    Having a protocol here makes it easy to plug in any client (or a test
    double) without the subscriber depending on a concrete SDK.
    """

    def get(self, namespace: str, key: str) -> Any:
        """Return the cached value of *key*, raising ``ApolloKeyNotFoundError`` if absent."""
        ...

    def enumerate(self, namespace: str) -> Mapping[str, Any]:
        """Return every key/value pair currently cached for *namespace*."""
        ...

    def on_change(self, namespace: str, callback: ChangeCallback) -> Callable[[], None]:
        """Register *callback* for change notifications; returns an unsubscribe function."""
        ...


class MemoryStore:
    """Thread-safe in-memory store.

    Mutators notify the namespace's change callbacks synchronously on the
    calling thread, after the store lock has been released.
    """

    def __init__(self, data: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._lock = threading.RLock()
        self._namespaces: dict[str, dict[str, Any]] = {}
        self._callbacks: dict[str, list[ChangeCallback]] = {}
        self.available = True
        for namespace, values in (data or {}).items():
            self._namespaces[namespace] = copy.deepcopy(dict(values))

    def _ensure_available(self, namespace: str) -> None:
        if not self.available:
            raise ApolloUnavailableError(f"Store unavailable for namespace {namespace!r}", namespace=namespace)

    def get(self, namespace: str, key: str) -> Any:
        self._ensure_available(namespace)
        with self._lock:
            values = self._namespaces.get(namespace, {})
            if key not in values:
                raise ApolloKeyNotFoundError(
                    f"key not found: {key!r} in namespace {namespace!r}",
                    namespace=namespace,
                    key=key,
                )
            return copy.deepcopy(values[key])

    def enumerate(self, namespace: str) -> dict[str, Any]:
        self._ensure_available(namespace)
        with self._lock:
            return copy.deepcopy(self._namespaces.get(namespace, {}))

    def on_change(self, namespace: str, callback: ChangeCallback) -> Callable[[], None]:
        with self._lock:
            self._callbacks.setdefault(namespace, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                pending = self._callbacks.get(namespace)
                if pending is None:
                    return
                self._callbacks[namespace] = [cand for cand in pending if cand is not callback]
                if not self._callbacks[namespace]:
                    self._callbacks.pop(namespace, None)

        return unsubscribe

    def set(self, namespace: str, key: str, value: Any, *, notify: bool = True) -> None:
        with self._lock:
            self._namespaces.setdefault(namespace, {})[key] = copy.deepcopy(value)
        if notify:
            self.notify(namespace)

    def delete(self, namespace: str, key: str, *, notify: bool = True) -> bool:
        with self._lock:
            existed = self._namespaces.get(namespace, {}).pop(key, _MISSING) is not _MISSING
        if existed and notify:
            self.notify(namespace)
        return existed

    def replace(self, namespace: str, values: Mapping[str, Any], *, notify: bool = True) -> None:
        """Swap the whole namespace content at once."""
        with self._lock:
            self._namespaces[namespace] = copy.deepcopy(dict(values))
        if notify:
            self.notify(namespace)

    def notify(self, namespace: str) -> None:
        """Invoke every change callback registered for *namespace*."""
        with self._lock:
            callbacks = list(self._callbacks.get(namespace, []))
        _logger.debug("Store change notification namespace=%s callbacks=%d", namespace, len(callbacks))
        for callback in callbacks:
            callback()

