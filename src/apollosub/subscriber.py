"""Apollo subscriber: publishes a namespace as one serialized config blob.

The subscriber reads a namespace (or one key of it) from the upstream store,
serializes the snapshot and keeps the latest text behind a lock. Every
change notification from the store triggers a full re-read; when it
succeeds the new text replaces the old one atomically and the registered
listeners run in registration order. Failed reloads keep the last good value.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from apollosub.config import ApolloClientConfig, ApolloConf, ConfigFormat
from apollosub.dispatch import ChangeDispatcher
from apollosub.exceptions import ApolloError, ApolloNoSnapshotError
from apollosub.extract import extract_snapshot
from apollosub.serialize import serialize
from apollosub.store import ConfigStore

_logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class _ListenerRegistry:
    """Append-only, ordered collection of no-argument callbacks."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    def add(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def dispatch(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener()
            except Exception:
                _logger.warning("Config change listener %r failed", listener, exc_info=True)


class ApolloSubscriber:
    """Serialized view of an Apollo namespace with hot-reload notification.

    Usage::

        store = MemoryStore({"application": {"name": "svc"}})
        with ApolloSubscriber(ApolloConf(app_id="svc", meta_addr="http://localhost:8080"), store) as sub:
            sub.add_listener(lambda: print(sub.value()))

    Construction validates *conf* and performs the first load synchronously.
    If either fails the constructor raises and no subscriber exists.
    """

    def __init__(self, conf: ApolloConf, store: ConfigStore) -> None:
        conf.validate()
        self._conf = conf
        self._store = store
        self._namespace = conf.namespace
        self._key = conf.key.strip() or None
        self._format: ConfigFormat = conf.resolve_format()
        self._lock = threading.Lock()
        self._reload_lock = threading.RLock()
        self._value: str | None = None
        self._listeners = _ListenerRegistry()
        self._dispatcher = ChangeDispatcher(
            self.handle_change,
            policy=conf.resolve_dispatch_policy(),
            max_pending=conf.dispatch_queue_size,
            name=f"apollosub-{self._namespace}",
            logger=_logger,
        )
        self._unsubscribe: Callable[[], None] | None = None

        _logger.debug(
            "Apollo subscriber client=%r key=%s format=%s",
            conf.to_client_config(),
            self._key,
            self._format,
        )

        self._dispatcher.start()
        self._unsubscribe = store.on_change(self._namespace, self._dispatcher.notify)
        try:
            self.load_value()
        except ApolloError:
            self.close()
            raise

    @classmethod
    def from_factory(
        cls,
        conf: ApolloConf,
        factory: Callable[[ApolloClientConfig], ConfigStore],
    ) -> ApolloSubscriber:
        """Create the store from *conf* via *factory*, then subscribe to it."""
        conf.validate()
        return cls(conf, factory(conf.to_client_config()))

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    def __enter__(self) -> ApolloSubscriber:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        """Release the upstream subscription and stop the dispatch worker.

        The last published value stays readable.
        """
        unsubscribe = self._unsubscribe
        self._unsubscribe = None
        if unsubscribe is not None:
            unsubscribe()
        self._dispatcher.stop()

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def key(self) -> str | None:
        return self._key

    @property
    def format(self) -> ConfigFormat:
        return self._format

    @property
    def dispatcher(self) -> ChangeDispatcher:
        return self._dispatcher

    def value(self) -> str:
        """Return the latest serialized config."""
        with self._lock:
            value = self._value
        if value is None:
            raise ApolloNoSnapshotError(f"No snapshot loaded yet for namespace {self._namespace!r}")
        return value

    def add_listener(self, listener: Listener) -> None:
        """Register *listener* to run after every successful reload."""
        self._listeners.add(listener)

    # ------------------------------------------------------------------
    # Reload path
    # ------------------------------------------------------------------

    def load_value(self) -> str:
        """Extract, serialize and publish the current snapshot.

        Raises on failure without touching the published value. Passes are
        serialized so the pass that reads the store last also publishes last.
        """
        with self._reload_lock:
            snapshot = extract_snapshot(self._store, self._namespace, self._key)
            text = serialize(snapshot, self._format, single_key=self._key is not None)
            with self._lock:
                self._value = text
        _logger.debug(
            "Loaded namespace=%s key=%s format=%s length=%d",
            self._namespace,
            self._key,
            self._format,
            len(text),
        )
        return text

    def handle_change(self) -> None:
        """Reload after an upstream change and notify listeners.

        A failed reload is logged and leaves the previous value in place.
        """
        try:
            self.load_value()
        except ApolloError as exc:
            _logger.warning(
                "Reload failed for namespace=%s key=%s, keeping last value: %s",
                self._namespace,
                self._key,
                exc,
            )
            return
        self._listeners.dispatch()
