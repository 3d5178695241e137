from __future__ import annotations

import pytest

from apollosub.exceptions import ApolloKeyNotFoundError, ApolloUnavailableError
from apollosub.store import MemoryStore


def test_get_and_enumerate_return_copies() -> None:
    store = MemoryStore({"application": {"db": {"host": "h"}}})

    enumerated = store.enumerate("application")
    enumerated["db"]["host"] = "mutated"
    fetched = store.get("application", "db")
    fetched["host"] = "mutated"

    assert store.get("application", "db") == {"host": "h"}


def test_get_missing_key() -> None:
    store = MemoryStore()
    with pytest.raises(ApolloKeyNotFoundError) as excinfo:
        store.get("application", "missing")
    assert excinfo.value.key == "missing"
    assert "key not found" in str(excinfo.value)


def test_unknown_namespace_enumerates_empty() -> None:
    assert MemoryStore().enumerate("nope") == {}


def test_mutators_notify_subscribers() -> None:
    store = MemoryStore()
    calls: list[str] = []
    store.on_change("application", lambda: calls.append("app"))
    store.on_change("other", lambda: calls.append("other"))

    store.set("application", "a", 1)
    store.replace("application", {"b": 2})
    store.delete("application", "b")
    store.delete("application", "b")
    store.set("application", "c", 3, notify=False)

    assert calls == ["app", "app", "app"]
    assert store.enumerate("application") == {"c": 3}


def test_unsubscribe_stops_notifications() -> None:
    store = MemoryStore()
    calls: list[int] = []
    unsubscribe = store.on_change("application", lambda: calls.append(1))

    store.notify("application")
    unsubscribe()
    unsubscribe()
    store.notify("application")

    assert calls == [1]


def test_unavailable_store_rejects_reads() -> None:
    store = MemoryStore({"application": {"a": 1}})
    store.available = False

    with pytest.raises(ApolloUnavailableError):
        store.enumerate("application")
    with pytest.raises(ApolloUnavailableError):
        store.get("application", "a")
