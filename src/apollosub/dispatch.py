"""Change-notification dispatch runtime.

Decouples the store's notification thread from reload and listener
dispatch so a slow listener cannot stall the store. Notifications carry no
payload and every reload reads the full current state, so dropping a
notification while another is still pending loses nothing.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable

from apollosub.config import DispatchPolicy

_STOP = object()


class ChangeDispatcher:
    """Threaded worker that runs *handler* once per accepted notification."""

    def __init__(
        self,
        handler: Callable[[], None],
        *,
        policy: DispatchPolicy = DispatchPolicy.BLOCK,
        max_pending: int = 16,
        name: str = "apollosub-dispatch",
        logger: logging.Logger | None = None,
    ) -> None:
        self._handler = handler
        self._policy = policy
        # coalesce keeps at most one pass pending behind the running one
        pending = 1 if policy is DispatchPolicy.COALESCE else max(1, max_pending)
        self._queue: queue.Queue[object] = queue.Queue(maxsize=pending)
        self._name = name
        self._logger = logger or logging.getLogger(__name__)
        self._thread: threading.Thread | None = None
        self._running = False
        self._dropped = 0
        self._abandoned = False

    @property
    def is_running(self) -> bool:
        """Whether the worker thread is accepting notifications."""
        return self._running

    @property
    def policy(self) -> DispatchPolicy:
        return self._policy

    @property
    def dropped(self) -> int:
        """Notifications discarded under the coalesce policy."""
        return self._dropped

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        if self._policy is DispatchPolicy.INLINE:
            return
        thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread = thread
        thread.start()
        self._logger.debug("Dispatch worker started policy=%s", self._policy)

    def notify(self) -> None:
        """Accept one change notification from the store."""
        if not self._running:
            self._logger.debug("Change notification ignored, dispatcher not running")
            return
        if self._policy is DispatchPolicy.INLINE:
            self._handler()
            return
        if self._policy is DispatchPolicy.COALESCE:
            try:
                self._queue.put_nowait(None)
            except queue.Full:
                self._dropped += 1
                self._logger.debug("Change notification coalesced into pending reload")
            return
        self._queue.put(None)

    def join(self, timeout: float | None = None) -> None:
        """Block until every queued notification has been handled."""
        if self._thread is None:
            return
        if timeout is None:
            self._queue.join()
            return
        done = threading.Event()

        def _wait() -> None:
            self._queue.join()
            done.set()

        threading.Thread(target=_wait, daemon=True).start()
        done.wait(timeout)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Stop the worker once pending notifications have drained."""
        thread = self._thread
        self._thread = None
        self._running = False
        if thread is None:
            return
        if threading.current_thread() is thread:
            # Stopped from a handler: exit after the current pass.
            self._abandoned = True
            return
        self._queue.put(_STOP)
        thread.join(timeout)
        self._logger.debug("Dispatch worker stopped")

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._handler()
            except Exception:
                self._logger.warning("Change handler failed", exc_info=True)
            finally:
                self._queue.task_done()
            if self._abandoned:
                self._logger.debug("Dispatch worker stopped from handler")
                return
