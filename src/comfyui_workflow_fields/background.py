"""
Background fetches for the schema and dropdown providers.

At most one fetch runs per key. Callers either poll (pending / done) or wait
with a timeout; a fetch that overruns the timeout keeps running in its daemon
thread and fills the cache when it finishes.
"""

import threading
from typing import Callable, Dict, Hashable

from .mcp_utils import log_structured


class BackgroundFetcher:
    """Run keyed fetch callables in daemon threads."""

    def __init__(self, name: str):
        self.name = name
        self._threads: Dict[Hashable, threading.Thread] = {}
        self._lock = threading.Lock()

    def start(self, key: Hashable, fn: Callable[[], None]) -> threading.Thread:
        """Start fn for key unless a fetch for key is already running."""
        with self._lock:
            thread = self._threads.get(key)
            if thread is not None and thread.is_alive():
                return thread
            thread = threading.Thread(
                target=self._run,
                args=(key, fn),
                name=f"{self.name}-{key}",
                daemon=True,
            )
            self._threads[key] = thread
        thread.start()
        return thread

    def _run(self, key: Hashable, fn: Callable[[], None]) -> None:
        try:
            fn()
        except Exception as e:
            log_structured("warning", "background_fetch_failed", fetcher=self.name, key=str(key), error=str(e))
        finally:
            with self._lock:
                if self._threads.get(key) is threading.current_thread():
                    del self._threads[key]

    def is_pending(self, key: Hashable) -> bool:
        with self._lock:
            thread = self._threads.get(key)
            return thread is not None and thread.is_alive()

    def wait(self, key: Hashable, timeout: float) -> bool:
        """Block up to timeout seconds. Returns True when no fetch is running for key."""
        with self._lock:
            thread = self._threads.get(key)
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()
