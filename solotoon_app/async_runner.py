"""
Background event loop for calling async code from Flask views.

Flask views are sync, the aggregation core is async. Every coroutine is
submitted to one long-lived loop running in a daemon thread, so the HTTP
client, rate-limiter locks and caches are always used from the same loop.
A view that stops waiting (timeout) does not cancel its coroutine; the work
still finishes and populates the caches.
"""

import asyncio
import logging
import threading
from typing import Any, Awaitable, Optional

logger = logging.getLogger(__name__)


class AsyncRunner:
    """Owns one event loop thread, started on first use."""

    def __init__(self, name: str = 'solotoon-async'):
        self.name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _ensure_started(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self.running:
                return self._loop

            loop = asyncio.new_event_loop()
            ready = threading.Event()

            def _serve():
                asyncio.set_event_loop(loop)
                loop.call_soon(ready.set)
                loop.run_forever()

            thread = threading.Thread(target=_serve, name=self.name, daemon=True)
            thread.start()
            ready.wait()

            self._loop = loop
            self._thread = thread
            logger.debug(f"Started event loop thread {self.name}")
            return loop

    def run(self, coro: Awaitable[Any], timeout: Optional[float] = None) -> Any:
        """
        Run a coroutine on the background loop and wait for its result.

        Raises whatever the coroutine raises, or concurrent.futures.TimeoutError
        if `timeout` elapses first.
        """
        loop = self._ensure_started()
        future = asyncio.run_coroutine_threadsafe(coro, loop)
        return future.result(timeout)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the loop thread and close the loop."""
        with self._lock:
            loop, thread = self._loop, self._thread
            self._loop = None
            self._thread = None

        if loop is None or thread is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout)
        if not thread.is_alive():
            loop.close()
