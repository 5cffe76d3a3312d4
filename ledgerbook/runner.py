"""
Shared Event Loop for Synchronous Callers

Streamlit reruns the page script on one thread per session. The services
keep asyncio state (the per-account transfer locks) that only works when
every coroutine runs on the same event loop, so synchronous callers hand
their coroutines to one long-lived loop running in a daemon thread.
"""

import asyncio
import concurrent.futures
import threading
from typing import Any, Awaitable, Optional

from ledgerbook.log import get_logger


logger = get_logger(__name__)


class BackgroundLoop:
    """An event loop running forever in its own thread, started on first use."""

    def __init__(self, name: str = "ledgerbook-loop"):
        self._name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._guard = threading.Lock()

    def _ensure_started(self) -> asyncio.AbstractEventLoop:
        with self._guard:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(target=loop.run_forever, name=self._name, daemon=True)
                thread.start()
                self._loop, self._thread = loop, thread
                logger.info("background_loop_started", thread=self._name)
            return self._loop

    def run(self, coro: Awaitable[Any], timeout: Optional[float] = None) -> Any:
        """
        Run a coroutine on the shared loop and block until it finishes.

        Exceptions raised by the coroutine propagate to the caller.
        On timeout the coroutine is cancelled and TimeoutError is raised.
        """
        future = asyncio.run_coroutine_threadsafe(coro, self._ensure_started())
        try:
            return future.result(timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            raise

    def stop(self) -> None:
        """Stop the loop and wait for its thread. A later run() starts a new one."""
        with self._guard:
            if self._loop is None:
                return
            self._loop.call_soon_threadsafe(self._loop.stop)
            self._thread.join()
            self._loop.close()
            self._loop, self._thread = None, None
            logger.info("background_loop_stopped", thread=self._name)


_default_loop = BackgroundLoop()


def run_async(coro: Awaitable[Any]) -> Any:
    """Helper to run async functions from synchronous code (Streamlit)."""
    return _default_loop.run(coro)
