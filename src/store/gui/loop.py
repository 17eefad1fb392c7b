"""
Background asyncio loop for the desktop window.

The Qt event loop owns the main thread, so catalog coroutines run on a
dedicated daemon thread. Everything that touches CatalogState is
submitted through this class so it executes on the loop thread.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Coroutine, Optional

logger = logging.getLogger(__name__)


class LoopThread:
    """Runs an asyncio event loop on a daemon thread."""

    def __init__(self, name: str = "catalog-loop"):
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._started = False

    def _run(self):
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def start(self) -> None:
        if not self._started:
            self._thread.start()
            self._started = True

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def submit(self, coro: Coroutine[Any, Any, Any]) -> Future:
        """Schedule a coroutine; failures are logged when it finishes."""
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        future.add_done_callback(self._log_failure)
        return future

    def call(self, func: Callable[..., Any], *args) -> None:
        """Run a plain callable on the loop thread."""
        self._loop.call_soon_threadsafe(func, *args)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        if not self._started:
            self._loop.close()
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)
        if not self._thread.is_alive():
            self._loop.close()
        self._started = False

    @staticmethod
    def _log_failure(future: Future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Catalog operation failed: {error}")
