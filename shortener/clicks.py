"""Fire-and-forget click counting.

A redirect must not wait for its click to be written. ``ClickRecorder``
spawns each increment as its own task on the running event loop and keeps
a reference to it until it finishes. The task is not awaited by the
request, so cancelling or finishing the request leaves the increment
running. Failures are logged and counted, never raised.
"""

import asyncio
import logging

from prometheus_client import Counter

from shortener.repository import LinkRepository

__all__ = ["ClickRecorder"]

CLICK_INCREMENTS_TOTAL = Counter(
    "link_shortener_click_increments_total",
    "Click increments by outcome",
    ["status"],
)


class ClickRecorder:
    def __init__(self, repository: LinkRepository, logger: logging.Logger | logging.LoggerAdapter) -> None:
        self._repository = repository
        self._logger = logger
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def record(self, link_id: int) -> None:
        """Schedule a click increment for ``link_id`` and return immediately."""
        task = asyncio.get_running_loop().create_task(self._increment(link_id), name=f"click-{link_id}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight increments, e.g. on shutdown or in tests."""
        if not self._tasks:
            return
        _, still_running = await asyncio.wait(set(self._tasks), timeout=timeout)
        if still_running:
            self._logger.warning(f"{len(still_running)} click increments still running after drain timeout")

    async def _increment(self, link_id: int) -> None:
        try:
            await self._repository.increment_click(link_id)
        except Exception as exc:
            CLICK_INCREMENTS_TOTAL.labels(status="failed").inc()
            self._logger.warning(f"Click increment failed for link {link_id}: {exc}")
            return
        CLICK_INCREMENTS_TOTAL.labels(status="recorded").inc()
