"""Background channel running fire-and-forget work outside the request path."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from contextlib import suppress
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

BackgroundJob = Callable[[], Awaitable[object]]


class BackgroundTaskQueue:
    """FIFO of coroutine factories consumed by a single worker task.

    ``submit`` never blocks and never raises. Failures of a job are logged and
    do not stop the worker. Tests call :meth:`drain` to run everything that
    was submitted, including jobs submitted while draining.
    """

    def __init__(self) -> None:
        self._pending: deque[tuple[str, BackgroundJob]] = deque()
        self._lock = asyncio.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wakeup: asyncio.Event | None = None
        self._worker: asyncio.Task[None] | None = None

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def submit(self, label: str, job: BackgroundJob) -> None:
        self._pending.append((label, job))
        if self._loop is not None and self._wakeup is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._wakeup.set)

    def start(self) -> None:
        """Start the worker on the running event loop."""

        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._wakeup = asyncio.Event()
        if self._pending:
            self._wakeup.set()
        self._worker = self._loop.create_task(self._run())

    async def _run(self) -> None:
        assert self._wakeup is not None
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            await self.drain()

    async def drain(self) -> None:
        async with self._lock:
            while self._pending:
                label, job = self._pending.popleft()
                try:
                    await job()
                except Exception:
                    logger.exception("Background task %s failed", label)

    async def shutdown(self) -> None:
        """Finish pending work then stop the worker."""

        await self.drain()
        worker, self._worker = self._worker, None
        if worker is not None:
            worker.cancel()
            with suppress(asyncio.CancelledError):
                await worker
        self._loop = None
        self._wakeup = None


__all__ = ["BackgroundJob", "BackgroundTaskQueue"]
