"""
Bounded in-process queue for fire-and-forget side effects (cache writes and
invalidations). Submitting never blocks the request: when the queue is full
the job is dropped with a warning, and job failures are logged and swallowed.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Job = Callable[..., Awaitable[Any]]


class BackgroundDispatcher:
    def __init__(self, maxsize: int = 1000, workers: int = 2):
        self.maxsize = maxsize
        self.worker_count = max(1, workers)
        self._queue: Optional[asyncio.Queue] = None
        self._workers: list[asyncio.Task] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self.dropped = 0

    def _ensure_started(self) -> asyncio.Queue:
        loop = asyncio.get_running_loop()
        if self._queue is None or self._loop is not loop or self._loop.is_closed():
            # First use, or the previous loop went away (e.g. between test clients)
            self._loop = loop
            self._queue = asyncio.Queue(maxsize=self.maxsize)
            self._workers = [
                loop.create_task(self._worker(i)) for i in range(self.worker_count)
            ]
            logger.debug(f"Background dispatcher started with {self.worker_count} workers")
        return self._queue

    async def _worker(self, index: int) -> None:
        queue = self._queue
        while True:
            job, args, description = await queue.get()
            try:
                await job(*args)
            except Exception as e:
                logger.error(f"❌ Background job failed ({description or job.__name__}): {e}")
            finally:
                queue.task_done()

    def submit(self, job: Job, *args: Any, description: str = "") -> bool:
        """Queue ``job(*args)``. Must be called from within the running event loop."""
        queue = self._ensure_started()
        try:
            queue.put_nowait((job, args, description))
            return True
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"⚠️ Background queue full, dropping job: {description or job.__name__}")
            return False

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def drain(self) -> None:
        """Wait until every queued job has run."""
        if self._queue is not None and self._loop is asyncio.get_running_loop():
            await self._queue.join()

    async def stop(self, timeout: float = 5.0) -> None:
        try:
            await asyncio.wait_for(self.drain(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"⚠️ Background queue not drained on shutdown ({self.pending} pending)")
        for task in self._workers:
            task.cancel()
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        self._queue = None
        self._loop = None
