import asyncio
import logging
from typing import Any, Callable, Coroutine, List, Optional

from src.videocache.schema import BatchEntry, Bid

logger = logging.getLogger(__name__)


class AsyncioScheduler:
    """
    Timer and task primitives on the running asyncio loop.
    A zero delay runs the callback on the next loop turn.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._tasks = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callable[[], Any]):
        if delay <= 0:
            # Next loop turn, so a synchronous burst shares one flush. Prebid.js
            # flushes inside each submit instead (one call per bid at delay 0).
            return self.loop.call_soon(callback)
        return self.loop.call_later(delay, callback)

    def spawn(self, coro: Coroutine) -> asyncio.Task:
        task = self.loop.create_task(coro)
        # Hold a reference until done so the task is not collected mid-flight
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self):
        """Wait for every spawned task, including ones spawned while waiting."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class Batcher:
    """
    Accumulates store requests from the auction bid stream.

    Entries are grouped into batches of at most batch_size. The first entry
    after an idle period opens a debounce window of batch_timeout ms; when it
    elapses every accumulated batch is flushed on its own and the state resets.

    Attributes:
        flush (Callable): Called once per batch with the list of BatchEntry.
        scheduler: Anything with call_later(seconds, callback).
        batch_size (int): Max entries per batch (>= 1).
        batch_timeout (float): Debounce window in ms (0 = next loop turn).
    """

    def __init__(self, flush: Callable[[List[BatchEntry]], Any], scheduler, batch_size: int = 1, batch_timeout: float = 0):
        self.flush = flush
        self.scheduler = scheduler
        self.batch_size = max(1, int(batch_size))
        self.batch_timeout = max(0, batch_timeout)

        self._batches: List[List[BatchEntry]] = [[]]
        self._debouncing = False

    @property
    def pending(self) -> int:
        """Entries waiting for the next flush."""
        return sum(len(b) for b in self._batches)

    @property
    def debouncing(self) -> bool:
        return self._debouncing

    def submit(self, auction_instance: Any, bid: Bid, on_done: Callable[[], Any]):
        """Queue one bid for the next store call."""
        if len(self._batches[-1]) >= self.batch_size:
            self._batches.append([])

        self._batches[-1].append(BatchEntry(auction_instance, bid, on_done))

        if not self._debouncing:
            self._debouncing = True
            self.scheduler.call_later(self.batch_timeout / 1000.0, self._fire)

    def flush_pending(self):
        """Flush everything queued now instead of waiting for the window."""
        self._fire()

    def _fire(self):
        batches = [b for b in self._batches if b]
        self._batches = [[]]
        self._debouncing = False
        if not batches:
            return
        logger.debug(f"Flushing {sum(len(b) for b in batches)} bids in {len(batches)} batches")
        for batch in batches:
            self.flush(batch)
