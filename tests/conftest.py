import pytest


class ManualScheduler:
    """Scheduler with a hand-driven clock. Spawned coroutines wait for run_spawned()."""

    def __init__(self):
        self.now = 0.0
        self.timers = []
        self.spawned = []
        self._seq = 0

    def call_later(self, delay, callback):
        self._seq += 1
        self.timers.append((self.now + delay, self._seq, callback))

    def spawn(self, coro):
        self.spawned.append(coro)
        return coro

    def advance(self, seconds=0.0):
        """Move the clock forward and fire every timer that became due."""
        self.now += seconds
        due = sorted(t for t in self.timers if t[0] <= self.now)
        self.timers = [t for t in self.timers if t[0] > self.now]
        for _, _, callback in due:
            callback()

    async def run_spawned(self):
        results = []
        while self.spawned:
            coro = self.spawned.pop(0)
            results.append(await coro)
        return results

    async def drain(self):
        await self.run_spawned()


@pytest.fixture
def scheduler():
    return ManualScheduler()
