"""
Periodic Tasks - Cancellable polling loops on the asyncio event loop.

Each task awaits its coroutine, then sleeps for its interval. A failing
run is logged and the loop continues; stop() cancels the loop so no
periodic work outlives the session.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from candle.utils.logger import get_logger

logger = get_logger("scheduler")


class PeriodicTask:
    """
    Runs `func` every `interval` seconds until stopped.
    
    The first run happens immediately on start unless `run_immediately`
    is False.
    """
    
    def __init__(
        self,
        name: str,
        interval: float,
        func: Callable[[], Awaitable[object]],
        run_immediately: bool = True,
    ):
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        self.name = name
        self.interval = interval
        self.func = func
        self.run_immediately = run_immediately
        self.runs = 0
        self._task: Optional[asyncio.Task] = None
    
    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
    
    def start(self) -> None:
        """Start the loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name=f"poll-{self.name}")
        logger.debug(f"Started periodic task {self.name} every {self.interval}s")
    
    async def stop(self) -> None:
        """Cancel the loop and wait for it to unwind."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug(f"Stopped periodic task {self.name}")
    
    async def _loop(self) -> None:
        if not self.run_immediately:
            await asyncio.sleep(self.interval)
        while True:
            try:
                await self.func()
            except Exception as e:
                logger.error(f"Periodic task {self.name} failed: {e}")
            self.runs += 1
            await asyncio.sleep(self.interval)
