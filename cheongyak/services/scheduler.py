"""
Periodic background tasks (offer expiry sweep)
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs an async callable every ``interval`` seconds until stopped"""

    def __init__(
        self,
        name: str,
        interval: float,
        func: Callable[[], Awaitable[Any]],
        run_immediately: bool = True
    ):
        self.name = name
        self.interval = interval
        self.func = func
        self.run_immediately = run_immediately
        self.run_count = 0
        self._task: Optional[asyncio.Task] = None
        self._shutdown_event = asyncio.Event()

    def start(self) -> None:
        if self._task is not None:
            return
        self._shutdown_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name=f"periodic-{self.name}")
        logger.info(f"Scheduled '{self.name}' every {self.interval}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._shutdown_event.set()
        await self._task
        self._task = None
        logger.info(f"Stopped periodic task '{self.name}'")

    async def _run(self) -> None:
        if not self.run_immediately and await self._wait():
            return
        while True:
            try:
                await self.func()
            except Exception as e:
                logger.exception(f"Periodic task '{self.name}' failed: {e}")
            self.run_count += 1
            if await self._wait():
                return

    async def _wait(self) -> bool:
        """Sleep for one interval; True when shutdown was requested"""
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=self.interval)
            return True
        except asyncio.TimeoutError:
            return False
