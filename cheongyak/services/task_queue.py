"""
Async worker pool for document analysis jobs

Submitting never blocks the caller; a fixed number of worker tasks drain
the queue. Jobs are independent and are not cancelled once started.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from ..config import settings
from ..exceptions import ServiceUnavailableError

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[Any]]


@dataclass
class WorkerConfig:
    """Worker pool configuration"""
    max_concurrent: int = 16
    queue_size: int = 1000
    shutdown_timeout: float = 30.0  # seconds


class AnalysisWorkerPool:
    """
    Fixed-size pool of asyncio workers fed by a bounded queue.

    Usage:
        pool = AnalysisWorkerPool(WorkerConfig(max_concurrent=4))
        await pool.start()
        pool.submit(lambda: orchestrator.analyze(document_id, profile), name=document_id)
        ...
        await pool.stop()
    """

    def __init__(self, config: Optional[WorkerConfig] = None):
        self.config = config or WorkerConfig(
            max_concurrent=settings.analysis_workers,
            queue_size=settings.analysis_queue_size
        )
        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self._running = False

        # Metrics
        self._processed_count = 0
        self._failed_count = 0
        self._active_jobs = 0
        self._start_time: Optional[datetime] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._queue = asyncio.Queue(maxsize=self.config.queue_size)
        self._workers = [
            asyncio.create_task(self._worker_loop(index), name=f"analysis-worker-{index}")
            for index in range(self.config.max_concurrent)
        ]
        self._running = True
        self._start_time = datetime.now(timezone.utc)
        logger.info(f"Started {self.config.max_concurrent} analysis workers")

    def submit(self, job: Job, name: str = "job") -> None:
        """Queue a job without waiting for it"""
        if not self._running or self._queue is None:
            raise RuntimeError("Worker pool is not running")
        try:
            self._queue.put_nowait((name, job))
        except asyncio.QueueFull:
            logger.error(f"Analysis queue full, rejecting job {name}")
            raise ServiceUnavailableError("analysis-queue")
        logger.debug(f"Queued job {name} ({self._queue.qsize()} waiting)")

    async def join(self) -> None:
        """Wait until every queued job has finished"""
        if self._queue is not None:
            await self._queue.join()

    async def stop(self) -> None:
        """Stop the pool gracefully, letting queued and running jobs finish"""
        if not self._running:
            return
        logger.info("Stopping analysis workers...")
        self._running = False
        try:
            await asyncio.wait_for(self.join(), timeout=self.config.shutdown_timeout)
        except asyncio.TimeoutError:
            logger.warning("Shutdown timeout - some analysis jobs may not have completed")

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info(
            f"Analysis workers stopped. Processed: {self._processed_count}, Failed: {self._failed_count}"
        )

    async def _worker_loop(self, index: int) -> None:
        while True:
            name, job = await self._queue.get()
            self._active_jobs += 1
            try:
                await job()
                self._processed_count += 1
            except Exception as e:
                # Jobs record their own failures; anything escaping is logged only
                self._failed_count += 1
                logger.exception(f"Job {name} raised in worker {index}: {e}")
            finally:
                self._active_jobs -= 1
                self._queue.task_done()

    def get_stats(self) -> Dict[str, Any]:
        """Get worker pool statistics"""
        uptime = None
        if self._start_time:
            uptime = (datetime.now(timezone.utc) - self._start_time).total_seconds()

        return {
            'running': self._running,
            'workers': len(self._workers),
            'queued_jobs': self._queue.qsize() if self._queue else 0,
            'active_jobs': self._active_jobs,
            'processed_count': self._processed_count,
            'failed_count': self._failed_count,
            'uptime_seconds': uptime
        }


# Global analysis worker pool, started in the application lifespan
analysis_worker_pool = AnalysisWorkerPool()
