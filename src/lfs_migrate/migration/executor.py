"""Fixed-size asyncio worker pool."""

import asyncio
from datetime import datetime
from typing import Any, Awaitable, Callable, Generic, Iterable, List, Optional, TypeVar

from loguru import logger
from pydantic import BaseModel, Field

JobT = TypeVar('JobT')

_DONE = object()


class JobFailure(BaseModel):
    """A job that raised, with its error text."""

    name: str
    error: str


class ProcessStats(BaseModel):
    """Counters shared by the workers of one run.

    All workers run on one event loop and never await between reading and
    writing a counter, so each increment is atomic.
    """

    processed: int = Field(default=0, description='Jobs that completed')
    failed: int = Field(default=0, description='Jobs that raised')
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    failures: List[JobFailure] = Field(default_factory=list)

    def record_success(self) -> None:
        self.processed += 1

    def record_failure(self, name: str, error: str) -> None:
        self.failed += 1
        self.failures.append(JobFailure(name=name, error=error))

    @property
    def total(self) -> int:
        return self.processed + self.failed

    @property
    def has_failures(self) -> bool:
        return self.failed > 0

    @property
    def elapsed(self):
        return (self.completed_at or datetime.now()) - self.started_at


def job_name(job: Any) -> str:
    return str(getattr(job, 'name', job))


class BoundedExecutor(Generic[JobT]):
    """Runs an async operation once per job with at most N in flight.

    A single producer task moves jobs from the iterable into a queue bounded
    by the worker count; exhausting the iterable only releases idle workers,
    jobs already dequeued always run to completion. There is no timeout: a
    hung operation keeps its slot.
    """

    def __init__(self, worker_count: int = 1):
        if worker_count < 1:
            raise ValueError('worker_count must be at least 1')
        self.worker_count = worker_count
        self.logger = logger.bind(component='BoundedExecutor')

    async def run(
        self,
        jobs: Iterable[JobT],
        operation: Callable[[JobT], Awaitable[Any]],
        stats: Optional[ProcessStats] = None,
    ) -> ProcessStats:
        """Process every job and wait for all workers to finish.

        Args:
            jobs: Job stream, consumed lazily
            operation: Coroutine function called exactly once per job
            stats: Counters to update, a new instance by default

        Returns:
            Final counters; ``has_failures`` tells whether any job failed
        """
        if stats is None:
            stats = ProcessStats()
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.worker_count)

        producer = asyncio.ensure_future(self._produce(jobs, queue))
        workers = [
            asyncio.ensure_future(self._work(index, queue, operation, stats))
            for index in range(self.worker_count)
        ]

        await asyncio.gather(*workers)
        # Surfaces a producer failure only after every dequeued job is done
        await producer

        stats.completed_at = datetime.now()
        self.logger.info(
            f'Worker pool finished: {stats.processed} processed, {stats.failed} failed'
        )
        return stats

    async def _produce(self, jobs: Iterable[JobT], queue: asyncio.Queue) -> None:
        try:
            for job in jobs:
                await queue.put(job)
        finally:
            for _ in range(self.worker_count):
                await queue.put(_DONE)

    async def _work(
        self,
        index: int,
        queue: asyncio.Queue,
        operation: Callable[[JobT], Awaitable[Any]],
        stats: ProcessStats,
    ) -> None:
        while True:
            job = await queue.get()
            if job is _DONE:
                return

            name = job_name(job)
            self.logger.debug(f'Worker {index} processing {name}')
            try:
                await operation(job)
            except Exception as e:
                self.logger.error(f'Error processing {name}: {e}')
                stats.record_failure(name, str(e))
            else:
                stats.record_success()
