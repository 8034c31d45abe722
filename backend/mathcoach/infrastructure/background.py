"""Background Job Queue — in-process asyncio queue for best-effort side effects.

Invariants:
    - submit() never blocks and never raises: a full or stopped queue returns False
    - A failing job is retried up to max_attempts with linear delay, then logged and dropped
    - Job failures never propagate to the request that submitted them
    - join() returns once every submitted job has finished (success or final failure)

Design Decisions:
    - asyncio.Queue + worker tasks over FastAPI BackgroundTasks: jobs are also
      submitted from service code that has no Response object, and need a retry policy
    - Jobs are plain coroutine functions; each opens its own DB session
      (the request session is already closed when the job runs)
    - Singleton job_queue initialized in the lifespan, same pattern as db_manager
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

JobFn = Callable[..., Awaitable[None]]


@dataclass
class _Job:
    name: str
    fn: JobFn
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)


class BackgroundJobQueue:
    """Bounded queue drained by a fixed pool of worker tasks."""

    def __init__(
        self,
        workers: int = 2,
        max_attempts: int = 3,
        retry_delay: float = 0.5,
        max_size: int = 1000,
    ):
        self.workers = workers
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._queue: asyncio.Queue[_Job] = asyncio.Queue(maxsize=max_size)
        self._tasks: list[asyncio.Task] = []
        self._accepting = False

    @property
    def running(self) -> bool:
        return self._accepting

    def start(self) -> None:
        if self._tasks:
            return
        self._accepting = True
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"job-worker-{i}")
            for i in range(self.workers)
        ]

    def submit(self, name: str, fn: JobFn, *args, **kwargs) -> bool:
        if not self._accepting:
            logger.warning(
                f"Job queue not running, dropping job {name}",
                extra={"job_name": name},
            )
            return False
        try:
            self._queue.put_nowait(_Job(name, fn, args, kwargs))
        except asyncio.QueueFull:
            logger.error(
                f"Job queue full, dropping job {name}",
                extra={"job_name": name},
            )
            return False
        return True

    async def join(self) -> None:
        await self._queue.join()

    async def stop(self, drain: bool = True) -> None:
        """Stop accepting jobs, optionally drain, then cancel workers."""
        self._accepting = False
        if drain and self._tasks:
            await self._queue.join()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

    async def _worker(self, index: int) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self._run(job)
            finally:
                self._queue.task_done()

    async def _run(self, job: _Job) -> None:
        for attempt in range(1, self.max_attempts + 1):
            try:
                await job.fn(*job.args, **job.kwargs)
                return
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if attempt >= self.max_attempts:
                    logger.error(
                        f"Job {job.name} failed after {attempt} attempts: {e}",
                        extra={"job_name": job.name, "attempt": attempt},
                        exc_info=True,
                    )
                    return
                logger.warning(
                    f"Job {job.name} failed, retrying: {e}",
                    extra={"job_name": job.name, "attempt": attempt},
                )
                await asyncio.sleep(self.retry_delay * attempt)


# Singleton (initialized on startup)
job_queue: BackgroundJobQueue | None = None


def init_job_queue(**kwargs) -> BackgroundJobQueue:
    global job_queue
    job_queue = BackgroundJobQueue(**kwargs)
    job_queue.start()
    return job_queue


async def shutdown_job_queue() -> None:
    global job_queue
    if job_queue is not None:
        await job_queue.stop()
        job_queue = None
