"""
AsyncIO job queue for background call analysis
Priorities, a fixed worker pool and retries with exponential backoff
"""

import asyncio
import heapq
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

import structlog

logger = structlog.get_logger("callcoach.tasks.queue")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


FINISHED_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


@dataclass
class Job:
    """Job representation"""
    func: Callable
    args: tuple = field(default_factory=tuple)
    kwargs: dict = field(default_factory=dict)
    name: str = "job"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    priority: int = 5  # Lower number = higher priority
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    status: JobStatus = JobStatus.PENDING
    result: Any = None
    error: Optional[str] = None
    attempts: int = 0
    max_attempts: int = 3
    done: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    def __lt__(self, other):
        # For heapq ordering
        return (self.priority, self.created_at) < (other.priority, other.created_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "attempts": self.attempts,
            "max_attempts": self.max_attempts,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "result": self.result if self.status == JobStatus.COMPLETED else None,
            "error": self.error,
        }


class AnalysisQueue:
    """Async job queue with priorities, workers and exponential retry backoff"""

    def __init__(
        self,
        max_workers: int = 2,
        max_queue_size: int = 100,
        max_attempts: int = 3,
        backoff_seconds: float = 2.0,
        poll_interval: float = 0.1
    ):
        self.max_workers = max_workers
        self.max_queue_size = max_queue_size
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.poll_interval = poll_interval

        self._queue: List[Job] = []  # Priority heap
        self._jobs: Dict[str, Job] = {}
        self._workers: List[asyncio.Task] = []
        self._retry_timers: Set[asyncio.Task] = set()
        self._running = False
        self._queue_lock = asyncio.Lock()

        self.active_jobs = 0
        self.completed_jobs = 0
        self.failed_jobs = 0

    @property
    def running(self) -> bool:
        return self._running

    async def add_job(
        self,
        func: Callable,
        *args,
        name: str = "job",
        priority: int = 5,
        max_attempts: Optional[int] = None,
        **kwargs
    ) -> str:
        """Add job to queue"""
        job = Job(
            func=func,
            args=args,
            kwargs=kwargs,
            name=name,
            priority=priority,
            max_attempts=max_attempts or self.max_attempts
        )

        async with self._queue_lock:
            # Jobs waiting for a retry still hold a slot
            if len(self._queue) + len(self._retry_timers) >= self.max_queue_size:
                raise RuntimeError("Job queue is full")
            heapq.heappush(self._queue, job)
            self._jobs[job.id] = job

        logger.info("Job added to queue", job_id=job.id, name=name, priority=priority)
        return job.id

    def get_job(self, job_id: str) -> Optional[Job]:
        """Get job by ID"""
        return self._jobs.get(job_id)

    async def cancel_job(self, job_id: str) -> bool:
        """Cancel pending job"""
        job = self._jobs.get(job_id)
        if not job or job.status != JobStatus.PENDING:
            return False

        self._finish(job, JobStatus.CANCELLED)
        logger.info("Job cancelled", job_id=job_id)
        return True

    async def wait_for_job(self, job_id: str, timeout: Optional[float] = None) -> Job:
        """Wait until the job completes, fails or is cancelled"""
        job = self._jobs.get(job_id)
        if not job:
            raise KeyError(job_id)

        await asyncio.wait_for(job.done.wait(), timeout=timeout)
        return job

    def retry_delay(self, attempt: int) -> float:
        """Delay before the next attempt after `attempt` failed ones"""
        return self.backoff_seconds * (2 ** (attempt - 1))

    def _finish(self, job: Job, status: JobStatus):
        job.status = status
        job.completed_at = utcnow()
        # Drop the payload (uploaded audio) once the job can no longer run
        job.args = ()
        job.kwargs = {}
        job.done.set()

    async def _get_next_job(self) -> Optional[Job]:
        """Get next job from queue"""
        async with self._queue_lock:
            while self._queue:
                job = heapq.heappop(self._queue)
                if job.status == JobStatus.PENDING:
                    return job
                # Cancelled jobs are dropped here

        return None

    async def _requeue_later(self, job: Job, delay: float):
        try:
            await asyncio.sleep(delay)
            async with self._queue_lock:
                if job.status == JobStatus.PENDING:
                    heapq.heappush(self._queue, job)
        finally:
            self._retry_timers.discard(asyncio.current_task())

    async def _execute_job(self, job: Job) -> None:
        """Execute single job attempt"""
        job.status = JobStatus.RUNNING
        job.started_at = utcnow()
        job.attempts += 1
        self.active_jobs += 1

        logger.info("Executing job", job_id=job.id, name=job.name, attempt=job.attempts)

        try:
            if asyncio.iscoroutinefunction(job.func):
                result = await job.func(*job.args, **job.kwargs)
            else:
                result = job.func(*job.args, **job.kwargs)

            job.result = result
            job.error = None
            self._finish(job, JobStatus.COMPLETED)
            self.completed_jobs += 1

            logger.info("Job completed", job_id=job.id, name=job.name)

        except Exception as e:
            job.error = f"Analysis failed: {e}"

            if job.attempts < job.max_attempts:
                delay = self.retry_delay(job.attempts)
                job.status = JobStatus.PENDING
                timer = asyncio.create_task(self._requeue_later(job, delay))
                self._retry_timers.add(timer)
                logger.warning(
                    "Job failed, retry scheduled",
                    job_id=job.id,
                    attempt=job.attempts,
                    retry_in=delay,
                    error=str(e)
                )
            else:
                self._finish(job, JobStatus.FAILED)
                self.failed_jobs += 1
                logger.error("Job failed permanently", job_id=job.id, attempts=job.attempts, error=str(e))

        finally:
            self.active_jobs -= 1

    async def _worker(self, worker_id: int):
        """Worker coroutine"""
        logger.info(f"Worker {worker_id} started")

        try:
            while self._running:
                job = await self._get_next_job()

                if job:
                    await self._execute_job(job)
                else:
                    # No jobs available, wait a bit
                    await asyncio.sleep(self.poll_interval)

        except asyncio.CancelledError:
            logger.info(f"Worker {worker_id} cancelled")
            raise

        finally:
            logger.info(f"Worker {worker_id} stopped")

    async def start(self):
        """Start the queue workers"""
        if self._running:
            return

        self._running = True

        for i in range(self.max_workers):
            worker = asyncio.create_task(self._worker(i))
            self._workers.append(worker)

        logger.info(f"Job queue started with {self.max_workers} workers")

    async def stop(self, timeout: float = 10.0):
        """Stop the queue gracefully"""
        if not self._running:
            return

        logger.info("Stopping job queue...")
        self._running = False

        pending = self._workers + list(self._retry_timers)
        for task in pending:
            task.cancel()

        try:
            await asyncio.wait_for(
                asyncio.gather(*pending, return_exceptions=True),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Job queue stop timeout, forcing shutdown")

        self._workers.clear()
        self._retry_timers.clear()
        logger.info("Job queue stopped")

    def qsize(self) -> int:
        """Get queue size"""
        return len(self._queue)

    def get_stats(self) -> Dict[str, Any]:
        """Get queue statistics"""
        return {
            "queue_size": len(self._queue),
            "active_jobs": self.active_jobs,
            "completed_jobs": self.completed_jobs,
            "failed_jobs": self.failed_jobs,
            "retrying_jobs": len(self._retry_timers),
            "running": self._running,
            "workers": len(self._workers),
        }

    def cleanup_old_jobs(self, hours: float = 24) -> int:
        """Forget finished jobs older than `hours`"""
        cutoff_time = utcnow() - timedelta(hours=hours)

        to_remove = [
            job_id for job_id, job in self._jobs.items()
            if job.status in FINISHED_STATUSES and job.completed_at and job.completed_at < cutoff_time
        ]
        for job_id in to_remove:
            del self._jobs[job_id]

        logger.info(f"Cleaned up {len(to_remove)} old jobs")
        return len(to_remove)

    async def start_periodic_cleanup(self, interval_seconds: float = 3600, hours: float = 24):
        """Run cleanup_old_jobs every `interval_seconds` until cancelled"""
        logger.info(f"Starting periodic job cleanup every {interval_seconds} seconds")

        while True:
            try:
                await asyncio.sleep(interval_seconds)
                self.cleanup_old_jobs(hours=hours)

            except asyncio.CancelledError:
                logger.info("Periodic job cleanup cancelled")
                break
            except Exception as e:
                logger.error(f"Error in periodic job cleanup: {e}")


class QueueManager:
    """Context manager for queue lifecycle"""

    def __init__(self, queue: AnalysisQueue):
        self.queue = queue

    async def __aenter__(self):
        await self.queue.start()
        return self.queue

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.queue.stop()
