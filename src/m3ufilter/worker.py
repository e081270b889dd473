"""
Run playlist filtering off the caller's thread.

A job reports ``(processed_lines, total_lines)`` progress every
``config.PROGRESS_INTERVAL`` lines, then exactly one terminal notification:
``on_result(FilterResult)`` or ``on_error(exception)``. Cancelling a job
suppresses every later notification; a running scan stops at its next
checkpoint.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from m3ufilter import config
from m3ufilter.errors import JobCancelledError
from m3ufilter.filter import generate_filtered
from m3ufilter.models import FilterResult

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
ResultCallback = Callable[[FilterResult], None]
ErrorCallback = Callable[[BaseException], None]


class JobState(str, enum.Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


FINAL_STATES = (JobState.DONE, JobState.FAILED, JobState.CANCELLED)


class FilterJob:
    def __init__(
        self,
        job_id: str,
        on_progress: ProgressCallback | None = None,
        on_result: ResultCallback | None = None,
        on_error: ErrorCallback | None = None,
        clock=time.monotonic,
    ):
        self.id = job_id
        self.state = JobState.PENDING
        self.progress: tuple[int, int] = (0, 0)
        self._on_progress = on_progress
        self._on_result = on_result
        self._on_error = on_error
        self._result: FilterResult | None = None
        self._error: BaseException | None = None
        self._future = None
        self._clock = clock
        self.finished_at: float | None = None
        self._cancelled = threading.Event()
        self._finished = threading.Event()
        # Re-entrant so callbacks may cancel their own job
        self._lock = threading.RLock()

    def __repr__(self):
        return f"FilterJob(id={self.id!r}, state={self.state.value!r}, progress={self.progress!r})"

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def filter_result(self) -> FilterResult | None:
        """The result of a finished job, without waiting."""
        return self._result

    def done(self) -> bool:
        return self._finished.is_set()

    def cancel(self) -> bool:
        with self._lock:
            if self.state in FINAL_STATES:
                return False
            self._cancelled.set()
            self.finished_at = self._clock()
            self.state = JobState.CANCELLED
            future = self._future
        if future is not None:
            future.cancel()
        logger.info("Filter job %s cancelled at %d/%d lines", self.id, *self.progress)
        self._finished.set()
        return True

    def result(self, timeout: float | None = None) -> FilterResult:
        if not self._finished.wait(timeout):
            raise TimeoutError(f"Filter job {self.id} still running")
        if self.state is JobState.CANCELLED:
            raise JobCancelledError(f"Filter job {self.id} was cancelled")
        if self._error is not None:
            raise self._error
        return self._result

    def _notify(self, callback, *args):
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Callback for filter job %s failed", self.id)

    def _checkpoint(self, processed: int, total: int) -> None:
        with self._lock:
            if self._cancelled.is_set():
                raise JobCancelledError(f"Filter job {self.id} was cancelled")
            self.progress = (processed, total)
            self._notify(self._on_progress, processed, total)

    def _finish(self, state, result=None, error=None):
        with self._lock:
            if self._cancelled.is_set():
                return
            self._result = result
            self._error = error
            self.finished_at = self._clock()
            self.state = state
            if error is None:
                self._notify(self._on_result, result)
            else:
                self._notify(self._on_error, error)
        self._finished.set()

    def _run(self, text, excluded_groups):
        with self._lock:
            if self._cancelled.is_set():
                return
            self.state = JobState.RUNNING
        logger.debug("Filter job %s started", self.id)

        try:
            result = generate_filtered(text, excluded_groups, checkpoint=self._checkpoint)
        except JobCancelledError:
            logger.debug("Filter job %s stopped after cancellation", self.id)
            return
        except Exception as e:
            logger.error(f"Filter job {self.id} failed: {e}")
            self._finish(JobState.FAILED, error=e)
            return
        self._finish(JobState.DONE, result=result)


class FilterWorker:
    """Thread pool that runs filter jobs and keeps track of them by id.

    Finished jobs are dropped ``job_ttl_seconds`` after they end.
    """

    def __init__(
        self,
        max_workers: int | None = None,
        job_ttl_seconds: float | None = None,
        clock=time.monotonic,
    ):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or config.MAX_WORKERS,
            thread_name_prefix="m3u-filter",
        )
        self.job_ttl_seconds = config.JOB_TTL_SECONDS if job_ttl_seconds is None else job_ttl_seconds
        self._clock = clock
        self._jobs: dict[str, FilterJob] = {}
        self._lock = threading.Lock()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()

    def submit(
        self,
        text: str,
        excluded_groups=(),
        on_progress: ProgressCallback | None = None,
        on_result: ResultCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> FilterJob:
        self.prune()
        job = FilterJob(uuid.uuid4().hex, on_progress, on_result, on_error, clock=self._clock)
        with self._lock:
            self._jobs[job.id] = job
        job._future = self._executor.submit(job._run, text, frozenset(excluded_groups or ()))
        logger.info("Queued filter job %s", job.id)
        return job

    def get(self, job_id: str) -> FilterJob | None:
        with self._lock:
            return self._jobs.get(job_id)

    def forget(self, job_id: str) -> FilterJob | None:
        with self._lock:
            return self._jobs.pop(job_id, None)

    def prune(self) -> int:
        """Forget finished jobs older than the TTL; returns how many went."""
        cutoff = self._clock() - self.job_ttl_seconds
        with self._lock:
            stale = [
                job_id
                for job_id, job in self._jobs.items()
                if job.finished_at is not None and job.finished_at <= cutoff
            ]
            for job_id in stale:
                del self._jobs[job_id]
        if stale:
            logger.debug("Pruned %d finished filter jobs", len(stale))
        return len(stale)

    def jobs(self) -> list[FilterJob]:
        with self._lock:
            return list(self._jobs.values())

    def cancel(self, job_id: str) -> bool:
        job = self.get(job_id)
        return job.cancel() if job else False

    def shutdown(self, wait: bool = True) -> None:
        for job in self.jobs():
            job.cancel()
        self._executor.shutdown(wait=wait)
