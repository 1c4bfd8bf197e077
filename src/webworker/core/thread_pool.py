"""
=============================================================================
THREAD POOL
=============================================================================

Web workers run here. The accept loop submits one job per connection; a
pool thread takes the job, runs the worker until the connection is
closed, and goes back to the queue.

    accept loop ── submit(job) ──► ┌───────────────────────────┐
                                   │  job queue (bounded)      │
                                   └─────────────┬─────────────┘
                                                 │ get()
                  ┌──────────────┬───────────────┼──────────────┐
                  ▼              ▼               ▼              ▼
             webworker-0    webworker-1     webworker-2    ... up to
               (busy)         (idle)          (busy)       max_workers

Jobs share nothing but the queue: a client that stalls one thread does
not slow the others.

Threads start at min_workers. A submit that finds every thread busy and
work still waiting adds one more, up to max_workers.

To stop, the pool puts one STOP sentinel per thread on the queue; a
thread that takes it leaves its loop.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)

# Queue sentinel: the thread that takes it exits
STOP = None


class ThreadState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Job:
    """One call waiting for a pool thread."""
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    queued_at: float = field(default_factory=time.monotonic)

    def __call__(self):
        return self.func(*self.args, **self.kwargs)


class PoolThread(threading.Thread):
    """
    Daemon thread draining the shared job queue.

    A job that raises is logged and counted. The thread itself only
    exits on STOP or stop().
    """

    def __init__(self, jobs: queue.Queue, index: int, poll_interval: float = 1.0):
        super().__init__(name=f"webworker-{index}", daemon=True)
        self.jobs = jobs
        self.index = index
        self.poll_interval = poll_interval

        self.state = ThreadState.IDLE
        self.completed = 0
        self.failed = 0
        self._halt = threading.Event()

    def run(self):
        logger.debug(f"{self.name} started")

        while not self._halt.is_set():
            try:
                # Bounded wait so stop() is noticed without a sentinel
                job = self.jobs.get(timeout=self.poll_interval)
            except queue.Empty:
                continue

            try:
                if job is STOP:
                    break
                self._run_job(job)
            finally:
                self.jobs.task_done()

        self.state = ThreadState.STOPPED
        logger.debug(f"{self.name} stopped")

    def _run_job(self, job: Job):
        self.state = ThreadState.BUSY
        began = time.monotonic()
        try:
            job()
        except Exception as e:
            self.failed += 1
            logger.exception(f"{self.name}: job raised {type(e).__name__}: {e}")
        else:
            self.completed += 1
            logger.debug(
                f"{self.name}: job done in {time.monotonic() - began:.3f}s, "
                f"waited {began - job.queued_at:.3f}s"
            )
        finally:
            self.state = ThreadState.IDLE

    def stop(self):
        """Exit after the current job, if any."""
        self._halt.set()


class ThreadPool:
    """
    Grows from min_workers to max_workers threads as load requires.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16, queue_size=100)
        pool.start()
        if not pool.submit(worker.run, block=False):
            conn.close()   # saturated
        ...
        pool.shutdown(wait=True, timeout=30.0)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 1.0,
    ):
        """
        Args:
            min_workers: Threads started by start().
            max_workers: Never more threads than this.
            queue_size: Jobs that may wait for a free thread.
            idle_timeout: Poll interval of idle threads.
        """
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._jobs: queue.Queue[Optional[Job]] = queue.Queue(maxsize=queue_size)
        self._threads: list[PoolThread] = []
        self._threads_lock = threading.Lock()
        self._spawned = 0
        self._started = False
        self._shutting_down = False

    @property
    def is_running(self) -> bool:
        return self._started and not self._shutting_down

    @property
    def busy_workers(self) -> int:
        return self._count(ThreadState.BUSY)

    @property
    def stats(self) -> dict:
        """Snapshot of thread and job counters."""
        threads = list(self._threads)
        return {
            "workers": {
                "total": len(threads),
                "busy": self._count(ThreadState.BUSY),
                "idle": self._count(ThreadState.IDLE),
            },
            "tasks": {
                "queued": self._jobs.qsize(),
                "completed": sum(t.completed for t in threads),
                "failed": sum(t.failed for t in threads),
            },
        }

    def _count(self, state: ThreadState) -> int:
        return sum(1 for t in list(self._threads) if t.state is state)

    def start(self):
        """Spawn min_workers threads. Calling it again does nothing."""
        if self._started:
            return

        self._shutting_down = False
        with self._threads_lock:
            for _ in range(self.min_workers):
                self._spawn()
        self._started = True
        logger.info(f"Thread pool running with {self.min_workers} threads (max {self.max_workers})")

    def _spawn(self):
        """Caller holds _threads_lock."""
        thread = PoolThread(self._jobs, self._spawned, self.idle_timeout)
        self._spawned += 1
        self._threads.append(thread)
        thread.start()

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None,
    ) -> bool:
        """
        Queue func(*args, **kwargs).

        Args:
            block: Wait for queue space instead of giving up at once.
            queue_timeout: Upper bound on that wait.

        Returns:
            False if the queue had no room, True otherwise.

        Raises:
            RuntimeError: If the pool is not started or is stopping.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutting_down:
            raise RuntimeError("Thread pool is shutting down")

        try:
            self._jobs.put(Job(func, args, kwargs or {}), block=block, timeout=queue_timeout)
        except queue.Full:
            return False

        self._grow_if_saturated()
        return True

    def _grow_if_saturated(self):
        with self._threads_lock:
            total = len(self._threads)
            if total >= self.max_workers or self._jobs.empty():
                return
            if all(t.state is ThreadState.BUSY for t in self._threads):
                logger.debug(f"All {total} threads busy, adding one")
                self._spawn()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop every thread.

        Args:
            wait: First let queued jobs run.
            timeout: Give up waiting for the queue after this many seconds.
        """
        if not self._started:
            return

        logger.info("Stopping thread pool...")
        self._shutting_down = True

        if wait:
            self._drain(timeout)

        with self._threads_lock:
            for thread in self._threads:
                try:
                    self._jobs.put(STOP, block=False)
                except queue.Full:
                    thread.stop()
            for thread in self._threads:
                thread.stop()
                thread.join(timeout=2.0)
            self._threads.clear()

        # Anything left (unserved jobs, unused sentinels) would confuse a restart
        abandoned = 0
        while True:
            try:
                job = self._jobs.get_nowait()
            except queue.Empty:
                break
            self._jobs.task_done()
            if job is not STOP:
                abandoned += 1
        if abandoned:
            logger.warning(f"Dropped {abandoned} queued connection(s) on shutdown")

        self._started = False
        logger.info("Thread pool stopped")

    def _drain(self, timeout: Optional[float]):
        deadline = None if timeout is None else time.monotonic() + timeout
        while self._jobs.unfinished_tasks:
            if deadline is not None and time.monotonic() > deadline:
                logger.warning("Timed out waiting for queued connections")
                return
            time.sleep(0.05)
