"""
=============================================================================
THREAD POOL IMPLEMENTATION
=============================================================================

A fixed set of worker threads pulling tasks from one bounded queue.

=============================================================================
WHY A THREAD POOL?
=============================================================================

    Thread per connection:               Thread pool:
    ──────────────────────               ────────────
    for conn in accept():                pool = ThreadPool(workers=50)
        Thread(handle, conn).start()     for conn in accept():
                                             pool.submit(handle, (conn,))

    10,000 clients = 10,000 threads      10,000 clients = 50 threads
                                         + a queue of waiting work

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept thread ──submit()──►  ┌───────────────────────┐            │
    │                                │  Queue (maxsize=100)   │            │
    │                                │  [task][task][task]... │            │
    │                                └───────────┬───────────┘            │
    │                          ┌─────────────────┼─────────────────┐      │
    │                          ▼                 ▼                 ▼      │
    │                      Worker-0          Worker-1   ...    Worker-49  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

When all workers are busy and the queue is full, submit() blocks. The
accept thread is the only submitter, so the server simply stops pulling
connections off the listen backlog until a worker frees up.

=============================================================================
SHUTDOWN: POISON PILLS BEHIND THE QUEUE
=============================================================================

    queue:  [conn][conn][conn][None][None]...[None]
                                └── one per worker ──┘

Each worker exits when it dequeues None. The pills sit behind the tasks
already queued, so those tasks still run (drain). After the grace period
shutdown() stops waiting and reports the workers that are still busy.
Python cannot kill a thread; the caller decides how to unstick them
(HTTPServer aborts their sockets). Workers are daemon threads, so a stuck
one never keeps the process alive.
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker thread states, for stats and shutdown reporting."""
    IDLE = "idle"        # Waiting for task
    BUSY = "busy"        # Executing task
    STOPPED = "stopped"  # Thread exited


@dataclass
class Task:
    """
    A deferred function call: "call func(*args, **kwargs) later".

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
        submitted_at: Time the task was queued (for wait-time logging).
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Worker thread that processes tasks from the queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   1. task = queue.get()            (blocks)                          │
    │   2. task is None?  → exit         (poison pill)                     │
    │   3. task.func(*args, **kwargs)    (exceptions logged, not raised)   │
    │   4. queue.task_done(), go to 1                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int):
        # daemon=True: a stuck worker never blocks interpreter exit
        super().__init__(name=f"Worker-{worker_id}", daemon=True)

        self.task_queue = task_queue
        self.worker_id = worker_id

        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        """
        Execute a single task.

        A task that raises is counted and logged; the worker carries on
        with the next one.
        """
        self.state = WorkerState.BUSY
        start_time = time.time()

        waited = start_time - task.submitted_at
        if waited > 1.0:
            logger.debug(f"Worker {self.worker_id} picked up task after {waited:.2f}s in queue")

        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
        except Exception as e:
            elapsed = time.time() - start_time
            logger.exception(
                f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}"
            )
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Fixed-size thread pool with a bounded task queue.

    Usage:
        pool = ThreadPool(workers=50, queue_size=100)
        pool.start()

        pool.submit(handle_connection, args=(conn,))

        print(pool.stats)  # {"workers": {"busy": 3, ...}, ...}

        stragglers = pool.shutdown(timeout=5.0)
    """

    def __init__(self, workers: int = 50, queue_size: int = 100):
        """
        Args:
            workers: Number of worker threads, created at start().
            queue_size: Maximum number of tasks waiting for a worker.
        """
        if workers < 1:
            raise ValueError("workers must be >= 1")

        self.workers = workers
        self.max_queue_size = queue_size

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()  # Guards start/shutdown transitions
        self._started = False
        self._shutdown = False

    @property
    def is_running(self) -> bool:
        return self._started and not self._shutdown

    def start(self) -> None:
        """Create and start all worker threads."""
        with self._lock:
            if self._started:
                return  # Already started

            logger.info(f"Starting thread pool with {self.workers} workers")
            for worker_id in range(self.workers):
                worker = Worker(self._task_queue, worker_id)
                self._workers.append(worker)
                worker.start()

            self._started = True

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None
    ) -> bool:
        """
        Submit a task for execution.

        Args:
            func: The function to execute.
            args: Positional arguments for the function.
            kwargs: Keyword arguments for the function.
            block: Wait for queue space if the queue is full.
            queue_timeout: How long to wait for space (None = forever).

        Returns:
            True if queued, False if the queue stayed full.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")

        if self._shutdown:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args, kwargs=kwargs or {})

        try:
            self._task_queue.put(task, block=block, timeout=queue_timeout)
        except queue.Full:
            return False
        return True

    def shutdown(self, timeout: Optional[float] = None) -> List[Worker]:
        """
        Drain queued tasks, stop the workers, and wait for them.

        Args:
            timeout: Grace period in seconds. None waits forever.

        Returns:
            Workers still alive when the grace period ran out (empty if
            everything finished).
        """
        with self._lock:
            if not self._started or self._shutdown:
                return []
            self._shutdown = True

        logger.info("Shutting down thread pool...")
        deadline = None if timeout is None else time.monotonic() + timeout

        # One pill per worker, queued behind pending tasks
        for _ in self._workers:
            try:
                self._task_queue.put(None, timeout=_remaining(deadline))
            except queue.Full:
                break  # Workers are all stuck; stop waiting

        for worker in self._workers:
            worker.join(timeout=_remaining(deadline))

        stragglers = [w for w in self._workers if w.is_alive()]
        if stragglers:
            logger.warning(
                f"Shutdown grace period expired with {len(stragglers)} worker(s) still busy"
            )
        else:
            logger.info("Thread pool shutdown complete")

        return stragglers

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def active_workers(self) -> int:
        """Get count of workers that haven't exited."""
        return sum(1 for w in self._workers if w.state != WorkerState.STOPPED)

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def idle_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.IDLE)

    @property
    def queued_tasks(self) -> int:
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        """Worker and task counts, for the status endpoint and logs."""
        return {
            "workers": {
                "total": len(self._workers),
                "active": self.active_workers,
                "busy": self.busy_workers,
                "idle": self.idle_workers,
            },
            "tasks": {
                "queued": self.queued_tasks,
                "completed": sum(w.tasks_completed for w in self._workers),
                "failed": sum(w.tasks_failed for w in self._workers),
            },
        }


def _remaining(deadline: Optional[float]) -> Optional[float]:
    if deadline is None:
        return None
    return max(0.0, deadline - time.monotonic())
