"""
=============================================================================
THREAD POOL
=============================================================================

Serves many connections at once with a fixed, bounded set of threads.

=============================================================================
WHY A POOL?
=============================================================================

    Thread per connection:  unbounded threads under load, each one paying
                            creation cost and ~8 MB of stack.

    Pool:                   N workers block on a shared queue. The accept
                            loop only enqueues; it never waits on a handler.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop ──put──►  ┌──────────────────────┐                     │
    │                         │  Task queue (bounded) │                    │
    │                         └──────────┬───────────┘                     │
    │                                    │ get                             │
    │                 ┌──────────────────┼──────────────────┐              │
    │                 ▼                  ▼                  ▼              │
    │            ┌─────────┐        ┌─────────┐        ┌─────────┐        │
    │            │Worker-0 │        │Worker-1 │  ...   │Worker-N │        │
    │            └─────────┘        └─────────┘        └─────────┘        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The handlers share nothing mutable, so workers never lock anything but
the pool's own bookkeeping.

=============================================================================
SIZING
=============================================================================

min_workers start with the pool. When every worker is busy and work is
still queued, one more is added, up to max_workers. When the queue itself
is full, submit() returns False and the server answers 503.

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


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A unit of work: func(*args, **kwargs)."""
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    A thread that runs tasks from the shared queue until it receives None
    (the poison pill) or is told to stop.
    """

    def __init__(self, task_queue: queue.Queue, worker_id: int, poll_interval: float = 1.0):
        # daemon=True: a stuck worker never keeps the process alive
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.poll_interval = poll_interval

        self.state = WorkerState.IDLE
        self._stop_event = threading.Event()

        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while not self._stop_event.is_set():
            try:
                task = self.task_queue.get(timeout=self.poll_interval)
            except queue.Empty:
                continue

            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()

        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
        except Exception as e:
            # One bad task must not take the worker down with it
            elapsed = time.time() - start_time
            logger.exception(f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}")
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE

    def stop(self):
        self._stop_event.set()


class ThreadPool:
    """
    A queue-fed pool of worker threads.

        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        pool.submit(handle_connection, args=(conn,))
        ...
        pool.shutdown()
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16, queue_size: int = 100):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size

        self._task_queue: queue.Queue[Optional[Task]] = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()  # Guards _workers
        self._started = False
        self._shutting_down = False
        self._next_worker_id = 0

    @property
    def is_running(self) -> bool:
        return self._started and not self._shutting_down

    def start(self):
        if self._started:
            return

        logger.info(f"Starting thread pool with {self.min_workers} workers")
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()
        self._shutting_down = False
        self._started = True

    def _add_worker(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(self._task_queue, self._next_worker_id)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None) -> bool:
        """
        Queue func(*args, **kwargs) for a worker.

        Never blocks: the accept loop must stay responsive.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool isn't running.
        """
        if not self.is_running:
            raise RuntimeError("Thread pool is not running")

        try:
            self._task_queue.put_nowait(Task(func=func, args=args, kwargs=kwargs or {}))
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            busy = sum(1 for w in self._workers if w.state == WorkerState.BUSY)
            if busy == len(self._workers) and self._task_queue.qsize() > 0:
                logger.debug(f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers")
                self._add_worker()

    def shutdown(self, wait: bool = False, timeout: float = 2.0):
        """
        Stop the workers.

        Queued tasks that no worker has picked up are discarded. With
        wait=True, each worker gets `timeout` seconds to finish the task
        it is running.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutting_down = True

        # Drop queued work, then wake every worker with a poison pill
        while True:
            try:
                self._task_queue.get_nowait()
                self._task_queue.task_done()
            except queue.Empty:
                break

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for worker in workers:
            worker.stop()
            try:
                self._task_queue.put_nowait(None)
            except queue.Full:
                pass

        if wait:
            for worker in workers:
                worker.join(timeout=timeout)

        self._started = False
        logger.info("Thread pool shutdown complete")

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def worker_count(self) -> int:
        with self._lock:
            return len(self._workers)

    @property
    def busy_workers(self) -> int:
        with self._lock:
            return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def pending_tasks(self) -> int:
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        with self._lock:
            workers = list(self._workers)
        return {
            "workers": len(workers),
            "busy": sum(1 for w in workers if w.state == WorkerState.BUSY),
            "queued": self._task_queue.qsize(),
            "completed": sum(w.tasks_completed for w in workers),
            "failed": sum(w.tasks_failed for w in workers),
        }
