"""A fixed-size pool of worker threads fed from a shared FIFO queue."""

from __future__ import annotations

import argparse
import logging
import threading
import time
from collections import deque
from typing import Callable, Deque, List, Optional, Sequence

logger = logging.getLogger(__name__)

Task = Callable[[], object]


class ThreadPool:
    """Runs submitted callables on a fixed number of worker threads.

    Tasks are executed in submission order. Shutting down lets the workers
    finish every task that is still queued before they exit.
    """

    def __init__(self, size: int) -> None:
        if size < 0:
            raise ValueError(f"pool size must not be negative, got {size}")
        self._tasks: Deque[Task] = deque()
        self._cond = threading.Condition()
        self._stop = False
        self._workers: List[threading.Thread] = [
            threading.Thread(target=self._work, name=f"pool-worker-{n}", daemon=True)
            for n in range(size)
        ]
        for worker in self._workers:
            worker.start()

    @property
    def size(self) -> int:
        return len(self._workers)

    def add_task(self, task: Task) -> None:
        """Queue a callable taking no arguments for execution."""
        if not callable(task):
            raise TypeError("task must be callable")
        with self._cond:
            if self._stop:
                raise RuntimeError("cannot add a task to a pool that is shut down")
            self._tasks.append(task)
            self._cond.notify()

    def shutdown(self) -> None:
        """Stop accepting tasks, drain the queue and join every worker."""
        with self._cond:
            self._stop = True
            self._cond.notify_all()
        current = threading.current_thread()
        for worker in self._workers:
            if worker is not current:
                worker.join()

    def _work(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._stop or bool(self._tasks))
                if self._stop and not self._tasks:
                    return
                task = self._tasks.popleft()
            try:
                task()
            except Exception:
                logger.exception("task raised an exception")

    def __enter__(self) -> "ThreadPool":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Demonstrate the pool: three workers running twenty short tasks."""
    parser = argparse.ArgumentParser(description="Run a thread pool demonstration.")
    parser.parse_args(argv)

    def make_task(number: int) -> Task:
        def task() -> None:
            print(f"任务：{number}正在执行,其tid = {threading.get_ident()}", flush=True)
            time.sleep(0.5)

        return task

    with ThreadPool(3) as pool:
        for number in range(20):
            pool.add_task(make_task(number))
        time.sleep(5)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())