"""Executor plumbing for independent Monte Carlo batches.

Any ``concurrent.futures.Executor`` can run batches. This module adds an
inline ``SerialExecutor``, a scoped ``worker_pool`` that always tears its
workers down, a thread-safe ``CancellationToken`` and ``run_batches``, which
feeds batches to an executor with bounded submission and fail-fast error
handling.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import (
    FIRST_COMPLETED,
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    wait,
)
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Iterator, Optional, Tuple

from .errors import EstimationCancelled


__all__ = [
    "POOL_KINDS",
    "SerialExecutor",
    "CancellationToken",
    "worker_pool",
    "run_batches",
]


logger = logging.getLogger(__name__)


POOL_KINDS = ("serial", "thread", "process")

# How often a blocked wait re-checks the cancellation token
_CANCEL_POLL_S = 0.05


class SerialExecutor(Executor):
    """Executor that runs every task inline inside ``submit``.

    Useful as a baseline for scaling studies and as the default when no
    executor is supplied. The returned futures are already finished.
    """

    _max_workers = 1

    def __init__(self):
        self._shutdown = False
        self._lock = threading.Lock()

    def submit(self, fn, /, *args, **kwargs) -> Future:
        with self._lock:
            if self._shutdown:
                raise RuntimeError("cannot schedule new futures after shutdown")

        future: Future = Future()
        try:
            result = fn(*args, **kwargs)
        except Exception as exc:
            future.set_exception(exc)
        else:
            future.set_result(result)
        return future

    def shutdown(self, wait: bool = True, *, cancel_futures: bool = False) -> None:
        with self._lock:
            self._shutdown = True


class CancellationToken:
    """Thread-safe flag telling ``run_batches`` to stop issuing batches.

    Example:
        >>> token = CancellationToken()
        >>> token.cancelled
        False
        >>> token.cancel("user request")
        >>> token.cancelled, token.reason
        (True, 'user request')
    """

    def __init__(self):
        self._event = threading.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: Optional[str] = None) -> None:
        """Signal cancellation. Only the first call records a reason."""
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()
        logger.info("Cancellation requested%s", f": {reason}" if reason else "")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or ``timeout`` elapses; return the flag."""
        return self._event.wait(timeout)

    def raise_if_cancelled(self, completed: int = 0, total: int = 0) -> None:
        if self.cancelled:
            raise EstimationCancelled(completed, total)


@contextmanager
def worker_pool(kind: str = "process", max_workers: Optional[int] = None) -> Iterator[Executor]:
    """Acquire an executor and guarantee it is shut down on exit.

    On an error path queued futures are cancelled before the workers are
    joined, so an aborted aggregate never leaves a live pool behind.

    Args:
        kind: One of ``"serial"``, ``"thread"`` or ``"process"``
        max_workers: Worker count (executor default when ``None``)

    Example:
        >>> with worker_pool("thread", max_workers=2) as pool:
        ...     pool.submit(sum, [1, 2]).result()
        3
    """
    if kind not in POOL_KINDS:
        raise ValueError(f"Unknown pool kind {kind!r}; expected one of {POOL_KINDS}")
    if max_workers is not None and max_workers < 1:
        raise ValueError(f"max_workers must be >= 1, got {max_workers}")

    if kind == "serial":
        executor: Executor = SerialExecutor()
    elif kind == "thread":
        executor = ThreadPoolExecutor(max_workers=max_workers)
    else:
        executor = ProcessPoolExecutor(max_workers=max_workers)

    logger.debug("Started %s pool (max_workers=%s)", kind, getattr(executor, "_max_workers", None))
    clean_exit = False
    try:
        yield executor
        clean_exit = True
    finally:
        executor.shutdown(wait=True, cancel_futures=not clean_exit)
        logger.debug("Shut down %s pool (clean=%s)", kind, clean_exit)


def run_batches(
    fn: Callable[[Any], Any],
    items: Iterable[Any],
    executor: Optional[Executor] = None,
    cancel: Optional[CancellationToken] = None,
    max_pending: Optional[int] = None,
) -> Iterator[Tuple[int, Any]]:
    """Run ``fn(item)`` for every item and yield ``(index, result)`` pairs.

    Results arrive in completion order. No more than ``max_pending`` batches
    are submitted but unfinished at any time (default: twice the executor's
    worker count, or everything when the count is unknown).

    Cancellation: once ``cancel`` fires no further batch is submitted,
    queued futures are cancelled and ``EstimationCancelled`` is raised.

    Failure: the first batch exception propagates unchanged after the
    outstanding futures are cancelled.

    Args:
        fn: Picklable callable when ``executor`` is a process pool
        items: One argument per batch
        executor: Target executor (inline ``SerialExecutor`` when ``None``)
        cancel: Optional cancellation token
        max_pending: Submission window

    Yields:
        ``(index, result)`` for each finished batch
    """
    items = list(items)
    total = len(items)
    if executor is None:
        executor = SerialExecutor()
    if max_pending is None:
        max_pending = _default_pending(executor, total)
    elif max_pending < 1:
        raise ValueError(f"max_pending must be >= 1, got {max_pending}")

    pending: Dict[Future, int] = {}
    next_index = 0
    completed = 0
    try:
        while completed < total:
            if cancel is not None:
                cancel.raise_if_cancelled(completed, total)

            while next_index < total and len(pending) < max_pending:
                if cancel is not None and cancel.cancelled:
                    break
                future = executor.submit(fn, items[next_index])
                pending[future] = next_index
                next_index += 1

            if not pending:
                continue

            timeout = _CANCEL_POLL_S if cancel is not None else None
            done, _ = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)
            for future in done:
                index = pending.pop(future)
                result = future.result()
                completed += 1
                yield index, result
    finally:
        if pending:
            logger.debug("Cancelling %d outstanding batches", len(pending))
        for future in pending:
            future.cancel()


def _default_pending(executor: Executor, total: int) -> int:
    workers = getattr(executor, "_max_workers", None)
    if not workers:
        return max(1, total)
    return max(1, 2 * workers)
