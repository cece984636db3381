"""Background execution with completions marshaled to a single owner thread.

Remote calls run on a worker pool; their completion callbacks are handed to a
`dispatch` callable. The default dispatcher runs callbacks inline on the worker.
A UI-owning loop can pass a `MainQueue` instead and drain it from its own
thread so that every user-visible mutation happens there.
"""
from __future__ import annotations

import queue
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="background")

T = TypeVar("T")
Dispatch = Callable[..., None]


def call_inline(fn: Callable[..., Any], *args: Any) -> None:
    """Run the callback immediately on the calling thread."""
    fn(*args)


class MainQueue:
    """FIFO of pending callbacks, drained by the thread that owns the UI."""

    def __init__(self) -> None:
        self._pending: "queue.SimpleQueue[tuple[Callable[..., Any], tuple]]" = queue.SimpleQueue()

    def __call__(self, fn: Callable[..., Any], *args: Any) -> None:
        self._pending.put((fn, args))

    def drain(self) -> int:
        """Run every queued callback in order and return how many ran."""
        ran = 0
        while True:
            try:
                fn, args = self._pending.get_nowait()
            except queue.Empty:
                return ran
            fn(*args)
            ran += 1


class ImmediateExecutor(Executor):
    """Executor that runs work synchronously; used when no workers are configured."""

    def submit(self, fn, /, *args, **kwargs):  # type: ignore[override]
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:  # delivered through the future
            future.set_exception(exc)
        return future


class BackgroundRunner:
    """Submit work off the caller's thread and deliver results via `dispatch`."""

    def __init__(
        self,
        max_workers: int = 4,
        *,
        dispatch: Optional[Dispatch] = None,
        executor: Optional[Executor] = None,
    ) -> None:
        if executor is None:
            executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="beacon") \
                if max_workers > 0 else ImmediateExecutor()
        self._executor = executor
        self.dispatch: Dispatch = dispatch or call_inline

    def submit(
        self,
        work: Callable[..., T],
        *args: Any,
        on_result: Optional[Callable[[T], None]] = None,
        **kwargs: Any,
    ) -> "Future[T]":
        """Run `work(*args, **kwargs)` in the background.

        `on_result` receives the return value through the dispatcher before the
        returned future resolves.
        """
        def _task() -> T:
            result = work(*args, **kwargs)
            if on_result is not None:
                try:
                    self.dispatch(on_result, result)
                except Exception as exc:
                    logger.error("Completion callback failed: %s", exc)
            return result

        return self._executor.submit(_task)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work and optionally wait for in-flight tasks."""
        self._executor.shutdown(wait=wait)
