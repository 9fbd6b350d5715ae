from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar


log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of an async operation: exactly one of `value` / `error` is meaningful.

    Usage:
        res = Result.success(image)
        if res.ok:
            show(res.value)
        else:
            log.warning("failed: %s", res.error)
    """
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException) -> "Result[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


Callback = Callable[[Result[Any]], None]


class MainQueue:
    """
    Single-consumer FIFO dispatcher standing in for the UI thread.

    Every completion callback is posted here and runs exactly once, in post
    order, never concurrently with another posted callable. Either start the
    worker thread (`start()`) or pump it from the owning thread with
    `process_pending()`.
    """

    def __init__(self, name: str = "main"):
        self.name = name
        self._q: "queue.Queue[Optional[tuple]]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._idle = threading.Condition()
        self._pending = 0

    # -------- producer side --------

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        with self._idle:
            self._pending += 1
        self._q.put((fn, args))

    def deliver(self, future: "Future[Result[Any]]", callback: Optional[Callback], result: Result[Any]) -> None:
        """Hop `result` onto this queue: run `callback` then resolve `future`."""
        def _complete() -> None:
            try:
                if callback is not None:
                    callback(result)
            finally:
                future.set_result(result)
        self.post(_complete)

    # -------- consumer side --------

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name=f"{self.name}-queue", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        if self._thread is None:
            return
        self._q.put(None)
        self._thread.join(timeout=timeout)
        self._thread = None

    def process_pending(self) -> int:
        """Run everything queued so far on the calling thread; return how many ran."""
        count = 0
        while True:
            try:
                item = self._q.get_nowait()
            except queue.Empty:
                return count
            if item is None:
                continue
            self._run(item)
            count += 1

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every posted callable has run (worker-thread mode)."""
        with self._idle:
            return self._idle.wait_for(lambda: self._pending == 0, timeout=timeout)

    def _loop(self) -> None:
        while True:
            item = self._q.get()
            if item is None:
                break
            self._run(item)

    def _run(self, item: tuple) -> None:
        fn, args = item
        try:
            fn(*args)
        except Exception:
            # A failing UI callback must not kill the dispatcher
            log.exception("Callback %r raised on %s queue", fn, self.name)
        finally:
            with self._idle:
                self._pending -= 1
                self._idle.notify_all()
