"""Serialize state changes onto one owner execution context."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Dispatcher(Protocol):
    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        """Schedule ``fn`` on the owner context without waiting."""

    def call(self, fn: Callable[..., T], *args: Any) -> T:
        """Run ``fn`` on the owner context and return its result."""


class InlineDispatcher:
    """Runs everything immediately on the calling thread."""

    def __init__(self, *, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger
        self._lock = threading.RLock()

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        with self._lock:
            try:
                fn(*args)
            except Exception:
                self._log.exception("Posted task %r failed.", fn)

    def call(self, fn: Callable[..., T], *args: Any) -> T:
        with self._lock:
            return fn(*args)

    def shutdown(self) -> None:
        return None


class SerialDispatcher:
    """A single worker thread that owns all tracker state mutation."""

    def __init__(self, *, log: Optional[logging.Logger] = None) -> None:
        self._log = log or logger
        self._owner_ident: Optional[int] = None
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix="tracker-owner",
            initializer=self._remember_owner,
        )

    def _remember_owner(self) -> None:
        self._owner_ident = threading.get_ident()

    def on_owner_thread(self) -> bool:
        return threading.get_ident() == self._owner_ident

    def post(self, fn: Callable[..., Any], *args: Any) -> None:
        try:
            self._executor.submit(self._run_logged, fn, *args)
        except RuntimeError:
            self._log.debug("Dispatcher is shut down; dropping %r", fn)

    def call(self, fn: Callable[..., T], *args: Any) -> T:
        if self.on_owner_thread():
            return fn(*args)
        future: Future[T] = self._executor.submit(fn, *args)
        return future.result()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)
        self._log.info("Dispatcher stopped.")

    def _run_logged(self, fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except Exception:
            self._log.exception("Posted task %r failed.", fn)
