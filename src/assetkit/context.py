"""Build-scoped execution context with namespaced worker pools."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, TypeVar

from .errors import AssetkitError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class WebContext:
    """Owns the worker pools used by one build invocation.

    A context is created once per run, opened before use and closed when the
    run ends. Components that want concurrent execution receive it explicitly
    and ask for an executor under their own namespace.
    """

    def __init__(self, name: str = "assetkit", *, max_workers: int | None = None) -> None:
        self.name = name
        self.max_workers = max_workers
        self._executors: dict[str, ThreadPoolExecutor] = {}
        self._lock = threading.Lock()
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> "WebContext":
        if not self._open:
            self._open = True
            logger.debug("Opened context '%s'", self.name)
        return self

    def close(self) -> None:
        with self._lock:
            executors = list(self._executors.values())
            self._executors.clear()
            self._open = False
        for executor in executors:
            executor.shutdown(wait=True)
        logger.debug("Closed context '%s'", self.name)

    def __enter__(self) -> "WebContext":
        return self.open()

    def __exit__(self, *_exc_info: object) -> None:
        self.close()

    def executor(self, namespace: str) -> ThreadPoolExecutor:
        with self._lock:
            if not self._open:
                raise AssetkitError(f"Context '{self.name}' is not open")
            executor = self._executors.get(namespace)
            if executor is None:
                executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix=f"{self.name}-{namespace}",
                )
                self._executors[namespace] = executor
            return executor

    def map(self, namespace: str, fn: Callable[[T], R], items: Iterable[T]) -> list[R]:
        """Apply ``fn`` to ``items`` on the namespace pool, preserving order."""

        return list(self.executor(namespace).map(fn, items))
