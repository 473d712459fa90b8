"""Non-blocking front for ``ResolverService``.

``resolve()`` returns a ``concurrent.futures.Future`` right away; the lookup
runs on a small pool of daemon threads, so a pending lookup never keeps the
interpreter alive. Cancelling a future only helps while it is still queued.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from datetime import timedelta

from extip.provider import Address
from extip.resolver import DEFAULT_MAX_CACHE_AGE, ResolverService

DEFAULT_MAX_WORKERS = 4

_STOP = object()


class NonBlockingResolverService:
    def __init__(
        self,
        resolver: ResolverService,
        max_workers: int = DEFAULT_MAX_WORKERS,
        logger: logging.Logger | None = None,
    ) -> None:
        if max_workers <= 0:
            raise ValueError(f"max_workers must be > 0, got {max_workers}")
        self._resolver = resolver
        self._max_workers = max_workers
        self._logger = logger or logging.getLogger(__name__)
        self._queue: queue.SimpleQueue = queue.SimpleQueue()
        self._threads: list[threading.Thread] = []
        self._idle_semaphore = threading.Semaphore(0)
        self._lock = threading.Lock()
        self._shutdown = False

    @property
    def resolver(self) -> ResolverService:
        return self._resolver

    def resolve(self, max_cache_age: timedelta | float = DEFAULT_MAX_CACHE_AGE) -> Future[Address | None]:
        future: Future[Address | None] = Future()
        with self._lock:
            if self._shutdown:
                raise RuntimeError("cannot schedule resolve after shutdown")
            self._queue.put((future, max_cache_age))
            self._grow()
        return future

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
            threads = list(self._threads)
            for _ in threads:
                self._queue.put(_STOP)
        if wait:
            for thread in threads:
                thread.join()

    def __enter__(self) -> "NonBlockingResolverService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown(wait=True)

    def _grow(self) -> None:
        # Caller holds self._lock. A permit means some worker is parked on the queue.
        if self._idle_semaphore.acquire(timeout=0):
            return
        if len(self._threads) >= self._max_workers:
            return
        thread = threading.Thread(
            target=self._work,
            name=f"extip-resolver-{len(self._threads) + 1}",
            daemon=True,
        )
        self._threads.append(thread)
        thread.start()

    def _work(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                return
            future, max_cache_age = item
            if future.set_running_or_notify_cancel():
                try:
                    future.set_result(self._resolver.resolve(max_cache_age))
                except Exception as exc:  # noqa: BLE001
                    self._logger.exception("Background resolve failed: %s", exc)
                    future.set_exception(exc)
            self._idle_semaphore.release()
