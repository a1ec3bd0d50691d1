from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Hashable, Mapping, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
T = TypeVar("T")


class CancelScope:
    """Cancellation flag shared by the batches of one region."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str) -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()


class BatchAborted(Exception):
    """A batch stopped early, because one of its tasks failed or its scope was cancelled."""

    def __init__(self, label: str, *, key: Hashable = None, cause: BaseException | None = None) -> None:
        if cause is not None:
            msg = f"{label}: task {key!r} failed: {cause}"
        else:
            msg = f"{label}: cancelled"
        super().__init__(msg)
        self.label = label
        self.key = key
        self.cause = cause


class _Skipped(Exception):
    pass


def run_bounded(
    tasks: Mapping[K, Callable[[], T]],
    *,
    limit: int,
    label: str = "batch",
    scope: CancelScope | None = None,
) -> dict[K, T]:
    """Run ``tasks`` with at most ``limit`` in flight; return results by key.

    The first failure cancels the scope: queued tasks of this batch (and of
    any batch sharing the scope) are skipped, running ones are left to finish
    and their results dropped, and BatchAborted is raised once every started
    task has returned.
    """
    if limit < 1:
        raise ValueError("limit must be at least 1")
    if scope is None:
        scope = CancelScope()

    results: dict[K, T] = {}
    if not tasks:
        return results

    def _guarded(key: K, fn: Callable[[], T]) -> T:
        if scope.cancelled:
            raise _Skipped()
        try:
            return fn()
        except Exception:
            scope.cancel(f"{label} task {key!r} failed")
            raise

    failed_key: K | None = None
    failure: BaseException | None = None

    with ThreadPoolExecutor(
        max_workers=min(limit, len(tasks)), thread_name_prefix=label
    ) as pool:
        future_map = {pool.submit(_guarded, key, fn): key for key, fn in tasks.items()}
        for fut in as_completed(future_map):
            if fut.cancelled():
                continue
            key = future_map[fut]
            try:
                value = fut.result()
            except _Skipped:
                continue
            except Exception as exc:
                if failure is None:
                    failed_key, failure = key, exc
                    for other in future_map:
                        other.cancel()
                continue
            results[key] = value

    if failure is not None:
        raise BatchAborted(label, key=failed_key, cause=failure)
    if scope.cancelled:
        logger.debug(f"{label}: stopping, scope cancelled ({scope.reason})")
        raise BatchAborted(label)
    return results
