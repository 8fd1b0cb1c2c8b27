"""
Bounded worker pool and scan cancellation

Regions and resources evaluated for the same rule are independent, so they
may be spread over a thread pool. Results always come back in input order so
the verdict sequence is the same whatever the completion order.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

from .errors import ScanCancelledError, ScanTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class CancellationToken:
    """Scan-wide cancellation signal checked before every provider call"""

    def __init__(self, parent: Optional["CancellationToken"] = None):
        self._parent = parent
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._error: Optional[ScanCancelledError] = None

    @property
    def cancelled(self) -> bool:
        if self._parent is not None and self._parent.cancelled:
            return True
        return self._event.is_set()

    def child(self) -> "CancellationToken":
        """Token tripped by this one, whose own cancellation stays local"""
        return CancellationToken(parent=self)

    def cancel(self, error: Optional[ScanCancelledError] = None):
        """Trip the token. Only the first cancellation reason is kept."""
        with self._lock:
            if self._error is None:
                self._error = error or ScanCancelledError()
                logger.warning(f"Scan cancelled: {self._error}")
            self._event.set()

    def raise_if_cancelled(self):
        if self._parent is not None:
            self._parent.raise_if_cancelled()
        if self._event.is_set():
            raise self._error

    def start_timer(self, timeout: float) -> threading.Timer:
        """Cancel the token with a ScanTimeoutError once `timeout` seconds elapse"""
        timer = threading.Timer(timeout, self.cancel, args=(ScanTimeoutError(timeout),))
        timer.daemon = True
        timer.start()
        return timer


def map_ordered(func: Callable[[T], R], items: Iterable[T], max_workers: int = 1,
                token: Optional[CancellationToken] = None) -> List[R]:
    """Apply `func` to every item and return the results in input order.

    With one worker (or a single item) this is a plain sequential loop. On
    the pool, the first failure cancels every task that has not started yet
    and trips `token`, so running tasks stop at their next provider call.
    Once they settle, the error of the lowest-index failed task is raised;
    tasks stopped by that cancellation do not count as failures. No partial
    result list is returned.
    """
    items = list(items)
    if max_workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]

    results: List[Optional[R]] = [None] * len(items)
    errors: Dict[int, Exception] = {}
    stop = ScanCancelledError("Cancelled after a sibling task failed")

    with ThreadPoolExecutor(max_workers=min(max_workers, len(items))) as executor:
        futures = {executor.submit(func, item): index
                   for index, item in enumerate(items)}

        for future in as_completed(futures):
            if future.cancelled():
                continue
            index = futures[future]
            try:
                results[index] = future.result()
            except Exception as e:
                if not errors:
                    for pending in futures:
                        pending.cancel()
                    if token is not None:
                        token.cancel(stop)
                errors[index] = e

    errors = {index: e for index, e in errors.items() if e is not stop} or errors
    if errors:
        first = min(errors)
        logger.debug(f"{len(errors)} of {len(items)} tasks failed, raising task {first}")
        raise errors[first]

    return results
