"""Helpers for running the tracker on multiple threads, and for aborting a running tracker."""
import os
from concurrent.futures import ThreadPoolExecutor
from threading import Event
from typing import Callable, Iterable, List, Optional, TypeVar

_T = TypeVar("_T")
_R = TypeVar("_R")


class TrackingCancelled(Exception):
    """Raised from inside the tracker when the user asked to stop. This is not an error, so the tracker reports it
    separately."""
    pass


class Cancellation:
    """Used to stop a running tracker from another thread. The tracker checks this object every now and then, so
    stopping is not instantaneous."""

    _event: Event

    def __init__(self):
        self._event = Event()

    def cancel(self):
        """Asks the tracker to stop as soon as possible."""
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def check(self):
        """Raises TrackingCancelled if cancel() was called."""
        if self._event.is_set():
            raise TrackingCancelled()


def get_worker_count(max_workers: Optional[int]) -> int:
    """Gets the number of worker threads to use. None means: one per CPU."""
    if max_workers is None:
        return os.cpu_count() or 1
    return max(1, max_workers)


def map_in_parallel(function: Callable[[_T], _R], items: Iterable[_T], *, max_workers: Optional[int]) -> List[_R]:
    """Calls the function for every item on a thread pool. Results are returned in the order of the items, after all
    items have been processed. If one of the calls raises an exception, that exception is raised here."""
    items = list(items)
    worker_count = min(get_worker_count(max_workers), len(items))
    if worker_count <= 1:
        return [function(item) for item in items]
    with ThreadPoolExecutor(max_workers=worker_count) as executor:
        return list(executor.map(function, items))


def split_in_chunks(count: int, chunk_count: int) -> List[range]:
    """Splits range(count) in at most chunk_count parts of roughly equal size."""
    if count == 0:
        return []
    chunk_count = max(1, min(chunk_count, count))
    chunk_size = -(-count // chunk_count)  # Rounds up
    return [range(start, min(start + chunk_size, count)) for start in range(0, count, chunk_size)]
