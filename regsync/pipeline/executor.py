"""Bounded-concurrency map that keeps input order."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, TypeVar


T = TypeVar("T")
R = TypeVar("R")


def map_bounded(items: Sequence[T], concurrency: int, fn: Callable[[T, int], R]) -> List[Optional[R]]:
    """Apply `fn(item, index)` to every item with at most `concurrency` in flight.

    Workers claim the next unprocessed index from a shared counter and write
    into a pre-sized result list, so results line up with `items` regardless
    of completion order. The first exception stops further claims and is
    re-raised once all workers have returned.
    """
    n = len(items)
    out: List[Optional[R]] = [None] * n
    if n == 0:
        return out

    lock = threading.Lock()
    failed = threading.Event()
    next_index = 0

    def claim() -> int:
        nonlocal next_index
        with lock:
            idx = next_index
            next_index += 1
            return idx

    def worker() -> None:
        while not failed.is_set():
            idx = claim()
            if idx >= n:
                return
            try:
                out[idx] = fn(items[idx], idx)
            except BaseException:
                failed.set()
                raise

    workers = max(1, min(int(concurrency), n))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="map") as pool:
        futures = [pool.submit(worker) for _ in range(workers)]
    for fut in futures:
        # Leaving the pool joined every worker; surface the first failure.
        fut.result()
    return out
