"""Fork-join scheduler that advances disjoint row ranges concurrently."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import List, Optional, Tuple

from .grid import Grid, GridSnapshot
from .rules import update_rows

logger = logging.getLogger(__name__)

RowRange = Tuple[int, int]


def partition(width: int, parts: int) -> List[RowRange]:
    """
    Split ``[0, width)`` into at most ``parts`` contiguous non-empty ranges.

    Ranges never overlap and together cover every row exactly once.
    """
    if width < 1:
        raise ValueError(f"width must be positive, got {width}")
    if parts < 1:
        raise ValueError(f"parts must be at least 1, got {parts}")
    parts = min(parts, width)
    base, extra = divmod(width, parts)
    ranges = []
    start = 0
    for i in range(parts):
        stop = start + base + (1 if i < extra else 0)
        ranges.append((start, stop))
        start = stop
    return ranges


class RowScheduler:
    """
    Runs ``update_rows`` over row partitions of the grid.

    Every worker reads the same read-only snapshot and writes only its own
    rows, so no locking is needed. ``run`` returns only after all workers
    have finished.
    """

    def __init__(self, workers: int = 1):
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.workers = workers
        self._executor: Optional[ThreadPoolExecutor] = None
        if workers > 1:
            self._executor = ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="wavefield-rows"
            )

    def run(self, snapshot: GridSnapshot, grid: Grid) -> None:
        ranges = partition(grid.width, self.workers)
        if self._executor is None or len(ranges) == 1:
            for x0, x1 in ranges:
                update_rows(snapshot, grid, x0, x1)
            return

        futures = [
            self._executor.submit(update_rows, snapshot, grid, x0, x1)
            for x0, x1 in ranges
        ]
        wait(futures)
        for future in futures:
            # re-raises the first worker failure
            future.result()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
            logger.debug("Row scheduler executor shut down")

    def __enter__(self) -> "RowScheduler":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
