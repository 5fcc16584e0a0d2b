"""
Fixed-size concurrent batching.

Runs an operation over a list of items, `limit` items at a time. Each group
runs in its own thread pool and fully settles before the next one starts,
so the group size is the only backpressure applied to the remote API and
the local disk. A failing item never cancels its siblings.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, List, Optional, Sequence, TypeVar

from ..core.logger import TRACE


T = TypeVar('T')


@dataclass
class BatchOutcome(Generic[T]):
    item: T
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def partition(items: Sequence[T], limit: int) -> List[List[T]]:
    """Split items into consecutive groups of at most `limit` (last may be smaller)."""
    return [list(items[i:i + limit]) for i in range(0, len(items), limit)]


class RateLimitedBatcher:
    def __init__(self, limit: int, logger: Optional[logging.Logger] = None):
        """
        Args:
            limit: maximum number of operations running at the same time
            logger: where per-item failures are reported
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValueError(f"Batch limit must be a positive integer, got {limit!r}")
        self.limit = limit
        self.logger = logger or logging.getLogger(__name__)

    def run(self,
            items: Iterable[T],
            op: Callable[[T], object],
            describe: Optional[Callable[[T], str]] = None) -> List[BatchOutcome[T]]:
        """
        Run `op` over every item and return one outcome per item, in input order.

        Args:
            items: work items; each must be owned by exactly one task
            op: operation to apply; raising marks that item as failed
            describe: optional label for an item, used in failure logs
        """
        items = list(items)
        outcomes: List[BatchOutcome[T]] = []

        for group in partition(items, self.limit):
            with ThreadPoolExecutor(max_workers=len(group)) as pool:
                futures = [pool.submit(op, item) for item in group]
                # Leaving the block waits for every future of the group
            for item, future in zip(group, futures):
                error = future.exception()
                if error is not None:
                    label = describe(item) if describe else repr(item)
                    self.logger.log(TRACE, f"Batched operation failed for {label}", exc_info=error)
                    self.logger.warning(f"{label}: {error} -- skipping")
                outcomes.append(BatchOutcome(item=item, error=error))

        return outcomes
