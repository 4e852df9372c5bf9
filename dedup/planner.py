"""
Partition planning.

Splits the index's document ordering into M contiguous ranges: the first
M-1 get N // M documents each, the last absorbs the remainder. The count is
a snapshot; documents added or removed before the scans run are not
reconciled.
"""

from typing import List

from common.errors import IndexBackendError, PlanningError
from common.logging.logger import get_logger
from common.models import PartitionRange
from search_index.protocols import IndexClient

logger = get_logger("planner")


def plan_partitions(total: int, num_splits: int) -> List[PartitionRange]:
    """
    Splits [0, total) into exactly num_splits contiguous ranges.

    Args:
        total: Document count N (>= 0)
        num_splits: Number of ranges M (>= 1)

    Returns:
        M PartitionRanges whose counts sum to N
    """
    if num_splits < 1:
        raise ValueError(f"num_splits must be >= 1, got {num_splits}")
    if total < 0:
        raise ValueError(f"total must be >= 0, got {total}")

    per_split = total // num_splits
    ranges = []
    current = 0
    for _ in range(num_splits - 1):
        ranges.append(PartitionRange(start=current, count=per_split))
        current += per_split
    ranges.append(PartitionRange(start=current, count=total - current))
    return ranges


class PartitionPlanner:
    """Queries the index for its size and plans scan partitions."""

    def __init__(self, index: IndexClient):
        if index is None:
            raise ValueError("index is required")
        self.index = index

    def plan(self, num_splits: int) -> List[PartitionRange]:
        try:
            total = self.index.count()
        except IndexBackendError as e:
            logger.error(f"Count query failed: {e}")
            raise PlanningError(str(e)) from e

        ranges = plan_partitions(total, num_splits)
        logger.info(
            f"Planned {len(ranges)} partitions over {total:,} documents "
            f"({ranges[0].count:,} per split, last={ranges[-1].count:,})"
        )
        return ranges
