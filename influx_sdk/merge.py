"""
Merges accumulated batches into one payload per flush.
"""
from typing import Dict, Iterable, List, Optional

from .points import Batch, NamedPointSet, Point


def merge_batches(batches: Iterable[Batch]) -> Optional[List[NamedPointSet]]:
    """
    Coalesce batches into one point set per metric name.

    Points keep their arrival order within a metric name. The order of the
    returned point sets is not part of the contract.

    Args:
        batches: Batches in arrival order

    Returns:
        list: Merged point sets, or None when there is nothing to send
    """
    points_by_name: Dict[str, List[Point]] = {}

    for batch in batches:
        for point_set in batch:
            points_by_name.setdefault(point_set.name, []).extend(point_set.points)

    if not points_by_name:
        return None

    return [NamedPointSet(name, points) for name, points in points_by_name.items()]
