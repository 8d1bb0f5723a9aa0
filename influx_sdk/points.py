"""
Data model for points written to the series API.

A ``Point`` is a single measurement, a ``NamedPointSet`` groups the points
of one metric name and a ``Batch`` is the list of point sets produced by one
call to ``report``.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

import pytz

COLUMNS: Tuple[str, ...] = ('value', 'time', 'dimensions')

Dimensions = Dict[str, str]
Timestamp = Union[None, int, float, datetime]


def to_epoch_seconds(timestamp: Timestamp) -> int:
    """
    Convert a report timestamp to whole epoch seconds.

    Args:
        timestamp: ``None`` (unset), epoch seconds or a datetime. Naive
            datetimes are taken to be UTC.

    Returns:
        int: Epoch seconds, or 0 when the timestamp is unset
    """
    if timestamp is None:
        return 0
    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            timestamp = pytz.UTC.localize(timestamp)
        timestamp = timestamp.timestamp()
    # Floors, so pre-epoch fractions round down.
    return math.floor(timestamp)


@dataclass(frozen=True)
class Point:
    """A single measurement."""
    value: float
    context: str = ''
    time: int = 0
    dimensions: Optional[Dimensions] = None

    def to_wire(self) -> List[Any]:
        """Return the point as a row ordered like ``COLUMNS``."""
        return [self.value, self.time, dict(self.dimensions or {})]


@dataclass(frozen=True)
class NamedPointSet:
    """The points of one metric name."""
    name: str
    points: Tuple[Point, ...] = ()
    columns: Tuple[str, ...] = field(default=COLUMNS, init=False)

    def __post_init__(self):
        object.__setattr__(self, 'points', tuple(self.points))

    def to_wire(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'columns': list(self.columns),
            'points': [point.to_wire() for point in self.points],
        }


Batch = List[NamedPointSet]


def count_points(point_sets: List[NamedPointSet]) -> int:
    """Return the total number of points across point sets."""
    return sum(len(point_set.points) for point_set in point_sets)
