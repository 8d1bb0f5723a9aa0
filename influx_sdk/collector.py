"""
Base collector class for producing measurements on a schedule.
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from .points import Dimensions, Timestamp

logger = logging.getLogger(__name__)

Sample = Tuple[str, float]


class Collector(ABC):
    """
    Abstract base class for measurement sources.

    Subclasses implement collect(), returning ``(suffix, value)`` pairs. A
    suffix may appear more than once when a sample produces several points
    for the same metric.
    """

    @abstractmethod
    def collect(self) -> List[Sample]:
        """
        Collect one sample.

        Returns:
            list: (metric suffix, value) pairs
        """
        pass

    @property
    def name(self) -> str:
        """
        Get the name of the collector.

        Returns:
            str: The name of the collector (class name by default)
        """
        return self.__class__.__name__

    def safe_collect(self) -> List[Sample]:
        """
        Collect a sample, logging and discarding any exception.

        Returns:
            list: The collected pairs, or an empty list if collection fails
        """
        try:
            return self.collect()
        except Exception as e:
            logger.error("Error collecting metrics from %s: %s", self.name, str(e))
            return []

    def report_to(
        self,
        client,
        prefix: str,
        context: str = '',
        dimensions: Optional[Dimensions] = None,
        timestamp: Timestamp = None
    ) -> int:
        """
        Collect a sample and report every pair as ``<prefix>.<suffix>``.

        Args:
            client: Object with a ``report`` method, usually a MetricsClient
            prefix (str): Metric name prefix
            context (str): Context attached to every point
            dimensions (dict, optional): Dimensions attached to every point
            timestamp: Time of the sample

        Returns:
            int: Number of points reported
        """
        samples = self.safe_collect()
        for suffix, value in samples:
            client.report(f"{prefix}.{suffix}", value, timestamp, context, dimensions)
        return len(samples)
