"""
Metric name validation.
"""
import re

from .exceptions import InvalidNameError

METRIC_NAME_REGEX = re.compile(r'[A-Za-z0-9._]*')
MAX_METRIC_NAME_LENGTH = 255


def validate_metric_name(name: str) -> None:
    """
    Check that a metric name can be written to the series API.

    Args:
        name (str): The metric name

    Raises:
        InvalidNameError: If the name is empty, too long or contains
            characters outside ``[A-Za-z0-9._]``
    """
    if not isinstance(name, str) or not name:
        raise InvalidNameError("Metric name is required")

    if len(name) > MAX_METRIC_NAME_LENGTH:
        raise InvalidNameError(
            f"Metric names must be at most {MAX_METRIC_NAME_LENGTH} characters"
        )

    if not METRIC_NAME_REGEX.fullmatch(name):
        raise InvalidNameError(f"Invalid metric name {name!r}. Use only letters, digits, '.' and '_'")
