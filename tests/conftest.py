"""
Pytest Configuration and Shared Fixtures.
"""

from __future__ import annotations

import threading
from typing import List

import pytest

from influx_sdk.exceptions import DeliveryError
from influx_sdk.points import Batch, NamedPointSet, Point


class RecordingSender:
    """Stands in for DeliveryClient and records every payload it receives."""

    def __init__(self, fail: bool = False) -> None:
        self.payloads: List[List[NamedPointSet]] = []
        self.fail = fail
        self._condition = threading.Condition()

    def deliver(self, payload: List[NamedPointSet]) -> None:
        with self._condition:
            self.payloads.append(payload)
            self._condition.notify_all()
        if self.fail:
            raise DeliveryError("Server returned (500): boom", status_code=500, body="boom")

    def wait_for_calls(self, count: int, timeout: float = 5.0) -> bool:
        with self._condition:
            return self._condition.wait_for(lambda: len(self.payloads) >= count, timeout=timeout)

    @property
    def call_count(self) -> int:
        with self._condition:
            return len(self.payloads)


def make_batch(name: str, *values: float) -> Batch:
    """Build a batch with one point set holding a point per value."""
    return [NamedPointSet(name, [Point(value=value) for value in values])]


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def failing_sender() -> RecordingSender:
    return RecordingSender(fail=True)
