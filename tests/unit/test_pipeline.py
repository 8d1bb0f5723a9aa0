"""
Unit Tests for MetricsPipeline.

Test Aspects Covered:
    ✅ Business Logic: Size, idle and shutdown flush triggers
    ✅ Concurrency: Blocking hand-off, many producers
    ✅ Error Handling: Failed deliveries, use after shutdown
"""

from __future__ import annotations

import threading
import time

import pytest

from influx_sdk.exceptions import PipelineClosedError
from influx_sdk.pipeline import MetricsPipeline
from influx_sdk.points import count_points
from tests.conftest import RecordingSender, make_batch

# Long enough that the idle trigger never fires during a test
NO_IDLE_FLUSH = 30.0


@pytest.fixture
def make_pipeline():
    pipelines = []

    def factory(sender, **kwargs) -> MetricsPipeline:
        pipeline = MetricsPipeline(sender, **kwargs)
        pipeline.start()
        pipelines.append(pipeline)
        return pipeline

    yield factory

    for pipeline in pipelines:
        if pipeline.running:
            pipeline.shutdown()


class TestLifecycle:
    """Start and shutdown handshake."""

    def test_start_twice_is_harmless(self, sender: RecordingSender, make_pipeline) -> None:
        pipeline = make_pipeline(sender, flush_interval=NO_IDLE_FLUSH)
        thread = pipeline.thread

        pipeline.start()

        assert pipeline.thread is thread
        assert pipeline.running

    def test_shutdown_stops_thread(self, sender: RecordingSender, make_pipeline) -> None:
        pipeline = make_pipeline(sender, flush_interval=NO_IDLE_FLUSH)

        pipeline.shutdown()

        assert not pipeline.running
        assert not pipeline.thread.is_alive()

    def test_submit_after_shutdown(self, sender: RecordingSender, make_pipeline) -> None:
        pipeline = make_pipeline(sender, flush_interval=NO_IDLE_FLUSH)
        pipeline.shutdown()

        with pytest.raises(PipelineClosedError):
            pipeline.submit(make_batch("cpu", 1.0))

    def test_shutdown_twice(self, sender: RecordingSender, make_pipeline) -> None:
        pipeline = make_pipeline(sender, flush_interval=NO_IDLE_FLUSH)
        pipeline.shutdown()

        with pytest.raises(PipelineClosedError):
            pipeline.shutdown()

    def test_submit_before_start(self, sender: RecordingSender) -> None:
        pipeline = MetricsPipeline(sender)

        with pytest.raises(PipelineClosedError):
            pipeline.submit(make_batch("cpu", 1.0))

    def test_shutdown_without_start(self, sender: RecordingSender) -> None:
        pipeline = MetricsPipeline(sender)

        pipeline.shutdown()

        assert sender.call_count == 0


class TestShutdownDrain:
    """Shutdown flushes what is pending."""

    def test_drains_pending_points(self, sender: RecordingSender, make_pipeline) -> None:
        """
        SCENARIO: 10 points submitted, then shutdown
        EXPECTED: Exactly one request with all 10 points, nothing afterwards
        """
        pipeline = make_pipeline(sender, flush_interval=NO_IDLE_FLUSH)
        for i in range(10):
            pipeline.submit(make_batch("cpu", float(i)))

        pipeline.shutdown()

        assert sender.call_count == 1
        assert count_points(sender.payloads[0]) == 10
        assert [p.value for p in sender.payloads[0][0].points] == [float(i) for i in range(10)]

        time.sleep(0.2)
        assert sender.call_count == 1

    def test_empty_shutdown_sends_nothing(self, sender: RecordingSender, make_pipeline) -> None:
        pipeline = make_pipeline(sender, flush_interval=NO_IDLE_FLUSH)

        pipeline.shutdown()

        assert sender.call_count == 0


class TestSizeTrigger:
    """Flush when flush_size batches have accumulated."""

    def test_flushes_at_100(self, sender: RecordingSender, make_pipeline) -> None:
        """
        SCENARIO: 101 points submitted without an idle gap
        EXPECTED: First request holds exactly 100 points, the 101st goes out on shutdown
        """
        pipeline = make_pipeline(sender, flush_interval=NO_IDLE_FLUSH)

        for i in range(100):
            pipeline.submit(make_batch("cpu", float(i)))
        assert sender.wait_for_calls(1)

        pipeline.submit(make_batch("cpu", 100.0))
        pipeline.shutdown()

        assert sender.call_count == 2
        assert count_points(sender.payloads[0]) == 100
        assert count_points(sender.payloads[1]) == 1

    def test_flush_happens_before_next_batch_is_accepted(self, make_pipeline) -> None:
        """
        SCENARIO: Delivery of a full buffer is slow
        EXPECTED: The next submit blocks until the flush is done
        """
        release = threading.Event()
        flushing = threading.Event()

        class SlowSender(RecordingSender):
            def deliver(self, payload):
                flushing.set()
                release.wait(5)
                super().deliver(payload)

        sender = SlowSender()
        pipeline = make_pipeline(sender, flush_size=3, flush_interval=NO_IDLE_FLUSH)
        for i in range(3):
            pipeline.submit(make_batch("cpu", float(i)))
        assert flushing.wait(5)

        accepted = threading.Event()

        def producer():
            pipeline.submit(make_batch("cpu", 3.0))
            accepted.set()

        thread = threading.Thread(target=producer)
        thread.start()

        assert not accepted.wait(0.2)
        release.set()
        assert accepted.wait(5)
        thread.join()

        pipeline.shutdown()
        assert [count_points(p) for p in sender.payloads] == [3, 1]


class TestIdleTrigger:
    """Flush after an idle window."""

    def test_flushes_after_idle_window(self, sender: RecordingSender, make_pipeline) -> None:
        pipeline = make_pipeline(sender, flush_interval=0.1)

        pipeline.submit(make_batch("cpu.load", 0.73))

        assert sender.wait_for_calls(1, timeout=2)
        assert count_points(sender.payloads[0]) == 1
        assert sender.payloads[0][0].name == "cpu.load"

    def test_idle_window_without_points_sends_nothing(self, sender: RecordingSender, make_pipeline) -> None:
        """
        SCENARIO: Several idle windows pass with nothing pending
        EXPECTED: No request
        """
        make_pipeline(sender, flush_interval=0.05)

        time.sleep(0.3)

        assert sender.call_count == 0

    def test_only_one_flush_per_window(self, sender: RecordingSender, make_pipeline) -> None:
        pipeline = make_pipeline(sender, flush_interval=0.1)

        pipeline.submit(make_batch("cpu", 1.0))
        assert sender.wait_for_calls(1, timeout=2)
        time.sleep(0.4)

        assert sender.call_count == 1


class TestDeliveryFailures:
    """Failed flushes are dropped and the loop keeps running."""

    def test_failure_does_not_stop_pipeline(self, failing_sender: RecordingSender, make_pipeline) -> None:
        pipeline = make_pipeline(failing_sender, flush_interval=0.05)

        pipeline.submit(make_batch("cpu", 1.0))
        assert failing_sender.wait_for_calls(1, timeout=2)

        pipeline.submit(make_batch("cpu", 2.0))
        assert failing_sender.wait_for_calls(2, timeout=2)

        assert pipeline.running
        assert [p[0].points[0].value for p in failing_sender.payloads] == [1.0, 2.0]

    def test_failure_is_logged(self, failing_sender: RecordingSender, make_pipeline, caplog) -> None:
        pipeline = make_pipeline(failing_sender, flush_interval=NO_IDLE_FLUSH)
        pipeline.submit(make_batch("cpu", 1.0))

        with caplog.at_level("ERROR", logger="influx_sdk.pipeline"):
            pipeline.shutdown()

        assert "boom" in caplog.text

    def test_unexpected_error_does_not_stop_pipeline(self, make_pipeline) -> None:
        class BrokenSender(RecordingSender):
            def deliver(self, payload):
                super().deliver(payload)
                raise RuntimeError("broken")

        sender = BrokenSender()
        pipeline = make_pipeline(sender, flush_interval=0.05)

        pipeline.submit(make_batch("cpu", 1.0))
        assert sender.wait_for_calls(1, timeout=2)
        pipeline.submit(make_batch("cpu", 2.0))
        assert sender.wait_for_calls(2, timeout=2)


class TestConcurrentProducers:
    """Many threads reporting at once."""

    def test_no_points_lost(self, sender: RecordingSender, make_pipeline) -> None:
        """
        SCENARIO: 8 producers submit 50 points each
        EXPECTED: All 400 points delivered, each producer's order kept
        """
        pipeline = make_pipeline(sender, flush_size=25, flush_interval=NO_IDLE_FLUSH)

        def producer(index: int) -> None:
            for i in range(50):
                pipeline.submit(make_batch(f"producer.{index}", float(i)))

        threads = [threading.Thread(target=producer, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        pipeline.shutdown()

        assert sum(count_points(payload) for payload in sender.payloads) == 400

        values_by_name = {}
        for payload in sender.payloads:
            for point_set in payload:
                values_by_name.setdefault(point_set.name, []).extend(p.value for p in point_set.points)
        for values in values_by_name.values():
            assert values == [float(i) for i in range(50)]
