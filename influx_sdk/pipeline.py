"""
Background pipeline that accumulates reported batches and flushes them.

Producers hand batches to a single consumer thread. A batch is flushed
together with everything else pending when flush_size batches (100 by
default) have accumulated, when no batch has arrived for a full idle
window, or when the pipeline is shut down. Each flush merges the pending
batches by metric name and posts them in one request.

Delivery is best effort: a failed flush is logged and its points are
dropped. Nothing is retried and nothing survives a process restart.
"""
import logging
import queue
import threading
from typing import List, Optional

from . import config
from .exceptions import DeliveryError, PipelineClosedError
from .merge import merge_batches
from .points import Batch, count_points

logger = logging.getLogger(__name__)


class _Submission:
    """A batch in transit to the consumer thread."""

    def __init__(self, batch: Batch):
        self.batch = batch
        self.accepted = threading.Event()


_SHUTDOWN = object()


class MetricsPipeline:
    """
    Single-consumer accumulator and flush scheduler.

    ``submit`` blocks until the consumer thread has taken the batch, so a
    producer cannot run ahead of a consumer that is busy flushing.
    Submitting after ``shutdown`` is a caller error and raises
    ``PipelineClosedError``.
    """

    def __init__(self, sender, flush_size: Optional[int] = None, flush_interval: Optional[float] = None):
        """
        Initialize the pipeline.

        Args:
            sender: Object with a ``deliver(payload)`` method, usually a DeliveryClient
            flush_size (int, optional): Pending batches that force a flush. Defaults to config.FLUSH_SIZE.
            flush_interval (float, optional): Idle seconds before a flush. Defaults to config.FLUSH_INTERVAL.
        """
        self.sender = sender
        self.flush_size = flush_size or config.FLUSH_SIZE
        self.flush_interval = flush_interval or config.FLUSH_INTERVAL

        self._messages = queue.Queue()
        self._state_lock = threading.Lock()
        self._closed = False
        self._terminated = threading.Event()
        self.thread = None

    @property
    def running(self) -> bool:
        return self.thread is not None and not self._terminated.is_set()

    def start(self) -> None:
        """Start the consumer thread."""
        with self._state_lock:
            if self._closed:
                raise PipelineClosedError("Pipeline has been shut down")
            if self.thread is not None:
                logger.warning("Metrics pipeline already running")
                return

            self.thread = threading.Thread(target=self._process_messages, name="influx-sdk-pipeline", daemon=True)
            self.thread.start()
        logger.info("Metrics pipeline started (flush_size=%d, flush_interval=%ss)", self.flush_size, self.flush_interval)

    def submit(self, batch: Batch) -> None:
        """
        Hand a batch to the consumer thread and wait until it is taken.

        Raises:
            PipelineClosedError: If the pipeline has been shut down
        """
        submission = _Submission(batch)
        with self._state_lock:
            if self._closed:
                raise PipelineClosedError("Cannot submit to a pipeline that has been shut down")
            if self.thread is None:
                raise PipelineClosedError("Pipeline has not been started")
            self._messages.put(submission)
        submission.accepted.wait()

    def shutdown(self) -> None:
        """
        Flush everything pending and stop the consumer thread.

        Blocks until the final flush has been attempted. Must be called at
        most once.

        Raises:
            PipelineClosedError: If the pipeline was already shut down
        """
        with self._state_lock:
            if self._closed:
                raise PipelineClosedError("Pipeline has already been shut down")
            self._closed = True
            if self.thread is None:
                self._terminated.set()
                return
            self._messages.put(_SHUTDOWN)

        logger.info("Shutting down metrics pipeline")
        self._terminated.wait()
        self.thread.join()
        logger.info("Metrics pipeline stopped")

    def _process_messages(self) -> None:
        pending: List[Batch] = []
        while True:
            try:
                message = self._messages.get(timeout=self.flush_interval)
            except queue.Empty:
                self._flush(pending)
                pending = []
                continue

            if message is _SHUTDOWN:
                self._flush(pending)
                self._terminated.set()
                return

            pending.append(message.batch)
            message.accepted.set()
            if len(pending) < self.flush_size:
                continue

            self._flush(pending)
            pending = []

    def _flush(self, pending: List[Batch]) -> None:
        if not pending:
            return

        try:
            payload = merge_batches(pending)
            if payload is None:
                return

            logger.debug(
                "Flushing %d batches as %d series with %d points",
                len(pending), len(payload), count_points(payload)
            )
            self.sender.deliver(payload)
        except DeliveryError as e:
            logger.error("Error while posting points to InfluxDB: %s", str(e))
        except Exception:
            logger.exception("Unexpected error while flushing points")
