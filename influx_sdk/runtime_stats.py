"""
Periodic reporting of Python runtime statistics.

Samples thread counts, memory usage and garbage collector activity of the
current process and reports them through a MetricsClient.
"""
import gc
import logging
import threading
import time
from collections import deque
from datetime import datetime
from typing import List, Optional

import psutil
import pytz

from . import config
from .collector import Collector, Sample
from .exceptions import PipelineClosedError
from .points import Dimensions

logger = logging.getLogger(__name__)

MAX_PAUSES_PER_SAMPLE = 256


class RuntimeStatsCollector(Collector):
    """Collector for process and garbage collector statistics."""

    def __init__(self, process: Optional[psutil.Process] = None):
        self.process = process or psutil.Process()
        self._pauses = deque(maxlen=MAX_PAUSES_PER_SAMPLE)
        self._gc_started_at = None
        self._total_pause_ms = 0.0
        self._last_pause_ms = None
        self._last_collections = None
        self._last_sample_time = None
        self._installed = False

    def install(self) -> None:
        """Start timing garbage collector pauses."""
        if not self._installed:
            gc.callbacks.append(self._on_gc)
            self._installed = True

    def uninstall(self) -> None:
        if self._installed:
            gc.callbacks.remove(self._on_gc)
            self._installed = False

    def _on_gc(self, phase: str, info: dict) -> None:
        # Runs inside the collector; must not allocate much or take locks.
        if phase == 'start':
            self._gc_started_at = time.perf_counter()
        elif phase == 'stop' and self._gc_started_at is not None:
            self._pauses.append((time.perf_counter() - self._gc_started_at) * 1000.0)
            self._gc_started_at = None

    def _drain_pauses(self) -> List[float]:
        pauses = []
        while True:
            try:
                pauses.append(self._pauses.popleft())
            except IndexError:
                return pauses

    def collect(self) -> List[Sample]:
        """
        Collect one sample of runtime statistics.

        Returns:
            list: (metric suffix, value) pairs
        """
        now = time.monotonic()
        memory = self.process.memory_info()
        collections = sum(stat['collections'] for stat in gc.get_stats())

        pauses = self._drain_pauses()
        self._total_pause_ms += sum(pauses)

        samples: List[Sample] = [
            ('threads', float(threading.active_count())),
            ('memory.rss', float(memory.rss)),
            ('memory.vms', float(memory.vms)),
            ('cpu.percent', float(self.process.cpu_percent(interval=None))),
            ('gc.pending', float(sum(gc.get_count()))),
            ('gc.collections', float(collections)),
            ('gc.total_pause', self._total_pause_ms),
        ]

        if self._last_sample_time is not None:
            elapsed = now - self._last_sample_time
            if elapsed > 0:
                samples.append(('gc.pause_per_second', (self._total_pause_ms - self._last_pause_ms) / elapsed))
                samples.append(('gc.gc_per_second', (collections - self._last_collections) / elapsed))

        samples.extend(('gc.pause', pause) for pause in pauses)

        self._last_sample_time = now
        self._last_pause_ms = self._total_pause_ms
        self._last_collections = collections
        return samples


class RuntimeStatsReporter:
    """Reports runtime statistics from a background thread."""

    def __init__(
        self,
        client,
        prefix: str,
        context: str = '',
        dimensions: Optional[Dimensions] = None,
        interval: Optional[float] = None,
        collector: Optional[Collector] = None
    ):
        """
        Initialize the reporter.

        Args:
            client: Object with a ``report`` method, usually a MetricsClient
            prefix (str): Prefix for every metric name
            context (str): Context attached to every point
            dimensions (dict, optional): Dimensions attached to every point
            interval (float, optional): Seconds between samples. Defaults to config.RUNTIME_STATS_INTERVAL.
            collector (Collector, optional): Source of samples. Defaults to a RuntimeStatsCollector.
        """
        self.client = client
        self.prefix = prefix
        self.context = context
        self.dimensions = dimensions
        self.interval = interval or config.RUNTIME_STATS_INTERVAL
        self.collector = collector or RuntimeStatsCollector()
        self.thread = None
        self._stop = threading.Event()

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self) -> None:
        """Start the reporting thread."""
        if self.running:
            logger.warning("Runtime stats reporting is already running")
            return

        self._stop.clear()
        if isinstance(self.collector, RuntimeStatsCollector):
            self.collector.install()
        self.thread = threading.Thread(target=self._report_loop, name="influx-sdk-runtime-stats", daemon=True)
        self.thread.start()
        logger.info("Runtime stats reporting started with prefix %s every %ss", self.prefix, self.interval)

    def stop(self) -> None:
        """Stop the reporting thread and wait for it to exit."""
        self._stop.set()
        if self.thread is not None and self.thread is not threading.current_thread():
            self.thread.join()
        self.thread = None
        if isinstance(self.collector, RuntimeStatsCollector):
            self.collector.uninstall()

    def _report_loop(self) -> None:
        # Always takes at least one sample, even if stopped right away.
        while True:
            try:
                self.collector.report_to(
                    self.client,
                    self.prefix,
                    self.context,
                    self.dimensions,
                    datetime.now(pytz.UTC)
                )
            except PipelineClosedError:
                logger.warning("Metrics client was shut down, stopping runtime stats reporting")
                if isinstance(self.collector, RuntimeStatsCollector):
                    self.collector.uninstall()
                return
            except Exception as e:
                logger.error("Error reporting runtime stats: %s", str(e))

            if self._stop.wait(self.interval):
                return
