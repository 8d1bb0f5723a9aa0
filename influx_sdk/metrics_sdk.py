"""
Metrics SDK for reporting measurements to an InfluxDB server.

Reported points are buffered by a background pipeline and written to the
series API in merged batches. Reporting is best effort: ``report`` returns
once the point has been handed to the pipeline, and a later delivery
failure is only logged. Points from a failed flush are not retried.
"""
import logging
from typing import Optional

from . import config
from .http_client import DeliveryClient, TransportConfig
from .pipeline import MetricsPipeline
from .points import Dimensions, NamedPointSet, Point, Timestamp, to_epoch_seconds
from .runtime_stats import RuntimeStatsReporter
from .validation import validate_metric_name

logger = logging.getLogger(__name__)


class MetricsClient:
    """Client for reporting metrics to the server."""

    def __init__(
        self,
        host: Optional[str] = None,
        database: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        protocol: Optional[str] = None,
        request_timeout: Optional[float] = None,
        proxy: Optional[str] = None,
        flush_size: Optional[int] = None,
        flush_interval: Optional[float] = None,
        sender=None
    ):
        """
        Initialize the metrics client and start its pipeline.

        Args:
            host (str, optional): host:port of the server. Defaults to config.HOST.
            database (str, optional): Target database. Defaults to config.DATABASE.
            username (str, optional): Database user. Defaults to config.USERNAME.
            password (str, optional): Database password. Defaults to config.PASSWORD.
            protocol (str, optional): URL scheme. Defaults to config.PROTOCOL.
            request_timeout (float, optional): Request timeout in seconds. Defaults to config.REQUEST_TIMEOUT.
            proxy (str, optional): Proxy URL. Defaults to config.PROXY.
            flush_size (int, optional): Batches that force a flush. Defaults to config.FLUSH_SIZE.
            flush_interval (float, optional): Idle seconds before a flush. Defaults to config.FLUSH_INTERVAL.
            sender (optional): Replacement for the DeliveryClient, anything with ``deliver(payload)``
        """
        self.http_client = DeliveryClient(
            host=host,
            database=database,
            username=username,
            password=password,
            protocol=protocol,
            transport=TransportConfig(
                timeout=request_timeout or config.REQUEST_TIMEOUT,
                proxy=proxy or config.PROXY
            )
        )
        self.pipeline = MetricsPipeline(
            sender or self.http_client,
            flush_size=flush_size,
            flush_interval=flush_interval
        )
        self.runtime_stats = None

        self.pipeline.start()

    @property
    def url(self) -> str:
        return self.http_client.url

    def report(
        self,
        metric: str,
        value: float,
        timestamp: Timestamp = None,
        context: str = '',
        dimensions: Optional[Dimensions] = None
    ) -> None:
        """
        Report a single measurement.

        Blocks until the background pipeline accepts the point.

        Args:
            metric (str): Metric name, letters, digits, '.' and '_' only
            value (float): The measured value
            timestamp (optional): datetime or epoch seconds. Unset is sent as 0.
            context (str): Free-form context tag
            dimensions (dict, optional): String tags for the point

        Raises:
            InvalidNameError: If the metric name is invalid
            PipelineClosedError: If the client has been shut down
        """
        validate_metric_name(metric)

        point = Point(
            value=float(value),
            context=context or '',
            time=to_epoch_seconds(timestamp),
            dimensions=dict(dimensions) if dimensions else None
        )
        self.pipeline.submit([NamedPointSet(metric, [point])])

    def configure(self, host: str, database: str, username: str, password: str) -> str:
        """
        Change the server and database points are written to.

        Returns:
            str: The new series URL
        """
        return self.http_client.configure(host, database, username, password)

    def set_proxy(self, proxy_url: str) -> None:
        """
        Route requests through a proxy.

        Raises:
            ConfigurationError: If the proxy URL is malformed
        """
        self.http_client.set_proxy(proxy_url)

    def set_timeout(self, timeout: float) -> None:
        """Set the request timeout in seconds."""
        self.http_client.set_timeout(timeout)

    def start_runtime_stats_reporting(
        self,
        prefix: str,
        context: str = '',
        dimensions: Optional[Dimensions] = None,
        interval: Optional[float] = None
    ) -> RuntimeStatsReporter:
        """
        Start reporting runtime statistics of this process.

        Args:
            prefix (str): Prefix for every metric name
            context (str): Context attached to every point
            dimensions (dict, optional): Dimensions attached to every point
            interval (float, optional): Seconds between samples

        Returns:
            RuntimeStatsReporter: The running reporter
        """
        if self.runtime_stats is not None and self.runtime_stats.running:
            logger.warning("Runtime stats reporting is already running")
            return self.runtime_stats

        self.runtime_stats = RuntimeStatsReporter(self, prefix, context, dimensions, interval)
        self.runtime_stats.start()
        return self.runtime_stats

    def stop_runtime_stats_reporting(self) -> None:
        """Stop reporting runtime statistics."""
        if self.runtime_stats is None:
            logger.warning("Runtime stats reporting is not running")
            return
        self.runtime_stats.stop()
        self.runtime_stats = None

    def shutdown(self) -> None:
        """
        Flush all buffered points and stop the client.

        When this returns no further requests are made by this client.
        Must be called at most once.
        """
        if self.runtime_stats is not None:
            self.stop_runtime_stats_reporting()
        self.pipeline.shutdown()
        self.http_client.close()


# Default instance, created on first use
default_client = None


def ensure_default_client() -> MetricsClient:
    """
    Create the default client if it does not exist yet.

    Returns:
        MetricsClient: The default client
    """
    global default_client
    if default_client is None:
        default_client = MetricsClient()
    return default_client


def report(
    metric: str,
    value: float,
    timestamp: Timestamp = None,
    context: str = '',
    dimensions: Optional[Dimensions] = None
) -> None:
    """
    Report a single measurement using the default client.

    Raises:
        InvalidNameError: If the metric name is invalid
    """
    ensure_default_client().report(metric, value, timestamp, context, dimensions)


def configure(host: str, database: str, username: str, password: str) -> str:
    """
    Point the default client at a database on a server.

    Returns:
        str: The new series URL
    """
    return ensure_default_client().configure(host, database, username, password)


def set_proxy(proxy_url: str) -> None:
    """Route the default client's requests through a proxy."""
    ensure_default_client().set_proxy(proxy_url)


def set_timeout(timeout: float) -> None:
    """Set the default client's request timeout in seconds."""
    ensure_default_client().set_timeout(timeout)


def start_runtime_stats_reporting(
    prefix: str,
    context: str = '',
    dimensions: Optional[Dimensions] = None,
    interval: Optional[float] = None
) -> RuntimeStatsReporter:
    """Start reporting runtime statistics through the default client."""
    return ensure_default_client().start_runtime_stats_reporting(prefix, context, dimensions, interval)


def stop_runtime_stats_reporting() -> None:
    """Stop reporting runtime statistics through the default client."""
    ensure_default_client().stop_runtime_stats_reporting()


def shutdown() -> None:
    """Flush and stop the default client, if one was created."""
    global default_client
    if default_client is not None:
        default_client.shutdown()
        default_client = None
