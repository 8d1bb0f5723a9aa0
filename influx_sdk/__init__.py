"""
InfluxDB SDK for reporting buffered, batched metrics.
"""
from .collector import Collector
from .exceptions import (
    ConfigurationError,
    DeliveryError,
    InfluxSDKError,
    InvalidNameError,
    PipelineClosedError,
    SerializationError,
)
from .http_client import DeliveryClient, TransportConfig
from .merge import merge_batches
from .metrics_sdk import (
    MetricsClient,
    configure,
    report,
    set_proxy,
    set_timeout,
    shutdown,
    start_runtime_stats_reporting,
    stop_runtime_stats_reporting,
)
from .pipeline import MetricsPipeline
from .points import NamedPointSet, Point
from .runtime_stats import RuntimeStatsCollector, RuntimeStatsReporter
from .validation import validate_metric_name

__all__ = [
    'Collector',
    'ConfigurationError',
    'DeliveryClient',
    'DeliveryError',
    'InfluxSDKError',
    'InvalidNameError',
    'MetricsClient',
    'MetricsPipeline',
    'NamedPointSet',
    'PipelineClosedError',
    'Point',
    'RuntimeStatsCollector',
    'RuntimeStatsReporter',
    'SerializationError',
    'TransportConfig',
    'configure',
    'merge_batches',
    'report',
    'set_proxy',
    'set_timeout',
    'shutdown',
    'start_runtime_stats_reporting',
    'stop_runtime_stats_reporting',
    'validate_metric_name',
]
