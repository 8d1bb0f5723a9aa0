"""Custom exceptions for the InfluxDB SDK."""
from typing import Optional

__all__ = [
    "ConfigurationError",
    "DeliveryError",
    "InfluxSDKError",
    "InvalidNameError",
    "PipelineClosedError",
    "SerializationError",
]


class InfluxSDKError(Exception):
    """Base exception for all influx_sdk errors."""


class InvalidNameError(InfluxSDKError, ValueError):
    """Raised when a metric name fails validation."""


class ConfigurationError(InfluxSDKError, ValueError):
    """Raised when a transport setting cannot be applied."""


class DeliveryError(InfluxSDKError):
    """Raised when a merged payload could not be posted to the server."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SerializationError(DeliveryError):
    """Raised when a payload cannot be encoded as JSON."""


class PipelineClosedError(InfluxSDKError):
    """Raised when a pipeline is used after it has been shut down."""
