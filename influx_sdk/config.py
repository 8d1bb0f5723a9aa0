"""
Configuration settings for the InfluxDB SDK.
"""
import os

# Server configuration
HOST = os.getenv('INFLUXDB_HOST', 'localhost:8086')
DATABASE = os.getenv('INFLUXDB_DATABASE', 'metrics')
USERNAME = os.getenv('INFLUXDB_USERNAME', 'root')
PASSWORD = os.getenv('INFLUXDB_PASSWORD', 'root')
PROTOCOL = os.getenv('INFLUXDB_PROTOCOL', 'http')

# HTTP client configuration
REQUEST_TIMEOUT = float(os.getenv('INFLUXDB_REQUEST_TIMEOUT', '2'))  # seconds
PROXY = os.getenv('INFLUXDB_PROXY', None)

# Batching configuration
FLUSH_SIZE = 100  # batches accumulated before a flush is forced
FLUSH_INTERVAL = 1.0  # seconds of idle time before pending batches are flushed

# Runtime stats configuration
RUNTIME_STATS_INTERVAL = 10  # seconds

# Logging configuration
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
