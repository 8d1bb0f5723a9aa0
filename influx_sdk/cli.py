"""
Command line tool for reporting metrics to an InfluxDB server.

Examples:
    influx-report --database metrics report cpu.load 0.73 --dimension host=a
    influx-report runtime-stats --prefix myapp.runtime --interval 5 --duration 60
"""
import argparse
import json
import logging
import time
from datetime import datetime
from typing import Dict, List, Optional

import pytz

from . import config as sdk_config
from .exceptions import ConfigurationError, InfluxSDKError
from .metrics_sdk import MetricsClient

logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """
    Setup logging with the specified log level.

    Args:
        log_level (str): Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def parse_dimensions(specs: Optional[List[str]]) -> Dict[str, str]:
    """
    Parse ``key=value`` strings into a dimensions dict.

    Raises:
        ValueError: If a spec has no '='
    """
    dimensions = {}
    for spec in specs or []:
        if '=' not in spec:
            raise ValueError(f"Dimension must be key=value, got {spec!r}")
        key, value = spec.split('=', 1)
        dimensions[key.strip()] = value.strip()
    return dimensions


def parse_timestamp(value: Optional[str]):
    """
    Parse a timestamp given as epoch seconds, ISO 8601 or ``now``.
    """
    if value is None:
        return None
    if value == 'now':
        return datetime.now(pytz.UTC)
    try:
        return float(value)
    except ValueError:
        return datetime.fromisoformat(value)


def apply_config_file(args: argparse.Namespace, config_file: str) -> None:
    """
    Fill options not given on the command line from a JSON object file.

    Raises:
        OSError: If the file cannot be read
        ValueError: If it does not hold a JSON object
    """
    with open(config_file) as f:
        settings = json.load(f)
    if not isinstance(settings, dict):
        raise ValueError(f"Config file {config_file} must hold a JSON object")

    for key, value in settings.items():
        key = key.replace('-', '_')
        if getattr(args, key, None) is None:
            setattr(args, key, value)
    logger.debug("Loaded configuration from %s", config_file)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='influx-report',
        description='Report metrics to an InfluxDB server.',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument('--config-file', type=str,
                        help='Path to JSON configuration file')
    parser.add_argument('--log-level', type=str, default=sdk_config.LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Log level')

    # Server configuration
    parser.add_argument('--host', type=str, help=f'host:port of the server (default {sdk_config.HOST})')
    parser.add_argument('--database', type=str, help=f'Database name (default {sdk_config.DATABASE})')
    parser.add_argument('--username', type=str, help='Database user')
    parser.add_argument('--password', type=str, help='Database password')
    parser.add_argument('--proxy', type=str, help='Proxy URL')
    parser.add_argument('--timeout', type=float, help=f'Request timeout in seconds (default {sdk_config.REQUEST_TIMEOUT})')

    subparsers = parser.add_subparsers(dest='command', required=True)

    report_parser = subparsers.add_parser('report', help='Report a single value')
    report_parser.add_argument('name', type=str, help='Metric name')
    report_parser.add_argument('value', type=float, help='Metric value')
    report_parser.add_argument('--context', type=str, default='', help='Context tag')
    report_parser.add_argument('--timestamp', type=str,
                               help="Epoch seconds, ISO 8601 or 'now'")
    report_parser.add_argument('--dimension', type=str, action='append', dest='dimensions',
                               help='Dimension as key=value, may be repeated')

    stats_parser = subparsers.add_parser('runtime-stats', help='Report runtime stats of this process')
    stats_parser.add_argument('--prefix', type=str, default='runtime', help='Metric name prefix')
    stats_parser.add_argument('--context', type=str, default='', help='Context tag')
    stats_parser.add_argument('--interval', type=float, default=sdk_config.RUNTIME_STATS_INTERVAL,
                              help='Seconds between samples')
    stats_parser.add_argument('--duration', type=float, default=0,
                              help='Seconds to run (0 for until interrupted)')
    stats_parser.add_argument('--dimension', type=str, action='append', dest='dimensions',
                              help='Dimension as key=value, may be repeated')

    return parser


def create_client(args: argparse.Namespace) -> MetricsClient:
    """
    Create a metrics client from command line arguments.

    Args:
        args (argparse.Namespace): Command line arguments
    """
    return MetricsClient(
        host=args.host,
        database=args.database,
        username=args.username,
        password=args.password,
        request_timeout=args.timeout,
        proxy=args.proxy
    )


def run_runtime_stats(client: MetricsClient, args: argparse.Namespace, dimensions: Dict[str, str]) -> None:
    client.start_runtime_stats_reporting(args.prefix, args.context, dimensions, args.interval)
    try:
        if args.duration > 0:
            time.sleep(args.duration)
        else:
            while True:
                time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Runtime stats reporting interrupted by user.")


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, report and drain the client before exiting."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level)

    try:
        if args.config_file:
            apply_config_file(args, args.config_file)
        dimensions = parse_dimensions(args.dimensions)
        client = create_client(args)
    except (OSError, ValueError, ConfigurationError) as e:
        logger.error("%s", e)
        return 1

    status = 0
    try:
        if args.command == 'report':
            client.report(args.name, args.value, parse_timestamp(args.timestamp), args.context, dimensions)
            logger.info("Reported %s=%s", args.name, args.value)
        else:
            run_runtime_stats(client, args, dimensions)
    except ValueError as e:
        logger.error("%s", e)
        status = 1
    except InfluxSDKError as e:
        logger.error("Error reporting metrics: %s", e)
        status = 1
    finally:
        client.shutdown()

    return status


if __name__ == "__main__":
    raise SystemExit(main())
