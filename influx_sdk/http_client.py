"""
HTTP client for posting merged points to the InfluxDB series API.
"""
import json
import logging
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlencode, urlparse

import requests

from . import config
from .exceptions import ConfigurationError, DeliveryError, SerializationError
from .points import NamedPointSet

logger = logging.getLogger(__name__)


@dataclass
class TransportConfig:
    """Transport settings owned by a single DeliveryClient."""
    timeout: float = config.REQUEST_TIMEOUT
    proxy: Optional[str] = None


def response_to_error(response: requests.Response) -> Optional[DeliveryError]:
    """
    Map a server response to a delivery error.

    Args:
        response (requests.Response): The response to inspect

    Returns:
        DeliveryError: The error for a non-2xx response, None on success
    """
    if 200 <= response.status_code < 300:
        return None
    return DeliveryError(
        f"Server returned ({response.status_code}): {response.text}",
        status_code=response.status_code,
        body=response.text
    )


class DeliveryClient:
    """Posts merged point sets to the configured series endpoint."""

    def __init__(
        self,
        host: Optional[str] = None,
        database: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        protocol: Optional[str] = None,
        transport: Optional[TransportConfig] = None
    ):
        """
        Initialize the delivery client.

        Args:
            host (str, optional): host:port of the server. Defaults to config.HOST.
            database (str, optional): Target database. Defaults to config.DATABASE.
            username (str, optional): Database user. Defaults to config.USERNAME.
            password (str, optional): Database password. Defaults to config.PASSWORD.
            protocol (str, optional): URL scheme. Defaults to config.PROTOCOL.
            transport (TransportConfig, optional): Timeout and proxy settings
        """
        self.transport = transport or TransportConfig()
        self.session = requests.Session()
        self.protocol = protocol or config.PROTOCOL
        self.url = None
        # Only None falls back; an explicit empty credential is kept.
        self.configure(
            config.HOST if host is None else host,
            config.DATABASE if database is None else database,
            config.USERNAME if username is None else username,
            config.PASSWORD if password is None else password
        )
        if self.transport.proxy:
            self.set_proxy(self.transport.proxy)

    def configure(self, host: str, database: str, username: str, password: str, protocol: Optional[str] = None) -> str:
        """
        Point the client at a database on a server.

        Returns:
            str: The series URL that points will be posted to
        """
        if protocol:
            self.protocol = protocol
        params = urlencode([('u', username), ('p', password)])
        self.url = f"{self.protocol}://{host}/db/{database}/series?{params}"
        logger.debug("Series endpoint set to %s://%s/db/%s/series", self.protocol, host, database)
        return self.url

    def set_proxy(self, proxy_url: str) -> None:
        """
        Route requests through a proxy.

        Raises:
            ConfigurationError: If the proxy URL has no scheme or host
        """
        try:
            parsed = urlparse(proxy_url)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid proxy URL {proxy_url!r}: {str(e)}") from e

        if not parsed.scheme or not parsed.netloc:
            raise ConfigurationError(f"Invalid proxy URL {proxy_url!r}")

        self.transport.proxy = proxy_url
        self.session.proxies = {'http': proxy_url, 'https': proxy_url}

    def set_timeout(self, timeout: float) -> None:
        """Set the connect and read timeout in seconds."""
        if timeout <= 0:
            raise ConfigurationError("Timeout must be positive")
        self.transport.timeout = timeout

    def serialize(self, payload: List[NamedPointSet]) -> str:
        """
        Encode point sets as the JSON request body.

        Raises:
            SerializationError: If a point cannot be encoded, e.g. a NaN value
        """
        try:
            return json.dumps([point_set.to_wire() for point_set in payload], allow_nan=False)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot encode points: {str(e)}") from e

    def deliver(self, payload: List[NamedPointSet]) -> None:
        """
        Post point sets to the server in a single request.

        Args:
            payload (list): Merged point sets

        Raises:
            DeliveryError: If encoding fails, the request fails or the
                server answers with a non-2xx status
        """
        body = self.serialize(payload)

        headers = {
            'Content-Type': 'application/json'
        }

        try:
            response = self.session.post(
                self.url,
                data=body,
                headers=headers,
                timeout=self.transport.timeout
            )
        except requests.exceptions.RequestException as e:
            raise DeliveryError(f"Failed to post points: {str(e)}") from e

        error = response_to_error(response)
        if error is not None:
            raise error

    def close(self) -> None:
        self.session.close()
