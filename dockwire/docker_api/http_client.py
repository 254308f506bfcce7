"""
HTTP Client for the Docker daemon
Pure Python implementation using http.client and socket
"""

import socket
import http.client
import json
import logging
from contextlib import closing
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import quote, urlsplit

from .exceptions import DockerConnectionError, RequestError, EncodingError, DecodingError
from .utils import Address, LOCAL_SOCKET, default_docker_host, parse_url

logger = logging.getLogger(__name__)

# Anything else, known or not, is a failed request
OK_STATUS_CODES = frozenset({200, 201, 204})

ALLOWED_METHODS = ('GET', 'POST', 'DELETE')

TCP_SCHEMES = ('tcp', 'tcp4', 'tcp6')
DEFAULT_TCP_PORT = 2375


class DockerConnection(http.client.HTTPConnection):
    """HTTP exchange over a single dialed socket"""

    raw_sock: Optional[socket.socket] = None

    def connect(self):
        """Connect over TCP"""
        super().connect()
        self.raw_sock = self.sock

    def shutdown(self):
        """
        Shut the socket down in both directions

        Safe to call from another thread; a read blocked on the socket returns EOF.
        """
        sock = self.raw_sock
        if sock is None:
            return
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug(f"Socket shutdown: {e}")


class UnixHTTPConnection(DockerConnection):
    """HTTP connection over Unix socket"""

    def __init__(self, socket_path: str, timeout: Optional[float] = None):
        super().__init__('localhost', timeout=timeout)
        self.socket_path = socket_path

    def connect(self):
        """Connect to Unix socket"""
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)
        try:
            sock.connect(self.socket_path)
        except OSError:
            sock.close()
            raise
        self.sock = self.raw_sock = sock


def open_connection(address: Address, timeout: Optional[float] = None) -> DockerConnection:
    """
    Dial the daemon and wrap the socket for HTTP

    Args:
        address: Resolved scheme and endpoint
        timeout: Socket timeout in seconds (None blocks indefinitely)

    Returns:
        Connected DockerConnection

    Raises:
        DockerConnectionError: If the scheme is unsupported or the dial fails
    """
    if address.scheme == LOCAL_SOCKET:
        conn = UnixHTTPConnection(address.endpoint, timeout=timeout)
    elif address.scheme in TCP_SCHEMES:
        try:
            parts = urlsplit(f"//{address.endpoint.rstrip('/')}")
            port = parts.port or DEFAULT_TCP_PORT
        except ValueError as e:
            raise DockerConnectionError(f"Invalid TCP address {address.endpoint!r}: {e}") from e
        conn = DockerConnection(parts.hostname or 'localhost', port, timeout=timeout)
    else:
        raise DockerConnectionError(f"Unsupported scheme: {address.scheme!r}")

    try:
        conn.connect()
    except OSError as e:
        conn.close()
        raise DockerConnectionError(
            f"Cannot connect to Docker daemon at {address.scheme}://{address.endpoint}: {e}"
        ) from e

    logger.debug(f"Connected to {address.scheme}://{address.endpoint}")
    return conn


def decode_json(data: bytes) -> Any:
    """Decode a JSON response body"""
    try:
        return json.loads(data.decode('utf-8'))
    except ValueError as e:
        raise DecodingError(f"Invalid JSON in response: {e}") from e


class DockerHTTPClient:
    """HTTP client for Docker daemon"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 connector: Optional[Callable[[Address, Optional[float]], DockerConnection]] = None):
        """
        Initialize Docker HTTP client

        Args:
            base_url: Connection string (default: $DOCKER_HOST or the local socket)
            timeout: Socket timeout in seconds, None for no timeout
            connector: Callable opening one connection per request
        """
        self.base_url = base_url or default_docker_host()
        self.address = parse_url(self.base_url)
        self.timeout = timeout
        self.connector = connector or open_connection

    @staticmethod
    def build_url(path: str, params: Optional[Dict[str, Any]] = None) -> str:
        """Append query parameters to path, keeping their order"""
        if not params:
            return path

        query_parts = []
        for key, value in params.items():
            if value is None:
                continue
            if isinstance(value, bool):
                value = 'true' if value else 'false'
            elif isinstance(value, (list, dict)):
                value = json.dumps(value)
            query_parts.append(f"{key}={quote(str(value))}")

        if not query_parts:
            return path
        return f"{path}?{'&'.join(query_parts)}"

    def execute(self, method: str, path: str, body: Any = None,
                params: Optional[Dict[str, Any]] = None) -> Tuple[http.client.HTTPResponse, DockerConnection]:
        """
        Issue one request over a fresh connection

        Args:
            method: GET, POST or DELETE
            path: API path
            body: Value serialized as the JSON request body
            params: URL query parameters

        Returns:
            Open response and its connection. The caller closes both.

        Raises:
            EncodingError: Body is not JSON serializable
            DockerConnectionError: Dial or transport failure
            RequestError: Status code outside OK_STATUS_CODES
        """
        if method not in ALLOWED_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        url = self.build_url(path, params)

        req_headers = {}

        payload = None
        if body is not None:
            try:
                payload = json.dumps(body).encode('utf-8')
            except (TypeError, ValueError) as e:
                raise EncodingError(f"Cannot encode request body for {method} {path}: {e}") from e
            req_headers['Content-Type'] = 'application/json'

        conn = self.connector(self.address, self.timeout)
        logger.debug(f"{method} {url}")
        try:
            conn.request(method, url, body=payload, headers=req_headers)
            response = conn.getresponse()
        except (OSError, http.client.HTTPException) as e:
            conn.close()
            raise DockerConnectionError(f"{method} {url} failed: {e}") from e

        if response.status not in OK_STATUS_CODES:
            with closing(conn), closing(response):
                message = self._read_error_message(response)
            raise RequestError(response.status, response.reason, message, response=response)

        return response, conn

    @staticmethod
    def _read_error_message(response: http.client.HTTPResponse) -> str:
        """Extract the daemon's error message from a failed response"""
        try:
            error_body = response.read().decode('utf-8', errors='replace')
        except (OSError, http.client.HTTPException) as e:
            logger.debug(f"Could not read error body: {e}")
            return ''

        try:
            error_data = json.loads(error_body)
        except ValueError:
            return error_body.strip()
        if isinstance(error_data, dict):
            return error_data.get('message', error_body.strip())
        return error_body.strip()

    def request(self, method: str, path: str, body: Any = None,
                params: Optional[Dict[str, Any]] = None, decode: bool = True) -> Any:
        """
        Make HTTP request to Docker daemon and consume the whole body

        Args:
            method: HTTP method (GET, POST, DELETE)
            path: API path
            body: JSON request body
            params: URL query parameters
            decode: Parse the body as JSON; otherwise discard it

        Returns:
            Parsed JSON response, or None when not decoding or the body is empty
        """
        response, conn = self.execute(method, path, body=body, params=params)
        with closing(conn), closing(response):
            try:
                response_data = response.read()
            except (OSError, http.client.HTTPException) as e:
                raise DockerConnectionError(f"Reading response of {method} {path} failed: {e}") from e

        if not decode or not response_data:
            return None
        return decode_json(response_data)

    def get(self, path: str, **kwargs) -> Any:
        """Make GET request"""
        return self.request('GET', path, **kwargs)

    def post(self, path: str, **kwargs) -> Any:
        """Make POST request"""
        return self.request('POST', path, **kwargs)

    def delete(self, path: str, **kwargs) -> Any:
        """Make DELETE request"""
        return self.request('DELETE', path, **kwargs)
