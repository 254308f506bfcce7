"""
Connection string helpers
"""

import os
import platform
from typing import NamedTuple

LOCAL_SOCKET = 'unix'
TCP = 'tcp'

DEFAULT_UNIX_SOCKET = '/var/run/docker.sock'


class Address(NamedTuple):
    """Transport scheme and endpoint resolved from a connection string"""
    scheme: str
    endpoint: str


def parse_url(url: str) -> Address:
    """
    Split a connection string into scheme and endpoint

    A string without '://' is a filesystem path to a local socket.
    The generic 'http' scheme is dialed as plain TCP.

    Args:
        url: Connection string, e.g. unix:///var/run/docker.sock or tcp://host:2375

    Returns:
        Address tuple
    """
    scheme, sep, endpoint = url.partition('://')
    if not sep:
        return Address(LOCAL_SOCKET, url)

    if scheme == 'http':
        scheme = TCP

    return Address(scheme, endpoint)


def default_docker_host() -> str:
    """Get default connection string ($DOCKER_HOST or the platform socket)"""
    env_host = os.environ.get('DOCKER_HOST')
    if env_host:
        return env_host

    if platform.system() == "Darwin":  # macOS
        socket_path = os.path.expanduser('~/.docker/run/docker.sock')
        if os.path.exists(socket_path):
            return f"unix://{socket_path}"

    return f"unix://{DEFAULT_UNIX_SOCKET}"
