"""
Custom Docker API - Pure Python implementation without external dependencies
Works with Docker daemon via Unix socket or TCP
"""

from .client import DockerAPI, DockerClient
from .exceptions import (
    DockerException,
    DockerConnectionError,
    RequestError,
    EncodingError,
    DecodingError,
    ImagePullError
)
from .models import Container, ContainerSpec, DaemonInfo, Event
from .streams import Stream, install_signal_handlers
from .utils import Address, parse_url

__all__ = [
    'DockerAPI',
    'DockerClient',
    'DockerException',
    'DockerConnectionError',
    'RequestError',
    'EncodingError',
    'DecodingError',
    'ImagePullError',
    'Container',
    'ContainerSpec',
    'DaemonInfo',
    'Event',
    'Stream',
    'install_signal_handlers',
    'Address',
    'parse_url'
]

__version__ = '1.0.0'
