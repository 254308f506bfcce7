"""
Docker Client - Main API entry point
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Union

from .exceptions import DecodingError
from .http_client import DockerHTTPClient
from .images import ImageCollection
from .containers import ContainerCollection
from .models import Container, ContainerSpec, DaemonInfo, Event
from .streams import Stream, read_events

logger = logging.getLogger(__name__)

CreateBody = Union[ContainerSpec, Mapping[str, Any]]


class DockerAPI(ABC):
    """Operations offered by a Docker daemon client"""

    @abstractmethod
    def fetch_all_containers(self, all: bool = False) -> List[Container]:
        pass

    @abstractmethod
    def fetch_container(self, name: str) -> Container:
        pass

    @abstractmethod
    def events(self, cancel: Optional[threading.Event] = None) -> Stream[Event]:
        pass

    @abstractmethod
    def info(self) -> DaemonInfo:
        pass

    @abstractmethod
    def pull_image(self, name: str, tag: Optional[str] = None):
        pass

    @abstractmethod
    def create_container(self, spec: CreateBody) -> str:
        pass

    @abstractmethod
    def start_container(self, name: str, host_config: Optional[Dict[str, Any]] = None):
        pass

    @abstractmethod
    def run_container(self, spec: CreateBody) -> str:
        pass

    @abstractmethod
    def remove_container(self, name: str, force: bool = False, volumes: bool = False):
        pass

    @abstractmethod
    def container_logs(self, container_id: str, follow: bool = False, stdout: bool = True,
                       stderr: bool = True, timestamps: bool = False, tail: int = -1,
                       cancel: Optional[threading.Event] = None) -> Stream[str]:
        pass


class DockerClient(DockerAPI):
    """
    Docker API Client
    Pure Python implementation without external dependencies

    Holds only the connection string; every call opens its own connection,
    so one client can be shared between threads.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 connector=None):
        """
        Initialize Docker client

        Args:
            base_url: Connection string (default: $DOCKER_HOST or the local socket)
            timeout: Socket timeout in seconds, None for no timeout
            connector: Replacement for http_client.open_connection
        """
        self.http = DockerHTTPClient(base_url=base_url, timeout=timeout, connector=connector)
        self.images = ImageCollection(self)
        self.containers = ContainerCollection(self)

    def __repr__(self):
        return f"<DockerClient: {self.http.base_url}>"

    def info(self) -> DaemonInfo:
        """Get Docker system info"""
        data = self.http.get('/info')
        if not isinstance(data, dict):
            raise DecodingError(f"Unexpected info payload: {type(data).__name__}")
        return DaemonInfo.from_dict(data)

    def ping(self) -> bool:
        """Ping Docker daemon"""
        self.http.get('/_ping', decode=False)
        return True

    def fetch_all_containers(self, all: bool = False) -> List[Container]:
        return self.containers.list(all=all)

    def fetch_container(self, name: str) -> Container:
        return self.containers.get(name)

    def pull_image(self, name: str, tag: Optional[str] = None):
        self.images.pull(name, tag=tag)

    def create_container(self, spec: CreateBody) -> str:
        return self.containers.create(spec)

    def start_container(self, name: str, host_config: Optional[Dict[str, Any]] = None):
        self.containers.start(name, host_config)

    def run_container(self, spec: CreateBody) -> str:
        return self.containers.run(spec)

    def remove_container(self, name: str, force: bool = False, volumes: bool = False):
        self.containers.remove(name, force=force, volumes=volumes)

    def container_logs(self, container_id: str, follow: bool = False, stdout: bool = True,
                       stderr: bool = True, timestamps: bool = False, tail: int = -1,
                       cancel: Optional[threading.Event] = None) -> Stream[str]:
        return self.containers.logs(
            container_id, follow=follow, stdout=stdout, stderr=stderr,
            timestamps=timestamps, tail=tail, cancel=cancel
        )

    def events(self, cancel: Optional[threading.Event] = None) -> Stream[Event]:
        """
        Stream daemon events

        Args:
            cancel: Event that stops the stream when set

        Returns:
            Stream of Event objects in emission order
        """
        def opener():
            return self.http.execute('GET', '/events')

        return Stream(opener, read_events, name='events', cancel=cancel)
