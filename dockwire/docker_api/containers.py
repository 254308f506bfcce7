"""
Docker Containers API
"""

import logging
import threading
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import quote

from .exceptions import DecodingError, DockerException
from .models import Container, ContainerSpec
from .streams import Stream, read_lines

logger = logging.getLogger(__name__)


def encode_tail(tail: int) -> str:
    """Encode the logs tail count; -1 means every line"""
    return 'all' if tail == -1 else str(tail)


def _quote_id(container_id: str) -> str:
    # Names may hold characters that are not path-safe
    return quote(container_id, safe='')


class ContainerCollection:
    """Docker Containers collection"""

    def __init__(self, client):
        self.client = client

    def list(self, all: bool = False) -> List[Container]:
        """
        List containers

        Args:
            all: Show all containers (including stopped)

        Returns:
            List of Container objects in daemon order
        """
        params = {'all': True} if all else None
        containers_data = self.client.http.get('/containers/json', params=params)
        if not isinstance(containers_data, list) or any(not isinstance(c, dict) for c in containers_data):
            raise DecodingError(f"Unexpected container list payload: {type(containers_data).__name__}")
        return [Container.from_dict(c_data) for c_data in containers_data]

    def get(self, container_id: str) -> Container:
        """
        Get container by ID or name

        Args:
            container_id: Container ID or name

        Returns:
            Container object
        """
        container_data = self.client.http.get(f'/containers/{_quote_id(container_id)}/json')
        if not isinstance(container_data, dict):
            raise DecodingError(f"Unexpected inspect payload for {container_id}: {type(container_data).__name__}")
        return Container.from_dict(container_data)

    def create(self, spec: Union[ContainerSpec, Mapping[str, Any]]) -> str:
        """
        Create container

        A 'Name' field is sent as the name query parameter, not in the body.

        Args:
            spec: ContainerSpec or raw create body

        Returns:
            ID of the created container
        """
        config = spec.to_dict() if isinstance(spec, ContainerSpec) else dict(spec)

        params = {}
        name = config.pop('Name', None)
        if name:
            params['name'] = name

        result = self.client.http.post('/containers/create', params=params, body=config)
        if not isinstance(result, dict):
            raise DecodingError(f"Unexpected create payload: {type(result).__name__}")
        for warning in result.get('Warnings') or []:
            logger.warning(f"Create {name or config.get('Image')}: {warning}")

        container_id = result.get('Id')
        if not container_id or not isinstance(container_id, str):
            raise DecodingError("Create response has no container Id")
        logger.info(f"Container created: {container_id[:12]}")
        return container_id

    def start(self, container_id: str, host_config: Optional[Dict[str, Any]] = None):
        """Start container, optionally with a host configuration body"""
        self.client.http.post(f'/containers/{_quote_id(container_id)}/start', body=host_config, decode=False)

    def run(self, spec: Union[ContainerSpec, Mapping[str, Any]]) -> str:
        """
        Create and start container

        The container is not removed if start fails; the start error is
        raised with its container_id set.

        Args:
            spec: ContainerSpec or raw create body

        Returns:
            ID of the started container
        """
        config = spec.to_dict() if isinstance(spec, ContainerSpec) else dict(spec)
        container_id = self.create(config)

        try:
            self.start(container_id, config.get('HostConfig'))
        except DockerException as e:
            e.container_id = container_id
            logger.warning(f"Container {container_id[:12]} created but failed to start: {e}")
            raise
        return container_id

    def remove(self, container_id: str, force: bool = False, volumes: bool = False):
        """Remove container"""
        params = {'force': force, 'volumes': volumes}
        self.client.http.delete(f'/containers/{_quote_id(container_id)}', params=params, decode=False)

    def logs(self, container_id: str, follow: bool = False, stdout: bool = True,
             stderr: bool = True, timestamps: bool = False, tail: int = -1,
             cancel: Optional[threading.Event] = None) -> Stream[str]:
        """
        Stream container logs line by line

        Args:
            container_id: Container ID
            follow: Keep the stream open for new output
            stdout: Include stdout
            stderr: Include stderr
            timestamps: Prefix lines with timestamps
            tail: Number of lines to show from end (-1 for all)
            cancel: Event that stops the stream when set

        Returns:
            Stream of log lines
        """
        params = {
            'follow': follow,
            'stdout': stdout,
            'stderr': stderr,
            'timestamps': timestamps,
            'tail': encode_tail(tail),
        }

        def opener():
            return self.client.http.execute('GET', f'/containers/{_quote_id(container_id)}/logs', params=params)

        return Stream(opener, read_lines, name=f"logs {container_id[:12]}", cancel=cancel)
