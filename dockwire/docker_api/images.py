"""
Docker Images API
"""

import json
import logging
from contextlib import closing
import http.client
from typing import Optional

from .exceptions import DockerConnectionError, ImagePullError

logger = logging.getLogger(__name__)


class ImageCollection:
    """Docker Images collection"""

    def __init__(self, client):
        self.client = client

    def pull(self, repository: str, tag: Optional[str] = None):
        """
        Pull image from registry

        The progress stream is read to the end and discarded. The daemon
        reports pull failures inside that stream, with a 200 status.

        Args:
            repository: Repository name, may include a tag
            tag: Image tag

        Raises:
            ImagePullError: If the daemon reported an error while pulling
        """
        params = {'fromImage': repository}
        if tag:
            params['tag'] = tag

        logger.info(f"Pulling image {repository}{':' + tag if tag else ''}")
        response, conn = self.client.http.execute('POST', '/images/create', params=params)
        with closing(conn), closing(response):
            try:
                for line in response:
                    self._check_progress_line(line)
            except (OSError, http.client.HTTPException) as e:
                raise DockerConnectionError(f"Pulling {repository} failed: {e}") from e

    @staticmethod
    def _check_progress_line(line: bytes):
        line = line.strip()
        if not line:
            return
        try:
            data = json.loads(line.decode('utf-8'))
        except ValueError:
            # Skip non-JSON lines
            return
        if isinstance(data, dict) and 'error' in data:
            error_msg = data['error']
            if isinstance(data.get('errorDetail'), dict):
                error_msg = data['errorDetail'].get('message', error_msg)
            raise ImagePullError(f"Pull failed: {error_msg}")
