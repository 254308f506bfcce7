"""
Docker API Exceptions
"""

from typing import Optional


class DockerException(Exception):
    """Base Docker exception"""

    # Set on errors raised after a container was already created
    container_id: Optional[str] = None


class DockerConnectionError(DockerException):
    """Daemon could not be reached or the transport failed mid-exchange"""
    pass


class RequestError(DockerException):
    """Daemon answered with a status code outside the allow-list"""

    def __init__(self, status_code: int, reason: str = '', message: str = '', response=None):
        detail = f": {message}" if message else ''
        super().__init__(f"Docker API error {status_code} {reason}{detail}")
        self.status_code = status_code
        self.reason = reason
        self.message = message
        self.response = response


class EncodingError(DockerException):
    """Request body could not be serialized to JSON"""
    pass


class DecodingError(DockerException):
    """Response body is not valid JSON"""
    pass


class ImagePullError(DockerException):
    """Daemon reported an error while pulling an image"""
    pass
