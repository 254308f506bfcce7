"""
dockwire - minimal client for the Docker daemon HTTP API
"""

from .docker_api import DockerClient

__all__ = ['DockerClient']
