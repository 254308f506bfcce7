"""Shared fixtures: a scripted fake daemon behind the connector seam."""

import http.client
import json
import socket
import time
from typing import List, NamedTuple, Optional

import pytest

from dockwire.docker_api import DockerClient
from dockwire.docker_api.exceptions import DockerConnectionError
from dockwire.docker_api.http_client import DockerConnection


class RecordedRequest(NamedTuple):
    method: str
    url: str
    body: Optional[bytes]
    headers: dict

    def json(self):
        return json.loads(self.body.decode("utf-8"))


def http_response(status=200, body=b"", reason=None, chunks=None, end=True,
                  content_type="application/json"):
    """Build raw HTTP/1.1 response bytes.

    With ``chunks`` the body uses chunked transfer encoding; ``end=False``
    leaves the final zero-length chunk off so the stream stays open.
    """
    if isinstance(body, (dict, list)):
        body = json.dumps(body).encode("utf-8")
    reason = reason or http.client.responses.get(status, "Unknown")

    head = [f"HTTP/1.1 {status} {reason}"]
    if content_type:
        head.append(f"Content-Type: {content_type}")
    if chunks is not None:
        head.append("Transfer-Encoding: chunked")
        payload = b"".join(b"%x\r\n%s\r\n" % (len(c), c) for c in chunks)
        if end:
            payload += b"0\r\n\r\n"
    else:
        head.append(f"Content-Length: {len(body)}")
        payload = body
    return ("\r\n".join(head) + "\r\n\r\n").encode("ascii") + payload


class ScriptedConnection(DockerConnection):
    """Connection whose peer is a socketpair end preloaded with a response."""

    def __init__(self, daemon, raw_response, keep_open):
        super().__init__("localhost")
        self.daemon = daemon
        self.raw_response = raw_response
        self.keep_open = keep_open
        self.server_sock = None

    def connect(self):
        client_sock, server_sock = socket.socketpair()
        server_sock.sendall(self.raw_response)
        if not self.keep_open:
            server_sock.shutdown(socket.SHUT_WR)
        self.server_sock = server_sock
        self.sock = self.raw_sock = client_sock

    def request(self, method, url, body=None, headers={}, **kwargs):
        self.daemon.requests.append(RecordedRequest(method, url, body, dict(headers)))
        super().request(method, url, body=body, headers=headers, **kwargs)


class FakeDaemon:
    """Connector that answers each new connection with the next scripted response."""

    def __init__(self):
        self.responses = []
        self.requests: List[RecordedRequest] = []
        self.connections: List[ScriptedConnection] = []
        self.addresses = []
        self.refuse = False

    def respond(self, status=200, body=b"", keep_open=False, **kwargs):
        self.responses.append((http_response(status, body, **kwargs), keep_open))

    def __call__(self, address, timeout):
        self.addresses.append(address)
        if self.refuse:
            raise DockerConnectionError(f"Cannot connect to Docker daemon at {address.endpoint}")
        raw, keep_open = self.responses.pop(0)
        conn = ScriptedConnection(self, raw, keep_open)
        conn.connect()
        self.connections.append(conn)
        return conn

    def all_closed(self):
        return all(conn.sock is None for conn in self.connections)

    def close(self):
        for conn in self.connections:
            if conn.server_sock is not None:
                conn.server_sock.close()


def wait_for(predicate, timeout=2.0, interval=0.01):
    """Poll until predicate() is true; return its final value."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def daemon():
    fake = FakeDaemon()
    yield fake
    fake.close()


@pytest.fixture
def client(daemon):
    return DockerClient(base_url="unix:///var/run/docker.sock", connector=daemon)
