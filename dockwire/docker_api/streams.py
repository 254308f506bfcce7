"""
Long-lived response streams (events, logs)

Each Stream owns one connection. A producer thread reads units from the
response body and publishes them onto a bounded queue; a watcher thread
shuts the socket down when the stream is closed or its cancel event is
set, so a producer blocked on a read wakes up.
"""

import http.client
import json
import logging
import queue
import signal
import threading
from typing import Callable, Generic, Iterator, Optional, Tuple, TypeVar

from .exceptions import DockerConnectionError, DockerException
from .http_client import DockerConnection
from .models import Event

logger = logging.getLogger(__name__)

T = TypeVar('T')

STREAM_BUFFER_SIZE = 100

_POLL_INTERVAL = 0.1

_END = object()

# SIGQUIT does not exist on Windows
STOP_SIGNALS = tuple(
    sig for sig in (signal.SIGINT, signal.SIGTERM, getattr(signal, 'SIGQUIT', None))
    if sig is not None
)


class _Failure:
    """Terminal error published in place of further units"""

    def __init__(self, error: Exception):
        self.error = error


Opener = Callable[[], Tuple[http.client.HTTPResponse, DockerConnection]]


class Stream(Generic[T]):
    """
    Iterator over units the daemon pushes on one response body

    Iteration ends on EOF or cancellation. A failure to open the stream, or a
    transport error while reading, is raised from the iterator after all
    units received before it.

    Args:
        opener: Issues the request, returns (response, connection)
        reader: Turns the response into units
        name: Label used in logs and the thread name
        cancel: Event that stops this stream when set; may be shared, never set here
        maxsize: Queue capacity before the producer blocks
    """

    def __init__(self, opener: Opener, reader: Callable[[http.client.HTTPResponse], Iterator[T]],
                 name: str, cancel: Optional[threading.Event] = None,
                 maxsize: int = STREAM_BUFFER_SIZE):
        self.name = name
        self.cancel = cancel if cancel is not None else threading.Event()
        self.error: Optional[Exception] = None
        # Set by close(); the caller's cancel event is only ever read
        self._closed = threading.Event()

        self._opener = opener
        self._reader = reader
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._conn: Optional[DockerConnection] = None
        self._conn_lock = threading.Lock()
        self._finished = threading.Event()
        self._exhausted = False

        self._producer = threading.Thread(target=self._run, name=f"dockwire-{name}", daemon=True)
        self._watcher = threading.Thread(target=self._watch, name=f"dockwire-{name}-cancel", daemon=True)
        self._producer.start()
        self._watcher.start()

    def __iter__(self) -> 'Stream[T]':
        return self

    def __next__(self) -> T:
        while not self._exhausted:
            if self._stopped():
                self._exhausted = True
                break

            try:
                item = self._queue.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                # Every put happens before _finished is set
                if self._finished.is_set() and self._queue.empty():
                    self._exhausted = True
                continue

            if item is _END:
                self._exhausted = True
                break
            if isinstance(item, _Failure):
                self._exhausted = True
                raise item.error
            return item

        raise StopIteration

    def __enter__(self) -> 'Stream[T]':
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def running(self) -> bool:
        """True while the producer still holds the connection"""
        return not self._finished.is_set()

    def close(self):
        """Stop the stream; no further units are delivered"""
        self._closed.set()
        self._abort()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the producer to release the connection"""
        return self._finished.wait(timeout)

    def _stopped(self) -> bool:
        return self._closed.is_set() or self.cancel.is_set()

    def _abort(self):
        with self._conn_lock:
            conn = self._conn
        if conn is not None:
            conn.shutdown()

    def _publish(self, item) -> bool:
        """Put item on the queue, blocking while full; False if cancelled first"""
        while not self._stopped():
            try:
                self._queue.put(item, timeout=_POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    def _fail(self, error: Exception):
        self.error = error
        self._publish(_Failure(error))

    def _run(self):
        try:
            try:
                response, conn = self._opener()
            except DockerException as e:
                logger.error(f"Cannot open {self.name} stream: {e}")
                self._fail(e)
                return

            with self._conn_lock:
                self._conn = conn
            # Closed while the request was in flight
            if self._stopped():
                conn.shutdown()
            logger.debug(f"{self.name} stream opened")

            try:
                for item in self._reader(response):
                    if not self._publish(item):
                        break
            except (OSError, ValueError, http.client.HTTPException) as e:
                # Reads fail this way once the watcher shuts the socket down
                if not self._stopped():
                    logger.error(f"{self.name} stream failed: {e}")
                    self._fail(DockerConnectionError(f"{self.name} stream failed: {e}"))
            finally:
                response.close()
                conn.close()
                logger.debug(f"closing {self.name} stream")

            self._publish(_END)
        finally:
            self._finished.set()

    def _watch(self):
        while not self._finished.is_set():
            if self._stopped():
                self._abort()
                return
            self._closed.wait(_POLL_INTERVAL)


def read_events(response: http.client.HTTPResponse) -> Iterator[Event]:
    """Decode newline-delimited JSON events, skipping malformed lines"""
    for line in response:
        line = line.strip()
        if not line:
            continue
        try:
            data = json.loads(line.decode('utf-8'))
        except ValueError as e:
            logger.warning(f"cannot decode json: {e}")
            continue
        if not isinstance(data, dict):
            logger.warning(f"unexpected event payload: {line[:80]!r}")
            continue
        yield Event.from_dict(data)


def read_lines(response: http.client.HTTPResponse) -> Iterator[str]:
    """Split the body into text lines without their line terminators"""
    for line in response:
        yield line.decode('utf-8', errors='replace').rstrip('\r\n')


def install_signal_handlers(cancel: threading.Event, signals=STOP_SIGNALS):
    """
    Set `cancel` when the process receives one of `signals`

    Call once per process from the main thread. Returns the previous handlers.
    """
    def _handler(signum, frame):
        logger.info(f"received signal '{signal.Signals(signum).name}', stopping streams")
        cancel.set()

    previous = {}
    for sig in signals:
        previous[sig] = signal.signal(sig, _handler)
    return previous
