"""Tests for the event and log streams."""

import json
import signal
import threading
import time
from unittest.mock import patch

import pytest

from dockwire.docker_api.exceptions import DockerConnectionError, RequestError
from dockwire.docker_api.models import Event
from dockwire.docker_api.streams import STREAM_BUFFER_SIZE, install_signal_handlers

from .conftest import wait_for


def event_line(container_id, status):
    return json.dumps({"id": container_id, "status": status}).encode("utf-8") + b"\n"


class TestEventStream:
    def test_delivers_in_order(self, client, daemon):
        daemon.respond(200, chunks=[
            event_line("c1", "create"),
            event_line("c1", "start"),
            event_line("c2", "die"),
        ])

        with client.events() as stream:
            events = list(stream)

        assert daemon.requests[0].method == "GET"
        assert daemon.requests[0].url == "/events"
        assert [(e.container_id, e.status) for e in events] == [
            ("c1", "create"), ("c1", "start"), ("c2", "die"),
        ]
        assert all(isinstance(e, Event) for e in events)

    def test_malformed_line_skipped(self, client, daemon, caplog):
        daemon.respond(200, chunks=[
            event_line("c1", "start"),
            b"{not json\n",
            event_line("c2", "stop"),
        ])

        events = list(client.events())

        assert [e.container_id for e in events] == ["c1", "c2"]
        assert "cannot decode json" in caplog.text

    def test_non_object_payload_skipped(self, client, daemon):
        daemon.respond(200, chunks=[b"[1, 2]\n", event_line("c1", "start")])
        assert [e.status for e in client.events()] == ["start"]

    def test_line_split_across_chunks(self, client, daemon):
        line = event_line("c1", "start")
        daemon.respond(200, chunks=[line[:7], line[7:]])
        assert [e.container_id for e in client.events()] == ["c1"]

    def test_connection_closed_after_eof(self, client, daemon):
        daemon.respond(200, chunks=[event_line("c1", "start")])
        stream = client.events()
        list(stream)

        assert stream.join(timeout=2)
        assert not stream.running
        assert daemon.all_closed()

    def test_open_failure_is_raised_to_consumer(self, client, daemon):
        daemon.respond(500, {"message": "boom"})
        stream = client.events()

        with pytest.raises(RequestError) as exc_info:
            list(stream)

        assert exc_info.value.status_code == 500
        assert stream.error is exc_info.value
        # Exhausted after the terminal error
        assert list(stream) == []

    def test_dial_failure_is_raised_to_consumer(self, client, daemon):
        daemon.refuse = True
        with pytest.raises(DockerConnectionError):
            next(client.events())


class TestLogStream:
    def test_request_and_lines(self, client, daemon):
        daemon.respond(200, chunks=[b"hello\n", b"\n", b"world\r\n", b"no newline"],
                       content_type="text/plain")

        lines = list(client.container_logs("abc", follow=True, timestamps=True, tail=-1))

        assert lines == ["hello", "", "world", "no newline"]
        assert daemon.requests[0].url == (
            "/containers/abc/logs?follow=true&stdout=true&stderr=true&timestamps=true&tail=all"
        )

    def test_tail_number(self, client, daemon):
        daemon.respond(200, chunks=[])
        list(client.container_logs("abc", tail=5))
        assert daemon.requests[0].url.endswith("&tail=5")

    def test_undecodable_bytes_replaced(self, client, daemon):
        daemon.respond(200, chunks=[b"caf\xe9\n"])
        assert list(client.container_logs("abc")) == ["caf\ufffd"]

    def test_open_failure(self, client, daemon):
        daemon.respond(404, {"message": "No such container: abc"})
        stream = client.container_logs("abc")
        with pytest.raises(RequestError, match="No such container"):
            next(stream)

    def test_backpressure_blocks_producer(self, client, daemon):
        total = STREAM_BUFFER_SIZE + 50
        daemon.respond(200, chunks=[f"line {i}\n".encode() for i in range(total)])

        stream = client.container_logs("abc")
        try:
            assert wait_for(stream._queue.full)
            time.sleep(0.3)
            # Still holding the connection, nothing dropped
            assert stream.running
            assert stream._queue.qsize() == STREAM_BUFFER_SIZE

            assert list(stream) == [f"line {i}" for i in range(total)]
        finally:
            stream.close()


class TestCancellation:
    def test_cancel_token_stops_open_stream(self, client, daemon):
        daemon.respond(200, chunks=[event_line("c1", "start")], end=False, keep_open=True)
        cancel = threading.Event()

        stream = client.events(cancel=cancel)
        first = next(stream)
        cancel.set()

        assert first.container_id == "c1"
        assert stream.join(timeout=2)
        assert list(stream) == []
        assert daemon.all_closed()

    def test_close_stops_blocked_reader(self, client, daemon):
        daemon.respond(200, chunks=[b"first\n"], end=False, keep_open=True)

        stream = client.container_logs("abc", follow=True)
        assert next(stream) == "first"
        stream.close()

        assert stream.join(timeout=2)
        assert stream.error is None
        assert daemon.all_closed()

    def test_close_unblocks_full_queue(self, client, daemon):
        daemon.respond(200, chunks=[b"x\n"] * (STREAM_BUFFER_SIZE + 10))
        stream = client.container_logs("abc")
        assert wait_for(stream._queue.full)

        stream.close()

        assert stream.join(timeout=2)
        assert daemon.all_closed()

    def test_cancelling_one_stream_leaves_others_running(self, client, daemon):
        daemon.respond(200, chunks=[b"a1\n"], end=False, keep_open=True)
        daemon.respond(200, chunks=[b"b1\n"], end=False, keep_open=True)

        # Opened one after the other so each takes its own scripted response
        first = client.container_logs("a", follow=True)
        assert next(first) == "a1"
        second = client.container_logs("b", follow=True)
        try:
            assert next(second) == "b1"

            first.close()

            assert first.join(timeout=2)
            assert second.running
            assert not second.cancel.is_set()
        finally:
            second.close()

    def test_closing_one_stream_leaves_token_siblings_running(self, client, daemon):
        daemon.respond(200, chunks=[b"a1\n"], end=False, keep_open=True)
        daemon.respond(200, chunks=[b"b1\n"], end=False, keep_open=True)
        cancel = threading.Event()

        first = client.container_logs("a", follow=True, cancel=cancel)
        assert next(first) == "a1"
        second = client.container_logs("b", follow=True, cancel=cancel)
        try:
            assert next(second) == "b1"
            with first:
                pass

            assert first.join(timeout=2)
            assert not cancel.is_set()
            assert not second.join(timeout=0.3)
            assert second.running
        finally:
            second.close()

    def test_shared_token_cancels_every_stream(self, client, daemon):
        daemon.respond(200, chunks=[b"a1\n"], end=False, keep_open=True)
        daemon.respond(200, chunks=[event_line("c1", "start")], end=False, keep_open=True)
        cancel = threading.Event()

        logs = client.container_logs("a", follow=True, cancel=cancel)
        next(logs)
        events = client.events(cancel=cancel)
        next(events)
        cancel.set()

        assert logs.join(timeout=2)
        assert events.join(timeout=2)

    def test_context_manager_closes(self, client, daemon):
        daemon.respond(200, chunks=[b"line\n"], end=False, keep_open=True)
        with client.container_logs("abc", follow=True) as stream:
            assert next(stream) == "line"
        assert stream.closed
        assert stream.join(timeout=2)


class TestSignalHandlers:
    def test_signal_sets_cancel_without_exiting(self):
        cancel = threading.Event()
        handlers = {}

        def fake_signal(sig, handler):
            handlers[sig] = handler
            return signal.SIG_DFL

        with patch("dockwire.docker_api.streams.signal.signal", side_effect=fake_signal):
            previous = install_signal_handlers(cancel, signals=(signal.SIGINT, signal.SIGTERM))

        assert set(previous) == {signal.SIGINT, signal.SIGTERM}
        handlers[signal.SIGTERM](signal.SIGTERM, None)
        assert cancel.is_set()
