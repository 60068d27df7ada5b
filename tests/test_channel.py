"""
Tests for the blocking Channel.

Covers:
- Connection lifecycle (open once, close, context manager)
- Failure signalling (refused, truncated, closed, timed out)
- Reassembly of frames split across many reads
"""

import socket
import threading
import time
from unittest.mock import MagicMock

import pytest

from acclink.config import ChannelConfig
from acclink.core.exceptions import (
    ChannelConnectionError,
    ChannelIOError,
    ChannelStateError,
    MessageDecodeError,
)
from acclink.core.types import MsgType, TaskMessage
from acclink.protocol import codec
from acclink.protocol.builder import add_data_block, build_data_descriptor, build_request
from acclink.testing import serve_once
from acclink.transport.channel import Channel
from acclink.transport.framing import LENGTH_PREFIX, pack_frame


def _recv_frame(conn: socket.socket) -> bytes:
    def recv_exact(n):
        buf = b""
        while len(buf) < n:
            chunk = conn.recv(n - len(buf))
            if not chunk:
                raise EOFError
            buf += chunk
        return buf

    length = LENGTH_PREFIX.unpack(recv_exact(4))[0]
    return recv_exact(length)


class TestLifecycle:

    def test_open_refused(self, unused_port):
        channel = Channel()

        with pytest.raises(ChannelConnectionError) as exc_info:
            channel.open("127.0.0.1", unused_port)

        assert isinstance(exc_info.value, ConnectionError)
        assert exc_info.value.context['endpoint'] == f"127.0.0.1:{unused_port}"
        assert not channel.is_open

    def test_second_open_rejected(self, stub_manager):
        channel = Channel.connect(stub_manager.host, stub_manager.port)
        try:
            with pytest.raises(ChannelStateError):
                channel.open(stub_manager.host, stub_manager.port)
            assert channel.is_open
        finally:
            channel.close()

    def test_open_after_failed_open_rejected(self, unused_port):
        channel = Channel()
        with pytest.raises(ChannelConnectionError):
            channel.open("127.0.0.1", unused_port)

        with pytest.raises(ChannelStateError):
            channel.open("127.0.0.1", unused_port)

    def test_send_before_open(self):
        with pytest.raises(ChannelConnectionError):
            Channel().send(build_request("s", [1]))

    def test_receive_after_close(self, stub_manager):
        channel = Channel.connect(stub_manager.host, stub_manager.port)
        channel.close()

        with pytest.raises(ChannelConnectionError):
            channel.receive()

    def test_close_is_idempotent(self, stub_manager):
        channel = Channel.connect(stub_manager.host, stub_manager.port)
        channel.close()
        channel.close()

        assert not channel.is_open

    def test_context_manager_closes_on_error(self, stub_manager):
        with pytest.raises(RuntimeError):
            with Channel.connect(stub_manager.host, stub_manager.port) as channel:
                assert channel.is_open
                raise RuntimeError("caller failure")

        assert not channel.is_open
        assert stub_manager.wait()

    def test_from_config(self, stub_manager):
        config = ChannelConfig(host=stub_manager.host, port=stub_manager.port, read_timeout=5.0)

        with Channel.from_config(config) as channel:
            assert channel.read_timeout == 5.0
            assert channel.endpoint == f"{stub_manager.host}:{stub_manager.port}"


class TestTraffic:

    def test_send_writes_one_frame(self, stub_manager):
        message = build_request("request1", [4, 2])

        with Channel.connect(stub_manager.host, stub_manager.port) as channel:
            written = channel.send(message)
            reply = channel.receive()

        assert written == 4 + len(codec.encode(message))
        assert stub_manager.raw_frames == [codec.encode(message)]
        assert reply == TaskMessage(type=MsgType.ACCGRANT, acc_id="request1")

    def test_exchange_sequence(self, stub_manager):
        descriptor = add_data_block(build_data_descriptor("request3"), 1, 8, 512, 0, "/p1")

        with Channel.connect(stub_manager.host, stub_manager.port) as channel:
            first = channel.exchange(build_request(3, [1]))
            second = channel.exchange(descriptor)

        assert first.type == MsgType.ACCGRANT
        assert second.acc_id == "request3"
        assert stub_manager.received == [build_request(3, [1]), descriptor]

    def test_short_reads_are_reassembled(self):
        reply = add_data_block(build_data_descriptor("r"), 9, 4, 40, 8, "/slow")
        frame = pack_frame(codec.encode(reply))

        def trickle(conn):
            for i in range(len(frame)):
                conn.sendall(frame[i:i + 1])
                time.sleep(0.001)

        port, thread = serve_once(trickle)
        with Channel.connect("127.0.0.1", port) as channel:
            assert channel.receive() == reply
        thread.join(5)

    def test_empty_reply_payload_is_decode_error(self):
        port, thread = serve_once(lambda conn: conn.sendall(pack_frame(b"")))

        with Channel.connect("127.0.0.1", port) as channel:
            with pytest.raises(MessageDecodeError):
                channel.receive()
        thread.join(5)

    def test_decode_error_keeps_stream_aligned(self):
        good = TaskMessage(type=MsgType.ACCFINISH, acc_id="after")

        def send_bad_then_good(conn):
            conn.sendall(pack_frame(b"\x08") + pack_frame(codec.encode(good)))

        port, thread = serve_once(send_bad_then_good)
        with Channel.connect("127.0.0.1", port) as channel:
            with pytest.raises(MessageDecodeError):
                channel.receive()
            assert channel.receive() == good
        thread.join(5)


class TestFailures:

    def test_truncated_payload(self):
        payload = codec.encode(build_request("request42", [5, 7]))

        def truncate(conn):
            conn.sendall(LENGTH_PREFIX.pack(len(payload)) + payload[:3])

        port, thread = serve_once(truncate)
        with Channel.connect("127.0.0.1", port) as channel:
            with pytest.raises(ChannelIOError) as exc_info:
                channel.receive()

        assert exc_info.value.context['expected'] == len(payload)
        assert exc_info.value.context['received'] == 3
        thread.join(5)

    def test_truncated_prefix(self):
        port, thread = serve_once(lambda conn: conn.sendall(b"\x05\x00"))

        with Channel.connect("127.0.0.1", port) as channel:
            with pytest.raises(ChannelIOError):
                channel.receive()
        thread.join(5)

    def test_peer_closed_between_frames(self):
        port, thread = serve_once(lambda conn: None)

        with Channel.connect("127.0.0.1", port) as channel:
            with pytest.raises(ChannelConnectionError):
                channel.receive()
            # Stream position is gone; the channel refuses further use
            with pytest.raises(ChannelStateError):
                channel.send(build_request("s", [1]))
        thread.join(5)

    def test_read_timeout(self):
        release = threading.Event()
        port, thread = serve_once(lambda conn: release.wait(5))

        try:
            with Channel.connect("127.0.0.1", port, read_timeout=0.1) as channel:
                with pytest.raises(ChannelIOError):
                    channel.receive()
                assert not channel.is_open
        finally:
            release.set()
            thread.join(5)

    def test_max_frame_size(self):
        port, thread = serve_once(lambda conn: conn.sendall(LENGTH_PREFIX.pack(1 << 20)))

        with Channel.connect("127.0.0.1", port, max_frame_size=1024) as channel:
            with pytest.raises(ChannelIOError) as exc_info:
                channel.receive()
            assert not channel.is_open

        assert exc_info.value.context['frame_size'] == 1 << 20
        thread.join(5)

    def test_send_failure_marks_channel_broken(self):
        channel = Channel()
        channel._opened = True
        channel._sock = MagicMock()
        channel._sock.sendall.side_effect = BrokenPipeError("peer gone")

        with pytest.raises(ChannelIOError) as exc_info:
            channel.send(build_request("s", [1]))

        assert isinstance(exc_info.value.__cause__, BrokenPipeError)
        with pytest.raises(ChannelStateError):
            channel.receive()

    def test_encode_failure_leaves_channel_usable(self, stub_manager):
        with Channel.connect(stub_manager.host, stub_manager.port) as channel:
            with pytest.raises(ValueError):
                channel.send(build_request("s", [2 ** 40]))

            assert channel.is_open
            assert channel.exchange(build_request("s", [1])).type == MsgType.ACCGRANT

    def test_peer_receives_nothing_after_encode_failure(self):
        received = []

        def record(conn):
            received.append(_recv_frame(conn))
            conn.sendall(pack_frame(codec.encode(TaskMessage(type=MsgType.ACCGRANT))))

        port, thread = serve_once(record)
        with Channel.connect("127.0.0.1", port) as channel:
            with pytest.raises(ValueError):
                channel.send(build_request("s", [2 ** 40]))
            channel.exchange(build_request("s", [1]))
        thread.join(5)

        assert received == [codec.encode(build_request("s", [1]))]
