"""
Blocking channel to the accelerator manager.

One Channel owns one TCP stream to one manager endpoint. The lifecycle is
explicit: open() once, send()/receive() any number of times, close(). The
channel is also a context manager, which closes the stream on every exit
path.

Replies carry no correlation id; they are matched to requests purely by
order on the stream. A Channel is therefore not thread-safe: callers sharing
one must complete each send/receive pair before starting the next.

After a failed read or write the stream position is unknown. The channel is
marked broken and refuses further traffic; open a fresh Channel to recover.
"""

import functools
import logging
import socket
from typing import Optional

from ..core.exceptions import (
    ChannelConnectionError,
    ChannelIOError,
    ChannelStateError,
)
from ..core.types import TaskMessage
from ..protocol import codec
from .framing import PREFIX_SIZE, pack_frame, read_frame

logger = logging.getLogger(__name__)


class Channel:
    """Length-prefixed TaskMessage channel over a single TCP stream."""

    def __init__(
        self,
        connect_timeout: Optional[float] = None,
        read_timeout: Optional[float] = None,
        max_frame_size: Optional[int] = None,
    ):
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.max_frame_size = max_frame_size

        self.hostname: Optional[str] = None
        self.port: Optional[int] = None
        self._sock: Optional[socket.socket] = None
        self._opened = False
        self._broken = False

    @classmethod
    def connect(cls, hostname: str, port: int, **options) -> 'Channel':
        """Create a channel and open it."""
        channel = cls(**options)
        channel.open(hostname, port)
        return channel

    @classmethod
    def from_config(cls, config=None) -> 'Channel':
        """Create and open a channel from a ChannelConfig (global config if None)."""
        if config is None:
            from ..config import get_config
            config = get_config().channel
        return cls.connect(
            config.host,
            config.port,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            max_frame_size=config.max_frame_size,
        )

    @property
    def is_open(self) -> bool:
        return self._sock is not None and not self._broken

    @property
    def endpoint(self) -> str:
        return f"{self.hostname}:{self.port}"

    def open(self, hostname: str, port: int) -> 'Channel':
        """Connect to the manager. May be called once per Channel."""
        if self._opened:
            raise ChannelStateError(
                "Channel already opened; create a new Channel for another connection",
                context={'endpoint': self.endpoint},
            )
        self._opened = True
        self.hostname = hostname
        self.port = port

        try:
            sock = socket.create_connection((hostname, port), timeout=self.connect_timeout)
        except OSError as e:
            logger.error(f"Failed to connect to accelerator manager at {hostname}:{port}: {e}")
            raise ChannelConnectionError(
                f"Cannot connect to accelerator manager: {e}",
                context={'endpoint': self.endpoint},
            ) from e

        sock.settimeout(self.read_timeout)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        self._sock = sock
        logger.info(f"Connected to accelerator manager at {self.endpoint}")
        return self

    def close(self) -> None:
        """Release the stream. Safe to call more than once."""
        if self._sock is None:
            return
        sock, self._sock = self._sock, None
        try:
            sock.close()
        finally:
            logger.info(f"Closed channel to {self.endpoint}")

    def __enter__(self) -> 'Channel':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def send(self, message: TaskMessage) -> int:
        """Write one frame carrying message. Returns the number of bytes written."""
        sock = self._require_stream()
        frame = pack_frame(codec.encode(message))

        try:
            sock.sendall(frame)
        except OSError as e:
            self._broken = True
            logger.error(f"Send to {self.endpoint} failed: {e}")
            raise ChannelIOError(
                f"Failed to send frame: {e}",
                context={'endpoint': self.endpoint, 'frame_size': len(frame)},
            ) from e

        logger.debug(
            f"Sent {message.type.name} acc_id={message.acc_id!r} "
            f"blocks={len(message.data)} ({len(frame)} bytes)"
        )
        return len(frame)

    def receive(self) -> TaskMessage:
        """Block until one full frame arrives and return its message."""
        self._require_stream()

        try:
            payload = read_frame(
                self._recv_exact,
                self.max_frame_size,
                recv_prefix=functools.partial(self._recv_exact, at_boundary=True),
            )
        except ChannelIOError:
            self._broken = True
            raise

        # A bad payload was read in full, so the stream stays aligned
        message = codec.decode(payload)
        logger.debug(
            f"Received {message.type.name} acc_id={message.acc_id!r} "
            f"blocks={len(message.data)} ({PREFIX_SIZE + len(payload)} bytes)"
        )
        return message

    def exchange(self, message: TaskMessage) -> TaskMessage:
        """Send message and wait for the manager's reply."""
        self.send(message)
        return self.receive()

    def _require_stream(self) -> socket.socket:
        if self._broken:
            raise ChannelStateError(
                "Channel is unusable after a failed transfer; open a new Channel",
                context={'endpoint': self.endpoint},
            )
        if self._sock is None:
            state = "closed" if self._opened else "not open"
            raise ChannelConnectionError(f"Channel is {state}")
        return self._sock

    def _recv_exact(self, n: int, at_boundary: bool = False) -> bytes:
        """Read exactly n bytes, looping over short reads."""
        buf = bytearray()
        while len(buf) < n:
            try:
                chunk = self._sock.recv(n - len(buf))
            except OSError as e:
                self._broken = True
                logger.error(f"Receive from {self.endpoint} failed: {e}")
                raise ChannelIOError(
                    f"Failed to receive frame: {e}",
                    context={'endpoint': self.endpoint, 'expected': n, 'received': len(buf)},
                ) from e

            if not chunk:
                self._broken = True
                if at_boundary and not buf:
                    logger.info(f"Accelerator manager at {self.endpoint} closed the connection")
                    raise ChannelConnectionError(
                        "Connection closed by accelerator manager",
                        context={'endpoint': self.endpoint},
                    )
                logger.error(f"Stream from {self.endpoint} ended mid-frame ({len(buf)}/{n} bytes)")
                raise ChannelIOError(
                    "End of stream before full frame",
                    context={'endpoint': self.endpoint, 'expected': n, 'received': len(buf)},
                )
            buf += chunk
        return bytes(buf)
