"""
asyncio channel to the accelerator manager.

Same framing, lifecycle and error contract as Channel, for workers that run
an event loop. Not safe for concurrent use from several tasks without an
external lock.
"""

import asyncio
import functools
import logging
from typing import Optional

from ..core.exceptions import (
    ChannelConnectionError,
    ChannelIOError,
    ChannelStateError,
)
from ..core.types import TaskMessage
from ..protocol import codec
from .framing import PREFIX_SIZE, pack_frame, read_frame_async

logger = logging.getLogger(__name__)


class AsyncChannel:
    """Length-prefixed TaskMessage channel over asyncio streams."""

    def __init__(
        self,
        connect_timeout: Optional[float] = None,
        max_frame_size: Optional[int] = None,
    ):
        self.connect_timeout = connect_timeout
        self.max_frame_size = max_frame_size

        self.hostname: Optional[str] = None
        self.port: Optional[int] = None
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._opened = False
        self._broken = False

    @property
    def is_open(self) -> bool:
        return self._writer is not None and not self._broken

    @property
    def endpoint(self) -> str:
        return f"{self.hostname}:{self.port}"

    async def open(self, hostname: str, port: int) -> 'AsyncChannel':
        """Connect to the manager. May be called once per AsyncChannel."""
        if self._opened:
            raise ChannelStateError(
                "Channel already opened; create a new AsyncChannel for another connection",
                context={'endpoint': self.endpoint},
            )
        self._opened = True
        self.hostname = hostname
        self.port = port

        try:
            self._reader, self._writer = await asyncio.wait_for(
                asyncio.open_connection(hostname, port),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Timed out connecting to accelerator manager at {self.endpoint}")
            raise ChannelConnectionError(
                "Timed out connecting to accelerator manager",
                context={'endpoint': self.endpoint, 'timeout': self.connect_timeout},
            ) from e
        except OSError as e:
            logger.error(f"Failed to connect to accelerator manager at {self.endpoint}: {e}")
            raise ChannelConnectionError(
                f"Cannot connect to accelerator manager: {e}",
                context={'endpoint': self.endpoint},
            ) from e

        logger.info(f"Connected to accelerator manager at {self.endpoint}")
        return self

    async def close(self) -> None:
        """Release the stream. Safe to call more than once."""
        if self._writer is None:
            return
        writer, self._writer, self._reader = self._writer, None, None
        try:
            if not writer.is_closing():
                writer.close()
            await writer.wait_closed()
        except OSError as e:
            # Peer already reset the connection; the stream is released either way
            logger.debug(f"Error closing channel to {self.endpoint}: {e}")
        logger.info(f"Closed channel to {self.endpoint}")

    async def __aenter__(self) -> 'AsyncChannel':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def send(self, message: TaskMessage) -> int:
        """Write one frame carrying message. Returns the number of bytes written."""
        self._require_stream()
        frame = pack_frame(codec.encode(message))

        try:
            self._writer.write(frame)
            await self._writer.drain()
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

    async def receive(self) -> TaskMessage:
        """Wait for one full frame and return its message."""
        self._require_stream()

        try:
            payload = await read_frame_async(
                self._read_exactly,
                self.max_frame_size,
                read_prefix=functools.partial(self._read_exactly, at_boundary=True),
            )
        except ChannelIOError:
            self._broken = True
            raise

        message = codec.decode(payload)
        logger.debug(
            f"Received {message.type.name} acc_id={message.acc_id!r} "
            f"blocks={len(message.data)} ({PREFIX_SIZE + len(payload)} bytes)"
        )
        return message

    async def exchange(self, message: TaskMessage) -> TaskMessage:
        """Send message and wait for the manager's reply."""
        await self.send(message)
        return await self.receive()

    def _require_stream(self) -> None:
        if self._broken:
            raise ChannelStateError(
                "Channel is unusable after a failed transfer; open a new AsyncChannel",
                context={'endpoint': self.endpoint},
            )
        if self._writer is None:
            state = "closed" if self._opened else "not open"
            raise ChannelConnectionError(f"Channel is {state}")

    async def _read_exactly(self, n: int, at_boundary: bool = False) -> bytes:
        try:
            return await self._reader.readexactly(n)
        except asyncio.IncompleteReadError as e:
            self._broken = True
            if at_boundary and not e.partial:
                logger.info(f"Accelerator manager at {self.endpoint} closed the connection")
                raise ChannelConnectionError(
                    "Connection closed by accelerator manager",
                    context={'endpoint': self.endpoint},
                ) from e
            logger.error(f"Stream from {self.endpoint} ended mid-frame ({len(e.partial)}/{n} bytes)")
            raise ChannelIOError(
                "End of stream before full frame",
                context={'endpoint': self.endpoint, 'expected': n, 'received': len(e.partial)},
            ) from e
        except OSError as e:
            self._broken = True
            logger.error(f"Receive from {self.endpoint} failed: {e}")
            raise ChannelIOError(
                f"Failed to receive frame: {e}",
                context={'endpoint': self.endpoint, 'expected': n},
            ) from e
