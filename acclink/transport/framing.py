"""
Length-prefixed framing.

Protocol:
    [4 bytes: payload length, unsigned, host-native byte order]
    [N bytes: encoded TaskMessage]

The prefix uses the sending host's native byte order. Both ends are assumed
to share an architecture family; peers with a different byte order are not
supported and no negotiation is attempted.
"""

import struct
from typing import Awaitable, Callable, Optional

from ..core.exceptions import ChannelIOError, MessageEncodeError

# '=' selects native byte order with standard size and no padding
LENGTH_PREFIX = struct.Struct('=I')
PREFIX_SIZE = LENGTH_PREFIX.size
MAX_PAYLOAD_SIZE = 0xFFFFFFFF


def pack_frame(payload: bytes) -> bytes:
    """Prepend the length prefix to payload."""
    if len(payload) > MAX_PAYLOAD_SIZE:
        raise MessageEncodeError(
            "Payload too large for a 4-byte length prefix",
            context={'payload_size': len(payload)},
        )
    return LENGTH_PREFIX.pack(len(payload)) + payload


def unpack_length(prefix: bytes) -> int:
    """Interpret a 4-byte prefix as a payload length."""
    return LENGTH_PREFIX.unpack(prefix)[0]


def check_frame_size(length: int, max_frame_size: Optional[int]) -> int:
    """Return length, or raise ChannelIOError if it exceeds max_frame_size."""
    if max_frame_size is not None and length > max_frame_size:
        raise ChannelIOError(
            "Incoming frame exceeds the configured maximum",
            context={'frame_size': length, 'max_frame_size': max_frame_size},
        )
    return length


def read_frame(
    recv_exact: Callable[[int], bytes],
    max_frame_size: Optional[int] = None,
    recv_prefix: Optional[Callable[[int], bytes]] = None,
) -> bytes:
    """Read one frame and return its payload.

    recv_exact(n) must return exactly n bytes or raise. recv_prefix, when
    given, reads the length prefix instead; channels use it to tell a clean
    close between frames apart from a stream cut inside one.
    """
    recv_prefix = recv_prefix or recv_exact
    length = check_frame_size(unpack_length(recv_prefix(PREFIX_SIZE)), max_frame_size)
    if length == 0:
        return b""
    return recv_exact(length)


async def read_frame_async(
    read_exactly: Callable[[int], Awaitable[bytes]],
    max_frame_size: Optional[int] = None,
    read_prefix: Optional[Callable[[int], Awaitable[bytes]]] = None,
) -> bytes:
    """Coroutine form of read_frame."""
    read_prefix = read_prefix or read_exactly
    length = check_frame_size(unpack_length(await read_prefix(PREFIX_SIZE)), max_frame_size)
    if length == 0:
        return b""
    return await read_exactly(length)
