"""
Transport layer for acclink.

- Channel: blocking socket channel
- AsyncChannel: asyncio streams channel
Both speak the same length-prefixed framing (see framing.py).
"""

from .channel import Channel
from .async_channel import AsyncChannel
from .framing import pack_frame, unpack_length, read_frame, read_frame_async, PREFIX_SIZE

__all__ = [
    'Channel',
    'AsyncChannel',
    'pack_frame',
    'unpack_length',
    'read_frame',
    'read_frame_async',
    'PREFIX_SIZE',
]
