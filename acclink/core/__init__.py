"""
acclink/core: message types and the exception hierarchy.
"""

from .types import MsgType, DataBlock, TaskMessage
from .exceptions import (
    AccLinkException,
    TransportException,
    ChannelConnectionError,
    ChannelIOError,
    ChannelStateError,
    CodecException,
    MessageEncodeError,
    MessageDecodeError,
    ConfigurationError,
)

__all__ = [
    'MsgType',
    'DataBlock',
    'TaskMessage',
    'AccLinkException',
    'TransportException',
    'ChannelConnectionError',
    'ChannelIOError',
    'ChannelStateError',
    'CodecException',
    'MessageEncodeError',
    'MessageDecodeError',
    'ConfigurationError',
]
