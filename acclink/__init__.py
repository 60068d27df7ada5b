"""
acclink: control-and-data channel between a worker and an accelerator manager.

Typical use:

    from acclink import Channel, build_request

    with Channel.connect("127.0.0.1", 1027) as channel:
        channel.send(build_request(42, [5, 7]))
        reply = channel.receive()

Frames are a 4-byte native-order length followed by a protobuf TaskMsg.
"""

from .core import (
    MsgType,
    DataBlock,
    TaskMessage,
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
from .protocol import build_request, build_data_descriptor, add_data_block, encode, decode
from .transport import Channel, AsyncChannel
from .config import AccLinkConfig, ChannelConfig, LoggingConfig, get_config, set_config, load_config

__version__ = "0.1.0"

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
    'build_request',
    'build_data_descriptor',
    'add_data_block',
    'encode',
    'decode',
    'Channel',
    'AsyncChannel',
    'AccLinkConfig',
    'ChannelConfig',
    'LoggingConfig',
    'get_config',
    'set_config',
    'load_config',
]
