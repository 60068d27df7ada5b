"""
TaskMessage <-> protobuf bytes.

A request block carries nothing but its partition_id. A described block
(see DataBlock.described) carries all five fields, so the proto2 presence
bits are set even for zero values. The decoder marks a block described when
any optional field is present, which makes encode/decode a lossless round
trip for any TaskMessage.
"""

import logging

from google.protobuf.message import DecodeError, EncodeError

from ..core.exceptions import MessageDecodeError, MessageEncodeError
from ..core.types import DataBlock, MsgType, TaskMessage
from .schema import TaskMsgProto

logger = logging.getLogger(__name__)

_OPTIONAL_BLOCK_FIELDS = ('width', 'size', 'offset', 'path')


def to_proto(message: TaskMessage) -> TaskMsgProto:
    """Build the protobuf form of a TaskMessage."""
    proto = TaskMsgProto()
    try:
        proto.type = int(message.type)
        if message.acc_id:
            proto.acc_id = message.acc_id
        for block in message.data:
            entry = proto.data.add()
            entry.partition_id = block.partition_id
            if block.described:
                for name in _OPTIONAL_BLOCK_FIELDS:
                    setattr(entry, name, getattr(block, name))
    except (TypeError, ValueError) as e:
        # protobuf rejects values outside int32 and non-str paths
        raise MessageEncodeError(
            f"Cannot encode task message: {e}",
            context={'acc_id': message.acc_id, 'blocks': len(message.data)},
        ) from e
    return proto


def _text(value, field_name: str, **context) -> str:
    # protobuf hands back invalid UTF-8 in string fields as raw bytes
    if isinstance(value, str):
        return value
    raise MessageDecodeError(
        f"Field {field_name} is not valid UTF-8",
        context={'field': field_name, 'value': bytes(value)[:32], **context},
    )


def from_proto(proto: TaskMsgProto) -> TaskMessage:
    """Build a TaskMessage from its protobuf form."""
    try:
        msg_type = MsgType(proto.type)
    except ValueError as e:
        raise MessageDecodeError(f"Unknown message type {proto.type}") from e

    acc_id = _text(proto.acc_id, 'acc_id')
    blocks = tuple(
        DataBlock(
            partition_id=entry.partition_id,
            width=entry.width,
            size=entry.size,
            offset=entry.offset,
            path=_text(entry.path, 'path', block=index),
            described=any(entry.HasField(name) for name in _OPTIONAL_BLOCK_FIELDS),
        )
        for index, entry in enumerate(proto.data)
    )
    return TaskMessage(type=msg_type, acc_id=acc_id, data=blocks)


def encode(message: TaskMessage) -> bytes:
    """Serialize a TaskMessage to its canonical byte encoding."""
    proto = to_proto(message)
    try:
        return proto.SerializeToString()
    except EncodeError as e:
        raise MessageEncodeError(f"Cannot encode task message: {e}") from e


def decode(payload: bytes) -> TaskMessage:
    """Parse bytes produced by encode() (or by the manager) into a TaskMessage."""
    proto = TaskMsgProto()
    try:
        proto.ParseFromString(bytes(payload))
    except DecodeError as e:
        logger.warning(f"Failed to parse {len(payload)}-byte task message: {e}")
        raise MessageDecodeError(
            f"Payload is not a task message: {e}",
            context={'payload_size': len(payload)},
        ) from e

    if not proto.IsInitialized():
        missing = ", ".join(proto.FindInitializationErrors())
        logger.warning(f"Task message is missing required fields: {missing}")
        raise MessageDecodeError(
            "Task message is missing required fields",
            context={'missing': missing},
        )

    return from_proto(proto)
