"""
Message builders.

Pure functions: nothing here touches a channel, and no builder mutates the
message it is given. No range checks are applied to partition metadata;
negative sizes and offsets are passed through as-is.
"""

from typing import Iterable, Union

from ..core.types import DataBlock, MsgType, TaskMessage

REQUEST_ID_PREFIX = "request"


def session_acc_id(session_id: Union[str, int]) -> str:
    """Accelerator-session identifier for a worker session.

    Integer ids follow the worker's "request<id>" naming; strings are
    already identifiers and are used verbatim.
    """
    if isinstance(session_id, bool):
        raise TypeError("session_id must be a str or int")
    if isinstance(session_id, int):
        return f"{REQUEST_ID_PREFIX}{session_id}"
    return str(session_id)


def build_request(session_id: Union[str, int], partition_ids: Iterable[int]) -> TaskMessage:
    """Create an ACCREQUEST message naming the given partitions, in order."""
    blocks = tuple(DataBlock(partition_id=pid) for pid in partition_ids)
    return TaskMessage(
        type=MsgType.ACCREQUEST,
        acc_id=session_acc_id(session_id),
        data=blocks,
    )


def build_data_descriptor(acc_id: str = "") -> TaskMessage:
    """Create an empty ACCDATA message. Add blocks with add_data_block()."""
    return TaskMessage(type=MsgType.ACCDATA, acc_id=acc_id)


def add_data_block(
    message: TaskMessage,
    partition_id: int,
    width: int,
    size: int,
    offset: int,
    path: str,
) -> TaskMessage:
    """Return a copy of message with one fully described block appended.

    Duplicate partition ids are kept as separate blocks.
    """
    block = DataBlock(
        partition_id=partition_id,
        width=width,
        size=size,
        offset=offset,
        path=path,
        described=True,
    )
    return message.with_block(block)
