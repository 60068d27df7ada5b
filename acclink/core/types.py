"""
Message types exchanged with the accelerator manager.

TaskMessage and DataBlock are frozen values. Building a message never mutates
an existing one; see acclink.protocol.builder.
"""

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Tuple


class MsgType(IntEnum):
    """Task message kinds. Numbers are the wire values."""
    ACCREQUEST = 0
    ACCGRANT = 1
    ACCREJECT = 2
    ACCFINISH = 3
    ACCDATA = 4
    ACCFAILURE = 5

    @classmethod
    def is_reply(cls, msg_type: int) -> bool:
        """Check if message type is sent by the manager rather than the worker."""
        return msg_type in (cls.ACCGRANT, cls.ACCREJECT, cls.ACCFINISH, cls.ACCFAILURE)


@dataclass(frozen=True)
class DataBlock:
    """One data partition.

    Only partition_id is meaningful in a request; the other fields stay at
    their defaults and must not be read as real offsets.

    described marks a block whose width/size/offset/path were supplied. Such
    blocks put all five fields on the wire, zeros and empty path included.
    """
    partition_id: int
    width: int = 0
    size: int = 0   # bytes
    offset: int = 0  # bytes
    path: str = ""
    described: bool = False

    def __post_init__(self):
        # A block with any supplied metadata is a described block
        if not self.described and (self.width or self.size or self.offset or self.path):
            object.__setattr__(self, 'described', True)


@dataclass(frozen=True)
class TaskMessage:
    """Unit exchanged over a channel."""
    type: MsgType
    acc_id: str = ""
    data: Tuple[DataBlock, ...] = field(default_factory=tuple)

    def __post_init__(self):
        # Accept any iterable of blocks but always store a tuple
        if not isinstance(self.data, tuple):
            object.__setattr__(self, 'data', tuple(self.data))
        if not isinstance(self.type, MsgType):
            object.__setattr__(self, 'type', MsgType(self.type))

    def with_block(self, block: DataBlock) -> 'TaskMessage':
        """Return a copy with block appended after the existing ones."""
        return replace(self, data=self.data + (block,))

    @property
    def partition_ids(self) -> Tuple[int, ...]:
        return tuple(block.partition_id for block in self.data)
