"""
Task message protocol: builders and the protobuf codec.
"""

from .builder import build_request, build_data_descriptor, add_data_block, session_acc_id
from .codec import encode, decode, to_proto, from_proto

__all__ = [
    'build_request',
    'build_data_descriptor',
    'add_data_block',
    'session_acc_id',
    'encode',
    'decode',
    'to_proto',
    'from_proto',
]
