"""
Protobuf schema for task messages.

The descriptor mirrors acc_message.proto and is registered in a private
descriptor pool, so no protoc step is needed and the generated classes never
clash with other users of the default pool.
"""

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

from ..core.types import MsgType

PROTO_PACKAGE = "acclink"
PROTO_FILE = "acclink/protocol/acc_message.proto"

_Field = descriptor_pb2.FieldDescriptorProto


def _build_file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    fdp = descriptor_pb2.FileDescriptorProto(
        name=PROTO_FILE,
        package=PROTO_PACKAGE,
        syntax="proto2",
    )

    enum = fdp.enum_type.add(name="MsgType")
    for member in MsgType:
        enum.value.add(name=member.name, number=int(member))

    data = fdp.message_type.add(name="Data")
    data.field.add(name="partition_id", number=1, type=_Field.TYPE_INT32, label=_Field.LABEL_REQUIRED)
    data.field.add(name="width", number=2, type=_Field.TYPE_INT32, label=_Field.LABEL_OPTIONAL)
    data.field.add(name="size", number=3, type=_Field.TYPE_INT32, label=_Field.LABEL_OPTIONAL)
    data.field.add(name="offset", number=4, type=_Field.TYPE_INT32, label=_Field.LABEL_OPTIONAL)
    data.field.add(name="path", number=5, type=_Field.TYPE_STRING, label=_Field.LABEL_OPTIONAL)

    task = fdp.message_type.add(name="TaskMsg")
    task.field.add(
        name="type", number=1, type=_Field.TYPE_ENUM,
        type_name=f".{PROTO_PACKAGE}.MsgType", label=_Field.LABEL_REQUIRED,
    )
    task.field.add(name="acc_id", number=2, type=_Field.TYPE_STRING, label=_Field.LABEL_OPTIONAL)
    task.field.add(
        name="data", number=3, type=_Field.TYPE_MESSAGE,
        type_name=f".{PROTO_PACKAGE}.Data", label=_Field.LABEL_REPEATED,
    )
    return fdp


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file_descriptor().SerializeToString())

DATA_DESCRIPTOR = _pool.FindMessageTypeByName(f"{PROTO_PACKAGE}.Data")
TASK_MSG_DESCRIPTOR = _pool.FindMessageTypeByName(f"{PROTO_PACKAGE}.TaskMsg")

# Generated message classes
DataProto = message_factory.GetMessageClass(DATA_DESCRIPTOR)
TaskMsgProto = message_factory.GetMessageClass(TASK_MSG_DESCRIPTOR)
