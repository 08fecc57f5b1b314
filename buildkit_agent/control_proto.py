"""Protobuf message types for the subset of ``moby.buildkit.v1.Control`` the agent calls.

Field names and numbers mirror BuildKit's ``api/services/control/control.proto``
(plus ``BuildkitVersion`` from ``api/types/worker.proto`` and ``google.rpc.Status``).
Only the fields the agent reads are declared; protobuf skips the rest when
decoding, so responses from a full daemon parse unchanged.
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "moby.buildkit.v1"
SERVICE_PATH = f"/{PACKAGE}.Control"

_F = descriptor_pb2.FieldDescriptorProto

_MESSAGES: dict[str, list[tuple[str, int, int, int, str]]] = {
    # name: [(field, number, type, label, type_name)]
    "InfoRequest": [],
    "BuildkitVersion": [
        ("package", 1, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
        ("version", 2, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
        ("revision", 3, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
    ],
    "InfoResponse": [
        ("buildkitVersion", 1, _F.TYPE_MESSAGE, _F.LABEL_OPTIONAL, "BuildkitVersion"),
    ],
    "ListWorkersRequest": [
        ("filter", 1, _F.TYPE_STRING, _F.LABEL_REPEATED, ""),
    ],
    "WorkerRecord": [
        ("ID", 1, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
    ],
    "ListWorkersResponse": [
        ("record", 1, _F.TYPE_MESSAGE, _F.LABEL_REPEATED, "WorkerRecord"),
    ],
    "DiskUsageRequest": [
        ("filter", 1, _F.TYPE_STRING, _F.LABEL_REPEATED, ""),
        ("ageLimit", 2, _F.TYPE_INT64, _F.LABEL_OPTIONAL, ""),
    ],
    "UsageRecord": [
        ("ID", 1, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
        ("Mutable", 2, _F.TYPE_BOOL, _F.LABEL_OPTIONAL, ""),
        ("InUse", 3, _F.TYPE_BOOL, _F.LABEL_OPTIONAL, ""),
        ("Size", 4, _F.TYPE_INT64, _F.LABEL_OPTIONAL, ""),
        ("RecordType", 10, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
        ("Shared", 11, _F.TYPE_BOOL, _F.LABEL_OPTIONAL, ""),
    ],
    "DiskUsageResponse": [
        ("record", 1, _F.TYPE_MESSAGE, _F.LABEL_REPEATED, "UsageRecord"),
    ],
    "BuildHistoryRequest": [
        ("ActiveOnly", 1, _F.TYPE_BOOL, _F.LABEL_OPTIONAL, ""),
        ("Ref", 2, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
        ("EarlyExit", 3, _F.TYPE_BOOL, _F.LABEL_OPTIONAL, ""),
    ],
    "Status": [
        ("code", 1, _F.TYPE_INT32, _F.LABEL_OPTIONAL, ""),
        ("message", 2, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
    ],
    "BuildHistoryRecord": [
        ("Ref", 1, _F.TYPE_STRING, _F.LABEL_OPTIONAL, ""),
        ("error", 5, _F.TYPE_MESSAGE, _F.LABEL_OPTIONAL, "Status"),
        ("numCachedSteps", 15, _F.TYPE_INT32, _F.LABEL_OPTIONAL, ""),
        ("numTotalSteps", 16, _F.TYPE_INT32, _F.LABEL_OPTIONAL, ""),
    ],
    "BuildHistoryEvent": [
        ("type", 1, _F.TYPE_ENUM, _F.LABEL_OPTIONAL, "BuildHistoryEventType"),
        ("record", 2, _F.TYPE_MESSAGE, _F.LABEL_OPTIONAL, "BuildHistoryRecord"),
    ],
}

_ENUMS = {
    "BuildHistoryEventType": [("STARTED", 0), ("COMPLETE", 1), ("DELETED", 2)],
}


def _file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name="buildkit_agent/control.proto",
        package=PACKAGE,
        syntax="proto3",
    )
    for enum_name, values in _ENUMS.items():
        enum_proto = file_proto.enum_type.add(name=enum_name)
        for value_name, number in values:
            enum_proto.value.add(name=value_name, number=number)
    for message_name, fields in _MESSAGES.items():
        message_proto = file_proto.message_type.add(name=message_name)
        for name, number, field_type, label, type_name in fields:
            field_proto = message_proto.field.add(name=name, number=number, type=field_type, label=label)
            if type_name:
                field_proto.type_name = f".{PACKAGE}.{type_name}"
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.Add(_file_descriptor())


def _message_class(name: str):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.{name}"))


InfoRequest = _message_class("InfoRequest")
InfoResponse = _message_class("InfoResponse")
ListWorkersRequest = _message_class("ListWorkersRequest")
ListWorkersResponse = _message_class("ListWorkersResponse")
DiskUsageRequest = _message_class("DiskUsageRequest")
DiskUsageResponse = _message_class("DiskUsageResponse")
UsageRecord = _message_class("UsageRecord")
WorkerRecord = _message_class("WorkerRecord")
BuildkitVersion = _message_class("BuildkitVersion")
BuildHistoryRequest = _message_class("BuildHistoryRequest")
BuildHistoryEvent = _message_class("BuildHistoryEvent")
BuildHistoryRecord = _message_class("BuildHistoryRecord")
Status = _message_class("Status")
