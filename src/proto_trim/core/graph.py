"""In-memory descriptor graph built from ``protoc`` output.

The nodes are plain dataclasses wrapping the ``descriptor_pb2`` messages they
were read from. Names are fully qualified without the leading dot that
``protoc`` puts on type references.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Literal

from google.protobuf import descriptor_pb2

FieldKind = Literal["scalar", "message", "enum"]

_MESSAGE_TYPES = frozenset(
    {
        descriptor_pb2.FieldDescriptorProto.TYPE_MESSAGE,
        descriptor_pb2.FieldDescriptorProto.TYPE_GROUP,
    }
)


def qualify(scope: str, name: str) -> str:
    return f"{scope}.{name}" if scope else name


def strip_leading_dot(type_name: str) -> str:
    return type_name[1:] if type_name.startswith(".") else type_name


@dataclass(frozen=True)
class Field:
    name: str
    kind: FieldKind
    type_name: str | None = None


@dataclass
class EnumType:
    full_name: str
    name: str
    file: str
    parent: str | None
    proto: descriptor_pb2.EnumDescriptorProto


@dataclass
class RecordType:
    full_name: str
    name: str
    file: str
    parent: str | None
    proto: descriptor_pb2.DescriptorProto
    fields: list[Field] = field(default_factory=list)
    nested_records: list[str] = field(default_factory=list)
    nested_enums: list[str] = field(default_factory=list)


@dataclass
class MethodType:
    name: str
    full_name: str
    service: str
    file: str
    index: int
    input_type: str
    output_type: str
    proto: descriptor_pb2.MethodDescriptorProto
    client_streaming: bool = False
    server_streaming: bool = False


@dataclass
class ServiceType:
    name: str
    full_name: str
    file: str
    index: int
    proto: descriptor_pb2.ServiceDescriptorProto
    methods: list[MethodType] = field(default_factory=list)

    def find_method(self, name: str) -> MethodType | None:
        for method in self.methods:
            if method.name == name:
                return method
        return None


@dataclass
class FileNode:
    name: str
    package: str
    syntax: str
    proto: descriptor_pb2.FileDescriptorProto
    imports: list[str] = field(default_factory=list)
    records: list[RecordType] = field(default_factory=list)
    enums: list[EnumType] = field(default_factory=list)
    services: list[ServiceType] = field(default_factory=list)


Symbol = RecordType | EnumType | ServiceType | MethodType


@dataclass
class SchemaGraph:
    files: dict[str, FileNode] = field(default_factory=dict)
    records: dict[str, RecordType] = field(default_factory=dict)
    enums: dict[str, EnumType] = field(default_factory=dict)
    services: dict[str, ServiceType] = field(default_factory=dict)
    methods: dict[str, MethodType] = field(default_factory=dict)

    @classmethod
    def from_file_protos(cls, protos: Iterable[descriptor_pb2.FileDescriptorProto]) -> SchemaGraph:
        graph = cls()
        for proto in protos:
            graph.add_file(proto)
        return graph

    def add_file(self, proto: descriptor_pb2.FileDescriptorProto) -> FileNode:
        """Register a file and every symbol it declares.

        A file name seen twice keeps its first registration.
        """
        if proto.name in self.files:
            return self.files[proto.name]

        node = FileNode(
            name=proto.name,
            package=proto.package,
            syntax=proto.syntax or "proto2",
            proto=proto,
            imports=list(proto.dependency),
        )
        for message in proto.message_type:
            node.records.append(self._add_record(message, proto.name, proto.package, None))
        for enum in proto.enum_type:
            node.enums.append(self._add_enum(enum, proto.name, proto.package, None))
        for index, service in enumerate(proto.service):
            node.services.append(self._add_service(service, proto.name, proto.package, index))

        self.files[proto.name] = node
        return node

    def _add_record(
        self,
        proto: descriptor_pb2.DescriptorProto,
        file_name: str,
        scope: str,
        parent: str | None,
    ) -> RecordType:
        full_name = qualify(scope, proto.name)
        record = RecordType(full_name=full_name, name=proto.name, file=file_name, parent=parent, proto=proto)
        for field_proto in proto.field:
            record.fields.append(_to_field(field_proto))
        for nested in proto.nested_type:
            record.nested_records.append(self._add_record(nested, file_name, full_name, full_name).full_name)
        for nested_enum in proto.enum_type:
            record.nested_enums.append(self._add_enum(nested_enum, file_name, full_name, full_name).full_name)
        self.records[full_name] = record
        return record

    def _add_enum(
        self,
        proto: descriptor_pb2.EnumDescriptorProto,
        file_name: str,
        scope: str,
        parent: str | None,
    ) -> EnumType:
        enum = EnumType(
            full_name=qualify(scope, proto.name), name=proto.name, file=file_name, parent=parent, proto=proto
        )
        self.enums[enum.full_name] = enum
        return enum

    def _add_service(
        self,
        proto: descriptor_pb2.ServiceDescriptorProto,
        file_name: str,
        package: str,
        index: int,
    ) -> ServiceType:
        service = ServiceType(
            name=proto.name,
            full_name=qualify(package, proto.name),
            file=file_name,
            index=index,
            proto=proto,
        )
        for method_index, method_proto in enumerate(proto.method):
            method = MethodType(
                name=method_proto.name,
                full_name=qualify(service.full_name, method_proto.name),
                service=service.full_name,
                file=file_name,
                index=method_index,
                input_type=strip_leading_dot(method_proto.input_type),
                output_type=strip_leading_dot(method_proto.output_type),
                proto=method_proto,
                client_streaming=method_proto.client_streaming,
                server_streaming=method_proto.server_streaming,
            )
            service.methods.append(method)
            self.methods[method.full_name] = method
        self.services[service.full_name] = service
        return service

    def find_symbol(self, name: str) -> Symbol | None:
        name = strip_leading_dot(name)
        for table in (self.methods, self.services, self.records, self.enums):
            symbol = table.get(name)
            if symbol is not None:
                return symbol
        return None

    def reachable_files(self, entry_names: Sequence[str]) -> list[FileNode]:
        """Entry files plus their transitive imports, in breadth-first order."""
        seen: set[str] = set()
        ordered: list[FileNode] = []
        queue = deque(entry_names)
        while queue:
            name = queue.popleft()
            if name in seen or name not in self.files:
                continue
            seen.add(name)
            node = self.files[name]
            ordered.append(node)
            queue.extend(node.imports)
        return ordered


def _to_field(proto: descriptor_pb2.FieldDescriptorProto) -> Field:
    if proto.type in _MESSAGE_TYPES:
        return Field(name=proto.name, kind="message", type_name=strip_leading_dot(proto.type_name))
    if proto.type == descriptor_pb2.FieldDescriptorProto.TYPE_ENUM:
        return Field(name=proto.name, kind="enum", type_name=strip_leading_dot(proto.type_name))
    return Field(name=proto.name, kind="scalar")
