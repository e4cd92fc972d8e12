from collections.abc import Mapping, Sequence
from typing import Protocol

from google.protobuf import descriptor_pb2

from proto_trim.core.graph import SchemaGraph


class SchemaAccessor(Protocol):
    def parse_files(self, entry_files: Sequence[str], contents: Mapping[str, str]) -> SchemaGraph: ...

    def rebuild_files(self, files: Sequence[descriptor_pb2.FileDescriptorProto]) -> None: ...


class SchemaPrinter(Protocol):
    def print_file(self, file: descriptor_pb2.FileDescriptorProto) -> str: ...
