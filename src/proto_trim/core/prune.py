"""Decide which files survive a run and rebuild their descriptors."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from google.protobuf import descriptor_pb2

from proto_trim.core.context import TrimContext
from proto_trim.core.graph import FileNode, SchemaGraph, qualify

logger = logging.getLogger(__name__)

_FileProto = descriptor_pb2.FileDescriptorProto

# Top-level location path heads that always survive.
_KEPT_HEADS = frozenset(
    {
        _FileProto.PACKAGE_FIELD_NUMBER,
        _FileProto.OPTIONS_FIELD_NUMBER,
        _FileProto.SYNTAX_FIELD_NUMBER,
        _FileProto.EDITION_FIELD_NUMBER,
    }
)
_METHOD_FIELD = descriptor_pb2.ServiceDescriptorProto.METHOD_FIELD_NUMBER
_NESTED_TYPE_FIELD = descriptor_pb2.DescriptorProto.NESTED_TYPE_FIELD_NUMBER
_NESTED_EXTENSION_FIELD = descriptor_pb2.DescriptorProto.EXTENSION_FIELD_NUMBER


def select_required_files(context: TrimContext, files: Sequence[FileNode]) -> dict[str, FileNode]:
    """Retain every file owning a required type or an entry method's service."""
    method_files = {method.file for method in context.entry_methods}
    for node in files:
        if (
            node.name in method_files
            or any(record.full_name in context.required_records for record in node.records)
            or any(enum.full_name in context.required_enums for enum in node.enums)
        ):
            context.retained_files[node.name] = node
    logger.info("Found %d files containing required definitions", len(context.retained_files))
    return context.retained_files


@dataclass
class IndexMap:
    """Old to new element indices recorded while filtering one file."""

    dependencies: dict[int, int] = field(default_factory=dict)
    messages: dict[int, int] = field(default_factory=dict)
    enums: dict[int, int] = field(default_factory=dict)
    services: dict[int, int] = field(default_factory=dict)
    methods: dict[int, dict[int, int]] = field(default_factory=dict)

    def remap(self, path: Sequence[int]) -> list[int] | None:
        """Rewrite a location path, or ``None`` when its element was dropped."""
        if not path:
            return []
        head = path[0]
        if head in _KEPT_HEADS:
            return list(path)

        table = {
            _FileProto.DEPENDENCY_FIELD_NUMBER: self.dependencies,
            _FileProto.MESSAGE_TYPE_FIELD_NUMBER: self.messages,
            _FileProto.ENUM_TYPE_FIELD_NUMBER: self.enums,
            _FileProto.SERVICE_FIELD_NUMBER: self.services,
        }.get(head)
        if table is None or len(path) < 2 or path[1] not in table:
            return None

        new_path = list(path)
        new_path[1] = table[path[1]]
        if head == _FileProto.MESSAGE_TYPE_FIELD_NUMBER and _in_nested_extension(path[2:]):
            return None
        if head == _FileProto.SERVICE_FIELD_NUMBER and len(path) >= 4 and path[2] == _METHOD_FIELD:
            method_index = self.methods.get(path[1], {}).get(path[3])
            if method_index is None:
                return None
            new_path[3] = method_index
        return new_path


def prune_file(
    context: TrimContext, node: FileNode, graph: SchemaGraph | None = None
) -> descriptor_pb2.FileDescriptorProto:
    """Build the trimmed copy of ``node`` from the finished context.

    Passing ``graph`` lets imports of dropped files that publicly re-export
    retained ones be replaced by direct imports of those files.
    """
    original = node.proto
    pruned = descriptor_pb2.FileDescriptorProto(name=original.name)
    if original.HasField("package"):
        pruned.package = original.package
    if original.HasField("syntax"):
        pruned.syntax = original.syntax
    if original.HasField("edition"):
        pruned.edition = original.edition
    if original.HasField("options"):
        pruned.options.CopyFrom(original.options)

    index_map = IndexMap()
    _filter_dependencies(context, original, pruned, index_map, graph)

    for index, message in enumerate(original.message_type):
        if qualify(original.package, message.name) in context.required_records:
            index_map.messages[index] = len(pruned.message_type)
            pruned.message_type.add().CopyFrom(message)
            _strip_extensions(pruned.message_type[-1])

    for index, enum in enumerate(original.enum_type):
        if qualify(original.package, enum.name) in context.required_enums:
            index_map.enums[index] = len(pruned.enum_type)
            pruned.enum_type.add().CopyFrom(enum)

    grouped = context.methods_by_service(node.name)
    for service in node.services:
        methods = grouped.get(service.full_name)
        if not methods:
            continue
        index_map.services[service.index] = len(pruned.service)
        new_service = pruned.service.add(name=service.name)
        if service.proto.HasField("options"):
            new_service.options.CopyFrom(service.proto.options)
        method_map = index_map.methods.setdefault(service.index, {})
        for method in methods:
            method_map[method.index] = len(new_service.method)
            new_service.method.add().CopyFrom(method.proto)

    if original.HasField("source_code_info"):
        reindex_source_info(original.source_code_info, pruned.source_code_info, index_map)

    logger.debug(
        "Trimmed %s to %d messages, %d enums, %d services",
        node.name,
        len(pruned.message_type),
        len(pruned.enum_type),
        len(pruned.service),
    )
    return pruned


def _public_reexports(name: str, graph: SchemaGraph) -> list[str]:
    """Files made visible through ``import public`` chains starting at ``name``."""
    found: list[str] = []
    stack = [name]
    seen = {name}
    while stack:
        node = graph.files.get(stack.pop())
        if node is None:
            continue
        for index in node.proto.public_dependency:
            target = node.proto.dependency[index]
            if target not in seen:
                seen.add(target)
                found.append(target)
                stack.append(target)
    return found


def _filter_dependencies(
    context: TrimContext,
    original: descriptor_pb2.FileDescriptorProto,
    pruned: descriptor_pb2.FileDescriptorProto,
    index_map: IndexMap,
    graph: SchemaGraph | None,
) -> None:
    for index, dependency in enumerate(original.dependency):
        if dependency in context.retained_files:
            index_map.dependencies[index] = len(pruned.dependency)
            pruned.dependency.append(dependency)
    for index in original.public_dependency:
        if index in index_map.dependencies:
            pruned.public_dependency.append(index_map.dependencies[index])
    for index in original.weak_dependency:
        if index in index_map.dependencies:
            pruned.weak_dependency.append(index_map.dependencies[index])
    if graph is None:
        return
    # a dropped file may still re-export retained ones through "import public"
    for index, dependency in enumerate(original.dependency):
        if index in index_map.dependencies:
            continue
        for target in _public_reexports(dependency, graph):
            if target in context.retained_files and target not in pruned.dependency:
                pruned.dependency.append(target)


def reindex_source_info(
    original: descriptor_pb2.SourceCodeInfo,
    target: descriptor_pb2.SourceCodeInfo,
    index_map: IndexMap,
) -> None:
    for location in original.location:
        new_path = index_map.remap(location.path)
        if new_path is None:
            continue
        copied = target.location.add()
        copied.CopyFrom(location)
        del copied.path[:]
        copied.path.extend(new_path)


def _strip_extensions(message: descriptor_pb2.DescriptorProto) -> None:
    """Drop ``extend`` blocks declared inside ``message`` and its nested types."""
    del message.extension[:]
    for nested in message.nested_type:
        _strip_extensions(nested)


def _in_nested_extension(path: Sequence[int]) -> bool:
    """Whether a path below a message points into a nested ``extend`` block."""
    while path:
        if path[0] == _NESTED_EXTENSION_FIELD:
            return True
        if path[0] != _NESTED_TYPE_FIELD or len(path) < 2:
            return False
        path = path[2:]
    return False
