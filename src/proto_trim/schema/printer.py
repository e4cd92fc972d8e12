"""Render ``FileDescriptorProto`` messages as ``.proto`` source text.

Comments come from ``source_code_info``; when locations carry spans,
top-level and message-level declarations keep their source order.
Custom (extension) options are only rendered when the running protobuf
runtime knows the extension; others are dropped with a warning.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from google.protobuf import descriptor_pb2, text_encoding, text_format
from google.protobuf.descriptor import FieldDescriptor
from google.protobuf.unknown_fields import UnknownFieldSet

from proto_trim.core.graph import qualify, strip_leading_dot

logger = logging.getLogger(__name__)

_FDP = descriptor_pb2.FieldDescriptorProto
_FILE = descriptor_pb2.FileDescriptorProto
_MESSAGE = descriptor_pb2.DescriptorProto
_ENUM = descriptor_pb2.EnumDescriptorProto
_SERVICE = descriptor_pb2.ServiceDescriptorProto

_MAX_FIELD_NUMBER = 536870911

_SCALAR_NAMES = {
    _FDP.TYPE_DOUBLE: "double",
    _FDP.TYPE_FLOAT: "float",
    _FDP.TYPE_INT64: "int64",
    _FDP.TYPE_UINT64: "uint64",
    _FDP.TYPE_INT32: "int32",
    _FDP.TYPE_FIXED64: "fixed64",
    _FDP.TYPE_FIXED32: "fixed32",
    _FDP.TYPE_BOOL: "bool",
    _FDP.TYPE_STRING: "string",
    _FDP.TYPE_BYTES: "bytes",
    _FDP.TYPE_UINT32: "uint32",
    _FDP.TYPE_SFIXED32: "sfixed32",
    _FDP.TYPE_SFIXED64: "sfixed64",
    _FDP.TYPE_SINT32: "sint32",
    _FDP.TYPE_SINT64: "sint64",
}


def default_json_name(name: str) -> str:
    """The JSON name protoc derives from a field name."""
    result: list[str] = []
    upper_next = False
    for ch in name:
        if ch == "_":
            upper_next = True
        elif upper_next:
            result.append(ch.upper())
            upper_next = False
        else:
            result.append(ch)
    return "".join(result)


def quote(value: str) -> str:
    return '"' + text_encoding.CEscape(value, as_utf8=True) + '"'


def _is_repeated(value: Any) -> bool:
    return not isinstance(value, str | bytes) and hasattr(value, "__len__")


def _option_value(field: FieldDescriptor, value: Any) -> str:
    if field.type == FieldDescriptor.TYPE_ENUM:
        enum_value = field.enum_type.values_by_number.get(value)
        return enum_value.name if enum_value is not None else str(value)
    if field.type == FieldDescriptor.TYPE_STRING:
        return quote(value)
    if field.type == FieldDescriptor.TYPE_BYTES:
        return '"' + text_encoding.CEscape(value, as_utf8=False) + '"'
    if field.type == FieldDescriptor.TYPE_BOOL:
        return "true" if value else "false"
    if field.type in (FieldDescriptor.TYPE_MESSAGE, FieldDescriptor.TYPE_GROUP):
        return "{ " + text_format.MessageToString(value, as_one_line=True) + " }"
    return str(value)


def option_items(options: Any, skip: Sequence[str] = ()) -> list[tuple[int, str]]:
    """``(field number, "name = value")`` pairs for every set option."""
    unknown = sorted({item.field_number for item in UnknownFieldSet(options)})
    if unknown:
        logger.warning(
            "Dropping %s fields %s: custom options unknown to the protobuf runtime",
            options.DESCRIPTOR.name,
            ", ".join(str(number) for number in unknown),
        )
    items: list[tuple[int, str]] = []
    for field, value in options.ListFields():
        if field.name in skip or field.name == "uninterpreted_option":
            continue
        name = f"({field.full_name})" if field.is_extension else field.name
        values = list(value) if _is_repeated(value) else [value]
        for item in values:
            items.append((field.number, f"{name} = {_option_value(field, item)}"))
    return items


def _range_text(start: int, end: int) -> str:
    if end == _MAX_FIELD_NUMBER:
        return f"{start} to max"
    if start == end:
        return str(start)
    return f"{start} to {end}"


class ProtoPrinter:
    """Schema printer producing ``.proto`` text."""

    def __init__(self, indent: str = "  ") -> None:
        self._indent = indent

    def print_file(self, file: descriptor_pb2.FileDescriptorProto) -> str:
        return _FileWriter(file, self._indent).render()


class _FileWriter:
    def __init__(self, file: descriptor_pb2.FileDescriptorProto, indent: str) -> None:
        self._file = file
        self._indent = indent
        self._lines: list[str] = []
        self._scopes: list[tuple[str, frozenset[str]]] = []
        self._locations: dict[tuple[int, ...], descriptor_pb2.SourceCodeInfo.Location] = {}
        for location in file.source_code_info.location:
            self._locations.setdefault(tuple(location.path), location)

    # ------------------------------------------------------------------
    # Output helpers
    # ------------------------------------------------------------------

    def _line(self, text: str, depth: int = 0) -> None:
        self._lines.append(self._indent * depth + text if text else "")

    def _blank(self) -> None:
        if self._lines and self._lines[-1] != "":
            self._lines.append("")

    def _comment_block(self, text: str, depth: int) -> None:
        lines = text.split("\n")
        if lines and lines[-1] == "":
            lines.pop()
        for line in lines:
            self._line("//" + line.rstrip(), depth)

    def _leading(self, path: tuple[int, ...], depth: int) -> str | None:
        """Emit detached and leading comments of ``path``, return its trailing comment."""
        location = self._locations.get(path)
        if location is None:
            return None
        for detached in location.leading_detached_comments:
            self._comment_block(detached, depth)
            self._blank()
        if location.HasField("leading_comments"):
            self._comment_block(location.leading_comments, depth)
        return location.trailing_comments if location.HasField("trailing_comments") else None

    def _statement(self, path: tuple[int, ...], text: str, depth: int) -> None:
        trailing = self._leading(path, depth)
        if trailing is not None and "\n" not in trailing.rstrip("\n"):
            self._line(f"{text} //{trailing.rstrip()}", depth)
            return
        self._line(text, depth)
        if trailing is not None:
            self._comment_block(trailing, depth)

    def _open_block(self, path: tuple[int, ...], header: str, depth: int) -> None:
        trailing = self._leading(path, depth)
        self._line(header + " {", depth)
        if trailing is not None:
            self._comment_block(trailing, depth + 1)

    def _options(
        self, path: tuple[int, ...], options_field: int, options: Any, depth: int, skip: Sequence[str] = ()
    ) -> None:
        for number, item in option_items(options, skip):
            self._statement((*path, options_field, number), f"option {item};", depth)

    def _order(self, path: tuple[int, ...], fallback: tuple[int, ...]) -> tuple[Any, ...]:
        location = self._locations.get(path)
        if location is not None and location.span:
            return (0, location.span[0], location.span[1], *fallback)
        return (1, 0, 0, *fallback)

    # ------------------------------------------------------------------
    # Type references
    # ------------------------------------------------------------------

    def _ref(self, type_name: str) -> str:
        full = strip_leading_dot(type_name)
        package = self._file.package
        if package and not full.startswith(package + "."):
            return "." + full
        # shortest name relative to the innermost enclosing message that owns it
        shadowing: set[str] = set()
        for scope, names in reversed(self._scopes):
            if full.startswith(scope + "."):
                relative = full[len(scope) + 1 :]
                if relative.split(".", 1)[0] not in shadowing:
                    return relative
            shadowing |= names
        relative = full[len(package) + 1 :] if package else full
        return "." + full if relative.split(".", 1)[0] in shadowing else relative

    def _field_type(self, field: descriptor_pb2.FieldDescriptorProto) -> str:
        scalar = _SCALAR_NAMES.get(field.type)
        if scalar is not None:
            return scalar
        return self._ref(field.type_name)

    # ------------------------------------------------------------------
    # File
    # ------------------------------------------------------------------

    def render(self) -> str:
        file = self._file
        if file.syntax == "editions":
            edition = descriptor_pb2.Edition.Name(file.edition).removeprefix("EDITION_")
            self._statement((_FILE.EDITION_FIELD_NUMBER,), f'edition = "{edition}";', 0)
        else:
            self._statement((_FILE.SYNTAX_FIELD_NUMBER,), f'syntax = "{file.syntax or "proto2"}";', 0)

        if file.package:
            self._blank()
            self._statement((_FILE.PACKAGE_FIELD_NUMBER,), f"package {file.package};", 0)

        if file.dependency:
            self._blank()
            for index, dependency in enumerate(file.dependency):
                modifier = ""
                if index in file.public_dependency:
                    modifier = "public "
                elif index in file.weak_dependency:
                    modifier = "weak "
                self._statement((_FILE.DEPENDENCY_FIELD_NUMBER, index), f"import {modifier}{quote(dependency)};", 0)

        if file.HasField("options"):
            self._blank()
            self._options((), _FILE.OPTIONS_FIELD_NUMBER, file.options, 0)

        declarations: list[tuple[tuple[Any, ...], Callable[[], None]]] = []
        for index, message in enumerate(file.message_type):
            path = (_FILE.MESSAGE_TYPE_FIELD_NUMBER, index)
            declarations.append(
                (self._order(path, (0, index)), self._bind(self._message, message, path, file.package, 0))
            )
        for index, enum in enumerate(file.enum_type):
            path = (_FILE.ENUM_TYPE_FIELD_NUMBER, index)
            declarations.append((self._order(path, (1, index)), self._bind(self._enum, enum, path, 0)))
        for index, service in enumerate(file.service):
            path = (_FILE.SERVICE_FIELD_NUMBER, index)
            declarations.append((self._order(path, (2, index)), self._bind(self._service, service, path)))

        for _, render in sorted(declarations, key=lambda item: item[0]):
            self._blank()
            render()

        return "\n".join(self._lines).rstrip("\n") + "\n"

    @staticmethod
    def _bind(func: Callable[..., None], *args: Any) -> Callable[[], None]:
        return lambda: func(*args)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def _message(self, message: descriptor_pb2.DescriptorProto, path: tuple[int, ...], scope: str, depth: int) -> None:
        self._open_block(path, f"message {message.name}", depth)
        self._message_body(message, path, qualify(scope, message.name), depth + 1)
        self._line("}", depth)

    def _message_body(
        self, message: descriptor_pb2.DescriptorProto, path: tuple[int, ...], full_name: str, depth: int
    ) -> None:
        names = frozenset([*(n.name for n in message.nested_type), *(e.name for e in message.enum_type)])
        self._scopes.append((full_name, names))

        nested_by_name = {
            qualify(full_name, nested.name): (index, nested) for index, nested in enumerate(message.nested_type)
        }
        map_entries = {name for name, (_, nested) in nested_by_name.items() if nested.options.map_entry}
        group_types = {
            strip_leading_dot(field.type_name) for field in message.field if field.type == _FDP.TYPE_GROUP
        }

        self._options(path, _MESSAGE.OPTIONS_FIELD_NUMBER, message.options, depth, skip=("map_entry",))

        real_oneofs = {
            field.oneof_index
            for field in message.field
            if field.HasField("oneof_index") and not field.proto3_optional
        }

        elements: list[tuple[tuple[Any, ...], Callable[[], None]]] = []
        emitted_oneofs: set[int] = set()
        for index, field in enumerate(message.field):
            field_path = (*path, _MESSAGE.FIELD_FIELD_NUMBER, index)
            if field.HasField("oneof_index") and field.oneof_index in real_oneofs:
                if field.oneof_index in emitted_oneofs:
                    continue
                emitted_oneofs.add(field.oneof_index)
                elements.append(
                    (
                        self._order(field_path, (0, index)),
                        self._bind(self._oneof, message, path, field.oneof_index, nested_by_name, map_entries, depth),
                    )
                )
                continue
            elements.append(
                (
                    self._order(field_path, (0, index)),
                    self._bind(self._field, field, field_path, nested_by_name, map_entries, False, depth),
                )
            )

        for name, (index, nested) in nested_by_name.items():
            if name in map_entries or name in group_types:
                continue
            nested_path = (*path, _MESSAGE.NESTED_TYPE_FIELD_NUMBER, index)
            elements.append(
                (self._order(nested_path, (1, index)), self._bind(self._message, nested, nested_path, full_name, depth))
            )
        for index, enum in enumerate(message.enum_type):
            enum_path = (*path, _MESSAGE.ENUM_TYPE_FIELD_NUMBER, index)
            elements.append((self._order(enum_path, (2, index)), self._bind(self._enum, enum, enum_path, depth)))

        for _, render in sorted(elements, key=lambda item: item[0]):
            render()

        for index, extension_range in enumerate(message.extension_range):
            self._statement(
                (*path, _MESSAGE.EXTENSION_RANGE_FIELD_NUMBER, index),
                f"extensions {_range_text(extension_range.start, extension_range.end - 1)};",
                depth,
            )
        self._reserved(path, message.reserved_range, message.reserved_name, depth, exclusive_end=True)
        self._scopes.pop()

    def _reserved(self, path: tuple[int, ...], ranges: Any, names: Any, depth: int, exclusive_end: bool) -> None:
        if ranges:
            offset = 1 if exclusive_end else 0
            text = ", ".join(_range_text(r.start, r.end - offset) for r in ranges)
            self._line(f"reserved {text};", depth)
        if names:
            self._line(f"reserved {', '.join(quote(name) for name in names)};", depth)

    def _label(self, field: descriptor_pb2.FieldDescriptorProto, in_oneof: bool) -> str:
        if in_oneof:
            return ""
        if field.label == _FDP.LABEL_REPEATED:
            return "repeated"
        if field.proto3_optional:
            return "optional"
        if self._file.syntax in ("", "proto2"):
            return "required" if field.label == _FDP.LABEL_REQUIRED else "optional"
        return ""

    def _field_options(self, field: descriptor_pb2.FieldDescriptorProto) -> list[str]:
        items: list[str] = []
        if field.HasField("default_value"):
            if field.type == _FDP.TYPE_STRING:
                default = quote(field.default_value)
            elif field.type == _FDP.TYPE_BYTES:
                default = f'"{field.default_value}"'
            else:
                default = field.default_value
            items.append(f"default = {default}")
        if field.HasField("json_name") and field.json_name != default_json_name(field.name):
            items.append(f"json_name = {quote(field.json_name)}")
        items.extend(item for _, item in option_items(field.options))
        return items

    def _field(
        self,
        field: descriptor_pb2.FieldDescriptorProto,
        path: tuple[int, ...],
        nested_by_name: dict[str, tuple[int, descriptor_pb2.DescriptorProto]],
        map_entries: set[str],
        in_oneof: bool,
        depth: int,
    ) -> None:
        type_name = strip_leading_dot(field.type_name)
        options = self._field_options(field)
        suffix = f" [{', '.join(options)}]" if options else ""

        if field.type == _FDP.TYPE_GROUP and type_name in nested_by_name:
            index, group = nested_by_name[type_name]
            label = self._label(field, in_oneof)
            prefix = f"{label} " if label else ""
            self._open_block(path, f"{prefix}group {group.name} = {field.number}{suffix}", depth)
            group_path = (*path[:-2], _MESSAGE.NESTED_TYPE_FIELD_NUMBER, index)
            self._message_body(group, group_path, type_name, depth + 1)
            self._line("}", depth)
            return

        if type_name in map_entries:
            entry = nested_by_name[type_name][1]
            key, value = entry.field[0], entry.field[1]
            text = f"map<{self._field_type(key)}, {self._field_type(value)}> {field.name} = {field.number}"
        else:
            label = self._label(field, in_oneof)
            prefix = f"{label} " if label else ""
            text = f"{prefix}{self._field_type(field)} {field.name} = {field.number}"
        self._statement(path, f"{text}{suffix};", depth)

    def _oneof(
        self,
        message: descriptor_pb2.DescriptorProto,
        path: tuple[int, ...],
        oneof_index: int,
        nested_by_name: dict[str, tuple[int, descriptor_pb2.DescriptorProto]],
        map_entries: set[str],
        depth: int,
    ) -> None:
        oneof = message.oneof_decl[oneof_index]
        oneof_path = (*path, _MESSAGE.ONEOF_DECL_FIELD_NUMBER, oneof_index)
        self._open_block(oneof_path, f"oneof {oneof.name}", depth)
        self._options(oneof_path, descriptor_pb2.OneofDescriptorProto.OPTIONS_FIELD_NUMBER, oneof.options, depth + 1)
        for index, field in enumerate(message.field):
            if field.HasField("oneof_index") and field.oneof_index == oneof_index:
                field_path = (*path, _MESSAGE.FIELD_FIELD_NUMBER, index)
                self._field(field, field_path, nested_by_name, map_entries, True, depth + 1)
        self._line("}", depth)

    # ------------------------------------------------------------------
    # Enums and services
    # ------------------------------------------------------------------

    def _enum(self, enum: descriptor_pb2.EnumDescriptorProto, path: tuple[int, ...], depth: int) -> None:
        self._open_block(path, f"enum {enum.name}", depth)
        self._options(path, _ENUM.OPTIONS_FIELD_NUMBER, enum.options, depth + 1)
        for index, value in enumerate(enum.value):
            options = [item for _, item in option_items(value.options)]
            suffix = f" [{', '.join(options)}]" if options else ""
            value_path = (*path, _ENUM.VALUE_FIELD_NUMBER, index)
            self._statement(value_path, f"{value.name} = {value.number}{suffix};", depth + 1)
        self._reserved(path, enum.reserved_range, enum.reserved_name, depth + 1, exclusive_end=False)
        self._line("}", depth)

    def _service(self, service: descriptor_pb2.ServiceDescriptorProto, path: tuple[int, ...]) -> None:
        self._open_block(path, f"service {service.name}", 0)
        self._options(path, _SERVICE.OPTIONS_FIELD_NUMBER, service.options, 1)
        for index, method in enumerate(service.method):
            method_path = (*path, _SERVICE.METHOD_FIELD_NUMBER, index)
            request = ("stream " if method.client_streaming else "") + self._ref(method.input_type)
            response = ("stream " if method.server_streaming else "") + self._ref(method.output_type)
            header = f"rpc {method.name}({request}) returns ({response})"
            options = option_items(method.options)
            if not options:
                self._statement(method_path, f"{header};", 1)
                continue
            self._open_block(method_path, header, 1)
            for number, item in options:
                self._statement(
                    (*method_path, descriptor_pb2.MethodDescriptorProto.OPTIONS_FIELD_NUMBER, number),
                    f"option {item};",
                    2,
                )
            self._line("}", 1)
        self._line("}", 0)
