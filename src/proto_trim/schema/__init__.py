from proto_trim.schema.loader import load_protos, locate_entry, relative_to_roots
from proto_trim.schema.parser import ProtocSchemaAccessor, get_protoc_command
from proto_trim.schema.pool import dependency_order, rebuild_pool
from proto_trim.schema.printer import ProtoPrinter, default_json_name

__all__ = [
    "ProtoPrinter",
    "ProtocSchemaAccessor",
    "default_json_name",
    "dependency_order",
    "get_protoc_command",
    "load_protos",
    "locate_entry",
    "rebuild_pool",
    "relative_to_roots",
]
