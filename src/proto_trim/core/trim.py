import logging
from collections.abc import Mapping, Sequence

from google.protobuf import descriptor_pb2

from proto_trim.core.closure import collect_closure
from proto_trim.core.context import TrimContext
from proto_trim.core.graph import FileNode, SchemaGraph
from proto_trim.core.paths import PathCanonicalizer
from proto_trim.core.ports.schema import SchemaAccessor, SchemaPrinter
from proto_trim.core.prune import prune_file, select_required_files
from proto_trim.core.resolver import resolve_methods
from proto_trim.errors import NO_METHODS_RESOLVED, EntryFileNotFound, SerializationFailure
from proto_trim.models import MethodInfo, TrimRequest, TrimResult

logger = logging.getLogger(__name__)


def _load_graph(
    accessor: SchemaAccessor,
    entry_files: Sequence[str],
    contents: Mapping[str, str],
    import_paths: Sequence[str],
) -> tuple[PathCanonicalizer, SchemaGraph, list[FileNode]]:
    for identity in entry_files:
        if identity not in contents:
            raise EntryFileNotFound(identity)

    canonicalizer = PathCanonicalizer.from_identities([*contents, *entry_files], import_paths)
    canonical_contents = {canonicalizer.canonical(identity): text for identity, text in contents.items()}
    canonical_entries = [canonicalizer.canonical(identity) for identity in entry_files]
    logger.info("Parsing %d entry files from %d proto files", len(canonical_entries), len(canonical_contents))

    graph = accessor.parse_files(canonical_entries, canonical_contents)

    entries: list[FileNode] = []
    for identity, name in zip(entry_files, canonical_entries, strict=True):
        node = graph.files.get(name)
        if node is None:
            raise EntryFileNotFound(identity)
        entries.append(node)
    return canonicalizer, graph, entries


def _support_files(
    graph: SchemaGraph, context: TrimContext, corpus: set[str]
) -> list[descriptor_pb2.FileDescriptorProto]:
    """Unmodified descriptors of retained files the caller did not supply, with their imports."""
    outside = [name for name in context.retained_files if name not in corpus]
    return [node.proto for node in graph.reachable_files(outside) if node.name not in corpus]


def run_trim(accessor: SchemaAccessor, printer: SchemaPrinter, request: TrimRequest) -> TrimResult:
    """Trim the request's proto files down to what its methods need.

    Returns the printed files keyed by the caller's original paths. When
    selectors were given but none matched, the result is empty and carries
    a warning instead of failing.
    """
    canonicalizer, graph, entries = _load_graph(
        accessor, request.entry_files, request.contents, request.import_paths
    )

    context = TrimContext()
    resolve_methods(context, request.methods, entries, graph)
    if request.methods and not context.entry_methods:
        logger.warning(NO_METHODS_RESOLVED)
        return TrimResult(warnings=[*context.warnings, NO_METHODS_RESOLVED])

    collect_closure(context, graph)
    select_required_files(context, graph.reachable_files([entry.name for entry in entries]))

    corpus = {canonicalizer.canonical(identity) for identity in request.contents}
    pruned = [prune_file(context, node, graph) for node in context.retained_files.values() if node.name in corpus]
    accessor.rebuild_files([*_support_files(graph, context, corpus), *pruned])

    files: dict[str, str] = {}
    for proto in pruned:
        try:
            text = printer.print_file(proto)
        except (KeyError, ValueError) as exc:
            raise SerializationFailure(proto.name, str(exc)) from exc
        files[canonicalizer.original(proto.name)] = text

    return TrimResult(
        files=files,
        methods=[method.full_name for method in context.entry_methods],
        warnings=context.warnings,
    )


def list_methods(
    accessor: SchemaAccessor,
    entry_files: Sequence[str],
    contents: Mapping[str, str],
    import_paths: Sequence[str] = (),
) -> list[MethodInfo]:
    canonicalizer, _, entries = _load_graph(accessor, entry_files, contents, import_paths)
    return [
        MethodInfo(
            full_name=method.full_name,
            service=service.full_name,
            name=method.name,
            file=canonicalizer.original(entry.name),
            input_type=method.input_type,
            output_type=method.output_type,
            client_streaming=method.client_streaming,
            server_streaming=method.server_streaming,
        )
        for entry in entries
        for service in entry.services
        for method in service.methods
    ]
