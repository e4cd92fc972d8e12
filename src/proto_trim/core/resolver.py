import logging
from collections.abc import Sequence

from proto_trim.core.context import TrimContext
from proto_trim.core.graph import FileNode, MethodType, SchemaGraph, strip_leading_dot
from proto_trim.errors import MethodNotFound

logger = logging.getLogger(__name__)


def resolve_methods(
    context: TrimContext,
    selectors: Sequence[str],
    entry_files: Sequence[FileNode],
    graph: SchemaGraph,
) -> list[MethodType]:
    """Turn selectors into entry methods and record them on ``context``.

    With no selectors every method declared by the entry files is taken
    (cleanup mode). Otherwise each selector is matched by how many dots it
    has: ``pkg.Service.Method`` anywhere in the reachable files,
    ``Service.Method`` in the entry files, or a bare substring of method
    names in the entry files.
    """
    if not selectors:
        for entry in entry_files:
            for service in entry.services:
                context.entry_methods.extend(service.methods)
        logger.info("Cleanup mode: keeping all %d methods of the entry files", len(context.entry_methods))
        return context.entry_methods

    reachable = {node.name for node in graph.reachable_files([entry.name for entry in entry_files])}
    for selector in selectors:
        found = _find_methods(selector, entry_files, graph, reachable)
        if not found:
            context.warnings.append(f"No methods matching '{selector}' in the entry files.")
        context.entry_methods.extend(found)
    return context.entry_methods


def _find_methods(
    selector: str,
    entry_files: Sequence[FileNode],
    graph: SchemaGraph,
    reachable: set[str],
) -> list[MethodType]:
    name = strip_leading_dot(selector)
    dot_count = name.count(".")

    if dot_count >= 2:
        method = graph.methods.get(name)
        if method is not None and method.file in reachable:
            return [method]
        raise MethodNotFound(selector)

    if dot_count == 1:
        service_name, method_name = name.split(".")
        for entry in entry_files:
            for service in entry.services:
                if service.name != service_name:
                    continue
                found = service.find_method(method_name)
                if found is not None:
                    return [found]
        raise MethodNotFound(selector)

    matches = [
        method
        for entry in entry_files
        for service in entry.services
        for method in service.methods
        if name in method.name
    ]
    if matches:
        logger.info("Found %d methods matching '%s'", len(matches), selector)
    else:
        logger.warning("No methods matching '%s' in the entry files", selector)
    return matches
