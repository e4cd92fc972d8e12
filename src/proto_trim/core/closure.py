from proto_trim.core.context import TrimContext
from proto_trim.core.graph import SchemaGraph
from proto_trim.errors import UnknownTypeReference


def collect_closure(context: TrimContext, graph: SchemaGraph) -> None:
    """Grow the required sets to every type reachable from the entry methods.

    A required record is kept whole, so its enclosing record, nested records
    and nested enums are required along with its field targets. Uses an
    explicit stack; a name enters its set once, which also ends cycles.
    """
    pending: list[tuple[str, str]] = []
    for method in context.entry_methods:
        pending.append((method.output_type, method.full_name))
        pending.append((method.input_type, method.full_name))

    while pending:
        name, referrer = pending.pop()
        if name in context.required_records:
            continue
        record = graph.records.get(name)
        if record is None:
            raise UnknownTypeReference(name, referrer)
        context.required_records.add(name)

        if record.parent is not None:
            pending.append((record.parent, name))
        for nested in record.nested_records:
            pending.append((nested, name))
        for nested_enum in record.nested_enums:
            context.required_enums.add(nested_enum)
        for field in record.fields:
            if field.type_name is None:
                continue
            if field.kind == "message":
                pending.append((field.type_name, name))
            else:
                _require_enum(context, graph, field.type_name, name, pending)


def _require_enum(
    context: TrimContext,
    graph: SchemaGraph,
    name: str,
    referrer: str,
    pending: list[tuple[str, str]],
) -> None:
    enum = graph.enums.get(name)
    if enum is None:
        raise UnknownTypeReference(name, referrer)
    context.required_enums.add(name)
    if enum.parent is not None:
        pending.append((enum.parent, name))
