from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from proto_trim.cli.trim import ImportPaths, _get_accessor, resolve_inputs
from proto_trim.core.trim import list_methods
from proto_trim.errors import TrimError

console = Console()


def _stream(name: str, streaming: bool) -> str:
    return f"stream {name}" if streaming else name


def methods(
    entries: Annotated[list[str], typer.Argument(help="Entry .proto files to list methods of.")],
    import_paths: ImportPaths = None,
) -> None:
    """List the RPC methods declared in the entry files."""
    try:
        roots, entry_files, contents = resolve_inputs(entries, import_paths)
        found = list_methods(_get_accessor(), entry_files, contents, roots)
    except (TrimError, FileNotFoundError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc

    table = Table(show_lines=False)
    for header in ("method", "input", "output"):
        table.add_column(header)
    for method in found:
        table.add_row(
            method.full_name,
            _stream(method.input_type, method.client_streaming),
            _stream(method.output_type, method.server_streaming),
        )
    console.print(table)
    console.print(f"({len(found)} methods)")
