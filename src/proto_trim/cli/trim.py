from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from proto_trim.core.ports.schema import SchemaAccessor, SchemaPrinter
from proto_trim.core.trim import run_trim
from proto_trim.errors import TrimError
from proto_trim.models import TrimRequest
from proto_trim.schema import ProtocSchemaAccessor, ProtoPrinter, load_protos, locate_entry, relative_to_roots

console = Console()

ImportPaths = Annotated[
    list[str] | None,
    typer.Option("--import-path", "-I", help="Directory to search for .proto files. Repeatable."),
]


def _get_accessor() -> SchemaAccessor:
    return ProtocSchemaAccessor()


def _get_printer() -> SchemaPrinter:
    return ProtoPrinter()


def resolve_inputs(entries: list[str], import_paths: list[str] | None) -> tuple[list[str], list[str], dict[str, str]]:
    """Absolute import roots, absolute entry paths and the loaded corpus."""
    roots = [Path(path).resolve().as_posix() for path in (import_paths or ["."])]
    contents = load_protos(roots)
    entry_files = [locate_entry(entry, roots) for entry in entries]
    return roots, entry_files, contents


def trim(
    entries: Annotated[list[str], typer.Argument(help="Entry .proto files to start trimming from.")],
    import_paths: ImportPaths = None,
    methods: Annotated[
        list[str] | None,
        typer.Option(
            "--method",
            "-m",
            help="Method to keep: pkg.Service.Method, Service.Method or a name substring. "
            "Repeatable. Without any, all methods of the entry files are kept.",
        ),
    ] = None,
    output_dir: Annotated[Path, typer.Option("--output-dir", "-o", help="Directory for trimmed files.")] = Path("."),
) -> None:
    """Trim proto files to the given RPC methods and their dependencies."""
    try:
        roots, entry_files, contents = resolve_inputs(entries, import_paths)
        if not methods:
            console.print("No methods given; keeping every method of the entry files.")
        request = TrimRequest(entry_files=entry_files, methods=methods or [], contents=contents, import_paths=roots)
        result = run_trim(_get_accessor(), _get_printer(), request)
    except (TrimError, FileNotFoundError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc

    for warning in result.warnings:
        console.print(f"[yellow]Warning:[/yellow] {warning}")

    for path, content in sorted(result.files.items()):
        target = output_dir / relative_to_roots(path, roots)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        console.print(f"[green]Wrote[/green] {target}")
    console.print(f"Trimmed {len(result.files)} files for {len(result.methods)} methods.")
