"""FastMCP server exposing proto-trim tools."""

from __future__ import annotations

from typing import Any

from fastmcp import FastMCP

from proto_trim.core.ports.schema import SchemaAccessor, SchemaPrinter
from proto_trim.core.trim import list_methods as _list_methods
from proto_trim.core.trim import run_trim
from proto_trim.models import TrimRequest


def create_mcp_server(accessor: SchemaAccessor, printer: SchemaPrinter) -> FastMCP:
    """Create a FastMCP server wired to the given schema accessor and printer."""

    mcp = FastMCP(
        "proto-trim",
        instructions="Trim protobuf schema files down to the definitions needed by selected RPC methods.",
    )

    @mcp.tool()
    def trim(
        entry_files: list[str],
        contents: dict[str, str],
        methods: list[str] | None = None,
        import_paths: list[str] | None = None,
    ) -> dict[str, Any]:
        """Trim proto files to the given methods; with no methods, keep every method of the entry files."""
        request = TrimRequest(
            entry_files=entry_files,
            methods=methods or [],
            contents=contents,
            import_paths=import_paths or [],
        )
        return run_trim(accessor, printer, request).model_dump()

    @mcp.tool()
    def list_methods(
        entry_files: list[str],
        contents: dict[str, str],
        import_paths: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """List the RPC methods declared in the entry files."""
        found = _list_methods(accessor, entry_files, contents, import_paths or [])
        return [method.model_dump() for method in found]

    return mcp
