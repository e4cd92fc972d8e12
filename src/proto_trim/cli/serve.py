import typer
from rich.console import Console

serve_app = typer.Typer(help="Start servers.")
console = Console()


@serve_app.command("mcp")
def mcp(
    transport: str = "stdio",
) -> None:
    """Start the MCP server."""
    from proto_trim.mcp.server import create_mcp_server
    from proto_trim.schema import ProtocSchemaAccessor, ProtoPrinter

    server = create_mcp_server(ProtocSchemaAccessor(), ProtoPrinter())
    console.print(f"[green]Starting MCP server (transport: {transport})[/green]")
    server.run(transport=transport)  # type: ignore[arg-type]
