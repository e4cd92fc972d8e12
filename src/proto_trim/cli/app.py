import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from proto_trim.cli.methods import methods
from proto_trim.cli.serve import serve_app
from proto_trim.cli.trim import trim

app = typer.Typer(
    name="proto-trim",
    help="proto-trim: keep only the protobuf definitions your RPC methods need.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@app.callback()
def configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log resolution and trimming details.")] = False,
) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


app.command("trim")(trim)
app.command("methods")(methods)
app.add_typer(serve_app, name="serve")


def main() -> None:
    app()
