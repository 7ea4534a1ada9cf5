# oauth2_docstore/cli/main_cli.py
import typer
from . import client_cli
from . import token_cli

# Main CLI application with help enabled when no arguments are provided
app = typer.Typer(
    name="oauth2-docstore",
    help="OAuth2 DocStore Command Line Interface.",
    no_args_is_help=True
)

app.add_typer(client_cli.app, name="client")
app.add_typer(token_cli.app, name="token")


@app.callback()
def main_callback():
    """
    OAuth2 DocStore CLI.
    Use 'oauth2-docstore client --help' or 'oauth2-docstore token --help'.
    """
    pass


def cli_entry_point():
    """Entry point function for console script registration in pyproject.toml"""
    app()


if __name__ == "__main__":
    cli_entry_point()
