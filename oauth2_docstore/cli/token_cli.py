# oauth2_docstore/cli/token_cli.py
import typer
from typing import Optional
from typing_extensions import Annotated

from .client_cli import DbPathOption
from .utils_cli import pick_lookup, run_store_operation

app = typer.Typer(
    name="token",
    help="Inspect and revoke stored OAuth2 token records.",
    no_args_is_help=True
)

CodeOption = Annotated[Optional[str], typer.Option("--code", help="Authorization code.")]
AccessOption = Annotated[Optional[str], typer.Option("--access", help="Access token.")]
RefreshOption = Annotated[Optional[str], typer.Option("--refresh", help="Refresh token.")]


@app.command("get")
def get_token(
    code: CodeOption = None,
    access: AccessOption = None,
    refresh: RefreshOption = None,
    db_path: DbPathOption = None
):
    """Print the token grant matching a code, access token or refresh token."""
    kind, value = pick_lookup(code, access, refresh)

    async def _get(client_store, token_store):
        lookup = getattr(token_store, f"get_by_{kind}")
        return await lookup(value)

    token = run_store_operation(_get, db_path)
    typer.echo(token.model_dump_json(indent=2))


@app.command("remove")
def remove_token(
    code: CodeOption = None,
    access: AccessOption = None,
    refresh: RefreshOption = None,
    db_path: DbPathOption = None
):
    """Remove every token record matching a code, access token or refresh token."""
    kind, value = pick_lookup(code, access, refresh)

    async def _remove(client_store, token_store):
        remove = getattr(token_store, f"remove_by_{kind}")
        await remove(value)

    run_store_operation(_remove, db_path)
    typer.secho(f"Token records matching {kind} removed.", fg=typer.colors.GREEN)
