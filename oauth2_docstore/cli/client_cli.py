# oauth2_docstore/cli/client_cli.py
import typer
from typing import Optional
from typing_extensions import Annotated

from ..oauth.models import ClientInfo
from .utils_cli import run_store_operation

app = typer.Typer(
    name="client",
    help="Manage stored OAuth2 clients.",
    no_args_is_help=True
)

DbPathOption = Annotated[
    Optional[str],
    typer.Option("--db-path", help="SQLite document store file (overrides settings).")
]


@app.command("create")
def create_client(
    client_id: Annotated[
        str,
        typer.Option("--id", prompt="Client ID", help="Unique client identifier.")
    ],
    secret: Annotated[str, typer.Option(help="Client secret.")] = "",
    domain: Annotated[str, typer.Option(help="Registered redirect domain.")] = "",
    user_id: Annotated[str, typer.Option("--user-id", help="Owning user id.")] = "",
    public: Annotated[bool, typer.Option("--public", help="Mark as a public client.")] = False,
    db_path: DbPathOption = None
):
    """Register a new OAuth2 client."""
    client = ClientInfo(id=client_id, secret=secret, domain=domain, user_id=user_id, public=public)

    async def _create(client_store, token_store):
        await client_store.create(client)

    run_store_operation(_create, db_path)
    typer.secho(f"Client '{client_id}' created.", fg=typer.colors.GREEN)


@app.command("get")
def get_client(
    client_id: Annotated[str, typer.Argument(help="The client id to look up.")],
    db_path: DbPathOption = None
):
    """Print a stored OAuth2 client as JSON."""
    async def _get(client_store, token_store):
        return await client_store.get_by_id(client_id)

    client = run_store_operation(_get, db_path)
    typer.echo(client.model_dump_json(indent=2))
