# oauth2_docstore/cli/utils_cli.py
import asyncio
from typing import Any, Awaitable, Callable, Optional

import typer

from ..oauth.client_store import DocumentClientStore
from ..oauth.errors import OAuthStoreError
from ..oauth.token_store import DocumentTokenStore
from ..settings import settings
from ..storage.sqlite_store import SQLiteDocumentStore
from .config import OAUTH2_DOCSTORE_CLI_DB_PATH

StoreOperation = Callable[[DocumentClientStore, DocumentTokenStore], Awaitable[Any]]


async def _run(operation: StoreOperation, db_path: Optional[str]) -> Any:
    database = SQLiteDocumentStore(db_path or OAUTH2_DOCSTORE_CLI_DB_PATH or settings.sqlite_db_path)
    try:
        client_store = DocumentClientStore.from_settings(database, settings)
        token_store = DocumentTokenStore.from_settings(database, settings)
        await client_store.initialize()
        await token_store.initialize()
        return await operation(client_store, token_store)
    finally:
        await database.close()


def run_store_operation(operation: StoreOperation, db_path: Optional[str] = None) -> Any:
    """
    Run `operation` against stores opened on the SQLite document database.

    Store errors are printed in red and turn into exit code 1.
    """
    typer.echo(f"CLI: using SQLite document store at {db_path or OAUTH2_DOCSTORE_CLI_DB_PATH or settings.sqlite_db_path}", err=True)
    try:
        return asyncio.run(_run(operation, db_path))
    except OAuthStoreError as e:
        cause = f" ({e.__cause__})" if e.__cause__ else ""
        typer.secho(f"Error: {type(e).__name__}: {e.detail}{cause}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


def pick_lookup(code: Optional[str], access: Optional[str], refresh: Optional[str]) -> tuple:
    """Return the single (kind, value) pair given on the command line."""
    given = [
        (kind, value)
        for kind, value in (("code", code), ("access", access), ("refresh", refresh))
        if value is not None
    ]
    if len(given) != 1:
        typer.secho("Error: pass exactly one of --code, --access or --refresh.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)
    return given[0]
