"""Command line tool for various preply-related operations."""

import datetime
import sys
from enum import StrEnum
from typing import Annotated

import typer
from rich.console import Console

from preply.apiserver import constants
from preply.apiserver.routers.auth.session_token_crypter import (
    SessionTokenCrypter,
    SessionTokenCrypterMisconfiguredError,
)
from preply.xsecrets.chafernet import InvalidTokenError
from preply.xsecrets.nacl_keyset import NaclKeyset

err_console = Console(stderr=True)
console = Console(stderr=False)
app = typer.Typer(help=__doc__)


class KeysetOutputFormat(StrEnum):
    BASE64 = "base64"
    JSON = "json"


def _print_keyset(keyset: NaclKeyset, output: KeysetOutputFormat):
    if output == KeysetOutputFormat.BASE64:
        print(keyset.serialize_base64())
    else:
        print(keyset.serialize_json())


@app.command()
def create_session_keyset(
    output: Annotated[KeysetOutputFormat, typer.Option(help="Output format.")] = KeysetOutputFormat.BASE64,
):
    """Generate a new keyset for sealing session credentials.

    The encoded keyset will be written to stdout. Set PREPLY_SESSION_TOKEN_KEYSET to this value (or write it to
    .preply_session_token_keyset and set the variable to "local").
    """
    _print_keyset(NaclKeyset.create(), output)


@app.command()
def rotate_session_keyset(
    keyset: Annotated[str, typer.Argument(help="The current base64 encoded keyset.")],
    output: Annotated[KeysetOutputFormat, typer.Option(help="Output format.")] = KeysetOutputFormat.BASE64,
):
    """Add a new default key to an existing keyset.

    Sessions sealed with the previous keys remain valid until they expire.
    """
    try:
        current = NaclKeyset.deserialize_base64(keyset)
    except ValueError as err:
        err_console.print(f"[bold red]Invalid keyset:[/bold red] {err}")
        raise typer.Exit(1) from err
    _print_keyset(current.with_new_key(), output)


@app.command()
def inspect_session(
    credential: Annotated[
        str | None, typer.Argument(help="A session credential. Read from stdin when omitted.")
    ] = None,
):
    """Decrypts a session credential using the same keyset configuration that the API server does."""
    crypter = SessionTokenCrypter(constants.SESSION_TTL_SECONDS)
    value = (credential or sys.stdin.read()).strip()
    try:
        claims = crypter.decrypt(value)
    except SessionTokenCrypterMisconfiguredError as err:
        err_console.print(f"[bold red]Session keyset is not configured:[/bold red] {err}")
        raise typer.Exit(2) from err
    except InvalidTokenError as err:
        err_console.print("[bold red]Session credential is invalid or expired.[/bold red]")
        raise typer.Exit(1) from err
    console.print(f"Principal: [cyan]{claims.uid}[/cyan]")
    console.print(f"Issued at: [cyan]{datetime.datetime.fromtimestamp(claims.issued_at, datetime.UTC)}[/cyan]")
    console.print(f"Expires at: [cyan]{datetime.datetime.fromtimestamp(claims.expires_at, datetime.UTC)}[/cyan]")


if __name__ == "__main__":
    app()
