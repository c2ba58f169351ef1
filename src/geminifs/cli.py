"""CLI entry point for the Gemini file store client.

Provides commands:
  - upload: Upload a local file to the Files API or a File Search store
  - import-file: Import an uploaded file into a File Search store
  - wait: Wait for a file or long-running operation to finish processing
  - query: Ask a grounded question over one or more File Search stores
  - config: Manage the API key in the system keyring
"""

from __future__ import annotations

import asyncio
import json
import logging
import mimetypes
from pathlib import Path
from typing import Annotated

import keyring
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from geminifs.config import KEY_NAME, SERVICE_NAME, get_api_key, load_client_config
from geminifs.errors import ApiError

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Upload to Gemini File Search stores, wait for processing, and run grounded queries",
    rich_markup_mode="rich",
)
console = Console()

config_app = typer.Typer(help="Manage configuration (API key)")
app.add_typer(config_app, name="config")


@app.callback()
def app_callback(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log request details to the console")
    ] = False,
    debug: Annotated[
        bool, typer.Option("--debug", help="Write debug log to ~/.geminifs/debug.log")
    ] = False,
) -> None:
    """Configure logging for all commands."""
    package_logger = logging.getLogger("geminifs")
    if verbose:
        package_logger.setLevel(logging.DEBUG)
        package_logger.addHandler(RichHandler(console=console, show_path=False))
    if debug:
        debug_dir = Path.home() / ".geminifs"
        debug_dir.mkdir(exist_ok=True)
        fh = logging.FileHandler(debug_dir / "debug.log")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
        package_logger.setLevel(logging.DEBUG)
        package_logger.addHandler(fh)


def _make_client(config_path: Path | None):
    """Build a client from config + keyring/env, exiting with a message on failure."""
    from geminifs.client import GeminiFileStoreClient

    try:
        config = load_client_config(config_path)
        api_key = config.api_key or get_api_key()
    except (RuntimeError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    return GeminiFileStoreClient(api_key=api_key, config=config)


def _fail(error: ApiError) -> None:
    console.print(f"[red]{error}[/red]")
    raise typer.Exit(code=1)


@app.command()
def upload(
    path: Annotated[Path, typer.Argument(help="Local file to upload", exists=True, dir_okay=False)],
    display_name: Annotated[
        str | None, typer.Option("--display-name", "-n", help="Display name (max 512 chars)")
    ] = None,
    mime_type: Annotated[
        str | None, typer.Option("--mime-type", help="MIME type (guessed from the extension if omitted)")
    ] = None,
    store: Annotated[
        str | None,
        typer.Option("--store", "-s", help="Upload into this File Search store instead of the Files API"),
    ] = None,
    wait: Annotated[
        bool, typer.Option("--wait/--no-wait", help="Wait until processing finishes")
    ] = False,
    timeout: Annotated[
        int | None, typer.Option("--timeout", help="Max seconds to wait (10-3600)", min=10, max=3600)
    ] = None,
    interval: Annotated[
        int | None, typer.Option("--interval", help="Seconds between status checks (1-60)", min=1, max=60)
    ] = None,
    retries: Annotated[
        int, typer.Option("--retries", help="Attempts for rate-limited or transient failures", min=1)
    ] = 3,
    config_path: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to geminifs.json")
    ] = None,
) -> None:
    """Upload a file; payloads over 20 MiB use the resumable protocol."""
    from geminifs.retry import call_with_retry

    payload = path.read_bytes()
    mime = mime_type or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    name = display_name or path.name
    client = _make_client(config_path)

    async def _run():
        async with client:
            if store:
                handle = await call_with_retry(
                    lambda: client.upload_document(store, payload, mime, name),
                    max_attempts=retries,
                )
            else:
                handle = await call_with_retry(
                    lambda: client.upload_file(payload, mime, name),
                    max_attempts=retries,
                )
            result = None
            if wait:
                waiter = client.wait_for_operation if store else client.wait_for_file
                result = await waiter(handle.name, timeout, interval)
            return handle, result

    try:
        handle, result = asyncio.run(_run())
    except ApiError as e:
        _fail(e)

    table = Table(title="Upload")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Name", handle.name)
    table.add_row("Size", f"{len(payload):,} bytes")
    table.add_row("MIME type", mime)
    if result is not None:
        table.add_row("Status", f"[green]{result.status.value}[/green]")
        table.add_row("Waited", f"{result.elapsed:.1f}s ({result.ticks} checks)")
    console.print(table)


@app.command("import-file")
def import_file(
    store: Annotated[str, typer.Argument(help="File Search store name or ID")],
    file_name: Annotated[str, typer.Argument(help="Uploaded file ID (files/abc)")],
    wait: Annotated[
        bool, typer.Option("--wait/--no-wait", help="Wait until the import finishes")
    ] = False,
    timeout: Annotated[
        int | None, typer.Option("--timeout", help="Max seconds to wait (10-3600)", min=10, max=3600)
    ] = None,
    interval: Annotated[
        int | None, typer.Option("--interval", help="Seconds between status checks (1-60)", min=1, max=60)
    ] = None,
    config_path: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to geminifs.json")
    ] = None,
) -> None:
    """Import a file already uploaded to the Files API into a store."""
    client = _make_client(config_path)

    async def _run():
        async with client:
            handle = await client.import_file(store, file_name)
            result = None
            if wait:
                result = await client.wait_for_operation(handle.name, timeout, interval)
            return handle, result

    try:
        handle, result = asyncio.run(_run())
    except ApiError as e:
        _fail(e)

    console.print(f"Import operation: [cyan]{handle.name}[/cyan]")
    if result is not None:
        console.print(f"[green]Done[/green] after {result.elapsed:.1f}s ({result.ticks} checks)")


@app.command()
def wait(
    name: Annotated[str, typer.Argument(help="File ID (files/abc) or operation name")],
    operation: Annotated[
        bool, typer.Option("--operation", help="Treat NAME as a long-running operation")
    ] = False,
    timeout: Annotated[
        int | None, typer.Option("--timeout", help="Max seconds to wait (10-3600)", min=10, max=3600)
    ] = None,
    interval: Annotated[
        int | None, typer.Option("--interval", help="Seconds between status checks (1-60)", min=1, max=60)
    ] = None,
    config_path: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to geminifs.json")
    ] = None,
) -> None:
    """Wait until a file is ACTIVE or an operation is done."""
    client = _make_client(config_path)

    async def _run():
        async with client:
            waiter = client.wait_for_operation if operation else client.wait_for_file
            return await waiter(name, timeout, interval)

    try:
        result = asyncio.run(_run())
    except ApiError as e:
        _fail(e)

    console.print(
        f"[green]{result.name}[/green] is {result.status.value} "
        f"after {result.elapsed:.1f}s ({result.ticks} checks)"
    )


@app.command()
def query(
    store: Annotated[str, typer.Argument(help="File Search store name or ID")],
    question: Annotated[str, typer.Argument(help="Natural language question")],
    metadata_filter: Annotated[
        str | None, typer.Option("--filter", "-f", help='Metadata filter, e.g. \'year >= 2020 AND team = "infra"\'')
    ] = None,
    model: Annotated[
        str | None, typer.Option("--model", "-m", help="Gemini model for generation")
    ] = None,
    as_json: Annotated[
        bool, typer.Option("--json", help="Print the raw result as JSON")
    ] = False,
    config_path: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to geminifs.json")
    ] = None,
) -> None:
    """Ask a question grounded in the documents of a store."""
    client = _make_client(config_path)

    async def _run():
        async with client:
            return await client.query(store, question, model, metadata_filter)

    try:
        answer = asyncio.run(_run())
    except ApiError as e:
        _fail(e)

    if as_json:
        payload = answer.to_dict()
        payload.pop("rawResponse", None)
        console.print_json(json.dumps(payload))
        return

    console.print(Panel(answer.answer_text or "(No response text)", title="Answer"))
    if not answer.sources:
        console.print("[dim]No grounding sources returned.[/dim]")
        return

    table = Table(title="Sources")
    table.add_column("#", justify="right")
    table.add_column("Document", style="cyan")
    table.add_column("Store / URI", style="dim")
    table.add_column("Excerpt")
    for i, source in enumerate(answer.sources, start=1):
        excerpt = source.excerpt_text.replace("\n", " ")
        if len(excerpt) > 120:
            excerpt = excerpt[:117] + "..."
        table.add_row(str(i), source.document_title, source.store_or_uri, excerpt)
    console.print(table)


@config_app.command("set-api-key")
def set_api_key(
    key: Annotated[str, typer.Argument(help="Gemini API key to store in system keyring")],
) -> None:
    """Store the Gemini API key in the system keyring (service: geminifs)."""
    if not key or key.strip() == "":
        console.print("[red]Error:[/red] API key cannot be empty")
        raise typer.Exit(code=1)

    try:
        keyring.set_password(SERVICE_NAME, KEY_NAME, key)
    except keyring.errors.KeyringError as e:
        console.print(f"[red]Error:[/red] Failed to store API key: {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]OK[/green] API key stored in system keyring (service: {SERVICE_NAME})")


@config_app.command("get-api-key")
def show_api_key() -> None:
    """Display the stored Gemini API key (masked)."""
    api_key = keyring.get_password(SERVICE_NAME, KEY_NAME)
    if not api_key:
        console.print(
            "[yellow]No API key found in keyring.[/yellow]\n"
            "Set it with: [bold]geminifs config set-api-key YOUR_KEY[/bold]"
        )
        raise typer.Exit(code=1)

    if len(api_key) > 8:
        masked = api_key[:8] + "*" * (len(api_key) - 8)
    else:
        masked = api_key[:2] + "*" * max(1, len(api_key) - 2)
    console.print(f"[green]API key:[/green] {masked}")


@config_app.command("remove-api-key")
def remove_api_key() -> None:
    """Delete the stored Gemini API key from the system keyring."""
    if not keyring.get_password(SERVICE_NAME, KEY_NAME):
        console.print("[yellow]Warning:[/yellow] No API key found in keyring. Nothing to remove.")
        return
    try:
        keyring.delete_password(SERVICE_NAME, KEY_NAME)
    except keyring.errors.KeyringError as e:
        console.print(f"[red]Error:[/red] Failed to remove API key: {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]OK[/green] API key removed from system keyring (service: {SERVICE_NAME})")


if __name__ == "__main__":
    app()
