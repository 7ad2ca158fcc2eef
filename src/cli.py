"""CLI interface for sitevault."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Annotated, Any, Optional, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from sitevault.config import VaultConfig, load_config, merge_cli_overrides
from sitevault.content.drafts import KeyValueStore
from sitevault.content.fields import load_field_schema, resolve_fields
from sitevault.content.paths import flatten, get_path
from sitevault.content.session import ContentSession
from sitevault.integrations.auth import AuthClient, SessionStore
from sitevault.shared.errors import VaultError

app = typer.Typer(
    name="sitevault",
    help="Edit, draft and publish site content stored in hosted storage.",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

T = TypeVar("T")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from sitevault import __version__

        console.print(f"sitevault {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to a .sitevault.toml file."),
    ] = None,
    storage_url: Annotated[
        Optional[str],
        typer.Option("--url", help="Base URL of the hosted backend."),
    ] = None,
    drafts_path: Annotated[
        Optional[str],
        typer.Option("--drafts", help="Path of the local draft store file."),
    ] = None,
    bucket: Annotated[
        Optional[str],
        typer.Option("--bucket", help="Storage bucket holding content and assets."),
    ] = None,
    debounce_seconds: Annotated[
        Optional[float],
        typer.Option("--debounce", help="Seconds of quiet before a draft autosave."),
    ] = None,
    asset_prefix: Annotated[
        Optional[str],
        typer.Option("--asset-prefix", help="Default bucket folder for uploads."),
    ] = None,
    schema_file: Annotated[
        Optional[str],
        typer.Option("--schema", help="TOML file describing editor fields."),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log progress to stderr."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """sitevault - draft/publish pipeline for site content."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            handlers=[RichHandler(console=err_console, show_path=False)],
        )
    config = load_config(config_path)
    ctx.obj = merge_cli_overrides(
        config,
        storage_url=storage_url,
        bucket=bucket,
        drafts_path=drafts_path,
        debounce_seconds=debounce_seconds,
        asset_prefix=asset_prefix,
        schema_file=schema_file,
    )


def _config(ctx: typer.Context) -> VaultConfig:
    return ctx.obj if isinstance(ctx.obj, VaultConfig) else load_config()


def _run(ctx: typer.Context, op: Callable[[ContentSession], Awaitable[T]]) -> T:
    """Open a session, run one operation, close it (flushing autosave)."""

    async def _go() -> T:
        async with ContentSession.from_config(_config(ctx)) as session:
            return await op(session)

    try:
        return asyncio.run(_go())
    except VaultError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc


def _render(value: Any) -> str:
    if value is None:
        return "[dim]-[/dim]"
    return str(value)


@app.command()
def status(ctx: typer.Context) -> None:
    """Show where content comes from and whether a draft is pending."""

    async def op(session: ContentSession) -> None:
        config = _config(ctx)
        state = session.snapshot()
        table = Table(show_header=False, box=None)
        table.add_row("Storage", config.storage.url or "[yellow]not configured[/yellow]")
        table.add_row("Document", f"{config.storage.bucket}/{config.storage.content_path}")
        table.add_row("Live content", state.remote_status.value)
        table.add_row("Top-level keys", str(len(state.content)))
        draft = "[yellow]unpublished changes[/yellow]" if state.has_unsaved_changes else "clean"
        table.add_row("Draft", draft)
        table.add_row("Last saved", _render(state.last_saved))
        console.print(table)

    _run(ctx, op)


@app.command()
def show(
    ctx: typer.Context,
    prefix: Annotated[str, typer.Argument(help="Only show keys under this dotted path.")] = "",
) -> None:
    """List every content key and its value."""

    async def op(session: ContentSession) -> None:
        tree = session.content
        if prefix:
            tree = get_path(tree, prefix, {})
            if not isinstance(tree, dict):
                console.print(f"{prefix} = {tree}")
                return
        table = Table("Key", "Value")
        for path, value in flatten(tree, prefix):
            table.add_row(path, _render(value))
        console.print(table)

    _run(ctx, op)


@app.command()
def get(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="Dotted content path, e.g. hero.heading.")],
    default: Annotated[str, typer.Option(help="Printed when the path is unset.")] = "",
) -> None:
    """Print one content value."""

    async def op(session: ContentSession) -> Any:
        return session.get(path, default)

    console.print(_run(ctx, op), markup=False)


@app.command(name="set")
def set_cmd(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="Dotted content path, e.g. hero.heading.")],
    value: Annotated[str, typer.Argument(help="New value.")],
) -> None:
    """Change one value in the local draft."""

    async def op(session: ContentSession) -> None:
        session.set(path, value)

    _run(ctx, op)
    console.print(f"[green]Draft updated:[/green] {path}")


@app.command(name="save-draft")
def save_draft(ctx: typer.Context) -> None:
    """Write the current content to the local draft immediately."""

    async def op(session: ContentSession) -> None:
        await session.save_draft()

    _run(ctx, op)
    console.print("[green]Draft saved.[/green]")


@app.command()
def publish(ctx: typer.Context) -> None:
    """Publish the draft as the live site content."""

    async def op(session: ContentSession) -> str:
        return await session.publish()

    url = _run(ctx, op)
    console.print("[green]Published successfully![/green] Changes should be live momentarily.")
    console.print(url, markup=False)


@app.command()
def discard(
    ctx: typer.Context,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip the confirmation prompt.")] = False,
) -> None:
    """Throw away the local draft and revert to the live version."""

    def confirm() -> bool:
        return yes or typer.confirm(
            "Discard your unsaved changes? This reverts to the live website version."
        )

    async def op(session: ContentSession) -> bool:
        return await session.discard(confirm)

    if _run(ctx, op):
        console.print("Draft discarded.")
    else:
        console.print("Nothing changed.")


@app.command()
def upload(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="File to upload.")],
    prefix: Annotated[
        Optional[str], typer.Option(help="Destination folder in the bucket.")
    ] = None,
    key: Annotated[
        Optional[str], typer.Option(help="Store the resulting URL at this content path.")
    ] = None,
) -> None:
    """Upload an asset and print its public URL."""
    data = file.read_bytes()

    async def op(session: ContentSession) -> str:
        url = await session.upload_image(data, file.name, prefix)
        if key:
            session.set(key, url)
        return url

    url = _run(ctx, op)
    console.print(url, markup=False)
    if key:
        console.print(f"[green]Draft updated:[/green] {key}")


@app.command()
def fields(ctx: typer.Context) -> None:
    """Show the editor field catalogue with current values."""
    config = _config(ctx)
    if not config.editor.schema_file:
        err_console.print("[yellow]No [editor] schema_file configured.[/yellow]")
        raise typer.Exit(1)
    schema = load_field_schema(config.editor.schema_file)

    async def op(session: ContentSession) -> list:
        return resolve_fields(schema, session)

    table = Table("Section", "Field", "Key", "Type", "Value")
    for section, field, value in _run(ctx, op):
        table.add_row(section, field.label, field.key, field.type.value, _render(value))
    console.print(table)


@app.command()
def login(
    ctx: typer.Context,
    email: Annotated[str, typer.Option(prompt=True, help="Admin account email.")],
    password: Annotated[
        str, typer.Option(prompt=True, hide_input=True, help="Admin account password.")
    ],
) -> None:
    """Sign in and remember the session for publishing."""
    config = _config(ctx)
    kv = KeyValueStore(Path(config.drafts.path).expanduser())
    try:
        session = AuthClient(config.to_storage_config()).sign_in_with_password(email, password)
        SessionStore(kv).save(session)
    except VaultError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc
    console.print(f"[green]Signed in as {session.email or session.user_id}[/green]")


@app.command()
def logout(ctx: typer.Context) -> None:
    """Forget the stored session."""
    config = _config(ctx)
    kv = KeyValueStore(Path(config.drafts.path).expanduser())
    try:
        SessionStore(kv).clear()
    except VaultError as exc:
        err_console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(1) from exc
    console.print("Signed out.")


if __name__ == "__main__":
    app()
