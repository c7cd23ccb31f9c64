"""CLI application for knowhub using Rich and Typer."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table
from rich.tree import Tree

from knowhub.core.config import VAULT_PATH, setup_logging
from knowhub.core.errors import VaultError
from knowhub.core.types import ItemRef, ItemType, TreeNode
from knowhub.core.workspace import Workspace, build_workspace

T = TypeVar("T")

app = typer.Typer(
    name="knowhub",
    help="knowhub CLI - browse and reorganize a note vault",
    no_args_is_help=True,
)

console = Console()

VaultOption = typer.Option(
    None,
    "--vault",
    "-v",
    help="Path to vault directory (default: $KNOWHUB_VAULT_PATH or cwd)",
)
DbOption = typer.Option(
    None,
    "--db",
    help="Workspace settings database (default: ~/.knowhub/knowhub.db)",
)


def _run(
    vault: Optional[str],
    db: Optional[str],
    action: Callable[[Workspace], Awaitable[T]],
) -> T:
    """Load a workspace, run ``action`` and map vault errors to exit code 1."""

    async def _go() -> T:
        workspace = build_workspace(Path(vault or VAULT_PATH).expanduser(), db)
        await workspace.load()
        result = await action(workspace)
        workspace.persist()
        return result

    try:
        return asyncio.run(_go())
    except VaultError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def _add_nodes(branch: Tree, nodes: list[TreeNode], workspace: Workspace) -> None:
    for node in nodes:
        if node.is_folder:
            marker = "-" if workspace.is_expanded(node.id) else "+"
            child = branch.add(f"[bold blue]{marker} {node.title}/[/bold blue]")
            _add_nodes(child, node.children, workspace)
        else:
            pinned = " [yellow](pinned)[/yellow]" if workspace.is_pinned(node.id) else ""
            branch.add(f"{node.title}{pinned} [dim]{node.id}[/dim]")


def print_tree(workspace: Workspace) -> None:
    """Render the vault tree."""
    root = Tree(f"[bold]{workspace.store!r}[/bold]")
    _add_nodes(root, workspace.get_tree(), workspace)
    console.print(root)


@app.callback()
def main(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """knowhub CLI - browse and reorganize a note vault."""
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    else:
        setup_logging()


@app.command()
def tree(vault: Optional[str] = VaultOption, db: Optional[str] = DbOption):
    """Show the vault tree."""

    async def _show(workspace: Workspace) -> None:
        print_tree(workspace)

    _run(vault, db, _show)


@app.command()
def new(
    title: str = typer.Argument(..., help="Note title"),
    folder: str = typer.Option("", "--in", help="Parent folder path"),
    vault: Optional[str] = VaultOption,
    db: Optional[str] = DbOption,
):
    """Create a note and open it."""

    async def _create(workspace: Workspace) -> None:
        record = await workspace.items.create_note(title, folder or None)
        workspace.items.save_note(record.id)
        console.print(f"[green]Created note {record.id}[/green]")

    _run(vault, db, _create)


@app.command()
def mkdir(
    name: str = typer.Argument(..., help="Folder name"),
    folder: str = typer.Option("", "--in", help="Parent folder path"),
    vault: Optional[str] = VaultOption,
    db: Optional[str] = DbOption,
):
    """Create a folder."""

    async def _create(workspace: Workspace) -> None:
        path = await workspace.items.create_folder(name, folder or None)
        workspace.state.clear_newly_created(path)
        console.print(f"[green]Created folder {path}[/green]")

    _run(vault, db, _create)


@app.command()
def rename(
    item_id: str = typer.Argument(..., help="Note id or folder path"),
    new_title: str = typer.Argument(..., help="New name"),
    vault: Optional[str] = VaultOption,
    db: Optional[str] = DbOption,
):
    """Rename a note or folder."""

    async def _rename(workspace: Workspace) -> None:
        record = workspace.state.get_record(item_id)
        if record is None:
            console.print(f"[red]Not found: {item_id}[/red]")
            raise typer.Exit(1)
        new_id = await workspace.rename_item(record.id, record.type, new_title)
        console.print(f"[green]Renamed {record.id} -> {new_id}[/green]")

    _run(vault, db, _rename)


@app.command()
def move(
    item_ids: list[str] = typer.Argument(..., help="Items to move"),
    target: str = typer.Option("", "--to", help="Destination folder (root if empty)"),
    vault: Optional[str] = VaultOption,
    db: Optional[str] = DbOption,
):
    """Move notes and folders into a folder."""

    async def _move(workspace: Workspace) -> bool:
        workspace.state.replace_selection(item_ids)
        workspace.dragdrop.start(item_ids[0])
        result = await workspace.dragdrop.drop_on(target or None)
        for moved in result.completed:
            console.print(f"[green]Moved -> {moved}[/green]")
        for error in result.errors:
            console.print(f"[red]{error.id}: {error.message}[/red]")
        return result.success

    if not _run(vault, db, _move):
        raise typer.Exit(1)


@app.command()
def rm(
    item_ids: list[str] = typer.Argument(..., help="Items to delete"),
    vault: Optional[str] = VaultOption,
    db: Optional[str] = DbOption,
):
    """Delete notes and folders."""

    async def _delete(workspace: Workspace) -> bool:
        refs = []
        for item_id in item_ids:
            record = workspace.state.get_record(item_id)
            if record is None:
                console.print(f"[yellow]Skipping unknown item {item_id}[/yellow]")
                continue
            refs.append(ItemRef(record.id, ItemType(record.type), record.path))
        result = await workspace.items.delete_items(refs)
        for error in result.errors:
            console.print(f"[red]{error.id}: {error.message}[/red]")
        console.print(f"[dim]{len(result.completed)} items deleted[/dim]")
        return result.success

    if not _run(vault, db, _delete):
        raise typer.Exit(1)


@app.command()
def tabs(
    open_id: Optional[str] = typer.Option(None, "--open", help="Open a note"),
    close_id: Optional[str] = typer.Option(None, "--close", help="Close a tab"),
    pin_id: Optional[str] = typer.Option(None, "--pin", help="Toggle pin on a tab"),
    vault: Optional[str] = VaultOption,
    db: Optional[str] = DbOption,
):
    """List (and optionally open/close/pin) workspace tabs."""

    async def _tabs(workspace: Workspace) -> None:
        if open_id:
            await workspace.items.open_note(open_id)
        if close_id:
            await workspace.items.close_tab(close_id, force=True)
        if pin_id:
            workspace.state.toggle_pin(pin_id)

        table = Table(title="Open tabs", show_header=True)
        table.add_column("#", style="dim")
        table.add_column("ID")
        table.add_column("Folder")
        table.add_column("Status")
        for i, tab in enumerate(workspace.get_open_tabs(), 1):
            status = []
            if tab.id == workspace.state.active_id:
                status.append("[green]active[/green]")
            if workspace.is_pinned(tab.id):
                status.append("[yellow]pinned[/yellow]")
            if tab.missing:
                status.append("[red]missing on disk[/red]")
            table.add_row(str(i), tab.id, tab.path or "/", " ".join(status))
        console.print(table)

    _run(vault, db, _tabs)


def run_cli():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run_cli()
