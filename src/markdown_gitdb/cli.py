"""CLI for Markdown GitDB."""

import asyncio
import shutil
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import GITDB_DIR, __version__
from .config import GitDBConfig, get_gitdb_dir, get_lancedb_path, load_config, save_config
from .errors import GitDBError
from .log import configure_logging
from .manifest import create_empty_manifest, load_manifest, save_manifest
from .revisions import RevisionTracker
from .storage import Storage
from .sync import SyncMode, SyncReport, run_sync

console = Console()
error_console = Console(stderr=True)

MODE_STYLES = {
    SyncMode.FULL: "cyan",
    SyncMode.DELTA: "green",
    SyncMode.NOOP: "dim",
    SyncMode.SKIPPED: "yellow",
    SyncMode.FAILED: "red",
}


def get_project_root() -> Path:
    """Get the project root directory (current working directory)."""
    return Path.cwd()


def is_initialized(project_root: Path) -> bool:
    """Check if mgdb is initialized in the project."""
    return get_gitdb_dir(project_root).exists()


def require_initialized(project_root: Path) -> None:
    """Exit with an error if mgdb is not initialized."""
    if not is_initialized(project_root):
        error_console.print(
            "[red]Error:[/red] Not initialized. Run [bold]mgdb init[/bold] first."
        )
        sys.exit(1)


def fail(error: GitDBError) -> None:
    error_console.print(f"[red]Error:[/red] {error}")
    sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="mgdb")
def main() -> None:
    """Markdown GitDB - Incremental index of a git-versioned markdown database."""
    pass


@main.command()
@click.option("--repo-url", default=None, help="Remote repository to clone and pull")
@click.option("--branch", default="main", show_default=True, help="Branch to track")
@click.option(
    "--checkout-path",
    default="database",
    show_default=True,
    help="Working copy location, relative to the project root",
)
@click.option("--database-subdir", default="", help="Subdirectory of the checkout holding the tables")
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(
    repo_url: str | None,
    branch: str,
    checkout_path: str,
    database_subdir: str,
    force: bool,
) -> None:
    """Initialize mgdb in the current project."""
    project_root = get_project_root()
    gitdb_dir = get_gitdb_dir(project_root)

    if gitdb_dir.exists() and not force:
        error_console.print(
            f"[yellow]Warning:[/yellow] {GITDB_DIR}/ already exists. Use --force to reinitialize."
        )
        sys.exit(1)

    gitdb_dir.mkdir(parents=True, exist_ok=True)

    config = GitDBConfig(
        repo_url=repo_url,
        branch=branch,
        checkout_path=checkout_path,
        database_subdir=database_subdir,
    )
    save_config(config, project_root)
    save_manifest(create_empty_manifest(), project_root)

    console.print(
        Panel(
            f"[green]Initialized Markdown GitDB[/green]\n\n"
            f"Repository: [bold]{repo_url or '(local checkout)'}[/bold]\n"
            f"Checkout: [dim]{checkout_path}[/dim]\n"
            f"Config directory: [dim]{gitdb_dir}[/dim]\n\n"
            f"Next step: run [bold]mgdb sync[/bold] to build the index",
            title="mgdb init",
        )
    )


@main.command()
@click.option("--no-pull", is_flag=True, help="Index the checkout as it is, without fetching")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def sync(no_pull: bool, verbose: bool) -> None:
    """Bring the index up to date with the database checkout."""
    _run_and_report(pull=not no_pull, verbose=verbose, reindex=())


@main.command()
@click.argument("tables", nargs=-1, required=True)
@click.option("--no-pull", is_flag=True, help="Index the checkout as it is, without fetching")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def reindex(tables: tuple[str, ...], no_pull: bool, verbose: bool) -> None:
    """Fully re-index the given tables."""
    _run_and_report(pull=not no_pull, verbose=verbose, reindex=tables)


@main.command()
def status() -> None:
    """Show revision markers and index statistics."""
    project_root = get_project_root()
    require_initialized(project_root)

    try:
        config = load_config(project_root)
    except GitDBError as e:
        fail(e)
    manifest = load_manifest(project_root)

    table = Table(title="Markdown GitDB Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Project root", str(project_root))
    table.add_row("Repository", config.repo_url or "(local checkout)")
    table.add_row("Branch", config.branch)
    table.add_row("Checkout", config.checkout_path)

    if manifest and manifest.head:
        table.add_row("Last synced head", manifest.head)
        table.add_row("Last updated", manifest.updated_at.isoformat())
    else:
        table.add_row("Index status", "[yellow]Empty - run 'mgdb sync'[/yellow]")
    console.print(table)

    with Storage(get_lancedb_path(project_root)) as storage:
        revisions = asyncio.run(RevisionTracker(storage).all_revisions())
        tables = Table(title="Tables")
        tables.add_column("Table", style="cyan")
        tables.add_column("Revision")
        tables.add_column("Documents", justify="right")
        tables.add_column("Last cycle")
        for name in sorted(revisions):
            summary = manifest.tables.get(name) if manifest else None
            tables.add_row(
                name,
                revisions[name][:12],
                str(storage.count_documents(name)),
                summary.mode if summary else "-",
            )
    console.print(tables)


@main.command()
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def clean(force: bool) -> None:
    """Remove the .markdown-gitdb directory."""
    project_root = get_project_root()
    gitdb_dir = get_gitdb_dir(project_root)

    if not gitdb_dir.exists():
        console.print(f"[dim]Nothing to clean - {GITDB_DIR}/ does not exist.[/dim]")
        return

    if not force:
        if not click.confirm(f"Remove {gitdb_dir}?"):
            console.print("[dim]Cancelled.[/dim]")
            return

    shutil.rmtree(gitdb_dir)
    console.print(f"[green]Removed {GITDB_DIR}/[/green]")


def _run_and_report(pull: bool, verbose: bool, reindex: tuple[str, ...]) -> None:
    project_root = get_project_root()
    require_initialized(project_root)

    try:
        config = load_config(project_root)
        configure_logging("DEBUG" if verbose else config.log_level, console=error_console)
        console.print("[bold]Syncing database index...[/bold]")
        report = run_sync(project_root, config=config, pull=pull, reindex=reindex)
    except GitDBError as e:
        fail(e)

    _print_report(report)
    if not report.ok:
        error_console.print(f"[red]{len(report.failed)} table(s) failed to sync.[/red]")
        sys.exit(1)
    console.print("[green]Sync complete![/green]")


def _print_report(report: SyncReport) -> None:
    table = Table(title=f"Sync at {report.head[:12]}")
    table.add_column("Table", style="cyan")
    table.add_column("Mode")
    table.add_column("Files", justify="right")
    table.add_column("Upserted", justify="right")
    table.add_column("Deleted", justify="right")
    table.add_column("Unchanged", justify="right")
    table.add_column("Error")

    for result in report.results:
        style = MODE_STYLES[result.mode]
        table.add_row(
            result.table,
            f"[{style}]{result.mode.value}[/{style}]",
            str(result.files_considered),
            str(result.stats.upserted),
            str(result.stats.deleted),
            str(result.stats.unchanged),
            result.error or "",
        )

    console.print(table)


if __name__ == "__main__":
    main()
