"""
CLI entry point for gitpull.

Provides command-line interface for registering projects and pulling them.
"""

from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from .config import DEFAULT_CONFIG_FILE, Settings
from .manager import ProjectManager
from .store import RegistrationError
from .syncer import OutcomeKind

console = Console()
err_console = Console(stderr=True)


def load_settings(config_path: Path, projects_file: Path | None) -> Settings:
    """Load settings for a command, exiting with a message on invalid files."""
    try:
        settings = Settings.load(config_path)
    except (ValidationError, OSError, ValueError) as e:
        err_console.print(f"[red]Error loading config {config_path}: {escape(str(e))}[/red]")
        raise SystemExit(1)

    if projects_file is not None:
        settings = settings.model_copy(update={"projects_file": projects_file})
    return settings


def open_manager(ctx: click.Context) -> ProjectManager:
    """Create the manager for a command and persist it when the command ends."""
    settings = load_settings(ctx.obj["config_path"], ctx.obj["projects_file"])
    manager = ProjectManager(settings, console=err_console)
    ctx.call_on_close(manager.close)
    return manager


@click.group()
@click.version_option(package_name="gitpull")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help="Path to the settings file",
)
@click.option(
    "--projects-file",
    "-p",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to the project list (overrides the settings file)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Path, projects_file: Path | None):
    """gitpull - Fast-forward pull many local git clones at once."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["projects_file"] = projects_file


@cli.command()
@click.option("--branch", "-b", default=None, help="Branch to pull (default: master)")
@click.option("--remote", "-r", default=None, help="Remote to pull from (default: origin)")
@click.option("--force", is_flag=True, help="Overwrite an existing settings file")
@click.pass_context
def init(ctx: click.Context, branch: str | None, remote: str | None, force: bool):
    """Create a settings file with defaults."""
    config_path: Path = ctx.obj["config_path"]
    if config_path.exists() and not force:
        err_console.print(f"[yellow]Settings file already exists: {config_path}[/yellow]")
        err_console.print("Use --force to overwrite it.")
        raise SystemExit(1)

    updates = {}
    if branch:
        updates["branch"] = branch
    if remote:
        updates["remote"] = remote
    if ctx.obj["projects_file"] is not None:
        updates["projects_file"] = ctx.obj["projects_file"]
    settings = Settings(**updates)

    settings.to_yaml(config_path)
    console.print(f"[green]Created settings file: {config_path}[/green]")
    console.print(f"  Branch: {settings.branch}")
    console.print(f"  Remote: {settings.remote}")
    console.print(f"  Projects file: {settings.projects_file}")


@cli.command()
@click.argument("path")
@click.argument("name")
@click.option("--notes", "-n", default="", help="Free-form notes for the project")
@click.pass_context
def add(ctx: click.Context, path: str, name: str, notes: str):
    """Register the git repository at PATH under NAME."""
    manager = open_manager(ctx)
    try:
        manager.register_project(path, name, notes)
    except RegistrationError:
        # Already reported through the log
        raise SystemExit(1)


@cli.command(name="list")
@click.pass_context
def list_projects(ctx: click.Context):
    """List registered projects with their indices."""
    manager = open_manager(ctx)
    projects = manager.list_projects()

    if not projects:
        console.print("[yellow]No projects registered.[/yellow]")
        return

    table = Table(title=f"Projects ({len(projects)})")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Path", style="green")
    table.add_column("Notes", style="white")
    for index, project in enumerate(projects):
        table.add_row(
            str(index),
            escape(project.name),
            escape(project.path),
            escape(project.notes),
        )
    console.print(table)


@cli.command()
@click.argument("index", type=int)
@click.option("--name", default=None, help="New display name")
@click.option("--notes", default=None, help="New notes")
@click.pass_context
def edit(ctx: click.Context, index: int, name: str | None, notes: str | None):
    """Change the name or notes of the project at INDEX."""
    if name is None and notes is None:
        err_console.print("[yellow]Nothing to change; pass --name and/or --notes.[/yellow]")
        raise SystemExit(1)

    manager = open_manager(ctx)
    try:
        project = manager.edit_project(index, name=name, notes=notes)
    except IndexError:
        err_console.print(f"[red]No project at index {index}[/red]")
        raise SystemExit(1)
    except RegistrationError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise SystemExit(1)
    console.print(f"[green]Updated project {escape(project.name)}[/green]")


@cli.command()
@click.argument("indices", nargs=-1, type=int, required=True)
@click.pass_context
def remove(ctx: click.Context, indices: tuple[int, ...]):
    """Remove the projects at INDICES."""
    manager = open_manager(ctx)
    removed = manager.delete_projects(indices)
    if not removed:
        console.print("[yellow]No matching projects.[/yellow]")


@cli.command()
@click.argument("indices", nargs=-1, type=int)
@click.option("--all", "pull_all", is_flag=True, help="Pull every registered project")
@click.option("--branch", "-b", default=None, help="Branch to pull (overrides settings)")
@click.option("--remote", "-r", default=None, help="Remote to pull from (overrides settings)")
@click.pass_context
def pull(
    ctx: click.Context,
    indices: tuple[int, ...],
    pull_all: bool,
    branch: str | None,
    remote: str | None,
):
    """Fetch and fast-forward the projects at INDICES."""
    manager = open_manager(ctx)
    if pull_all:
        indices = tuple(range(len(manager.list_projects())))

    selected = manager.select(indices)
    if not selected:
        console.print("[yellow]No projects selected.[/yellow]")
        return

    updated = 0
    unchanged = 0
    failures = 0
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=err_console,
    ) as progress:
        task = progress.add_task("Pulling projects...", total=1.0)
        for outcome, fraction in manager.sync_projects(indices, branch=branch, remote=remote):
            if outcome.is_error:
                failures += 1
            elif outcome.kind is OutcomeKind.FAST_FORWARDED:
                updated += 1
            else:
                unchanged += 1
            progress.update(task, completed=fraction)

    console.print("\n[bold]Pull Summary:[/bold]")
    console.print(f"  Projects: {len(selected)}")
    console.print(f"  [green]Fast-forwarded: {updated}[/green]")
    console.print(f"  Already up to date: {unchanged}")
    if failures:
        console.print(f"  [red]Needing attention: {failures}[/red]")
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
