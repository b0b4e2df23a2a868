"""mvngraph CLI — inspects and maintains the store directly through its database."""

import asyncio
import json
from typing import Awaitable, Callable, Optional, TypeVar

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mvngraph import __version__
from mvngraph.core.config import get_settings
from mvngraph.core.errors import MvnGraphError
from mvngraph.daemon.main import configure_logging
from mvngraph.services.store import MavenGraphStore

app = typer.Typer(
    name="mvngraph",
    help="Maven dependency provenance across CI builds",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log store activity")):
    """Store lifecycle messages are hidden unless --verbose."""
    settings = get_settings()
    if verbose:
        settings.log_level = "debug"
    elif settings.log_level.lower() == "info":
        settings.log_level = "warning"
    configure_logging(settings)


T = TypeVar("T")


def _run(operation: Callable[[MavenGraphStore], Awaitable[T]], database_url: Optional[str] = None) -> T:
    """Open the store, run one operation, and always close it."""
    settings = get_settings()
    url = database_url or settings.database_url

    async def _main():
        async with MavenGraphStore(url, create_tables=settings.create_tables) as store:
            return await operation(store)

    try:
        return asyncio.run(_main())
    except MvnGraphError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


DatabaseOption = typer.Option(None, "--database-url", "-d", help="Database URL (default: MVNGRAPH_DATABASE_URL)")


# ─── Listings ───


@app.command()
def dependencies(
    job: str = typer.Argument(..., help="Job full name"),
    build: int = typer.Argument(..., help="Build number"),
    database_url: Optional[str] = DatabaseOption,
):
    """List the dependencies recorded for a build."""
    deps = _run(lambda s: s.list_dependencies(job, build), database_url)
    if not deps:
        console.print("[dim]No dependencies recorded[/dim]")
        return

    table = Table(title=f"Dependencies: {job}#{build}")
    table.add_column("Group", style="bold")
    table.add_column("Artifact")
    table.add_column("Version")
    table.add_column("Type")
    table.add_column("Classifier")
    table.add_column("Scope")
    table.add_column("Triggers")

    for d in deps:
        table.add_row(
            d.group_id,
            d.artifact_id,
            d.version,
            d.type,
            d.classifier or "—",
            d.scope or "—",
            "[yellow]ignored[/yellow]" if d.ignore_upstream_triggers else "[green]yes[/green]",
        )
    console.print(table)


@app.command()
def generated(
    job: str = typer.Argument(..., help="Job full name"),
    build: int = typer.Argument(..., help="Build number"),
    database_url: Optional[str] = DatabaseOption,
):
    """List the artifacts generated by a build."""
    artifacts = _run(lambda s: s.get_generated_artifacts(job, build), database_url)
    if not artifacts:
        console.print("[dim]No generated artifacts recorded[/dim]")
        return

    table = Table(title=f"Generated: {job}#{build}")
    table.add_column("Artifact", style="bold")
    table.add_column("Version")
    table.add_column("Base version")
    table.add_column("Repository")

    for a in artifacts:
        table.add_row(a.id, a.version, a.base_version or "—", a.repository_url or "[dim]not deployed[/dim]")
    console.print(table)


@app.command()
def upstream(
    job: str = typer.Argument(..., help="Job full name"),
    build: int = typer.Argument(..., help="Build number"),
    transitive: bool = typer.Option(False, "--transitive", "-t", help="Include indirect upstream jobs"),
    database_url: Optional[str] = DatabaseOption,
):
    """Show the upstream builds of a build (JSON)."""
    if transitive:
        result = _run(lambda s: s.list_transitive_upstream_jobs(job, build), database_url)
    else:
        result = _run(lambda s: s.list_upstream_jobs(job, build), database_url)
    console.print_json(json.dumps(dict(sorted(result.items()))))


@app.command()
def downstream(
    job: str = typer.Argument(..., help="Job full name"),
    build: int = typer.Argument(..., help="Build number"),
    database_url: Optional[str] = DatabaseOption,
):
    """Show the jobs consuming each artifact generated by a build."""
    by_artifact = _run(lambda s: s.list_downstream_jobs_by_artifact(job, build), database_url)
    if not by_artifact:
        console.print("[dim]No downstream jobs[/dim]")
        return
    for artifact in sorted(by_artifact, key=lambda a: a.sort_key()):
        console.print(f"[bold]{artifact.id}[/bold]")
        for name in by_artifact[artifact]:
            console.print(f"  → {name}")


# ─── Lifecycle ───


@app.command()
def rename(
    old: str = typer.Argument(..., help="Current job full name"),
    new: str = typer.Argument(..., help="New job full name"),
    database_url: Optional[str] = DatabaseOption,
):
    """Rename a job."""
    _run(lambda s: s.rename_job(old, new), database_url)
    console.print(f"[green]✓[/green] Renamed [bold]{old}[/bold] → [bold]{new}[/bold]")


@app.command(name="delete-job")
def delete_job(
    job: str = typer.Argument(..., help="Job full name"),
    database_url: Optional[str] = DatabaseOption,
):
    """Delete a job, its builds and their edges."""
    _run(lambda s: s.delete_job(job), database_url)
    console.print(f"[green]✓[/green] Deleted job: [bold]{job}[/bold]")


@app.command(name="delete-build")
def delete_build(
    job: str = typer.Argument(..., help="Job full name"),
    build: int = typer.Argument(..., help="Build number"),
    database_url: Optional[str] = DatabaseOption,
):
    """Delete one build and its edges."""
    _run(lambda s: s.delete_build(job, build), database_url)
    console.print(f"[green]✓[/green] Deleted build: [bold]{job}#{build}[/bold]")


# ─── Maintenance ───


@app.command()
def cleanup(database_url: Optional[str] = DatabaseOption):
    """Reclaim orphaned rows and disk space."""
    report = _run(lambda s: s.cleanup(), database_url)
    if report is None:
        console.print("[red]Cleanup failed[/red], see logs")
        raise typer.Exit(1)
    console.print(
        f"[green]✓[/green] Reclaimed {report.total} rows "
        f"(builds={report.orphan_builds}, edges={report.orphan_edges}, artifacts={report.orphan_artifacts})"
    )


@app.command()
def info(database_url: Optional[str] = DatabaseOption):
    """Show store backend and table sizes."""

    async def _info(store: MavenGraphStore):
        return await store.to_pretty_string(), store.is_enough_production_grade_for_the_workload()

    text, production_grade = _run(_info, database_url)
    console.print(Panel(text, title="mvngraph"))
    if not production_grade:
        console.print("[yellow]Warning:[/yellow] embedded database, not production grade for this workload")


@app.command()
def version():
    """Show mvngraph version."""
    console.print(f"mvngraph v{__version__}")


if __name__ == "__main__":
    app()
