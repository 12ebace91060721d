"""
Job Portal Command Line Interface

Provides CLI commands for operating the job portal: configuration overview,
database initialization, admin seeding and the statistics reports.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

import typer
from rich.console import Console
from rich.table import Table

from jobportal.utils.exceptions import PortalException

app = typer.Typer(
    name="jobportal",
    help="Role-scoped recruitment tracking backend CLI",
    add_completion=False,
)
console = Console()


def _run_with_container(action: Callable[[Any], Awaitable[Any]]) -> Any:
    """Build a MongoDB-backed container, run ``action`` on it and close it."""
    from jobportal.core.container import Container
    from jobportal.utils.logger import setup_logging

    setup_logging()

    async def runner() -> Any:
        container = Container.from_settings()
        try:
            if not await container.check_connection():
                console.print("[red]Error: Could not connect to MongoDB.[/red]")
                console.print("[dim]Make sure MongoDB is running and connection settings are correct.[/dim]")
                raise typer.Exit(1)
            return await action(container)
        finally:
            await container.close()

    try:
        return asyncio.run(runner())
    except PortalException as e:
        console.print(f"[red]Error ({e.kind}): {e.message}[/red]")
        raise typer.Exit(1)


def _count_table(title: str, label: str, counts: dict[str, int]) -> Table:
    table = Table(title=title)
    table.add_column(label, style="cyan")
    table.add_column("Count", justify="right", style="green")
    for key, count in counts.items():
        table.add_row(key, str(count))
    return table


@app.command()
def version():
    """Show application version."""
    from jobportal import __app_name__, __version__

    console.print(f"[bold blue]{__app_name__}[/bold blue] version [green]{__version__}[/green]")


@app.command()
def info():
    """Show system information and configuration."""
    from jobportal.utils.config import get_settings

    settings = get_settings()

    table = Table(title="Job Portal Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Environment", settings.environment)
    table.add_row("Debug Mode", str(settings.debug))
    table.add_row("Database Host", f"{settings.database.host}:{settings.database.port}")
    table.add_row("Database Name", settings.database.name)
    table.add_row("Store Timeout", f"{settings.database.timeout_seconds}s")
    table.add_row("Resume Bucket", settings.resume.bucket_name)
    table.add_row("Max Resume Size", f"{settings.resume.max_size_bytes // (1024 * 1024)} MB")
    table.add_row("Log Level", settings.logging.level)

    console.print(table)


@app.command()
def init_db():
    """Initialize the database with required indexes."""
    console.print("[yellow]Initializing database...[/yellow]")

    async def action(container) -> dict[str, bool]:
        console.print("  [green]✓[/green] Connected to MongoDB")
        console.print("  Ensuring indexes...")
        return await container.startup()

    try:
        results = _run_with_container(action)
    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error initializing database: {e}[/red]")
        raise typer.Exit(1)

    failed = [name for name, ok in results.items() if not ok]
    for name, ok in results.items():
        mark = "[green]✓[/green]" if ok else "[yellow]○[/yellow]"
        console.print(f"    {mark} {name}")

    if failed:
        console.print(f"\n[yellow]Database initialized; {len(failed)} index(es) need attention.[/yellow]")
    else:
        console.print("\n[green]Database initialized successfully![/green]")


@app.command()
def seed_admin():
    """Create the initial admin account if it does not exist."""
    from jobportal.utils.config import get_settings

    seed = get_settings().admin_seed

    async def action(container):
        await container.startup()
        return await container.users.seed_admin(seed)

    admin, created = _run_with_container(action)
    if created:
        console.print("\n[green]Admin account created successfully![/green]")
        console.print(f"  Email:    [cyan]{admin.email}[/cyan]")
        console.print("[yellow]Change the password after first login.[/yellow]")
    else:
        console.print("[yellow]Admin account already exists.[/yellow]")
        console.print(f"  Email: [cyan]{admin.email}[/cyan]")


@app.command()
def job_stats(
    as_email: str = typer.Option(..., "--as", "-u", help="Email of the HR or admin user"),
):
    """Show job statistics within a user's scope."""

    async def action(container):
        principal = await container.users.resolve_principal(as_email)
        return await container.reports.job_stats(principal)

    stats = _run_with_container(action)

    console.print(f"[bold cyan]Job Statistics for {as_email}[/bold cyan]")
    console.print(f"[dim]{'─' * 50}[/dim]")
    console.print(f"  Total jobs: [green]{stats.total_jobs}[/green]")
    console.print(f"  Total applications: [green]{stats.total_applications}[/green]")
    console.print(_count_table("Jobs by Status", "Status", stats.jobs_by_status))

    if stats.top_skills:
        console.print(
            _count_table("Top Skills", "Skill", {s.skill: s.count for s in stats.top_skills})
        )

    if stats.top_jobs:
        table = Table(title="Top Jobs by Applications")
        table.add_column("Job ID", style="dim")
        table.add_column("Title", style="cyan")
        table.add_column("Applications", justify="right", style="green")
        for job in stats.top_jobs:
            table.add_row(str(job.job_id), job.title, str(job.count))
        console.print(table)


@app.command()
def dashboard(
    as_email: str = typer.Option(..., "--as", "-u", help="Email of an admin user"),
    recent: Optional[int] = typer.Option(None, "--recent", "-r", help="Recent activities to show"),
):
    """Show the platform-wide admin dashboard."""

    async def action(container):
        principal = await container.users.resolve_principal(as_email)
        return await container.reports.admin_dashboard(principal)

    data = _run_with_container(action)
    stats, quick = data.stats, data.quick_stats

    console.print("[bold cyan]Admin Dashboard[/bold cyan]")
    console.print(f"[dim]Generated {data.generated_at:%Y-%m-%d %H:%M} UTC[/dim]")
    console.print(f"[dim]{'─' * 50}[/dim]")

    table = Table(title="Overview")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_row("Jobs", str(stats.total_jobs))
    table.add_row("Applications", str(stats.total_applications))
    table.add_row("Users", str(stats.total_users))
    table.add_row("Jobs this month", str(quick.jobs_this_month))
    table.add_row("Applications this week", str(quick.applications_this_week))
    table.add_row("Shortlisted today", str(quick.shortlisted_today))
    table.add_row("Interviews scheduled", str(quick.interviews_scheduled))
    table.add_row("Average resume score", str(quick.avg_resume_score))
    console.print(table)

    console.print(_count_table("Applications by Status", "Status", stats.applications_by_status))
    console.print(_count_table("Users by Role", "Role", stats.users_by_role))

    if data.top_jobs:
        table = Table(title="Top Jobs")
        table.add_column("Title", style="cyan")
        table.add_column("Status")
        table.add_column("Applications", justify="right", style="green")
        for job in data.top_jobs:
            table.add_row(job.title, job.status or "-", str(job.count))
        console.print(table)

    if data.top_hrs:
        table = Table(title="Most Active HR")
        table.add_column("Name", style="cyan")
        table.add_column("Email")
        table.add_column("Jobs", justify="right", style="green")
        for hr in data.top_hrs:
            table.add_row(hr.name, hr.email, str(hr.job_count))
        console.print(table)

    activities = data.recent_activities[:recent] if recent is not None else data.recent_activities
    if activities:
        table = Table(title="Recent Applications")
        table.add_column("Applied", style="dim")
        table.add_column("Applicant", style="cyan")
        table.add_column("Job")
        table.add_column("Status", style="green")
        for activity in activities:
            table.add_row(
                f"{activity.applied_at:%Y-%m-%d %H:%M}",
                activity.applicant_name,
                activity.job_title,
                activity.status,
            )
        console.print(table)


if __name__ == "__main__":
    app()
