"""Command-line interface using Typer."""

import asyncio
from typing import Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from animation_engine import __version__
from animation_engine.logging import setup_logging

# Setup logging
setup_logging()

app = typer.Typer(
    name="animation-engine",
    help="AI Animation Engine - Prompt to Manim video CLI",
    add_completion=False,
)

# Subcommand groups
users_app = typer.Typer(help="User management commands")
animations_app = typer.Typer(help="Animation generation commands")
app.add_typer(users_app, name="users")
app.add_typer(animations_app, name="animations")

console = Console()

STATUS_STYLES = {
    "pending": "dim",
    "processing": "yellow",
    "completed": "green",
    "failed": "red",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"AI Animation Engine v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """AI Animation Engine - Generate mathematical animations from prompts."""
    pass


@app.command()
def version() -> None:
    """Show the installed version."""
    console.print(f"AI Animation Engine v{__version__}")


@app.command()
def keygen() -> None:
    """Generate an ENCRYPTION_MASTER_KEY for stored API keys."""
    from animation_engine.services.encryption import generate_master_key

    console.print(generate_master_key())


@app.command()
def reconcile(
    timeout: Optional[int] = typer.Option(
        None,
        "--timeout",
        "-t",
        help="Fail tasks processing longer than this many seconds (default from settings)",
    ),
    all_processing: bool = typer.Option(
        False,
        "--all",
        help="Fail every processing task, as on service restart",
    ),
) -> None:
    """Mark generation tasks stuck in processing as failed."""
    from animation_engine.config import settings
    from animation_engine.db.session import get_session_context
    from animation_engine.services.reconciliation import (
        reconcile_interrupted_tasks,
        reconcile_stale_tasks,
    )

    with get_session_context() as session:
        if all_processing:
            result = reconcile_interrupted_tasks(session)
        else:
            result = reconcile_stale_tasks(session, timeout or settings.stale_task_timeout_seconds)

    if result.count:
        console.print(
            f"[yellow]Failed {result.count} task(s) across "
            f"{len(result.animation_ids)} animation(s)[/yellow]"
        )
    else:
        console.print("[green]No stale tasks found[/green]")


@app.command()
def worker() -> None:
    """Start the Celery worker with the beat scheduler."""
    from animation_engine.worker import celery_app

    console.print("[bold blue]Starting maintenance worker...[/bold blue]")
    celery_app.worker_main(["worker", "--beat", "--loglevel=INFO", "--queues=low"])


# =============================================================================
# Users
# =============================================================================


@users_app.command("create")
def users_create(
    username: str = typer.Option(..., "--username", "-u", help="Unique username"),
    email: str = typer.Option(..., "--email", "-e", help="Unique email address"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, help="At least 8 characters"
    ),
) -> None:
    """Register a user."""
    from animation_engine.db.session import get_session_context
    from animation_engine.exceptions import ValidationError
    from animation_engine.services.users import create_user

    try:
        with get_session_context() as session:
            user = create_user(session, username, email, password)
            user_id = user.id
            remaining = user.generations_remaining
    except ValidationError as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=1)

    console.print("[bold green]User created successfully![/bold green]")
    console.print(f"[cyan]ID:[/cyan] {user_id}")
    console.print(f"[cyan]Generations remaining:[/cyan] {remaining}")


# =============================================================================
# Animations
# =============================================================================


def _render_event(message: dict) -> None:
    event_type = message["type"]
    if event_type == "task_progress":
        console.print(f"  [dim]rendering {message['progress']}%[/dim]")
        return

    status = message["status"]
    style = STATUS_STYLES.get(status, "white")
    if event_type == "task_update":
        line = f"  {message['taskType']}: [{style}]{status}[/{style}]"
        if message.get("videoUrl"):
            line += f" -> {message['videoUrl']}"
    else:
        line = f"[bold]animation: [{style}]{status}[/{style}][/bold]"
    if message.get("error"):
        line += f" [red]({message['error']})[/red]"
    console.print(line)


async def _run_with_events(animation_id: UUID, ai_model: str) -> str | None:
    from animation_engine.domain.enums import AIModel
    from animation_engine.services.backends import GenerationBackends
    from animation_engine.services.notifications import NotificationChannel
    from animation_engine.services.orchestrator import AnimationPipeline

    channel = NotificationChannel()
    subscription = channel.subscribe()
    pipeline = AnimationPipeline(GenerationBackends(), channel)

    run = asyncio.create_task(pipeline.run(animation_id, AIModel(ai_model)))
    while not (run.done() and subscription.queue.empty()):
        try:
            message = await asyncio.wait_for(subscription.get(), timeout=0.5)
        except TimeoutError:
            continue
        _render_event(message)

    channel.unsubscribe(subscription)
    status = run.result()
    return str(status) if status else None


@animations_app.command("create")
def animations_create(
    user_id: str = typer.Option(..., "--user", "-u", help="Owner user ID"),
    prompt: str = typer.Option(..., "--prompt", "-p", help="What to animate"),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Animation title"),
    model: str = typer.Option("openai", "--model", "-m", help="openai, gemini or groq"),
    duration: int = typer.Option(30, "--duration", "-d", help="Target length (5-60 seconds)"),
) -> None:
    """Create an animation and run the pipeline in this process."""
    from animation_engine.db.session import get_session_context
    from animation_engine.exceptions import EntitlementError, NotFoundError, ValidationError
    from animation_engine.services.animations import build_request, create_animation_project
    from animation_engine.utils import run_async

    try:
        owner = UUID(user_id)
        request = build_request(prompt=prompt, ai_model=model, duration=duration, title=title)
        with get_session_context() as session:
            animation = create_animation_project(session, owner, request)
            animation_id = animation.id
    except ValueError:
        console.print(f"[bold red]Invalid user ID: {user_id}[/bold red]")
        raise typer.Exit(code=1)
    except (ValidationError, EntitlementError, NotFoundError) as e:
        console.print(f"[bold red]{e}[/bold red]")
        raise typer.Exit(code=1)

    console.print(
        Panel(
            f"[cyan]ID:[/cyan] {animation_id}\n[cyan]Title:[/cyan] {request.title}\n"
            f"[cyan]Model:[/cyan] {request.ai_model}  [cyan]Duration:[/cyan] {request.duration}s",
            title="Animation created",
        )
    )

    status = run_async(_run_with_events(animation_id, str(request.ai_model)))
    if status != "completed":
        raise typer.Exit(code=1)


@animations_app.command("show")
def animations_show(
    animation_id: str = typer.Argument(..., help="Animation ID"),
) -> None:
    """Show an animation and its stage tasks."""
    from animation_engine.db import repository
    from animation_engine.db.session import get_session_context
    from animation_engine.exceptions import NotFoundError

    try:
        animation_uuid = UUID(animation_id)
    except ValueError:
        console.print(f"[bold red]Invalid animation ID: {animation_id}[/bold red]")
        raise typer.Exit(code=1)

    with get_session_context() as session:
        try:
            animation = repository.get_animation(session, animation_uuid)
        except NotFoundError as e:
            console.print(f"[bold red]{e}[/bold red]")
            raise typer.Exit(code=1)

        style = STATUS_STYLES.get(animation.status, "white")
        console.print(
            Panel(
                f"[cyan]Title:[/cyan] {animation.title}\n"
                f"[cyan]Prompt:[/cyan] {animation.prompt}\n"
                f"[cyan]Model:[/cyan] {animation.ai_model}  "
                f"[cyan]Duration:[/cyan] {animation.duration}s\n"
                f"[cyan]Status:[/cyan] [{style}]{animation.status}[/{style}]\n"
                f"[cyan]Video:[/cyan] {animation.video_url or '-'}",
                title=str(animation.id),
            )
        )

        table = Table(title="Stages")
        table.add_column("Stage", style="cyan")
        table.add_column("Status")
        table.add_column("Progress")
        table.add_column("Error")

        for task in repository.get_tasks(session, animation.id):
            task_style = STATUS_STYLES.get(task.status, "white")
            table.add_row(
                task.task_type,
                f"[{task_style}]{task.status}[/{task_style}]",
                f"{task.progress}%" if task.progress is not None else "-",
                (task.error or "")[:60],
            )
        console.print(table)


@animations_app.command("list")
def animations_list(
    user_id: str = typer.Option(..., "--user", "-u", help="Owner user ID"),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum rows"),
) -> None:
    """List a user's animations, newest first."""
    from animation_engine.db import repository
    from animation_engine.db.session import get_session_context

    try:
        owner = UUID(user_id)
    except ValueError:
        console.print(f"[bold red]Invalid user ID: {user_id}[/bold red]")
        raise typer.Exit(code=1)

    with get_session_context() as session:
        animations = repository.list_user_animations(session, owner, limit=limit)

        if not animations:
            console.print("[dim]No animations found.[/dim]")
            return

        table = Table(title="Animations")
        table.add_column("ID", style="dim")
        table.add_column("Title", style="cyan")
        table.add_column("Model")
        table.add_column("Status")
        table.add_column("Created")

        for animation in animations:
            style = STATUS_STYLES.get(animation.status, "white")
            table.add_row(
                str(animation.id),
                animation.title[:40],
                animation.ai_model,
                f"[{style}]{animation.status}[/{style}]",
                animation.created_at.strftime("%Y-%m-%d %H:%M") if animation.created_at else "-",
            )
        console.print(table)


if __name__ == "__main__":
    app()
