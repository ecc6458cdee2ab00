import asyncio
from pathlib import Path
import subprocess
from typing import Annotated

from rich import print
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError
import typer

from nextsub.core.config import settings
from nextsub.core.enums import AuditAction

app = typer.Typer()


async def init_db_task():
    """
    Create every table from the model metadata.

    Intended for development and tests; production schemas are managed with
    `migrate`.
    """
    from nextsub.core.db import dispose_db, init_db

    print("[yellow]Creating database tables[/yellow]")
    try:
        await init_db()
    except SQLAlchemyError as e:
        print(f"[red]Error creating tables:[/red] {str(e)}")
        raise typer.Exit(1)
    finally:
        await dispose_db()
    print("[green]Database tables created[/green]")


@app.command()
def initdb():
    """
    Creates the database tables directly from the models, without Alembic.
    """
    asyncio.run(init_db_task())


@app.command()
def makemigrations(comment: Annotated[str, typer.Argument()] = "auto"):
    """
    Creates a new Alembic migration revision with an autogenerated migration script.

    Args:
        comment (str, optional): The message to use for the migration revision. Defaults to "auto".

    Raises:
        subprocess.CalledProcessError: If the Alembic command fails.
    """
    try:
        revision_command = f'alembic revision --autogenerate -m "{comment}"'
        print(f"Running Alembic migrations: {revision_command}")
        subprocess.run(revision_command, shell=True, check=True)
    except subprocess.CalledProcessError as e:
        print(f"[red]Error:[/red] {e}")
        raise
    print("[green]Make migrations complete[/green]")


@app.command()
def showmigrations():
    """
    Shows the Alembic migration history.

    Raises:
        subprocess.CalledProcessError: If the Alembic command fails.
    """
    try:
        history_command = "alembic history"
        print(f"Running Alembic history: {history_command}")
        subprocess.run(history_command, shell=True, check=True)
    except subprocess.CalledProcessError as e:
        print(f"[red]Error:[/red] {e}")
        raise
    print("[green]Show migrations complete[/green]")


@app.command()
def migrate():
    """
    Runs the Alembic database migration to upgrade the schema to the latest version.
    """
    try:
        upgrade_command = "alembic upgrade head"
        print(f"Running Alembic upgrade: {upgrade_command}")
        subprocess.run(upgrade_command, shell=True, check=True)
    except subprocess.CalledProcessError as e:
        print(f"[red]Error:[/red] {e}")
        raise
    print("[green]Migration complete[/green]")


@app.command()
def runserver():
    try:
        server_command = (
            "uvicorn nextsub.main:app --host 127.0.0.1 --port 8000 --reload"
            if settings.DEBUG
            else "uvicorn nextsub.main:app --host 0.0.0.0 --port 8000"
        )
        print(f"Running FastAPI server: {server_command}")
        subprocess.run(server_command, shell=True, check=True)
    except subprocess.CalledProcessError as e:
        print(f"[red]Error:[/red] {e}")
        raise


@app.command()
def runworker():
    """
    Runs the standalone message consumer that delivers admin code emails.
    """
    from nextsub.infrastructure.messaging.main import main

    print("[cyan]Starting admin code email worker[/cyan]")
    asyncio.run(main())


@app.command()
def generateopenapi():
    """
    Generates the OpenAPI schema for the FastAPI application and saves it to openapi.json.
    """
    from nextsub.main import app as fastapi_app
    from nextsub.core.utils import generate_openapi_json, write_to_file_async

    openapi_path = Path("openapi.json")
    asyncio.run(
        write_to_file_async(str(openapi_path), generate_openapi_json(fastapi_app))
    )
    print(f"[green]OpenAPI schema generated at {openapi_path.name}[/green]")


async def audit_log_task(action: AuditAction | None, limit: int) -> None:
    from nextsub.core.db import AsyncSessionLocal, dispose_db
    from nextsub.core.db.crud import audit_entry_db

    try:
        async with AsyncSessionLocal() as session:
            entries = await audit_entry_db.get_recent(
                session, action=action, limit=limit
            )
    finally:
        await dispose_db()

    if not entries:
        print("[cyan]No audit entries found[/cyan]")
        return

    table = Table(title="Admin authentication audit trail")
    for column in ("When", "Action", "Outcome", "Reason", "Principal", "Client"):
        table.add_column(column)
    for entry in entries:
        table.add_row(
            entry.created_at.isoformat(timespec="seconds"),
            entry.action.value,
            entry.outcome.value,
            entry.reason or "",
            entry.principal_id or "",
            entry.client_key or "",
        )
    Console().print(table)


@app.command()
def auditlog(
    action: Annotated[
        AuditAction | None,
        typer.Option(help="Only show entries for this action."),
    ] = None,
    limit: Annotated[int, typer.Option(min=1, max=1000)] = 50,
):
    """
    Shows the most recent admin authentication audit entries.

    Examples:
        python manage.py auditlog
        python manage.py auditlog --action verify_code --limit 20
    """
    asyncio.run(audit_log_task(action, limit))


if __name__ == "__main__":
    app()
