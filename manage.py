import asyncio
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
import subprocess
from typing import Annotated
from uuid import UUID

from rich import print
from rich.table import Table
import typer

from carintel.core.config import settings
from carintel.core.enums import KeyEnvironment, SubscriptionStatus
from carintel.core.exceptions.types import DatabaseException

app = typer.Typer()


async def init_db_task() -> None:
    """Create every table from the ORM metadata (development and tests only)."""
    from carintel.core.db import dispose_db, init_db

    print("[yellow]Creating database tables[/yellow]")
    try:
        await init_db()
    finally:
        await dispose_db()
    print("[green]Database tables created[/green]")


async def create_tier_task(
    tier_id: str, name: str, rate_limit: int, monthly_limit: int | None
) -> None:
    """
    Create a subscription tier.

    Raises:
        typer.Exit: If the tier exists or its limits are rejected.
    """
    from carintel.core.db import AsyncSessionLocal, dispose_db
    from carintel.core.db.crud import subscription_tier_db

    try:
        async with AsyncSessionLocal() as session:
            if await subscription_tier_db.get_by_id(session, tier_id):
                print(f"[yellow]Tier already exists:[/yellow] {tier_id}")
                raise typer.Exit(1)
            tier = await subscription_tier_db.create(
                session,
                {
                    "id": tier_id,
                    "name": name,
                    "rate_limit_per_minute": rate_limit,
                    "monthly_limit": monthly_limit,
                },
            )
    except DatabaseException as e:
        print(f"[red]Error creating tier:[/red] {str(e)}")
        raise typer.Exit(1)
    finally:
        await dispose_db()

    print(
        f"[green]Tier created:[/green] {tier.id} "
        f"({tier.rate_limit_per_minute}/min, "
        f"{tier.monthly_limit if tier.monthly_limit is not None else 'unlimited'}/month)"
    )


async def create_organization_task(
    name: str, tier_id: str, subscription_status: SubscriptionStatus
) -> None:
    from carintel.core.db import AsyncSessionLocal, dispose_db
    from carintel.core.db.crud import organization_db, subscription_tier_db

    try:
        async with AsyncSessionLocal() as session:
            if not await subscription_tier_db.get_by_id(session, tier_id):
                print(f"[red]Unknown tier:[/red] {tier_id}")
                raise typer.Exit(1)
            organization = await organization_db.create(
                session,
                {
                    "name": name,
                    "tier_id": tier_id,
                    "subscription_status": subscription_status,
                },
            )
    except DatabaseException as e:
        print(f"[red]Error creating organization:[/red] {str(e)}")
        raise typer.Exit(1)
    finally:
        await dispose_db()

    print(f"[green]Organization created:[/green] {organization.name} ({organization.id})")


async def create_api_key_task(
    organization_id: UUID,
    name: str,
    environment: KeyEnvironment,
    expires_in_days: int | None,
) -> str:
    """
    Issue a key for an organization. Only the hash and display prefix are stored.

    Returns:
        The raw key, which cannot be recovered later.
    """
    from carintel.core.db import AsyncSessionLocal, dispose_db
    from carintel.core.db.crud import api_key_db, organization_db
    from carintel.core.utils import generate_api_key

    raw_key, key_hash, key_prefix = generate_api_key(environment)
    expires_at = (
        datetime.now(timezone.utc) + timedelta(days=expires_in_days)
        if expires_in_days
        else None
    )

    try:
        async with AsyncSessionLocal() as session:
            if not await organization_db.get_by_id(session, organization_id):
                print(f"[red]Unknown organization:[/red] {organization_id}")
                raise typer.Exit(1)
            await api_key_db.create(
                session,
                {
                    "organization_id": organization_id,
                    "name": name,
                    "key_hash": key_hash,
                    "key_prefix": key_prefix,
                    "environment": environment,
                    "expires_at": expires_at,
                },
            )
    except DatabaseException as e:
        print(f"[red]Error creating API key:[/red] {str(e)}")
        raise typer.Exit(1)
    finally:
        await dispose_db()

    return raw_key


async def revoke_api_key_task(api_key_id: UUID) -> None:
    from carintel.core.db import AsyncSessionLocal, dispose_db
    from carintel.core.db.crud import api_key_db

    try:
        async with AsyncSessionLocal() as session:
            api_key = await api_key_db.revoke(session, api_key_id)
    except DatabaseException as e:
        print(f"[red]Error revoking API key:[/red] {str(e)}")
        raise typer.Exit(1)
    finally:
        await dispose_db()

    if api_key is None:
        print(f"[red]Unknown API key:[/red] {api_key_id}")
        raise typer.Exit(1)
    print(f"[green]API key revoked:[/green] {api_key.key_prefix}...")


async def list_api_keys_task(organization_id: UUID, include_inactive: bool) -> None:
    from carintel.core.db import AsyncSessionLocal, dispose_db
    from carintel.core.db.crud import api_key_db

    try:
        async with AsyncSessionLocal() as session:
            api_keys = await api_key_db.get_by_organization(
                session, organization_id, include_inactive=include_inactive
            )
    finally:
        await dispose_db()

    table = Table(title=f"API keys for {organization_id}")
    for column in ("ID", "Name", "Prefix", "Environment", "Active", "Last used"):
        table.add_column(column)
    for api_key in api_keys:
        table.add_row(
            str(api_key.id),
            api_key.name,
            f"{api_key.key_prefix}...",
            api_key.environment.value,
            "yes" if api_key.is_active and api_key.revoked_at is None else "no",
            api_key.last_used_at.isoformat() if api_key.last_used_at else "never",
        )
    print(table)


@app.command()
def initdb():
    """
    Creates every table directly from the ORM models.

    Use ``migrate`` for real databases; this is for local development.
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
    Shows the current Alembic migration history.

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

    This function executes the "alembic upgrade head" command using a subprocess.
    If the migration fails, it prints an error message; otherwise, it confirms successful migration.
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
            "uvicorn carintel.main:app --host 127.0.0.1 --port 8000 --reload"
            if settings.DEBUG
            else "uvicorn carintel.main:app --host 0.0.0.0 --port 8000"
        )
        print(f"Running FastAPI server: {server_command}")
        subprocess.run(server_command, shell=True, check=True)
    except subprocess.CalledProcessError as e:
        print(f"[red]Error:[/red] {e}")
        raise


@app.command()
def generateopenapi():
    """
    Generates the OpenAPI schema for the FastAPI application and saves it to a JSON file.
    """
    from carintel.main import app

    openapi_path = Path("openapi.json")
    with openapi_path.open("w", encoding="utf-8") as f:
        json.dump(app.openapi(), f, ensure_ascii=False, indent=2)
    print(f"[green]OpenAPI schema generated at {openapi_path.name}[/green]")


@app.command()
def createtier(
    tier_id: Annotated[str, typer.Argument(help="Tier identifier, e.g. 'starter'")],
    rate_limit: Annotated[
        int, typer.Option("--rate-limit", "-r", help="Requests per minute", min=1)
    ],
    monthly_limit: Annotated[
        int | None,
        typer.Option(
            "--monthly-limit", "-m", help="Requests per month; omit for unlimited", min=1
        ),
    ] = None,
    name: Annotated[str | None, typer.Option(help="Display name")] = None,
):
    """
    Creates a subscription tier.

    Examples:
        python manage.py createtier free --rate-limit 10 --monthly-limit 1000
        python manage.py createtier enterprise --rate-limit 600
    """
    asyncio.run(
        create_tier_task(tier_id, name or tier_id.title(), rate_limit, monthly_limit)
    )


@app.command()
def createorganization(
    name: Annotated[str, typer.Argument()],
    tier_id: Annotated[str, typer.Option("--tier", "-t")] = "free",
    subscription_status: Annotated[
        SubscriptionStatus, typer.Option("--status", "-s")
    ] = SubscriptionStatus.ACTIVE,
):
    """
    Creates an organization on a tier.

    Examples:
        python manage.py createorganization "Acme Motors" --tier starter
    """
    asyncio.run(create_organization_task(name, tier_id, subscription_status))


@app.command()
def createapikey(
    organization_id: Annotated[UUID, typer.Argument()],
    name: Annotated[str, typer.Option("--name", "-n")] = "Default",
    environment: Annotated[
        KeyEnvironment, typer.Option("--environment", "-e")
    ] = KeyEnvironment.LIVE,
    expires_in_days: Annotated[
        int | None, typer.Option("--expires-in-days", min=1)
    ] = None,
):
    """
    Issues an API key. The full key is printed once and never stored.

    Examples:
        python manage.py createapikey 0b6f... --environment test
    """
    raw_key = asyncio.run(
        create_api_key_task(organization_id, name, environment, expires_in_days)
    )
    print("[green]API key created. Store it now, it will not be shown again:[/green]")
    print(raw_key)


@app.command()
def revokeapikey(api_key_id: Annotated[UUID, typer.Argument()]):
    """Revokes an API key. Revoked keys are rejected as disabled."""
    asyncio.run(revoke_api_key_task(api_key_id))


@app.command()
def listapikeys(
    organization_id: Annotated[UUID, typer.Argument()],
    include_inactive: Annotated[bool, typer.Option("--all", "-a")] = False,
):
    """Lists an organization's API keys by display prefix."""
    asyncio.run(list_api_keys_task(organization_id, include_inactive))


@app.callback()
def main(ctx: typer.Context):
    print(f"Executing the command: {ctx.invoked_subcommand}")


if __name__ == "__main__":
    app()
