import asyncio

import typer

from account_api.core import database
from account_api.core.errors import EmailAlreadyExists
from account_api.repositories import UserRepository
from account_api.services.users import UserAccountManager

app = typer.Typer()

DEFAULT_ACCOUNTS = (
    ("Admin", "admin@email.com", "Admin12@"),
    ("User", "user@email.com", "Aa12345!"),
)


def _manager() -> UserAccountManager:
    return UserAccountManager(UserRepository(database.SessionLocal))


async def _register(accounts) -> list[str]:
    await database.create_schema(database.engine)
    manager = _manager()
    created = []
    for name, email, password in accounts:
        try:
            await manager.register(name, email, password)
        except EmailAlreadyExists:
            continue
        created.append(email)
    return created


@app.command()
def create_user(name: str, email: str, password: str):
    created = asyncio.run(_register([(name, email, password)]))
    if not created:
        typer.echo(f"{email} already exists")
        raise typer.Exit(code=1)
    typer.echo(f"Created {email}")


@app.command()
def seed():
    created = asyncio.run(_register(DEFAULT_ACCOUNTS))
    for email in created:
        typer.echo(f"Created {email}")
    typer.echo(f"Seed complete ({len(created)} new)")


if __name__ == "__main__":
    app()
