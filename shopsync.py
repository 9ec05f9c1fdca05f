#!/usr/bin/env python3
"""ShopSync management CLI."""

import asyncio
import os
import secrets
import subprocess
import sys

import click


def _run(args: list[str], *, replace: bool = False) -> None:
    click.echo(f"  {click.style('$', dim=True)} {click.style(' '.join(args), dim=True)}\n")
    if replace:
        os.execvp(args[0], args)
    completed = subprocess.run(args)
    if completed.returncode != 0:
        _fail(f"exited with code {completed.returncode}")
        sys.exit(completed.returncode)


def _ok(text: str) -> None:
    click.echo(f"  {click.style('✓', fg='green')} {text}")


def _fail(text: str) -> None:
    click.echo(f"  {click.style('✗', fg='red')} {text}")


def _header(text: str) -> None:
    click.echo(f"\n  {click.style(text, fg='cyan', bold=True)}\n")


@click.group()
def cli() -> None:
    """ShopSync management CLI."""


@cli.command()
@click.argument("uvicorn_args", nargs=-1)
def app(uvicorn_args: tuple[str, ...]) -> None:
    """Start the webhook API with --reload."""
    _header("Starting ShopSync")
    _run(
        ["uv", "run", "uvicorn", "src.app:app", "--reload", *uvicorn_args], replace=True
    )


@cli.group()
def db() -> None:
    """Database management commands."""


@db.command()
def up() -> None:
    """Start PostgreSQL (docker compose up)."""
    _header("Starting PostgreSQL")
    _run(["docker", "compose", "up", "-d"])
    _ok("PostgreSQL is running")


@db.command()
def down() -> None:
    """Stop PostgreSQL (docker compose down)."""
    _header("Stopping PostgreSQL")
    _run(["docker", "compose", "down"])
    _ok("PostgreSQL stopped")


@db.command()
def migrate() -> None:
    """Apply migrations (alembic upgrade head)."""
    _header("Running migrations")
    _run(["uv", "run", "alembic", "upgrade", "head"])
    _ok("Migrations applied")


@db.command()
@click.argument("message", default="auto")
def revision(message: str) -> None:
    """Autogenerate a migration from model changes."""
    _header(f"Generating migration: {message}")
    _run(["uv", "run", "alembic", "revision", "--autogenerate", "-m", message])
    _ok("Migration generated")


@cli.group()
def shop() -> None:
    """Shop (tenant) management."""


async def _create_shop(name: str, token: str, domain: str | None) -> str:
    from src.base.db import async_session
    from src.shop.config import normalize_autoflow_domain
    from src.shop.models import Shop

    async with async_session() as session:
        record = Shop(
            name=name,
            webhook_token=token,
            autoflow_domain=normalize_autoflow_domain(domain) or None,
        )
        session.add(record)
        await session.commit()
        return str(record.id)


@shop.command("add")
@click.argument("name")
@click.option("--domain", default=None, help="AutoFlow domain or subdomain.")
@click.option("--token", default=None, help="Webhook token (generated if omitted).")
def add_shop(name: str, domain: str | None, token: str | None) -> None:
    """Register a shop and print its webhook token."""
    _header(f"Registering shop: {name}")
    token = token or secrets.token_urlsafe(24)
    shop_id = asyncio.run(_create_shop(name, token, domain))
    _ok(f"Shop {shop_id}")
    _ok(f"Webhook URL path: /webhooks/autoflow/{token}")


@cli.command()
@click.argument("pytest_args", nargs=-1)
def test(pytest_args: tuple[str, ...]) -> None:
    """Run the test suite."""
    _header("Running tests")
    _run(["uv", "run", "pytest", "tests/", "-v", *pytest_args], replace=True)


@cli.command()
def lint() -> None:
    """Type-check with mypy."""
    _header("Running mypy")
    _run(["uv", "run", "mypy", "src", "tests"])
    _ok("Type check passed")


if __name__ == "__main__":
    cli()
