"""CLI commands for Mosaic."""

import asyncio
from pathlib import Path

import click

from mosaic.config import get_settings


@click.group()
@click.version_option(package_name="mosaic-cms")
def cli():
    """Mosaic - schema-driven content and page composition."""
    pass


@cli.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to")
@click.option("--port", default=8080, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.option("--workers", default=1, type=int, help="Number of worker processes")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Logging level",
)
def serve(host, port, reload, workers, log_level):
    """Run the Mosaic API server."""
    import uvicorn

    uvicorn.run(
        "mosaic.asgi:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=1 if reload else workers,
        log_level=log_level,
        server_header=False,
    )


@cli.group()
def db():
    """Database management commands."""
    pass


def _alembic_config():
    from alembic.config import Config

    return Config(str(Path(__file__).parent / "alembic.ini"))


@db.command()
@click.argument("revision", default="head")
def upgrade(revision):
    """Apply migrations up to REVISION (default: head)."""
    from alembic import command

    command.upgrade(_alembic_config(), revision)


@db.command(context_settings={"ignore_unknown_options": True})
@click.argument("revision")
def downgrade(revision):
    """Revert migrations down to REVISION (e.g. -1 or base)."""
    from alembic import command

    command.downgrade(_alembic_config(), revision)


@db.command()
def current():
    """Show the current migration revision."""
    from alembic import command

    command.current(_alembic_config())


@db.command("create-all")
def db_create_all():
    """Create every table that does not exist yet."""
    from mosaic.db.session import build_engine, create_all

    async def run():
        engine = build_engine(get_settings())
        try:
            await create_all(engine)
        finally:
            await engine.dispose()

    asyncio.run(run())
    click.echo("Tables created.")


@cli.group()
def sections():
    """Section type catalog commands."""
    pass


@sections.command("list")
def sections_list():
    """List registered section types."""
    from mosaic.db.services.section_registry import section_registry

    for variant in section_registry.variants:
        click.echo(
            f"{variant.uid:<28} {variant.display_name:<18} {variant.storage.table_name}"
        )


@sections.command("sync")
def sections_sync():
    """Upsert the section_types catalog from the registry."""
    from mosaic.db.services.section_registry import section_registry
    from mosaic.db.session import build_engine, build_session_maker

    async def run():
        engine = build_engine(get_settings())
        try:
            async with build_session_maker(engine)() as db_session:
                return await section_registry.sync_section_types(db_session)
        finally:
            await engine.dispose()

    synced = asyncio.run(run())
    click.echo(f"Synced {len(synced)} section types.")


if __name__ == "__main__":
    cli()
