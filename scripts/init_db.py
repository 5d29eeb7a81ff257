#!/usr/bin/env python
"""Create the marketplace tables in the configured database."""
import asyncio

from dotenv import load_dotenv

load_dotenv()

from rich.console import Console

from marketplace_api.db.connection import create_engine
from marketplace_api.db.models import Base
from marketplace_api.main import _sanitize_database_url, _validate_environment
from marketplace_api.settings import get_settings

console = Console()


async def init_db(url: str | None = None) -> None:
    engine = create_engine(url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    _validate_environment()
    target = get_settings().resolved_database_url
    console.print(f"[bold]Database:[/bold] {_sanitize_database_url(target)}")
    asyncio.run(init_db(target))
    console.print("[green]Database tables created successfully[/green]")
