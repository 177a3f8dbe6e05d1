"""Development helper to drop and recreate the Snippy schema."""

from __future__ import annotations

import argparse
import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from snippy.config import settings
from snippy.models import Base


async def _reset_schema(*, create_tables: bool) -> None:
    engine = create_async_engine(settings.database_url)
    try:
        async with engine.begin() as conn:
            await conn.execute(text("DROP SCHEMA IF EXISTS public CASCADE"))
            await conn.execute(text("CREATE SCHEMA public"))
            await conn.execute(text("GRANT ALL ON SCHEMA public TO public"))
            if create_tables:
                await conn.run_sync(Base.metadata.create_all)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create tables from the ORM models instead of leaving them to alembic.",
    )
    args = parser.parse_args(argv)

    if settings.environment == "production":
        print("Refusing to reset a production database")
        return 1

    asyncio.run(_reset_schema(create_tables=args.create_tables))
    print("Database schema reset complete")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
