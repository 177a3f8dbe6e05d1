"""Recompute denormalized snippet counters from their child rows."""

from __future__ import annotations

import argparse
import asyncio
import logging

from snippy.core.database import close_db, run_in_transaction
from snippy.core.logging import setup_logging
from snippy.services.counters import recount

logger = logging.getLogger("snippy.scripts.recount_counters")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--snippet-id", default=None, help="Only repair this snippet.")
    return parser.parse_args(argv)


async def run(snippet_id: str | None) -> int:
    try:
        return await run_in_transaction(
            lambda session: recount(session, snippet_id),
            operation_name="recount_counters",
        )
    finally:
        await close_db()


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    args = parse_args(argv)
    updated = asyncio.run(run(args.snippet_id))
    logger.info("Counter repair finished", extra={"updated": updated})
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
