"""Seed the configured database with the demo portfolio."""

from __future__ import annotations

import argparse
import asyncio

from app.db.session import Database
from app.repositories import SqlAlchemyEntityStore
from app.services.samples import seed_sample_data


async def _run(database_url: str | None, reset: bool) -> None:
    database = Database(database_url)
    try:
        await database.create_all()
        store = SqlAlchemyEntityStore(database)
        if reset:
            await store.reset()
        created = await seed_sample_data(store)
        print(
            f"Seeded {len(created.platforms)} platforms, {len(created.assets)} assets "
            f"and {len(created.transactions)} transactions"
        )
    finally:
        await database.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Load the demo portfolio into the tracker database")
    parser.add_argument("--database-url", default=None)
    parser.add_argument("--reset", action="store_true", help="Clear every table before seeding")
    args = parser.parse_args()
    asyncio.run(_run(args.database_url, args.reset))


if __name__ == "__main__":
    main()
