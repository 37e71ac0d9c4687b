"""Fetch live quotes and EUR rates for every held asset."""

from __future__ import annotations

import argparse
import asyncio

from app.db.session import Database
from app.providers.frankfurter import FrankfurterClient
from app.providers.twelve_data import TwelveDataClient
from app.repositories import SqlAlchemyEntityStore
from app.services.market_data import refresh_market_data


async def _run(database_url: str | None) -> None:
    database = Database(database_url)
    quotes = TwelveDataClient()
    fx = FrankfurterClient()
    try:
        await database.create_all()
        result = await refresh_market_data(SqlAlchemyEntityStore(database), quotes, fx)
        print(f"Stored {result.prices_created} prices and {result.fx_created} FX rates")
        for error in result.quote_errors:
            print(f"{error.symbol}: {error.message}")
        for error in result.fx_errors:
            print(f"{error.currency}/EUR: {error.message}")
    finally:
        await quotes.aclose()
        await fx.aclose()
        await database.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Refresh live prices and FX rates")
    parser.add_argument("--database-url", default=None)
    args = parser.parse_args()
    asyncio.run(_run(args.database_url))


if __name__ == "__main__":
    main()
