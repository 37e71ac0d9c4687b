"""Import a broker CSV export from the command line."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from app.db.session import Database
from app.repositories import SqlAlchemyEntityStore, SqlAlchemyMappingMemory
from app.services.imports import ImportSession, ImportState


def _parse_mapping(values: list[str]) -> dict[str, str | None]:
    mapping: dict[str, str | None] = {}
    for value in values:
        name, _, header = value.partition("=")
        mapping[name.strip()] = header.strip() or None
    return mapping


async def _run(args: argparse.Namespace) -> int:
    text = Path(args.csv_file).read_text(encoding="utf-8-sig")
    database = Database(args.database_url)
    try:
        await database.create_all()
        session = ImportSession(
            SqlAlchemyEntityStore(database),
            SqlAlchemyMappingMemory(database),
            default_currency=args.currency,
        )
        state = await session.load(
            text,
            default_platform=args.platform,
            column_mapping=_parse_mapping(args.map),
        )
        for error in session.result.errors:
            print(f"row {error.row}: {error.message}")
        if state is not ImportState.READY:
            review = ", ".join(session.field_review()) or "none"
            print(f"Import not ready ({state.value}); fields to review: {review}")
            return 1
        if args.dry_run:
            print(f"{len(session.result.records)} rows ready to import")
            return 0
        summary = await session.commit(remember_mapping=not args.forget_mapping)
        print(
            f"Imported {summary.transactions_created} transactions, {summary.assets_created} new assets, "
            f"{summary.platforms_created} new platforms"
        )
        return 0
    finally:
        await database.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Import a transactions CSV into the tracker database")
    parser.add_argument("csv_file")
    parser.add_argument("--platform", default=None, help="Broker used when the file has no platform column")
    parser.add_argument("--currency", default="EUR")
    parser.add_argument("--map", action="append", default=[], metavar="FIELD=HEADER")
    parser.add_argument("--database-url", default=None)
    parser.add_argument("--dry-run", action="store_true")
    parser.add_argument("--forget-mapping", action="store_true")
    args = parser.parse_args()
    raise SystemExit(asyncio.run(_run(args)))


if __name__ == "__main__":
    main()
