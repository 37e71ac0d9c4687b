import asyncio
import dataclasses
import inspect
import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.db.session import Database  # noqa: E402
from app.providers.frankfurter import FxProviderError  # noqa: E402
from app.providers.twelve_data import Quote, QuoteProviderError  # noqa: E402
from app.repositories import EntityNotFoundError, ImportBatch  # noqa: E402
from investment_tracker.models import Asset, Platform, utcnow  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            arguments = {name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
            loop.run_until_complete(test_function(**arguments))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


class InMemoryEntityStore:
    """Dict-backed entity store with an optional write failure."""

    def __init__(self, fail_on_write: bool = False) -> None:
        self.entities: dict[type, dict[str, object]] = {}
        self.fail_on_write = fail_on_write
        self.batches: list[ImportBatch] = []

    def _table(self, entity_type: type) -> dict[str, object]:
        return self.entities.setdefault(entity_type, {})

    async def get_all(self, entity_type):
        return list(self._table(entity_type).values())

    async def get(self, entity_type, entity_id):
        return self._table(entity_type).get(entity_id)

    async def create(self, entity):
        self._table(type(entity))[entity.id] = entity
        return entity

    async def update(self, entity):
        table = self._table(type(entity))
        if entity.id not in table:
            raise EntityNotFoundError(entity.id)
        table[entity.id] = entity
        return entity

    async def delete(self, entity_type, entity_id):
        return self._table(entity_type).pop(entity_id, None) is not None

    async def write_batch(self, batch: ImportBatch) -> None:
        if self.fail_on_write:
            raise RuntimeError("disk full")
        self.batches.append(batch)
        for field in dataclasses.fields(batch):
            for entity in getattr(batch, field.name):
                self._table(type(entity))[entity.id] = entity

    async def write_import(self, build):
        batch = build(await self.get_all(Platform), await self.get_all(Asset))
        await self.write_batch(batch)
        return batch

    async def reset(self) -> None:
        self.entities.clear()


class StubQuoteClient:
    """Quotes from a ``symbol -> (price, currency)`` table; other symbols fail."""

    def __init__(self, quotes: dict[str, tuple[float, str]] | None = None) -> None:
        self.quotes = quotes or {}
        self.calls: list[str] = []

    async def quote(self, symbol: str) -> Quote:
        self.calls.append(symbol)
        if symbol not in self.quotes:
            raise QuoteProviderError(f"Unknown symbol {symbol}")
        price, currency = self.quotes[symbol]
        return Quote(symbol=symbol, price=price, currency=currency, date=utcnow())

    async def aclose(self) -> None:
        return None


class StubFxClient:
    def __init__(self, rates: dict[str, float] | None = None) -> None:
        self.rates = rates or {}
        self.calls: list[str] = []

    async def rate_to_eur(self, currency: str) -> float:
        self.calls.append(currency)
        if currency not in self.rates:
            raise FxProviderError("No EUR conversion returned.")
        return self.rates[currency]

    async def aclose(self) -> None:
        return None


@pytest.fixture
def memory_store() -> InMemoryEntityStore:
    return InMemoryEntityStore()


@pytest.fixture
def failing_store() -> InMemoryEntityStore:
    return InMemoryEntityStore(fail_on_write=True)


@pytest.fixture
def quote_client() -> StubQuoteClient:
    return StubQuoteClient({"AAPL": (180.0, "USD"), "BTC/USD": (60000.0, "USD"), "VWRL": (100.0, "EUR")})


@pytest.fixture
def fx_client() -> StubFxClient:
    return StubFxClient({"USD": 0.9, "GBP": 1.15})


@pytest.fixture
def database(tmp_path: pathlib.Path) -> Database:
    database = Database(url=f"sqlite+aiosqlite:///{tmp_path / 'tracker.db'}")

    async def _create() -> None:
        await database.create_all()
        await database.dispose()

    asyncio.run(_create())
    return database
