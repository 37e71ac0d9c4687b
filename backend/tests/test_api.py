import asyncio
from contextlib import asynccontextmanager

import pytest
from httpx import ASGITransport, AsyncClient

from app.config import AppSettings
from app.main import create_app

BROKER_EXPORT = (
    "date;broker;type;ticker;shares;price;currency\n"
    "02/01/2024;DEGIRO;BUY;AAPL;10;150,5;USD\n"
    "03/01/2024;IBKR;BUY;BTC;0,25;40000;USD\n"
)


def _client(database, quote_client, fx_client):
    settings = AppSettings(database_url=database.url, twelve_data_api_key="test")
    app = create_app(settings=settings, database=database, quote_client=quote_client, fx_client=fx_client)

    @asynccontextmanager
    async def _manager():
        async with app.router.lifespan_context(app):
            transport = ASGITransport(app=app)
            async with AsyncClient(transport=transport, base_url="http://test") as client:
                yield client

    return _manager


@pytest.fixture
def client_manager(database, quote_client, fx_client):
    return _client(database, quote_client, fx_client)


def test_health(client_manager):
    async def _scenario():
        async with client_manager() as api_client:
            response = await api_client.get("/health")
            assert response.status_code == 200
            payload = response.json()
            assert payload["status"] == "ok"
            assert payload["reporting_currency"] == "EUR"

    asyncio.run(_scenario())


def test_preview_reports_mapping_and_rows(client_manager):
    async def _scenario():
        async with client_manager() as api_client:
            response = await api_client.post("/imports/preview", json={"csv_text": BROKER_EXPORT})
            assert response.status_code == 200
            payload = response.json()
            assert payload["state"] == "ready"
            assert payload["mapping"]["platform"] == "broker"
            assert payload["suggestion"]["signature"] == "date|broker|type|ticker|shares|price|currency"
            assert payload["records"][0]["price"] == 150.5
            assert payload["records"][1]["qty"] == 0.25
            assert payload["records"][0]["date"].startswith("2024-01-02")
            assert payload["errors"] == []

    asyncio.run(_scenario())


def test_commit_conflicts_until_mapping_is_complete(client_manager):
    async def _scenario():
        async with client_manager() as api_client:
            text = "When;Op;Code;Units;Px\n2024-03-01;BUY;MSFT;3;400\n"
            response = await api_client.post(
                "/imports/commit",
                json={"csv_text": text, "default_platform": "Revolut"},
            )
            assert response.status_code == 409
            detail = response.json()["detail"]
            assert detail["state"] == "mapping"
            assert detail["fields_needing_review"] == ["kind"]
            assert detail["errors"][0]["message"] == "Missing columns: kind."

            response = await api_client.post(
                "/imports/commit",
                json={"csv_text": text, "default_platform": "Revolut", "column_mapping": {"kind": "Op"}},
            )
            assert response.status_code == 201
            assert response.json()["transactions_created"] == 1

            preview = await api_client.post("/imports/preview", json={"csv_text": text})
            assert preview.json()["state"] == "ready"
            assert preview.json()["template_applied"] is True
            assert preview.json()["default_platform"] == "Revolut"

    asyncio.run(_scenario())


def test_commit_then_value_portfolio(client_manager):
    async def _scenario():
        async with client_manager() as api_client:
            response = await api_client.post(
                "/imports/commit",
                json={"csv_text": BROKER_EXPORT, "refresh_fx": True},
            )
            assert response.status_code == 201
            summary = response.json()
            assert summary["platforms_created"] == 2
            assert summary["assets_created"] == 2
            assert summary["prices_created"] == 2
            assert summary["fx_created"] == 1

            response = await api_client.get("/portfolio/summary")
            assert response.status_code == 200
            portfolio = response.json()
            # 10 * 150.5 * 0.9 + 0.25 * 40000 * 0.9
            assert portfolio["total_value_eur"] == pytest.approx(10354.5)
            assert [holding["asset"]["symbol"] for holding in portfolio["by_ticker"]] == ["BTC", "AAPL"]

    asyncio.run(_scenario())


def test_seed_summary_and_reset(client_manager):
    async def _scenario():
        async with client_manager() as api_client:
            response = await api_client.post("/admin/seed")
            assert response.status_code == 200
            assert response.json()["transactions_created"] == 3

            response = await api_client.post("/admin/seed")
            assert response.json()["transactions_created"] == 0

            portfolio = (await api_client.get("/portfolio/summary")).json()
            assert portfolio["total_value_eur"] == pytest.approx(35109.6)
            by_platform = {entry["platform_id"]: entry["value_eur"] for entry in portfolio["by_platform"]}
            assert by_platform["platform_1"] == pytest.approx(11189.6)
            by_type = {entry["type"]: entry["value_eur"] for entry in portfolio["by_type"]}
            assert by_type["CRYPTO"] == pytest.approx(23920)

            response = await api_client.post("/admin/reset")
            assert response.status_code == 204
            portfolio = (await api_client.get("/portfolio/summary")).json()
            assert portfolio["total_value_eur"] == 0
            assert portfolio["positions"] == []

    asyncio.run(_scenario())


def test_market_data_refresh(client_manager):
    async def _scenario():
        async with client_manager() as api_client:
            await api_client.post("/admin/seed")

            response = await api_client.post("/market-data/refresh")
            assert response.status_code == 200
            payload = response.json()
            assert payload["prices_created"] == 3
            assert payload["fx_created"] == 1
            assert payload["quote_errors"] == []

            portfolio = (await api_client.get("/portfolio/summary")).json()
            # 100 * 100 + (10 * 180 + 0.5 * 60000) * 0.9
            assert portfolio["total_value_eur"] == pytest.approx(38620)

    asyncio.run(_scenario())
