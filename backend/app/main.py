"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import api_router
from app.config import AppSettings, get_settings
from app.core.logging import setup_logging
from app.core.telemetry import setup_telemetry
from app.db.session import Database
from app.providers.frankfurter import FrankfurterClient
from app.providers.twelve_data import TwelveDataClient
from app.repositories import EntityStore, MappingMemory, SqlAlchemyEntityStore, SqlAlchemyMappingMemory
from app.services.market_data import FxClient, QuoteClient

logger = logging.getLogger(__name__)


def create_app(
    store: EntityStore | None = None,
    memory: MappingMemory | None = None,
    settings: AppSettings | None = None,
    *,
    database: Database | None = None,
    quote_client: QuoteClient | None = None,
    fx_client: FxClient | None = None,
) -> FastAPI:
    """Build the service with its collaborators.

    Collaborators that are not supplied are backed by the configured database
    and the live Twelve Data and Frankfurter providers.
    """

    settings = settings or get_settings()
    setup_logging()

    needs_database = store is None or memory is None
    database = database or (Database(settings.database_url) if needs_database else None)
    owned_clients = []
    if quote_client is None:
        quote_client = TwelveDataClient()
        owned_clients.append(quote_client)
    if fx_client is None:
        fx_client = FrankfurterClient()
        owned_clients.append(fx_client)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if database is not None:
            await database.create_all()
        logger.info("Service started with settings %s", settings.dict_for_logging())
        try:
            yield
        finally:
            for client in owned_clients:
                await client.aclose()
            if database is not None:
                await database.dispose()

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store or SqlAlchemyEntityStore(database)
    app.state.memory = memory or SqlAlchemyMappingMemory(database)
    app.state.quote_client = quote_client
    app.state.fx_client = fx_client

    setup_telemetry(app, settings, engine=database.engine if database is not None else None)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["traceparent", "tracestate", "x-request-id"],
    )

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        """Return service readiness metadata."""

        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "reporting_currency": settings.reporting_currency,
        }

    app.include_router(api_router)
    return app


__all__ = ["create_app"]
