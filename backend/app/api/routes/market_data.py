"""Live market data refresh endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from app.api.dependencies import get_fx_client, get_quote_client, get_store
from app.repositories import EntityStore
from app.schemas import MarketDataRefreshResponse
from app.services.market_data import FxClient, QuoteClient, refresh_market_data

router = APIRouter()


@router.post("/refresh", response_model=MarketDataRefreshResponse)
async def post_refresh(
    store: EntityStore = Depends(get_store),
    quote_client: QuoteClient = Depends(get_quote_client),
    fx_client: FxClient = Depends(get_fx_client),
) -> MarketDataRefreshResponse:
    try:
        result = await refresh_market_data(store, quote_client, fx_client)
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return MarketDataRefreshResponse.model_validate(result)
