"""Portfolio valuation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.dependencies import get_store
from app.repositories import EntityStore
from app.schemas import PortfolioSummarySchema
from app.services.portfolio import load_portfolio_summary

router = APIRouter()


@router.get("/summary", response_model=PortfolioSummarySchema)
async def get_portfolio_summary(store: EntityStore = Depends(get_store)) -> PortfolioSummarySchema:
    summary = await load_portfolio_summary(store)
    return PortfolioSummarySchema.model_validate(summary)
