"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .admin import router as admin_router
from .imports import router as imports_router
from .market_data import router as market_data_router
from .portfolio import router as portfolio_router

api_router = APIRouter()
api_router.include_router(imports_router, prefix="/imports", tags=["imports"])
api_router.include_router(portfolio_router, prefix="/portfolio", tags=["portfolio"])
api_router.include_router(market_data_router, prefix="/market-data", tags=["market-data"])
api_router.include_router(admin_router, prefix="/admin", tags=["admin"])

__all__ = ["api_router"]
