"""Maintenance endpoints: seed demo data and clear the store."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from app.api.dependencies import get_store
from app.repositories import EntityStore
from app.services.samples import seed_sample_data

router = APIRouter()


@router.post("/seed")
async def post_seed(store: EntityStore = Depends(get_store)) -> dict[str, int]:
    created = await seed_sample_data(store)
    return {
        "platforms_created": len(created.platforms),
        "assets_created": len(created.assets),
        "transactions_created": len(created.transactions),
        "prices_created": len(created.prices),
        "fx_created": len(created.fx_snapshots),
    }


@router.post("/reset", status_code=status.HTTP_204_NO_CONTENT)
async def post_reset(store: EntityStore = Depends(get_store)) -> Response:
    await store.reset()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
