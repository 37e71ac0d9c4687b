"""FastAPI dependencies resolving the collaborators attached to the app."""

from __future__ import annotations

from fastapi import Request

from app.config import AppSettings
from app.repositories import EntityStore, MappingMemory
from app.services.market_data import FxClient, QuoteClient


def get_app_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_mapping_memory(request: Request) -> MappingMemory:
    return request.app.state.memory


def get_quote_client(request: Request) -> QuoteClient:
    return request.app.state.quote_client


def get_fx_client(request: Request) -> FxClient:
    return request.app.state.fx_client


__all__ = [
    "get_app_settings",
    "get_fx_client",
    "get_mapping_memory",
    "get_quote_client",
    "get_store",
]
