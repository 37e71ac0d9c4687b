"""CSV import preview and commit endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import get_app_settings, get_fx_client, get_mapping_memory, get_store
from app.config import AppSettings
from app.repositories import EntityStore, MappingMemory
from app.schemas import (
    CsvErrorSchema,
    ImportCommitRequest,
    ImportPreviewResponse,
    ImportRequest,
    ImportSummarySchema,
    MappingSuggestionSchema,
    NormalizedRowSchema,
)
from app.services.imports import ImportCommitError, ImportSession, ImportState, ImportStateError
from app.services.market_data import FxClient

router = APIRouter()


async def _load_session(
    payload: ImportRequest,
    store: EntityStore,
    memory: MappingMemory,
    settings: AppSettings,
    fx_client: FxClient | None = None,
) -> ImportSession:
    session = ImportSession(store, memory, default_currency=settings.default_currency, fx_client=fx_client)
    await session.load(
        payload.csv_text,
        default_platform=payload.default_platform,
        default_currency=payload.default_currency,
        column_mapping=payload.column_mapping,
    )
    return session


def _preview(session: ImportSession) -> ImportPreviewResponse:
    return ImportPreviewResponse(
        state=session.state,
        suggestion=MappingSuggestionSchema.model_validate(session.suggestion),
        mapping=dict(session.mapping),
        confidence=session.confidence(),
        fields_needing_review=session.field_review(),
        template_applied=session.template_applied,
        default_platform=session.default_platform,
        records=[NormalizedRowSchema.model_validate(record) for record in session.result.records],
        errors=[CsvErrorSchema.model_validate(error) for error in session.result.errors],
    )


@router.post("/preview", response_model=ImportPreviewResponse)
async def preview_import(
    payload: ImportRequest,
    store: EntityStore = Depends(get_store),
    memory: MappingMemory = Depends(get_mapping_memory),
    settings: AppSettings = Depends(get_app_settings),
) -> ImportPreviewResponse:
    session = await _load_session(payload, store, memory, settings)
    return _preview(session)


@router.post("/commit", response_model=ImportSummarySchema, status_code=status.HTTP_201_CREATED)
async def commit_import(
    payload: ImportCommitRequest,
    store: EntityStore = Depends(get_store),
    memory: MappingMemory = Depends(get_mapping_memory),
    settings: AppSettings = Depends(get_app_settings),
    fx_client: FxClient = Depends(get_fx_client),
) -> ImportSummarySchema:
    session = await _load_session(payload, store, memory, settings, fx_client if payload.refresh_fx else None)
    if session.state is not ImportState.READY:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=_preview(session).model_dump(mode="json", include={"state", "fields_needing_review", "errors"}),
        )
    try:
        summary = await session.commit(remember_mapping=payload.remember_mapping)
    except ImportStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ImportCommitError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return ImportSummarySchema.model_validate(summary)
