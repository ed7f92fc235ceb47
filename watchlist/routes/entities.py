"""Watchlist entity management endpoints."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Request, Response

from watchlist.models import (
    EntityActivation,
    NewWatchlistEntity,
    WatchlistEntity,
    WatchlistProvider,
    WatchlistType,
)

router = APIRouter(prefix="/api/watchlist")


@router.get("/entities", response_model=List[WatchlistEntity])
async def list_entities(
    request: Request,
    provider: Optional[WatchlistProvider] = Query(default=None),
    list_type: Optional[WatchlistType] = Query(default=None),
) -> List[WatchlistEntity]:
    """List watchlist entities, optionally filtered by provider and list type."""
    entities = request.app.state.store.list_entities()
    if provider is not None:
        entities = [e for e in entities if e.source_provider == provider]
    if list_type is not None:
        entities = [e for e in entities if e.list_type == list_type]
    return entities


@router.post("/entities", response_model=WatchlistEntity, status_code=201)
async def add_entity(data: NewWatchlistEntity, request: Request) -> WatchlistEntity:
    return request.app.state.engine.add_watchlist_entity(data)


@router.patch("/entities/{entity_id}", response_model=WatchlistEntity)
async def set_entity_active(
    entity_id: str,
    activation: EntityActivation,
    request: Request,
) -> WatchlistEntity:
    """Activate or deactivate an entity; inactive entities are not screened."""
    entity = request.app.state.engine.set_entity_active(entity_id, activation.is_active)
    if entity is None:
        raise HTTPException(status_code=404, detail="Watchlist entity not found")
    return entity


@router.delete("/entities/{entity_id}", status_code=204)
async def delete_entity(entity_id: str, request: Request) -> Response:
    if not request.app.state.engine.delete_watchlist_entity(entity_id):
        raise HTTPException(status_code=404, detail="Watchlist entity not found")
    return Response(status_code=204)
