"""Saved places routes."""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.models.places import (
    SavedEntryResponse,
    SavedEntryUpdate,
    SaveOptions,
    SaveRequest,
    TopSavedPlace,
)
from app.services.persistence import PersistenceError, PersistenceGateway
from app.utils.analytics import track_place_saved, track_search_executed
from app.utils.display_modes import DisplayMode, present_saved_entry
from app.utils.search import rank_places

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/saved", tags=["saved"])


@router.post("", response_model=SavedEntryResponse, status_code=status.HTTP_201_CREATED)
async def save_place(
    request: SaveRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Save a previewed enrichment payload to the user's places."""
    gateway = PersistenceGateway(db)
    try:
        entry = await gateway.save(
            request.payload,
            current_user["id"],
            SaveOptions(note=request.note, tags=request.tags, visibility=request.visibility),
        )
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    track_place_saved(current_user["id"], entry.place_id, entry.source_type, entry.visibility, entry.tags)
    return present_saved_entry(entry, DisplayMode.OWN)


@router.get("", response_model=List[SavedEntryResponse])
async def list_saved(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the user's saved places, newest first."""
    try:
        entries = await PersistenceGateway(db).list_saved(current_user["id"])
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return [present_saved_entry(entry, DisplayMode.OWN) for entry in entries]


@router.get("/search", response_model=List[SavedEntryResponse])
async def search_saved(
    q: str = Query(..., min_length=1, description="Free-text query"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Search the user's saved places by name, address and tags, best match first."""
    try:
        entries = await PersistenceGateway(db).list_saved(current_user["id"])
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    ranked = rank_places(entries, q)
    track_search_executed(q, len(ranked), user_id=current_user["id"])
    return [present_saved_entry(entry, DisplayMode.OWN) for entry in ranked]


@router.get("/top", response_model=List[TopSavedPlace])
async def top_saved(
    min_saves: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Places saved by the most distinct users."""
    return await PersistenceGateway(db).top_saved(min_saves=min_saves, limit=limit)


@router.get("/{entry_id}", response_model=SavedEntryResponse)
async def get_saved(
    entry_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    entry = await PersistenceGateway(db).get_saved(entry_id, current_user["id"])
    if not entry:
        raise HTTPException(status_code=404, detail="Saved place not found")
    return present_saved_entry(entry, DisplayMode.OWN)


@router.patch("/{entry_id}", response_model=SavedEntryResponse)
async def update_saved(
    entry_id: str,
    update: SavedEntryUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Change the note, tags or visibility of a saved place."""
    try:
        entry = await PersistenceGateway(db).update_saved(entry_id, current_user["id"], update)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    if not entry:
        raise HTTPException(status_code=404, detail="Saved place not found")
    return present_saved_entry(entry, DisplayMode.OWN)


@router.delete("/{entry_id}")
async def delete_saved(
    entry_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Remove a place from the user's saved places."""
    try:
        deleted = await PersistenceGateway(db).delete_saved(entry_id, current_user["id"])
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    if not deleted:
        raise HTTPException(status_code=404, detail="Saved place not found")
    return {"message": "Saved place deleted successfully"}
