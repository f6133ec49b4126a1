"""Enrichment routes: turn a link, screenshot or typed name into a place preview."""
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.enrichment.pipeline import EnrichmentPipeline, PlaceNotFoundError, enrichment_pipeline
from app.models.places import (
    EnrichmentPreview,
    LinkEnrichmentRequest,
    LinkSaveRequest,
    ManualEnrichmentRequest,
    SavedEntryResponse,
    SaveOptions,
)
from app.services.persistence import PersistenceError
from app.utils.analytics import track_enrichment_completed, track_place_saved
from app.utils.display_modes import DisplayMode, present_saved_entry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/enrichment", tags=["enrichment"])

MAX_SCREENSHOT_BYTES = 10 * 1024 * 1024


def get_pipeline() -> EnrichmentPipeline:
    return enrichment_pipeline


def _track_preview(user_id: str, preview: EnrichmentPreview) -> None:
    track_enrichment_completed(
        user_id=user_id,
        source_type=preview.payload.source_type.value,
        status=preview.status,
        provenance=preview.payload.provenance,
        confidence=preview.payload.confidence,
    )


@router.post("/link", response_model=EnrichmentPreview)
async def enrich_link(
    request: LinkEnrichmentRequest,
    current_user: dict = Depends(get_current_user),
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
):
    """Preview the place behind an Instagram post URL."""
    preview = await pipeline.preview_link(request.url)
    _track_preview(current_user["id"], preview)
    return preview


@router.post("/link/save", response_model=SavedEntryResponse, status_code=status.HTTP_201_CREATED)
async def enrich_and_save_link(
    request: LinkSaveRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
):
    """Enrich and save an Instagram post in one step; 404 when the place cannot be found."""
    try:
        entry = await pipeline.enrich_and_save_link(
            db,
            request.url,
            current_user["id"],
            SaveOptions(note=request.note, tags=request.tags, visibility=request.visibility),
            allow_unresolved=request.allow_unresolved,
        )
    except PlaceNotFoundError:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    track_place_saved(current_user["id"], entry.place_id, entry.source_type, entry.visibility, entry.tags)
    return present_saved_entry(entry, DisplayMode.OWN)


@router.post("/screenshot", response_model=EnrichmentPreview)
async def enrich_screenshot(
    file: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
):
    """Preview the place shown in an uploaded screenshot."""
    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(status_code=400, detail="File must be an image")

    image_bytes = await file.read()
    if not image_bytes:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(image_bytes) > MAX_SCREENSHOT_BYTES:
        raise HTTPException(status_code=413, detail="Image is too large")

    preview = await pipeline.preview_screenshot(
        image_bytes,
        content_type=content_type,
        filename=file.filename,
    )
    _track_preview(current_user["id"], preview)
    return preview


@router.post("/manual", response_model=EnrichmentPreview)
async def enrich_manual(
    request: ManualEnrichmentRequest,
    current_user: dict = Depends(get_current_user),
    pipeline: EnrichmentPipeline = Depends(get_pipeline),
):
    """Look up a place the user typed in by name (and optionally address)."""
    preview = await pipeline.preview_manual(request.name, request.address)
    _track_preview(current_user["id"], preview)
    return preview
