"""Profile routes."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.models.social import ProfileResponse, ProfileSearchResult, ProfileUpdate
from app.services.persistence import PersistenceError
from app.services.social import SocialError, SocialGraph
from app.utils.analytics import identify_user, track_search_executed

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the current user's profile, creating an empty one on first access."""
    try:
        return await SocialGraph(db).get_or_create_profile(current_user["id"])
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    update: ProfileUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        profile = await SocialGraph(db).update_profile(current_user["id"], update)
    except SocialError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    identify_user(profile.id, {"username": profile.username, "display_name": profile.display_name})
    return profile


@router.get("/search", response_model=List[ProfileSearchResult])
async def search_profiles(
    q: str = Query(..., min_length=1),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Find other users by username or display name."""
    results = await SocialGraph(db).search_profiles(q, current_user["id"])
    track_search_executed(q, len(results), user_id=current_user["id"], scope="profiles")
    return results


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    profile = await SocialGraph(db).get_profile(user_id)
    if not profile:
        raise HTTPException(status_code=404, detail="User not found")
    return profile
