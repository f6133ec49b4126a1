"""Friend routes: requests, friendships and friends' shared places."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.models.places import SavedEntryResponse
from app.models.social import (
    FriendLinkResponse,
    FriendRequestCreate,
    FriendRequestResponse,
    FriendResponse,
)
from app.services.persistence import PersistenceError
from app.services.social import SocialError, SocialGraph
from app.utils.analytics import track_friend_request
from app.utils.display_modes import DisplayMode, present_saved_entry

router = APIRouter(prefix="/friends", tags=["friends"])


@router.get("", response_model=List[FriendResponse])
async def list_friends(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SocialGraph(db).list_friends(current_user["id"])


@router.get("/requests/incoming", response_model=List[FriendRequestResponse])
async def list_incoming_requests(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SocialGraph(db).list_incoming(current_user["id"])


@router.get("/requests/outgoing", response_model=List[FriendRequestResponse])
async def list_outgoing_requests(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await SocialGraph(db).list_outgoing(current_user["id"])


@router.post("/requests", response_model=FriendLinkResponse, status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    request: FriendRequestCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        link = await SocialGraph(db).send_request(current_user["id"], request.addressee_id)
    except SocialError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    track_friend_request(current_user["id"], request.addressee_id, "sent")
    return link


@router.post("/requests/{request_id}/accept", response_model=FriendLinkResponse)
async def accept_friend_request(
    request_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        link = await SocialGraph(db).accept_request(request_id, current_user["id"])
    except SocialError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    track_friend_request(current_user["id"], link.requester_id, "accepted")
    return link


@router.delete("/requests/{request_id}")
async def decline_friend_request(
    request_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Decline an incoming request or cancel an outgoing one."""
    try:
        await SocialGraph(db).decline_request(request_id, current_user["id"])
    except SocialError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return {"message": "Friend request removed"}


@router.delete("/{friend_id}")
async def remove_friend(
    friend_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        await SocialGraph(db).remove_friend(current_user["id"], friend_id)
    except SocialError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    track_friend_request(current_user["id"], friend_id, "removed")
    return {"message": "Friend removed"}


@router.get("/{friend_id}/places", response_model=List[SavedEntryResponse])
async def list_friend_places(
    friend_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Places a friend has shared with friends."""
    try:
        entries = await SocialGraph(db).friend_places(current_user["id"], friend_id)
    except SocialError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=str(e))

    return [present_saved_entry(entry, DisplayMode.FRIEND) for entry in entries]
