"""Collaborative list routes."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.models.social import (
    CollaboratorCreate,
    CollaboratorResponse,
    ListCreate,
    ListDetailResponse,
    ListPlaceCreate,
    ListPlaceResponse,
    ListResponse,
    ListUpdate,
)
from app.services.persistence import PersistenceError
from app.services.social import SocialError, SocialGraph, list_detail_response, list_response
from app.utils.analytics import track_list_created

router = APIRouter(prefix="/lists", tags=["lists"])


def _http_error(e: Exception) -> HTTPException:
    if isinstance(e, SocialError):
        return HTTPException(status_code=e.status_code, detail=e.detail)
    return HTTPException(status_code=500, detail=str(e))


@router.get("", response_model=List[ListResponse])
async def list_lists(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Lists the user owns or collaborates on."""
    lists = await SocialGraph(db).lists_for_user(current_user["id"])
    return [list_response(lst) for lst in lists]


@router.post("", response_model=ListDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_list(
    payload: ListCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a list; collaborators must already be friends."""
    try:
        lst = await SocialGraph(db).create_list(current_user["id"], payload)
    except (SocialError, PersistenceError) as e:
        raise _http_error(e)

    track_list_created(current_user["id"], lst.id, len(lst.collaborators), lst.is_public)
    return list_detail_response(lst)


@router.get("/{list_id}", response_model=ListDetailResponse)
async def get_list(
    list_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        lst = await SocialGraph(db).get_list(list_id, current_user["id"])
    except SocialError as e:
        raise _http_error(e)
    return list_detail_response(lst)


@router.patch("/{list_id}", response_model=ListDetailResponse)
async def update_list(
    list_id: str,
    update: ListUpdate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        lst = await SocialGraph(db).update_list(list_id, current_user["id"], update)
    except (SocialError, PersistenceError) as e:
        raise _http_error(e)
    return list_detail_response(lst)


@router.delete("/{list_id}")
async def delete_list(
    list_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        await SocialGraph(db).delete_list(list_id, current_user["id"])
    except (SocialError, PersistenceError) as e:
        raise _http_error(e)
    return {"message": "List deleted successfully"}


@router.post("/{list_id}/places", response_model=ListPlaceResponse, status_code=status.HTTP_201_CREATED)
async def add_list_place(
    list_id: str,
    payload: ListPlaceCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await SocialGraph(db).add_place(list_id, current_user["id"], payload.place_id, payload.note)
    except (SocialError, PersistenceError) as e:
        raise _http_error(e)


@router.delete("/{list_id}/places/{place_id}")
async def remove_list_place(
    list_id: str,
    place_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        await SocialGraph(db).remove_place(list_id, current_user["id"], place_id)
    except (SocialError, PersistenceError) as e:
        raise _http_error(e)
    return {"message": "Place removed from list"}


@router.post(
    "/{list_id}/collaborators",
    response_model=CollaboratorResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_collaborator(
    list_id: str,
    payload: CollaboratorCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        return await SocialGraph(db).add_collaborator(list_id, current_user["id"], payload.user_id)
    except (SocialError, PersistenceError) as e:
        raise _http_error(e)


@router.delete("/{list_id}/collaborators/{user_id}")
async def remove_collaborator(
    list_id: str,
    user_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    try:
        await SocialGraph(db).remove_collaborator(list_id, current_user["id"], user_id)
    except (SocialError, PersistenceError) as e:
        raise _http_error(e)
    return {"message": "Collaborator removed"}
