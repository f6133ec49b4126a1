"""Pydantic models for profiles, friend links and collaborative lists."""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.places import PlaceResponse


class FriendStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"


class RelationshipStatus(str, Enum):
    """Relationship between the viewer and another profile."""
    NONE = "none"
    FRIEND = "friend"
    INCOMING_REQUEST = "incoming_request"
    OUTGOING_REQUEST = "outgoing_request"


# =============================================================================
# Profiles
# =============================================================================

class ProfileUpdate(BaseModel):
    """Profile fields a user may change."""
    username: Optional[str] = Field(None, description="Letters, numbers and underscores only")
    display_name: Optional[str] = Field(None, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    avatar_url: Optional[str] = None


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None


class ProfileSearchResult(ProfileResponse):
    relationship_status: RelationshipStatus = RelationshipStatus.NONE


# =============================================================================
# Friend links
# =============================================================================

class FriendRequestCreate(BaseModel):
    addressee_id: str


class FriendLinkResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    requester_id: str
    addressee_id: str
    status: FriendStatus
    created_at: datetime


class FriendRequestResponse(BaseModel):
    """A pending request together with the other side's profile."""
    id: str
    profile: Optional[ProfileResponse] = None
    created_at: datetime


class FriendResponse(BaseModel):
    friend_id: str
    friendship_date: datetime
    profile: Optional[ProfileResponse] = None


# =============================================================================
# Collaborative lists
# =============================================================================

class ListCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    is_public: bool = False
    collaborator_ids: List[str] = []


class ListUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_public: Optional[bool] = None


class ListPlaceCreate(BaseModel):
    place_id: str
    note: Optional[str] = None


class CollaboratorCreate(BaseModel):
    user_id: str


class ListPlaceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    place: PlaceResponse
    added_by: str
    note: Optional[str] = None
    created_at: datetime


class CollaboratorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    role: str


class ListResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    owner_id: str
    is_public: bool
    created_at: datetime
    place_count: int = 0
    collaborators: List[CollaboratorResponse] = []


class ListDetailResponse(ListResponse):
    places: List[ListPlaceResponse] = []
