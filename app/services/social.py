"""
Social graph service.
Profiles, friend links and collaborative lists. Rule violations raise
``SocialError`` carrying the HTTP status the routers should answer with.
"""
import logging
import re
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.social import (
    CollaboratorResponse,
    FriendRequestResponse,
    FriendResponse,
    FriendStatus,
    ListCreate,
    ListDetailResponse,
    ListPlaceResponse,
    ListResponse,
    ListUpdate,
    ProfileResponse,
    ProfileSearchResult,
    ProfileUpdate,
    RelationshipStatus,
)
from app.models.tables import (
    CollaborativeList,
    FriendLink,
    ListCollaborator,
    ListPlace,
    Place,
    Profile,
    SavedEntry,
)
from app.services.persistence import PersistenceError, PersistenceGateway
from app.utils.search import filter_profiles

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-z0-9_]{3,30}$")
PROFILE_SEARCH_LIMIT = 20


class SocialError(Exception):
    """A social-graph rule was violated."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(detail)


def normalize_username(username: str) -> str:
    """Lowercase, drop a leading ``@`` and validate the username format."""
    normalized = username.strip().lstrip("@").lower()
    if not USERNAME_PATTERN.match(normalized):
        raise SocialError(
            400,
            "Username must be 3-30 characters of lowercase letters, numbers or underscores",
        )
    return normalized


def _contains_pattern(query: str) -> str:
    """LIKE pattern matching ``query`` literally anywhere; pair with ``escape="\\"``."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SocialGraph:
    """Profile, friendship and list operations for one database session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _commit(self, action: str) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to {action}: {e}")
            raise PersistenceError(f"Failed to {action}: {e}") from e

    # =========================================================================
    # Profiles
    # =========================================================================

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        return await self.session.get(Profile, user_id)

    async def get_or_create_profile(self, user_id: str) -> Profile:
        profile = await self.get_profile(user_id)
        if profile is not None:
            return profile

        profile = Profile(id=user_id)
        self.session.add(profile)
        await self._commit("create profile")
        logger.info(f"Created profile for user {user_id}")
        return profile

    async def update_profile(self, user_id: str, update: ProfileUpdate) -> Profile:
        profile = await self.get_or_create_profile(user_id)

        if update.username is not None:
            username = normalize_username(update.username)
            if username != profile.username:
                taken = await self.session.execute(
                    select(Profile.id).where(Profile.username == username, Profile.id != user_id)
                )
                if taken.first() is not None:
                    raise SocialError(409, "Username is already taken")
                profile.username = username

        if update.display_name is not None:
            profile.display_name = update.display_name.strip() or None
        if update.bio is not None:
            profile.bio = update.bio
        if update.avatar_url is not None:
            profile.avatar_url = update.avatar_url

        await self._commit("update profile")
        return profile

    async def _profiles_by_id(self, user_ids: Iterable[str]) -> Dict[str, Profile]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        result = await self.session.execute(select(Profile).where(Profile.id.in_(ids)))
        return {p.id: p for p in result.scalars().all()}

    async def search_profiles(self, query: str, viewer_id: str) -> List[ProfileSearchResult]:
        """Profiles matching ``query`` by username or display name, with relationship status."""
        q = query.strip()
        if not q:
            return []

        pattern = _contains_pattern(q)
        result = await self.session.execute(
            select(Profile)
            .where(
                or_(
                    Profile.username.ilike(pattern, escape="\\"),
                    Profile.display_name.ilike(pattern, escape="\\"),
                ),
                Profile.id != viewer_id,
            )
            .order_by(Profile.username)
            .limit(PROFILE_SEARCH_LIMIT)
        )
        profiles = filter_profiles(result.scalars().all(), q, self_id=viewer_id)
        if not profiles:
            return []

        statuses = await self._relationship_statuses(viewer_id)
        return [
            ProfileSearchResult(
                **ProfileResponse.model_validate(profile).model_dump(),
                relationship_status=statuses.get(profile.id, RelationshipStatus.NONE),
            )
            for profile in profiles
        ]

    async def _relationship_statuses(self, viewer_id: str) -> Dict[str, RelationshipStatus]:
        result = await self.session.execute(
            select(FriendLink).where(
                or_(FriendLink.requester_id == viewer_id, FriendLink.addressee_id == viewer_id)
            )
        )
        statuses: Dict[str, RelationshipStatus] = {}
        for link in result.scalars().all():
            if link.status == FriendStatus.ACCEPTED.value:
                other = link.addressee_id if link.requester_id == viewer_id else link.requester_id
                statuses[other] = RelationshipStatus.FRIEND
            elif link.requester_id == viewer_id:
                statuses[link.addressee_id] = RelationshipStatus.OUTGOING_REQUEST
            else:
                statuses[link.requester_id] = RelationshipStatus.INCOMING_REQUEST
        return statuses

    # =========================================================================
    # Friend links
    # =========================================================================

    async def _link_between(self, user_a: str, user_b: str) -> Optional[FriendLink]:
        result = await self.session.execute(
            select(FriendLink).where(
                or_(
                    and_(FriendLink.requester_id == user_a, FriendLink.addressee_id == user_b),
                    and_(FriendLink.requester_id == user_b, FriendLink.addressee_id == user_a),
                )
            )
        )
        return result.scalars().first()

    async def are_friends(self, user_a: str, user_b: str) -> bool:
        link = await self._link_between(user_a, user_b)
        return link is not None and link.status == FriendStatus.ACCEPTED.value

    async def send_request(self, requester_id: str, addressee_id: str) -> FriendLink:
        if requester_id == addressee_id:
            raise SocialError(400, "Cannot send a friend request to yourself")

        if await self.get_profile(addressee_id) is None:
            raise SocialError(404, "User not found")

        existing = await self._link_between(requester_id, addressee_id)
        if existing is not None:
            if existing.status == FriendStatus.ACCEPTED.value:
                raise SocialError(409, "Already friends")
            raise SocialError(409, "Friend request already exists")

        link = FriendLink(
            requester_id=requester_id,
            addressee_id=addressee_id,
            status=FriendStatus.PENDING.value,
        )
        self.session.add(link)
        await self._commit("send friend request")
        logger.info(f"Friend request {requester_id} -> {addressee_id}")
        return link

    async def _pending_request(self, request_id: str) -> FriendLink:
        link = await self.session.get(FriendLink, request_id)
        if link is None or link.status != FriendStatus.PENDING.value:
            raise SocialError(404, "Friend request not found")
        return link

    async def accept_request(self, request_id: str, user_id: str) -> FriendLink:
        """Only the addressee can accept."""
        link = await self._pending_request(request_id)
        if link.addressee_id != user_id:
            raise SocialError(403, "Only the recipient can accept this request")

        link.status = FriendStatus.ACCEPTED.value
        await self._commit("accept friend request")
        return link

    async def decline_request(self, request_id: str, user_id: str) -> None:
        """The addressee declines or the requester cancels; either way the row is deleted."""
        link = await self._pending_request(request_id)
        if user_id not in (link.addressee_id, link.requester_id):
            raise SocialError(403, "Not allowed to decline this request")

        await self.session.delete(link)
        await self._commit("decline friend request")

    async def remove_friend(self, user_id: str, friend_id: str) -> None:
        link = await self._link_between(user_id, friend_id)
        if link is None or link.status != FriendStatus.ACCEPTED.value:
            raise SocialError(404, "Friendship not found")

        await self.session.delete(link)
        await self._commit("remove friend")

    async def list_friends(self, user_id: str) -> List[FriendResponse]:
        result = await self.session.execute(
            select(FriendLink)
            .where(
                FriendLink.status == FriendStatus.ACCEPTED.value,
                or_(FriendLink.requester_id == user_id, FriendLink.addressee_id == user_id),
            )
            .order_by(FriendLink.created_at.desc())
        )
        links = result.scalars().all()
        friend_ids = [
            link.addressee_id if link.requester_id == user_id else link.requester_id
            for link in links
        ]
        profiles = await self._profiles_by_id(friend_ids)

        return [
            FriendResponse(
                friend_id=friend_id,
                friendship_date=link.created_at,
                profile=_profile_response(profiles.get(friend_id)),
            )
            for link, friend_id in zip(links, friend_ids)
        ]

    async def list_incoming(self, user_id: str) -> List[FriendRequestResponse]:
        return await self._list_pending(FriendLink.addressee_id == user_id, other="requester_id")

    async def list_outgoing(self, user_id: str) -> List[FriendRequestResponse]:
        return await self._list_pending(FriendLink.requester_id == user_id, other="addressee_id")

    async def _list_pending(self, criterion, other: str) -> List[FriendRequestResponse]:
        result = await self.session.execute(
            select(FriendLink)
            .where(criterion, FriendLink.status == FriendStatus.PENDING.value)
            .order_by(FriendLink.created_at.desc())
        )
        links = result.scalars().all()
        profiles = await self._profiles_by_id(getattr(link, other) for link in links)
        return [
            FriendRequestResponse(
                id=link.id,
                profile=_profile_response(profiles.get(getattr(link, other))),
                created_at=link.created_at,
            )
            for link in links
        ]

    async def friend_places(self, viewer_id: str, friend_id: str) -> List[SavedEntry]:
        """A friend's entries shared with friends; forbidden unless the two are friends."""
        if not await self.are_friends(viewer_id, friend_id):
            raise SocialError(403, "You can only view places of your friends")
        return await PersistenceGateway(self.session).list_shared_with_friends(friend_id)

    # =========================================================================
    # Collaborative lists
    # =========================================================================

    async def create_list(self, owner_id: str, data: ListCreate) -> CollaborativeList:
        collaborator_ids = [uid for uid in dict.fromkeys(data.collaborator_ids) if uid != owner_id]
        for uid in collaborator_ids:
            if not await self.are_friends(owner_id, uid):
                raise SocialError(400, f"User {uid} is not your friend")

        lst = CollaborativeList(
            name=data.name.strip(),
            description=data.description,
            owner_id=owner_id,
            is_public=data.is_public,
        )
        lst.collaborators = [ListCollaborator(user_id=uid) for uid in collaborator_ids]
        lst.places = []
        self.session.add(lst)
        await self._commit("create list")
        logger.info(f"Created list {lst.id} for user {owner_id} with {len(collaborator_ids)} collaborators")
        return lst

    async def lists_for_user(self, user_id: str) -> List[CollaborativeList]:
        """Lists the user owns or collaborates on, newest first."""
        result = await self.session.execute(
            select(CollaborativeList)
            .where(
                or_(
                    CollaborativeList.owner_id == user_id,
                    CollaborativeList.id.in_(
                        select(ListCollaborator.list_id).where(ListCollaborator.user_id == user_id)
                    ),
                )
            )
            .order_by(CollaborativeList.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_list(self, list_id: str, user_id: str) -> CollaborativeList:
        """A list the user can see: owned, collaborating, or public."""
        lst = await self.session.get(CollaborativeList, list_id)
        if lst is None:
            raise SocialError(404, "List not found")
        if not lst.is_public and not _is_member(lst, user_id):
            raise SocialError(403, "You do not have access to this list")
        return lst

    async def _owned_list(self, list_id: str, user_id: str) -> CollaborativeList:
        lst = await self.get_list(list_id, user_id)
        if lst.owner_id != user_id:
            raise SocialError(403, "Only the list owner can do this")
        return lst

    async def _editable_list(self, list_id: str, user_id: str) -> CollaborativeList:
        lst = await self.get_list(list_id, user_id)
        if not _is_member(lst, user_id):
            raise SocialError(403, "Only the owner or collaborators can edit this list")
        return lst

    async def update_list(self, list_id: str, user_id: str, update: ListUpdate) -> CollaborativeList:
        lst = await self._owned_list(list_id, user_id)
        if update.name is not None:
            lst.name = update.name.strip()
        if update.description is not None:
            lst.description = update.description
        if update.is_public is not None:
            lst.is_public = update.is_public
        lst.updated_at = datetime.utcnow()
        await self._commit("update list")
        return lst

    async def delete_list(self, list_id: str, user_id: str) -> None:
        lst = await self._owned_list(list_id, user_id)
        await self.session.delete(lst)
        await self._commit("delete list")

    async def add_place(
        self,
        list_id: str,
        user_id: str,
        place_id: str,
        note: Optional[str] = None,
    ) -> ListPlace:
        lst = await self._editable_list(list_id, user_id)
        if any(item.place_id == place_id for item in lst.places):
            raise SocialError(409, "Place is already in this list")

        place = await self.session.get(Place, place_id)
        if place is None:
            raise SocialError(404, "Place not found")

        item = ListPlace(place_id=place_id, added_by=user_id, note=note)
        item.place = place
        lst.places.append(item)
        await self._commit("add place to list")
        return item

    async def remove_place(self, list_id: str, user_id: str, place_id: str) -> None:
        lst = await self._editable_list(list_id, user_id)
        item = next((i for i in lst.places if i.place_id == place_id), None)
        if item is None:
            raise SocialError(404, "Place is not in this list")

        lst.places.remove(item)
        await self._commit("remove place from list")

    async def add_collaborator(self, list_id: str, owner_id: str, user_id: str) -> ListCollaborator:
        lst = await self._owned_list(list_id, owner_id)
        if user_id == owner_id or any(c.user_id == user_id for c in lst.collaborators):
            raise SocialError(409, "User is already a member of this list")
        if not await self.are_friends(owner_id, user_id):
            raise SocialError(400, "Collaborators must be your friends")

        collaborator = ListCollaborator(user_id=user_id)
        lst.collaborators.append(collaborator)
        await self._commit("add collaborator")
        return collaborator

    async def remove_collaborator(self, list_id: str, owner_id: str, user_id: str) -> None:
        lst = await self._owned_list(list_id, owner_id)
        collaborator = next((c for c in lst.collaborators if c.user_id == user_id), None)
        if collaborator is None:
            raise SocialError(404, "Collaborator not found")

        lst.collaborators.remove(collaborator)
        await self._commit("remove collaborator")


def _is_member(lst: CollaborativeList, user_id: str) -> bool:
    return lst.owner_id == user_id or any(c.user_id == user_id for c in lst.collaborators)


def _profile_response(profile: Optional[Profile]) -> Optional[ProfileResponse]:
    return ProfileResponse.model_validate(profile) if profile is not None else None


def list_response(lst: CollaborativeList) -> ListResponse:
    return ListResponse(
        id=lst.id,
        name=lst.name,
        description=lst.description,
        owner_id=lst.owner_id,
        is_public=lst.is_public,
        created_at=lst.created_at,
        place_count=len(lst.places),
        collaborators=[CollaboratorResponse.model_validate(c) for c in lst.collaborators],
    )


def list_detail_response(lst: CollaborativeList) -> ListDetailResponse:
    return ListDetailResponse(
        **list_response(lst).model_dump(),
        places=[ListPlaceResponse.model_validate(item) for item in lst.places],
    )
