"""SQLAlchemy tables for places, saved entries and the social graph."""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.database import Base


def _uuid() -> str:
    return str(uuid4())


class Place(Base):
    """Canonical venue, shared by every user who saved it."""

    __tablename__ = "places"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    address = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    # One canonical place per directory id; NULLs are not deduplicated
    google_place_id = Column(String, nullable=True, unique=True, index=True)
    phone = Column(String, nullable=True)
    website = Column(String, nullable=True)
    rating = Column(Float, nullable=True)
    price_level = Column(Integer, nullable=True)
    hours = Column(JSON(none_as_null=True), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    saved_entries = relationship("SavedEntry", back_populates="place")


class SavedEntry(Base):
    """One user's bookmark of a place."""

    __tablename__ = "saved_entries"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    place_id = Column(String, ForeignKey("places.id"), nullable=False, index=True)
    note = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    visibility = Column(String, nullable=False, default="private")  # private, friends
    enrichment = Column(JSON(none_as_null=True), nullable=True)
    source_type = Column(String, nullable=False, default="manual")
    source_url = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    place = relationship("Place", back_populates="saved_entries", lazy="joined")


class Profile(Base):
    """Public profile of an authenticated user (id is the auth subject)."""

    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    username = Column(String, nullable=True, unique=True, index=True)
    display_name = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    avatar_url = Column(String, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class FriendLink(Base):
    """Directed friend request; symmetric once accepted."""

    __tablename__ = "friend_links"
    __table_args__ = (UniqueConstraint("requester_id", "addressee_id"),)

    id = Column(String, primary_key=True, default=_uuid)
    requester_id = Column(String, nullable=False, index=True)
    addressee_id = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default="pending")  # pending, accepted
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class CollaborativeList(Base):
    """Named collection of places, optionally shared with collaborators."""

    __tablename__ = "collaborative_lists"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    owner_id = Column(String, nullable=False, index=True)
    is_public = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    collaborators = relationship(
        "ListCollaborator",
        back_populates="list",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    places = relationship(
        "ListPlace",
        back_populates="list",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ListCollaborator(Base):
    __tablename__ = "list_collaborators"
    __table_args__ = (UniqueConstraint("list_id", "user_id"),)

    id = Column(String, primary_key=True, default=_uuid)
    list_id = Column(String, ForeignKey("collaborative_lists.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, nullable=False, index=True)
    role = Column(String, nullable=False, default="collaborator")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    list = relationship("CollaborativeList", back_populates="collaborators")


class ListPlace(Base):
    __tablename__ = "list_places"
    __table_args__ = (UniqueConstraint("list_id", "place_id"),)

    id = Column(String, primary_key=True, default=_uuid)
    list_id = Column(String, ForeignKey("collaborative_lists.id", ondelete="CASCADE"), nullable=False)
    place_id = Column(String, ForeignKey("places.id"), nullable=False)
    added_by = Column(String, nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    list = relationship("CollaborativeList", back_populates="places")
    place = relationship("Place", lazy="joined")
