"""
Persistence gateway.
Writes enrichment results as a canonical place plus a per-user saved entry,
and serves the saved-entry reads the app needs.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.places import (
    EnrichmentData,
    EnrichmentPayload,
    OfficialPlace,
    SaveOptions,
    SavedEntryUpdate,
    SocialLinkSource,
    TopSavedPlace,
    Visibility,
)
from app.models.tables import Place, SavedEntry

logger = logging.getLogger(__name__)

# Place columns that later enrichments may fill when still empty
FILLABLE_PLACE_FIELDS = (
    "address",
    "latitude",
    "longitude",
    "phone",
    "website",
    "rating",
    "price_level",
    "hours",
)

# Reviews copied onto a saved entry
SAVED_REVIEWS_LIMIT = 2
POPULAR_TAGS_LIMIT = 10
TOP_SAVED_LIMIT = 50


class PersistenceError(Exception):
    """A write or read against the database failed."""


class PersistenceGateway:
    """Database access for places and saved entries."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # =========================================================================
    # Save flow
    # =========================================================================

    async def save(
        self,
        payload: EnrichmentPayload,
        owner_id: str,
        options: Optional[SaveOptions] = None,
    ) -> SavedEntry:
        """
        Persist a payload for ``owner_id``.

        Reuses the place with the same directory id when one exists (filling
        its empty columns) and inserts one otherwise; the place and the saved
        entry are committed together or not at all.
        """
        options = options or SaveOptions()

        try:
            place = await self._get_or_create_place(payload)

            entry = SavedEntry(
                user_id=owner_id,
                note=options.note if options.note is not None else payload.description,
                tags=list(options.tags) if options.tags is not None else list(payload.tags),
                visibility=(options.visibility or Visibility(settings.default_visibility)).value,
                enrichment=build_enrichment_data(payload).model_dump(mode="json"),
                source_type=payload.source_type.value,
                source_url=payload.source.url if isinstance(payload.source, SocialLinkSource) else None,
            )
            entry.place = place
            self.session.add(entry)

            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Failed to save place {payload.name!r} for user {owner_id}: {e}")
            raise PersistenceError(f"Error saving restaurant: {e}") from e

        logger.info(f"Saved entry {entry.id} -> place {place.id} for user {owner_id}")
        return entry

    async def _get_or_create_place(self, payload: EnrichmentPayload) -> Place:
        if payload.google_place_id:
            existing = await self.find_place_by_directory_id(payload.google_place_id)
            if existing is not None:
                fill_missing_place_fields(existing, payload)
                return existing

        place = Place(
            name=payload.name,
            address=payload.address,
            latitude=payload.latitude,
            longitude=payload.longitude,
            google_place_id=payload.google_place_id,
            phone=payload.phone,
            website=payload.website,
            rating=payload.rating,
            price_level=payload.price_level,
            hours=payload.hours.model_dump() if payload.hours else None,
        )
        self.session.add(place)
        return place

    async def find_place_by_directory_id(self, google_place_id: str) -> Optional[Place]:
        result = await self.session.execute(
            select(Place).where(Place.google_place_id == google_place_id)
        )
        return result.scalars().first()

    async def get_place(self, place_id: str, refresh: bool = False) -> Optional[Place]:
        return await self.session.get(Place, place_id, populate_existing=refresh)

    # =========================================================================
    # Saved entries
    # =========================================================================

    async def list_saved(self, owner_id: str) -> List[SavedEntry]:
        """All saved entries of a user, newest first."""
        return await self._list_entries(SavedEntry.user_id == owner_id)

    async def list_shared_with_friends(self, owner_id: str) -> List[SavedEntry]:
        """Entries a user made visible to friends, newest first."""
        return await self._list_entries(
            SavedEntry.user_id == owner_id,
            SavedEntry.visibility == Visibility.FRIENDS.value,
        )

    async def _list_entries(self, *criteria) -> List[SavedEntry]:
        try:
            result = await self.session.execute(
                select(SavedEntry)
                .where(*criteria)
                .order_by(SavedEntry.created_at.desc())
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch saved entries: {e}")
            raise PersistenceError(f"Failed to fetch restaurants: {e}") from e

    async def get_saved(self, entry_id: str, owner_id: str) -> Optional[SavedEntry]:
        result = await self.session.execute(
            select(SavedEntry).where(
                SavedEntry.id == entry_id,
                SavedEntry.user_id == owner_id,
            )
        )
        return result.scalars().first()

    async def update_saved(
        self,
        entry_id: str,
        owner_id: str,
        update: SavedEntryUpdate,
    ) -> Optional[SavedEntry]:
        """Change note, tags or visibility; only provided fields are touched."""
        entry = await self.get_saved(entry_id, owner_id)
        if entry is None:
            return None

        if update.note is not None:
            entry.note = update.note
        if update.tags is not None:
            entry.tags = list(update.tags)
        if update.visibility is not None:
            entry.visibility = update.visibility.value
        entry.updated_at = datetime.utcnow()

        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError(f"Failed to update restaurant: {e}") from e

        return entry

    async def delete_saved(self, entry_id: str, owner_id: str) -> bool:
        """Delete a saved entry; the place it points to is kept."""
        entry = await self.get_saved(entry_id, owner_id)
        if entry is None:
            return False

        try:
            await self.session.delete(entry)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError(f"Failed to delete restaurant: {e}") from e

        return True

    # =========================================================================
    # Aggregates
    # =========================================================================

    async def top_saved(self, min_saves: int = 1, limit: int = TOP_SAVED_LIMIT) -> List[TopSavedPlace]:
        """Places ranked by how many distinct users saved them."""
        save_count = func.count(func.distinct(SavedEntry.user_id)).label("save_count")
        result = await self.session.execute(
            select(Place, save_count)
            .join(SavedEntry, SavedEntry.place_id == Place.id)
            .group_by(Place.id)
            .having(save_count >= min_saves)
            .order_by(save_count.desc(), Place.rating.desc().nullslast())
            .limit(limit)
        )
        rows = result.all()
        if not rows:
            return []

        popular_tags = await self._popular_tags([place.id for place, _ in rows])

        return [
            TopSavedPlace(
                id=place.id,
                name=place.name,
                address=place.address,
                latitude=place.latitude,
                longitude=place.longitude,
                rating=place.rating,
                price_level=place.price_level,
                save_count=count,
                popular_tags=popular_tags.get(place.id, []),
            )
            for place, count in rows
        ]

    async def _popular_tags(self, place_ids: Sequence[str]) -> Dict[str, List[str]]:
        result = await self.session.execute(
            select(SavedEntry.place_id, SavedEntry.tags)
            .where(SavedEntry.place_id.in_(place_ids))
            .order_by(SavedEntry.created_at)
        )
        tags_by_place: Dict[str, List[str]] = {}
        for place_id, tags in result.all():
            bucket = tags_by_place.setdefault(place_id, [])
            for tag in tags or []:
                if len(bucket) >= POPULAR_TAGS_LIMIT:
                    break
                if tag not in bucket:
                    bucket.append(tag)
        return tags_by_place

    # =========================================================================
    # Backfill support
    # =========================================================================

    async def places_missing_enrichment(self, limit: int = 50) -> List[Place]:
        """Places with at least one saved entry that has no enrichment yet."""
        result = await self.session.execute(
            select(Place)
            .where(
                Place.id.in_(
                    select(SavedEntry.place_id).where(SavedEntry.enrichment.is_(None))
                )
            )
            .order_by(Place.created_at)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def apply_enrichment(
        self,
        place: Place,
        official: OfficialPlace,
        data: EnrichmentData,
    ) -> int:
        """Attach enrichment to the place's bare saved entries; returns how many."""
        try:
            fill_missing_place_fields(place, official)
            if place.google_place_id is None:
                clash = await self.find_place_by_directory_id(official.google_place_id)
                if clash is None:
                    place.google_place_id = official.google_place_id

            result = await self.session.execute(
                select(SavedEntry).where(
                    SavedEntry.place_id == place.id,
                    SavedEntry.enrichment.is_(None),
                )
            )
            entries = list(result.scalars().all())
            for entry in entries:
                entry.enrichment = data.model_dump(mode="json")

            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError(f"Failed to update saved entries: {e}") from e

        return len(entries)


def build_enrichment_data(payload: EnrichmentPayload) -> EnrichmentData:
    """The non-official part of a payload, as stored on a saved entry."""
    return EnrichmentData(
        photos=payload.photos,
        reviews=payload.reviews[:SAVED_REVIEWS_LIMIT],
        types=payload.types,
        sentiment=payload.sentiment,
        mentions=payload.mentions,
        confidence=payload.confidence,
        extraction_method=payload.provenance,
        source=payload.source,
        enriched_at=datetime.utcnow().isoformat(),
    )


def fill_missing_place_fields(place: Place, data) -> None:
    """Copy fields from ``data`` onto ``place`` where the place has none."""
    for field in FILLABLE_PLACE_FIELDS:
        value = getattr(data, field, None)
        if value is None or getattr(place, field) is not None:
            continue
        if field == "hours":
            value = value.model_dump()
        setattr(place, field, value)
