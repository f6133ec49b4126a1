"""Integration tests for the persistence gateway against in-memory SQLite."""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from app.models.places import (
    EnrichmentData,
    OfficialPlace,
    SavedEntryUpdate,
    SaveOptions,
    SourceType,
    Visibility,
)
from app.models.tables import Place, SavedEntry
from app.services.persistence import PersistenceError, PersistenceGateway


async def _count(session, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


class TestSave:
    @pytest.mark.asyncio
    async def test_round_trip_keeps_note_tags_and_visibility(self, session_factory, make_payload) -> None:
        async with session_factory() as session:
            entry = await PersistenceGateway(session).save(
                make_payload(),
                "user-1",
                SaveOptions(note="Go on a weeknight", tags=["pizza", "late-night"], visibility=Visibility.FRIENDS),
            )
            entry_id = entry.id

        async with session_factory() as session:
            stored = await PersistenceGateway(session).get_saved(entry_id, "user-1")

        assert stored.note == "Go on a weeknight"
        assert stored.tags == ["pizza", "late-night"]
        assert stored.visibility == "friends"
        assert stored.place.name == "Joe's Pizza"

    @pytest.mark.asyncio
    async def test_defaults_come_from_payload_and_settings(self, session, make_payload) -> None:
        entry = await PersistenceGateway(session).save(make_payload(), "user-1")

        assert entry.note == "Classic NY slice"
        assert entry.tags == ["pizza", "cheap-eats"]
        assert entry.visibility == "private"
        assert entry.source_type == "social_link"
        assert entry.source_url == "https://www.instagram.com/p/ABC123/"

    @pytest.mark.asyncio
    async def test_enrichment_column_holds_personal_subset(self, session, make_payload) -> None:
        entry = await PersistenceGateway(session).save(make_payload(), "user-1")

        enrichment = EnrichmentData.model_validate(entry.enrichment)
        assert len(enrichment.reviews) == 2
        assert enrichment.types == ["restaurant", "food"]
        assert enrichment.sentiment == "positive"
        assert enrichment.mentions == ["plain slice"]
        assert enrichment.extraction_method == "social-link + places-directory"
        assert enrichment.source.kind == "social_link"
        assert enrichment.enriched_at is not None

    @pytest.mark.asyncio
    async def test_same_directory_id_reuses_one_place(self, session, make_payload) -> None:
        gateway = PersistenceGateway(session)

        first = await gateway.save(make_payload(), "user-1")
        second = await gateway.save(make_payload(), "user-2")

        assert await _count(session, Place) == 1
        assert await _count(session, SavedEntry) == 2
        assert first.place_id == second.place_id

    @pytest.mark.asyncio
    async def test_reused_place_gets_missing_fields_filled(self, session, make_payload) -> None:
        gateway = PersistenceGateway(session)

        first = await gateway.save(make_payload(phone=None, rating=4.5), "user-1")
        await gateway.save(make_payload(phone="(212) 366-1182", rating=3.0), "user-2")

        place = await gateway.get_place(first.place_id, refresh=True)
        assert place.phone == "(212) 366-1182"
        assert place.rating == 4.5

    @pytest.mark.asyncio
    async def test_unresolved_payloads_are_not_deduplicated(self, session, make_payload) -> None:
        gateway = PersistenceGateway(session)

        await gateway.save(make_payload(google_place_id=None), "user-1")
        await gateway.save(make_payload(google_place_id=None), "user-1")

        assert await _count(session, Place) == 2

    @pytest.mark.asyncio
    async def test_failed_entry_write_rolls_back_the_place(self, session, make_payload) -> None:
        gateway = PersistenceGateway(session)

        with pytest.raises(PersistenceError):
            # user_id is NOT NULL, so the entry insert fails after the place insert
            await gateway.save(make_payload(), None)

        assert await _count(session, Place) == 0
        assert await _count(session, SavedEntry) == 0


class TestSavedEntries:
    @pytest.mark.asyncio
    async def test_list_saved_is_newest_first_and_scoped_to_owner(self, session, make_payload) -> None:
        gateway = PersistenceGateway(session)
        older = await gateway.save(make_payload(name="Lucali", google_place_id="ChIJ-lucali"), "user-1")
        newer = await gateway.save(make_payload(), "user-1")
        await gateway.save(make_payload(), "user-2")
        older.created_at = datetime.utcnow() - timedelta(days=1)
        await session.commit()

        entries = await gateway.list_saved("user-1")

        assert [e.id for e in entries] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_update_only_touches_given_fields(self, session, make_payload) -> None:
        gateway = PersistenceGateway(session)
        entry = await gateway.save(make_payload(), "user-1", SaveOptions(note="original"))

        updated = await gateway.update_saved(
            entry.id, "user-1", SavedEntryUpdate(visibility=Visibility.FRIENDS)
        )

        assert updated.visibility == "friends"
        assert updated.note == "original"
        assert updated.tags == ["pizza", "cheap-eats"]

    @pytest.mark.asyncio
    async def test_update_of_someone_elses_entry_returns_none(self, session, make_payload) -> None:
        gateway = PersistenceGateway(session)
        entry = await gateway.save(make_payload(), "user-1")

        assert await gateway.update_saved(entry.id, "user-2", SavedEntryUpdate(note="x")) is None

    @pytest.mark.asyncio
    async def test_delete_keeps_the_place(self, session, make_payload) -> None:
        gateway = PersistenceGateway(session)
        entry = await gateway.save(make_payload(), "user-1")

        assert await gateway.delete_saved(entry.id, "user-1") is True

        assert await _count(session, SavedEntry) == 0
        assert await _count(session, Place) == 1
        assert await gateway.delete_saved(entry.id, "user-1") is False

    @pytest.mark.asyncio
    async def test_shared_with_friends_filters_visibility(self, session, make_payload) -> None:
        gateway = PersistenceGateway(session)
        shared = await gateway.save(make_payload(), "user-1", SaveOptions(visibility=Visibility.FRIENDS))
        await gateway.save(make_payload(name="Lucali", google_place_id="ChIJ-lucali"), "user-1")

        entries = await gateway.list_shared_with_friends("user-1")

        assert [e.id for e in entries] == [shared.id]


class TestTopSaved:
    @pytest.mark.asyncio
    async def test_counts_distinct_users_and_orders_by_count(self, session, make_payload) -> None:
        gateway = PersistenceGateway(session)
        joes = make_payload()
        lucali = make_payload(name="Lucali", google_place_id="ChIJ-lucali", rating=4.8)
        await gateway.save(joes, "user-1", SaveOptions(tags=["pizza"]))
        await gateway.save(joes, "user-1", SaveOptions(tags=["slice"]))
        await gateway.save(joes, "user-2", SaveOptions(tags=["pizza", "late-night"]))
        await gateway.save(lucali, "user-3")

        top = await gateway.top_saved()

        assert [(p.name, p.save_count) for p in top] == [("Joe's Pizza", 2), ("Lucali", 1)]
        assert top[0].popular_tags == ["pizza", "slice", "late-night"]

    @pytest.mark.asyncio
    async def test_min_saves_filters(self, session, make_payload) -> None:
        gateway = PersistenceGateway(session)
        await gateway.save(make_payload(), "user-1")
        await gateway.save(make_payload(), "user-2")
        await gateway.save(make_payload(name="Lucali", google_place_id="ChIJ-lucali"), "user-3")

        top = await gateway.top_saved(min_saves=2)

        assert [p.name for p in top] == ["Joe's Pizza"]

    @pytest.mark.asyncio
    async def test_ties_broken_by_rating(self, session, make_payload) -> None:
        gateway = PersistenceGateway(session)
        await gateway.save(make_payload(name="Low", google_place_id="ChIJ-low", rating=3.9), "user-1")
        await gateway.save(make_payload(name="High", google_place_id="ChIJ-high", rating=4.9), "user-1")

        top = await gateway.top_saved()

        assert [p.name for p in top] == ["High", "Low"]


class TestBackfillSupport:
    @pytest.mark.asyncio
    async def test_apply_enrichment_fills_bare_entries(self, session) -> None:
        place = Place(name="Lucali", address="575 Henry St")
        bare = SavedEntry(user_id="user-1", tags=[], source_type=SourceType.MANUAL.value)
        bare.place = place
        session.add(bare)
        await session.commit()
        gateway = PersistenceGateway(session)

        missing = await gateway.places_missing_enrichment()
        assert [p.id for p in missing] == [place.id]

        official = OfficialPlace(google_place_id="ChIJ-lucali", name="Lucali", phone="(718) 858-4086", types=["restaurant"])
        data = EnrichmentData(types=["restaurant"], confidence="google-places-batch")
        updated = await gateway.apply_enrichment(place, official, data)

        assert updated == 1
        assert place.google_place_id == "ChIJ-lucali"
        assert place.phone == "(718) 858-4086"
        assert place.address == "575 Henry St"
        assert bare.enrichment["confidence"] == "google-places-batch"
        assert await gateway.places_missing_enrichment() == []
