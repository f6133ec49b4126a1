"""
Backfill enrichment for saved places that were stored without it.

Looks every such place up in the places directory, a few at a time, and
attaches photos, reviews and types to its bare saved entries.

Usage:
    python -m app.enrichment.backfill [--limit N]
"""
import argparse
import asyncio
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config import settings
from app.database import AsyncSessionLocal
from app.models.places import EnrichmentData, OfficialPlace, PlaceQuery
from app.services.google_places import PlaceResolver, place_resolver
from app.services.persistence import (
    SAVED_REVIEWS_LIMIT,
    PersistenceError,
    PersistenceGateway,
)

logger = logging.getLogger(__name__)

BATCH_CONFIDENCE = "google-places-batch"
BATCH_EXTRACTION_METHOD = "batch-enhancement"


class BackfillSummary(BaseModel):
    processed: int = 0
    enriched: int = 0
    not_found: int = 0
    failed: int = 0
    entries_updated: int = 0


def build_batch_enrichment(official: OfficialPlace) -> EnrichmentData:
    """Enrichment stored on entries that the backfill filled in."""
    return EnrichmentData(
        photos=official.photos,
        reviews=official.reviews[:SAVED_REVIEWS_LIMIT],
        types=official.types,
        confidence=BATCH_CONFIDENCE,
        extraction_method=BATCH_EXTRACTION_METHOD,
        enriched_at=datetime.utcnow().isoformat(),
    )


class BackfillRunner:
    """Throttled re-enrichment of places whose saved entries lack enrichment."""

    def __init__(
        self,
        session_factory: async_sessionmaker = AsyncSessionLocal,
        resolver: Optional[PlaceResolver] = None,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.resolver = resolver or place_resolver
        self.batch_size = batch_size or settings.backfill_batch_size
        self.batch_delay = settings.backfill_batch_delay_seconds if batch_delay is None else batch_delay

    async def run(self, limit: Optional[int] = None) -> BackfillSummary:
        limit = limit or settings.backfill_limit
        summary = BackfillSummary()

        async with self.session_factory() as session:
            gateway = PersistenceGateway(session)
            places = await gateway.places_missing_enrichment(limit)
            # Plain values only: a rollback expires loaded rows
            targets = [(p.id, p.name, p.address) for p in places]

            if not targets:
                logger.info("No places need enrichment")
                return summary

            logger.info(f"Backfilling {len(targets)} places in batches of {self.batch_size}")

            for start in range(0, len(targets), self.batch_size):
                if start > 0:
                    await asyncio.sleep(self.batch_delay)
                batch = targets[start:start + self.batch_size]
                await self._process_batch(gateway, batch, summary)
                logger.info(
                    f"Batch {start // self.batch_size + 1} done: "
                    f"{summary.enriched} enriched, {summary.not_found} not found, {summary.failed} failed"
                )

        return summary

    async def _process_batch(
        self,
        gateway: PersistenceGateway,
        batch: List[Tuple[str, str, Optional[str]]],
        summary: BackfillSummary,
    ) -> None:
        # Directory lookups run concurrently; database writes stay sequential on one session
        results = await asyncio.gather(*(
            self.resolver.resolve(PlaceQuery(name=name, location_hint=address or ""))
            for _, name, address in batch
        ))

        for (place_id, name, _), official in zip(batch, results):
            summary.processed += 1
            if official is None:
                logger.warning(f"No directory match for {name!r}")
                summary.not_found += 1
                continue

            place = await gateway.get_place(place_id, refresh=True)
            if place is None:
                summary.failed += 1
                continue
            try:
                updated = await gateway.apply_enrichment(place, official, build_batch_enrichment(official))
            except PersistenceError as e:
                logger.error(f"Failed to enrich {name!r}: {e}")
                summary.failed += 1
                continue

            summary.enriched += 1
            summary.entries_updated += updated


async def run_backfill(limit: Optional[int] = None) -> BackfillSummary:
    return await BackfillRunner().run(limit)


def main() -> None:
    parser = argparse.ArgumentParser(description="Backfill place enrichment for saved restaurants")
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of places to process")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    summary = asyncio.run(run_backfill(args.limit))
    logger.info(f"Backfill complete: {summary.model_dump()}")


if __name__ == "__main__":
    main()
