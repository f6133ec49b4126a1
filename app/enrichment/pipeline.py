"""
Enrichment pipeline.
Runs Source Extractor -> Place Resolver -> Context Merger for one user
action, and hands the merged payload to the Persistence Gateway on save.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.enrichment.context_merger import merge
from app.enrichment.source_extractor import (
    LINK_STUB_NAME,
    SCREENSHOT_STUB_NAME,
    SourceExtractor,
    source_extractor,
)
from app.models.places import (
    CandidateContext,
    EnrichmentPreview,
    ManualSource,
    PlaceQuery,
    SaveOptions,
    SourceType,
)
from app.models.tables import SavedEntry
from app.services.google_places import PlaceResolver, place_resolver
from app.services.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

# Candidates with these names carry no usable venue guess
STUB_NAMES = (LINK_STUB_NAME, SCREENSHOT_STUB_NAME)


class PlaceNotFoundError(Exception):
    """The places directory has no match for the candidate."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Restaurant not found: {name}")


class EnrichmentPipeline:
    """Sequences the enrichment stages; every stage is awaited in order."""

    def __init__(
        self,
        extractor: Optional[SourceExtractor] = None,
        resolver: Optional[PlaceResolver] = None,
    ):
        self.extractor = extractor or source_extractor
        self.resolver = resolver or place_resolver

    async def preview_link(self, url: str) -> EnrichmentPreview:
        personal = await self.extractor.extract_from_link(url)
        return await self._resolve_and_merge(personal, SourceType.SOCIAL_LINK)

    async def preview_screenshot(
        self,
        image_bytes: bytes,
        content_type: str = "image/jpeg",
        filename: Optional[str] = None,
    ) -> EnrichmentPreview:
        personal = await self.extractor.extract_from_screenshot(
            image_bytes,
            content_type=content_type,
            filename=filename,
        )
        return await self._resolve_and_merge(personal, SourceType.SCREENSHOT)

    async def preview_manual(self, name: str, address: Optional[str] = None) -> EnrichmentPreview:
        """Manual entry skips extraction; the user-typed name is the candidate."""
        address = address.strip() if address and address.strip() else None
        personal = CandidateContext(
            name=name.strip(),
            location_hint=address or "",
            confidence="high",
            source=ManualSource(address=address),
        )
        return await self._resolve_and_merge(personal, SourceType.MANUAL)

    async def _resolve_and_merge(
        self,
        personal: CandidateContext,
        source_type: SourceType,
    ) -> EnrichmentPreview:
        official = None
        if personal.name in STUB_NAMES:
            logger.info(f"No venue guess for {source_type.value} source, skipping directory lookup")
        else:
            official = await self.resolver.resolve(
                PlaceQuery(
                    name=personal.name,
                    location_hint=personal.location_hint,
                    cuisine_hint=personal.cuisine_hint,
                )
            )

        payload = merge(official, personal, source_type)
        status = "resolved" if official is not None else "not_found"
        logger.info(f"Enrichment preview for {personal.name!r}: {status} ({payload.provenance})")
        return EnrichmentPreview(status=status, payload=payload)

    async def save(
        self,
        session: AsyncSession,
        preview: EnrichmentPreview,
        owner_id: str,
        options: Optional[SaveOptions] = None,
    ) -> SavedEntry:
        """Persist a previewed payload. Raises PersistenceError on database failure."""
        gateway = PersistenceGateway(session)
        return await gateway.save(preview.payload, owner_id, options)

    async def enrich_and_save_link(
        self,
        session: AsyncSession,
        url: str,
        owner_id: str,
        options: Optional[SaveOptions] = None,
        allow_unresolved: bool = False,
    ) -> SavedEntry:
        """
        Extract, resolve, merge and save a social link in one call.

        Raises PlaceNotFoundError without writing anything when the directory
        has no match, unless ``allow_unresolved`` is set.
        """
        preview = await self.preview_link(url)
        if preview.status == "not_found" and not allow_unresolved:
            raise PlaceNotFoundError(preview.payload.name)
        return await self.save(session, preview, owner_id, options)


# Global instance
enrichment_pipeline = EnrichmentPipeline()
