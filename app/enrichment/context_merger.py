"""
Context merger.
Combines the personal signals of the source extractor with the
authoritative fields of the place resolver. Pure, no I/O.
"""
from typing import Optional

from app.models.places import (
    DIRECTORY_LABEL,
    SOURCE_LABELS,
    CandidateContext,
    EnrichmentPayload,
    OfficialPlace,
    ScreenshotSource,
    ManualSource,
    SourceType,
)


def provenance_label(source_type: SourceType, resolved: bool) -> str:
    """Describe which stages contributed, e.g. ``social-link + places-directory``."""
    label = SOURCE_LABELS[source_type]
    return f"{label} + {DIRECTORY_LABEL}" if resolved else label


def merge(
    official: Optional[OfficialPlace],
    personal: CandidateContext,
    source_type: SourceType,
) -> EnrichmentPayload:
    """
    Build the enrichment payload for one place.

    Official fields are copied verbatim and win over any guess of the same
    meaning (name, address, phone). Personal fields are always kept, so a
    directory miss still yields a usable payload with official fields empty.
    """
    personal_fields = dict(
        description=personal.description,
        tags=list(personal.tags),
        sentiment=personal.sentiment,
        mentions=list(personal.mentions),
        confidence=personal.confidence,
        source_type=source_type,
        source=personal.source,
    )

    if official is None:
        return EnrichmentPayload(
            name=personal.name,
            address=_guessed_address(personal),
            phone=_guessed_phone(personal),
            provenance=provenance_label(source_type, resolved=False),
            **personal_fields,
        )

    return EnrichmentPayload(
        name=official.name,
        address=official.address if official.address else _guessed_address(personal),
        latitude=official.latitude,
        longitude=official.longitude,
        google_place_id=official.google_place_id,
        phone=official.phone if official.phone else _guessed_phone(personal),
        website=official.website,
        rating=official.rating,
        price_level=official.price_level,
        hours=official.hours,
        photos=list(official.photos),
        reviews=list(official.reviews),
        types=list(official.types),
        provenance=provenance_label(source_type, resolved=True),
        **personal_fields,
    )


def _guessed_address(personal: CandidateContext) -> Optional[str]:
    if isinstance(personal.source, (ScreenshotSource, ManualSource)):
        return personal.source.address
    return None


def _guessed_phone(personal: CandidateContext) -> Optional[str]:
    if isinstance(personal.source, ScreenshotSource):
        return personal.source.phone
    return None
