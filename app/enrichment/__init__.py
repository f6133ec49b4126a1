"""
Enrichment Module
=================

Turns a social link, a screenshot or a typed name into a saved place:

    Source Extractor -> Place Resolver -> Context Merger -> Persistence Gateway

- source_extractor: generative guess of the restaurant and the personal context
- context_merger: official directory fields win over guesses, personal fields are kept
- pipeline: runs the stages in order for one user action
- backfill: throttled batch enrichment of places saved without it
"""

from .context_merger import merge, provenance_label
from .pipeline import (
    EnrichmentPipeline,
    PlaceNotFoundError,
    enrichment_pipeline,
)
from .source_extractor import (
    SourceExtractor,
    source_extractor,
)

__all__ = [
    "merge",
    "provenance_label",
    "EnrichmentPipeline",
    "PlaceNotFoundError",
    "enrichment_pipeline",
    "SourceExtractor",
    "source_extractor",
]
