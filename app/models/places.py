"""Pydantic models for places, saved entries and the enrichment pipeline."""
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SourceType(str, Enum):
    """Where a saved entry came from."""
    SOCIAL_LINK = "social_link"
    SCREENSHOT = "screenshot"
    MANUAL = "manual"
    DIRECTORY_IMPORT = "directory_import"


class Visibility(str, Enum):
    """Who may see a saved entry besides its owner."""
    PRIVATE = "private"
    FRIENDS = "friends"


# Provenance labels used when describing which stages contributed
SOURCE_LABELS = {
    SourceType.SOCIAL_LINK: "social-link",
    SourceType.SCREENSHOT: "screenshot",
    SourceType.MANUAL: "manual",
    SourceType.DIRECTORY_IMPORT: "directory-import",
}
DIRECTORY_LABEL = "places-directory"


# =============================================================================
# Places directory shapes
# =============================================================================

class PlaceHours(BaseModel):
    """Opening hours as returned by the places directory."""
    weekday_text: List[str] = []
    open_now: Optional[bool] = None


class PlacePhoto(BaseModel):
    url: str


class PlaceReview(BaseModel):
    """A review trimmed to the fields we keep."""
    rating: Optional[float] = None
    text: str = ""
    author: Optional[str] = None
    time: Optional[str] = None


class PlaceQuery(BaseModel):
    """Input of the place resolver."""
    name: str
    location_hint: str = ""
    cuisine_hint: Optional[str] = None


class OfficialPlace(BaseModel):
    """Authoritative venue record from the places directory."""
    google_place_id: str
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    price_level: Optional[int] = Field(None, ge=0, le=4)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    hours: Optional[PlaceHours] = None
    photos: List[PlacePhoto] = []
    reviews: List[PlaceReview] = []
    types: List[str] = []


# =============================================================================
# Source details (one shape per kind of input)
# =============================================================================

class SocialLinkSource(BaseModel):
    kind: Literal["social_link"] = "social_link"
    url: str
    post_id: Optional[str] = None


class ScreenshotSource(BaseModel):
    kind: Literal["screenshot"] = "screenshot"
    filename: Optional[str] = None
    address: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    cuisine: Optional[str] = None
    phone: Optional[str] = None


class ManualSource(BaseModel):
    kind: Literal["manual"] = "manual"
    address: Optional[str] = None


class DirectoryImportSource(BaseModel):
    kind: Literal["directory_import"] = "directory_import"
    batch: Optional[str] = None


SourceDetails = Annotated[
    Union[SocialLinkSource, ScreenshotSource, ManualSource, DirectoryImportSource],
    Field(discriminator="kind"),
]


class CandidateContext(BaseModel):
    """Best-effort guess produced by the source extractor."""
    name: str
    location_hint: str = ""
    cuisine_hint: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = []
    sentiment: Optional[str] = None
    mentions: List[str] = []
    confidence: str = "low"
    source: SourceDetails


# =============================================================================
# Enrichment payload and stored enrichment
# =============================================================================

class EnrichmentPayload(BaseModel):
    """Merged official + personal data for one place, before persistence."""

    # Official fields (absent when the directory had no match)
    name: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    google_place_id: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    price_level: Optional[int] = None
    hours: Optional[PlaceHours] = None
    photos: List[PlacePhoto] = []
    reviews: List[PlaceReview] = []
    types: List[str] = []

    # Personal fields
    description: Optional[str] = None
    tags: List[str] = []
    sentiment: Optional[str] = None
    mentions: List[str] = []
    confidence: str = "low"
    provenance: str
    source_type: SourceType
    source: SourceDetails

    @property
    def resolved(self) -> bool:
        return self.google_place_id is not None


class EnrichmentData(BaseModel):
    """Shape of the ``enrichment`` column of a saved entry."""
    model_config = ConfigDict(extra="allow")

    photos: List[PlacePhoto] = []
    reviews: List[PlaceReview] = []
    types: List[str] = []
    sentiment: Optional[str] = None
    mentions: List[str] = []
    confidence: Optional[str] = None
    extraction_method: Optional[str] = None
    source: Optional[SourceDetails] = None
    enriched_at: Optional[str] = None


class EnrichmentPreview(BaseModel):
    """Result of running the pipeline up to (not including) persistence."""
    status: Literal["resolved", "not_found"]
    payload: EnrichmentPayload


# =============================================================================
# Requests
# =============================================================================

class LinkEnrichmentRequest(BaseModel):
    url: str = Field(..., min_length=1, description="Instagram post URL")


class ManualEnrichmentRequest(BaseModel):
    name: str = Field(..., min_length=1, description="Restaurant name")
    address: Optional[str] = Field(None, description="Address or neighbourhood")


class SaveOptions(BaseModel):
    """Personal fields a user submits together with a payload."""
    note: Optional[str] = None
    tags: Optional[List[str]] = None
    visibility: Optional[Visibility] = None


class SaveRequest(SaveOptions):
    payload: EnrichmentPayload


class LinkSaveRequest(SaveOptions):
    """Extract, resolve and save a social link in one request."""
    url: str = Field(..., min_length=1, description="Instagram post URL")
    allow_unresolved: bool = False


class SavedEntryUpdate(BaseModel):
    """Partial update of a saved entry; omitted fields are untouched."""
    note: Optional[str] = None
    tags: Optional[List[str]] = None
    visibility: Optional[Visibility] = None


# =============================================================================
# Responses
# =============================================================================

class PlaceResponse(BaseModel):
    """Response model for a place."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    google_place_id: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    price_level: Optional[int] = None
    hours: Optional[Dict[str, Any]] = None


class SavedEntryResponse(BaseModel):
    """Response model for a saved entry with its place."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    place: PlaceResponse
    note: Optional[str] = None
    tags: List[str] = []
    visibility: Visibility
    source_type: SourceType
    source_url: Optional[str] = None
    enrichment: Optional[Dict[str, Any]] = None
    created_at: datetime
    capabilities: Dict[str, bool] = Field(default_factory=dict)


class TopSavedPlace(BaseModel):
    id: str
    name: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    rating: Optional[float] = None
    price_level: Optional[int] = None
    save_count: int
    popular_tags: List[str] = []
