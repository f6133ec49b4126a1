"""Shared pytest fixtures for the haze backend test suite."""
from typing import Any, Callable, Dict, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.models.tables  # noqa: F401
from app.database import Base
from app.models.places import (
    EnrichmentPayload,
    ManualSource,
    PlaceReview,
    SocialLinkSource,
    SourceType,
)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Payload factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_payload() -> Callable[..., EnrichmentPayload]:
    """Build an enrichment payload; a directory id marks it as resolved."""

    def _make(
        name: str = "Joe's Pizza",
        google_place_id: Optional[str] = "ChIJ-joes-pizza",
        source_type: SourceType = SourceType.SOCIAL_LINK,
        **overrides: Any,
    ) -> EnrichmentPayload:
        if source_type == SourceType.SOCIAL_LINK:
            source = SocialLinkSource(url="https://www.instagram.com/p/ABC123/", post_id="ABC123")
        else:
            source = ManualSource(address=overrides.get("address"))

        fields: Dict[str, Any] = dict(
            name=name,
            google_place_id=google_place_id,
            address="7 Carmine St, New York, NY 10014" if google_place_id else None,
            latitude=40.7305 if google_place_id else None,
            longitude=-74.0021 if google_place_id else None,
            rating=4.5 if google_place_id else None,
            price_level=1 if google_place_id else None,
            reviews=[
                PlaceReview(rating=5, text="Best slice", author="A."),
                PlaceReview(rating=4, text="Solid", author="B."),
                PlaceReview(rating=3, text="Fine", author="C."),
            ] if google_place_id else [],
            types=["restaurant", "food"] if google_place_id else [],
            description="Classic NY slice",
            tags=["pizza", "cheap-eats"],
            sentiment="positive",
            mentions=["plain slice"],
            confidence="medium",
            provenance="social-link + places-directory" if google_place_id else "social-link",
            source_type=source_type,
            source=source,
        )
        fields.update(overrides)
        return EnrichmentPayload(**fields)

    return _make


@pytest.fixture
def place_details() -> Dict[str, Any]:
    """A Google Places detail result as returned by details/json."""
    return {
        "place_id": "ChIJ-joes-pizza",
        "name": "Joe's Pizza",
        "formatted_address": "7 Carmine St, New York, NY 10014, USA",
        "formatted_phone_number": "(212) 366-1182",
        "website": "https://www.joespizzanyc.com/",
        "rating": 4.5,
        "price_level": 1,
        "geometry": {"location": {"lat": 40.7305, "lng": -74.0021}},
        "opening_hours": {
            "open_now": True,
            "weekday_text": ["Monday: 10:00 AM – 4:00 AM"],
        },
        "photos": [{"photo_reference": f"ref{i}"} for i in range(5)],
        "reviews": [
            {
                "rating": 5 - i,
                "text": f"Review {i}",
                "author_name": f"Author {i}",
                "relative_time_description": "a week ago",
            }
            for i in range(5)
        ],
        "types": ["restaurant", "food", "point_of_interest"],
    }
