"""
Google Places resolver.
Looks a venue up in the places directory (text search, then detail fetch)
and returns the authoritative record used to enrich a saved place.
"""
import logging
import re
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.models.places import OfficialPlace, PlaceHours, PlaceQuery, PlaceReview
from app.services.redis_client import RedisClient, redis_client
from app.utils.normalizers import normalize_place_details

logger = logging.getLogger(__name__)

DETAIL_FIELDS = ",".join([
    "name",
    "formatted_address",
    "formatted_phone_number",
    "website",
    "rating",
    "price_level",
    "geometry",
    "opening_hours",
    "photos",
    "reviews",
    "types",
])


def build_search_query(query: PlaceQuery) -> str:
    """Concatenate name, location hint and cuisine hint into one search string."""
    parts = [query.name.strip()]
    if query.location_hint and query.location_hint.strip():
        parts.append(query.location_hint.strip())
    if query.cuisine_hint and query.cuisine_hint.strip():
        parts.append(query.cuisine_hint.strip())
    return " ".join(part for part in parts if part)


class PlaceResolver:
    """Resolves a name + location hint to an ``OfficialPlace``."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        cache: Optional[RedisClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.google_places_api_key
        self.base_url = "https://maps.googleapis.com/maps/api/place"
        self.timeout = settings.places_timeout
        self.photo_max_width = settings.places_photo_max_width
        self.cache = cache
        self.cache_ttl = settings.cache_ttl_seconds
        self._transport = transport

    async def resolve(self, query: PlaceQuery) -> Optional[OfficialPlace]:
        """
        Resolve a place against the directory.

        Always takes the first text-search hit. Returns None when nothing
        matches or the directory cannot be reached; never raises.
        """
        if not self.api_key:
            logger.warning("Google Places API key not configured, using placeholder place data")
            return self._placeholder_place(query)

        search_query = build_search_query(query)
        if not search_query:
            return None

        try:
            place_id = await self._text_search(search_query)
            if not place_id:
                logger.info(f"Restaurant not found in Google Places: {search_query!r}")
                return None

            details = await self.get_details(place_id)
            if not details:
                return None

            return normalize_place_details(
                details,
                place_id=place_id,
                api_key=self.api_key,
                photo_max_width=self.photo_max_width,
            )
        except httpx.HTTPError as e:
            logger.error(f"Google Places request failed for {search_query!r}: {e}")
            return None
        except Exception as e:
            logger.error(f"Error resolving place {search_query!r}: {e}")
            return None

    async def _text_search(self, search_query: str) -> Optional[str]:
        """Run a text search constrained to restaurants; return the first place id."""
        params = {
            "query": search_query,
            "type": "restaurant",
            "key": self.api_key,
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(f"{self.base_url}/textsearch/json", params=params)
            response.raise_for_status()
            data = response.json()

        status = data.get("status")
        if status == "ZERO_RESULTS":
            return None
        if status != "OK":
            logger.warning(f"Google Text Search API status: {status}")
            return None

        results = data.get("results") or []
        if not results:
            return None

        return results[0].get("place_id")

    async def get_details(self, place_id: str) -> Optional[Dict[str, Any]]:
        """Fetch (or read from cache) the detail record for a place id."""
        cache_key = f"place_details:{place_id}"
        if self.cache is not None:
            cached = await self.cache.get(cache_key)
            if cached:
                return cached

        params = {
            "place_id": place_id,
            "fields": DETAIL_FIELDS,
            "key": self.api_key,
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(f"{self.base_url}/details/json", params=params)
            response.raise_for_status()
            data = response.json()

        if data.get("status") != "OK":
            logger.warning(f"Google Place Details API status: {data.get('status')}")
            return None

        result = data.get("result") or {}
        result.setdefault("place_id", place_id)

        if self.cache is not None:
            await self.cache.set(cache_key, result, self.cache_ttl)

        return result

    def _placeholder_place(self, query: PlaceQuery) -> OfficialPlace:
        """
        Placeholder record for local development without an API key.

        The directory id is derived from the name so repeated saves of the
        same placeholder still land on one place row.
        """
        slug = re.sub(r"[^a-z0-9]+", "-", query.name.lower()).strip("-") or "unknown"
        return OfficialPlace(
            google_place_id=f"mock:{slug}",
            name=query.name,
            address="123 Main St, City, State 12345",
            phone="(555) 123-4567",
            website="https://restaurant-website.com",
            rating=4.2,
            price_level=2,
            latitude=40.7128,
            longitude=-74.0060,
            hours=PlaceHours(
                weekday_text=["Monday: 9:00 AM – 9:00 PM", "Tuesday: 9:00 AM – 9:00 PM"],
                open_now=True,
            ),
            photos=[],
            reviews=[
                PlaceReview(rating=5, text="Amazing food!", author="Jane D."),
                PlaceReview(rating=4, text="Great atmosphere", author="John S."),
            ],
            types=["restaurant"],
        )


# Global instance
place_resolver = PlaceResolver(cache=redis_client)
