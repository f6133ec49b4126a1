"""
Data normalizers for places directory payloads.
These normalizers ensure that a venue is always represented the same way
regardless of which directory response it came from (text search hit,
detail record, cached detail record).
"""

from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

from app.models.places import OfficialPlace, PlaceHours, PlacePhoto, PlaceReview

PHOTO_ENDPOINT = "https://maps.googleapis.com/maps/api/place/photo"

# Bounded collections kept from a detail record
MAX_PHOTOS = 3
MAX_REVIEWS = 3


def build_photo_url(photo_reference: str, api_key: str, max_width: int = 400) -> str:
    """Turn a photo reference into a directly usable image URL."""
    params = {
        "maxwidth": max_width,
        "photo_reference": photo_reference,
        "key": api_key,
    }
    return f"{PHOTO_ENDPOINT}?{urlencode(params)}"


def normalize_place_details(
    details: Dict[str, Any],
    place_id: str,
    api_key: str,
    photo_max_width: int = 400,
) -> OfficialPlace:
    """
    Normalize a Google Places detail result into an ``OfficialPlace``.

    Expected keys in ``details`` (all optional except name):
    - name, formatted_address, formatted_phone_number, website
    - rating (0-5), price_level (0-4)
    - geometry.location.{lat,lng}
    - opening_hours.{weekday_text,open_now}
    - photos[].photo_reference
    - reviews[].{rating,text,author_name,relative_time_description}
    - types
    """
    location = (details.get("geometry") or {}).get("location") or {}

    latitude = location.get("lat")
    longitude = location.get("lng", location.get("lon"))

    return OfficialPlace(
        google_place_id=details.get("place_id") or place_id,
        name=details.get("name") or "Unknown Place",
        address=details.get("formatted_address") or details.get("vicinity"),
        phone=details.get("formatted_phone_number") or details.get("international_phone_number"),
        website=details.get("website"),
        rating=_clamp_rating(details.get("rating")),
        price_level=_clamp_price_level(details.get("price_level")),
        latitude=float(latitude) if latitude is not None else None,
        longitude=float(longitude) if longitude is not None else None,
        hours=normalize_hours(details.get("opening_hours")),
        photos=normalize_photos(details.get("photos"), api_key, photo_max_width),
        reviews=normalize_reviews(details.get("reviews")),
        types=list(details.get("types") or []),
    )


def normalize_hours(opening_hours: Optional[Dict[str, Any]]) -> Optional[PlaceHours]:
    """Keep the per-weekday text lines and the open-now flag."""
    if not isinstance(opening_hours, dict):
        return None

    weekday_text = opening_hours.get("weekday_text") or []
    open_now = opening_hours.get("open_now")

    if not weekday_text and open_now is None:
        return None

    return PlaceHours(
        weekday_text=[str(line) for line in weekday_text],
        open_now=bool(open_now) if open_now is not None else None,
    )


def normalize_photos(
    photos: Optional[List[Any]],
    api_key: str,
    max_width: int = 400,
) -> List[PlacePhoto]:
    """Convert up to ``MAX_PHOTOS`` photo references into URLs."""
    if not photos:
        return []

    normalized = []
    for photo in photos:
        if len(normalized) >= MAX_PHOTOS:
            break
        if isinstance(photo, str):
            # Already a URL (e.g. from a cached or mocked record)
            if photo.startswith("http"):
                normalized.append(PlacePhoto(url=photo))
        elif isinstance(photo, dict):
            url = photo.get("url")
            reference = photo.get("photo_reference")
            if url and url.startswith("http"):
                normalized.append(PlacePhoto(url=url))
            elif reference:
                normalized.append(PlacePhoto(url=build_photo_url(reference, api_key, max_width)))

    return normalized


def normalize_reviews(reviews: Optional[List[Dict[str, Any]]]) -> List[PlaceReview]:
    """Trim reviews to rating, text, author and relative time."""
    if not reviews:
        return []

    return [
        PlaceReview(
            rating=review.get("rating"),
            text=review.get("text") or "",
            author=review.get("author_name") or review.get("author"),
            time=_review_time(review),
        )
        for review in reviews[:MAX_REVIEWS]
        if isinstance(review, dict)
    ]


def map_type_to_category(place_type: str) -> str:
    """Map Google Places types to app categories."""
    type_lower = place_type.lower()

    if any(t in type_lower for t in ["restaurant", "food", "meal", "dining"]):
        return "restaurant"
    elif any(t in type_lower for t in ["bar", "pub", "tavern"]):
        return "bar"
    elif any(t in type_lower for t in ["cafe", "coffee"]):
        return "cafe"
    elif any(t in type_lower for t in ["bakery", "dessert"]):
        return "bakery"
    else:
        return "place"


def _clamp_rating(rating: Any) -> Optional[float]:
    if rating is None:
        return None
    try:
        return max(0.0, min(5.0, float(rating)))
    except (TypeError, ValueError):
        return None


def _clamp_price_level(price_level: Any) -> Optional[int]:
    if price_level is None:
        return None
    try:
        return max(0, min(4, int(price_level)))
    except (TypeError, ValueError):
        return None


def _review_time(review: Dict[str, Any]) -> Optional[str]:
    # Relative text when present, else the epoch seconds the API also returns
    value = review.get("relative_time_description") or review.get("time")
    return str(value) if value is not None else None
