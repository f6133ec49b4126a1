"""
Search Utilities
Client-side style ranking over already loaded collections: saved places
and user profiles. Pure functions, no I/O.
"""
from typing import Any, Iterable, List, Optional, Sequence, TypeVar

from app.utils.normalizers import map_type_to_category

T = TypeVar("T")

# Single-token scores (name checks are mutually exclusive)
EXACT_NAME_SCORE = 100
NAME_PREFIX_SCORE = 50
NAME_CONTAINS_SCORE = 25
ADDRESS_CONTAINS_SCORE = 10
CATEGORY_CONTAINS_SCORE = 5

# Bonuses when every word of a multi-word query is found
ALL_WORDS_NAME_BONUS = 20
ALL_WORDS_ADDRESS_BONUS = 15
ALL_WORDS_CATEGORY_BONUS = 10


def _field(item: Any, key: str) -> Any:
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


def _place_of(item: Any) -> Any:
    """The place part of a saved entry, or the item itself for bare places."""
    place = _field(item, "place")
    return place if place is not None else item


def _text(value: Any) -> str:
    return str(value).lower() if value else ""


def _category_text(item: Any) -> str:
    """Tags, categories and directory types of an item as one searchable string."""
    parts: List[str] = []
    for key in ("category", "tags"):
        value = _field(item, key)
        if isinstance(value, str):
            parts.append(value)
        elif value:
            parts.extend(str(v) for v in value)

    types = list(_field(item, "types") or [])
    enrichment = _field(item, "enrichment")
    if isinstance(enrichment, dict):
        types.extend(enrichment.get("types") or [])

    # Directory types like "meal_takeaway" also count under their category
    for place_type in types:
        parts.append(str(place_type))
        category = map_type_to_category(str(place_type))
        if category != "place":
            parts.append(category)
    return " ".join(parts).lower()


def score_place(item: Any, query: str) -> int:
    """Relevance of a saved place (or bare place) for a free-text query."""
    q = query.strip().lower()
    if not q:
        return 0

    place = _place_of(item)
    name = _text(_field(place, "name"))
    address = _text(_field(place, "address"))
    category = _category_text(item)

    words = q.split()

    score = 0
    if name == q:
        score += EXACT_NAME_SCORE
    elif name.startswith(q):
        score += NAME_PREFIX_SCORE
    elif q in name or any(word in name for word in words):
        # A single query word in the name is enough for a partial match
        score += NAME_CONTAINS_SCORE

    if q in address:
        score += ADDRESS_CONTAINS_SCORE
    if q in category:
        score += CATEGORY_CONTAINS_SCORE

    if len(words) > 1:
        if all(word in name for word in words):
            score += ALL_WORDS_NAME_BONUS
        if all(word in address for word in words):
            score += ALL_WORDS_ADDRESS_BONUS
        if all(word in category for word in words):
            score += ALL_WORDS_CATEGORY_BONUS

    return score


def rank_places(items: Sequence[T], query: str) -> List[T]:
    """
    Rank places by relevance to ``query``.

    Items scoring 0 are dropped; ties keep their original order (``sorted``
    is stable). A blank query matches nothing.
    """
    if not query or not query.strip():
        return []

    scored = [(score_place(item, query), item) for item in items]
    matches = [pair for pair in scored if pair[0] > 0]
    return [item for _, item in sorted(matches, key=lambda pair: pair[0], reverse=True)]


def filter_profiles(
    profiles: Iterable[T],
    query: str,
    self_id: Optional[str] = None,
) -> List[T]:
    """Profiles whose username or display name contains ``query``, minus the viewer."""
    q = query.strip().lower()
    results = []
    for profile in profiles:
        if self_id is not None and _field(profile, "id") == self_id:
            continue
        username = _text(_field(profile, "username"))
        display_name = _text(_field(profile, "display_name"))
        if not q or q in username or q in display_name:
            results.append(profile)
    return results
