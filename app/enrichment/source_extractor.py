"""
Source extractor.
Guesses which restaurant a social post or screenshot is about, using the
generative text/vision API. Every failure degrades to a low-confidence stub
so the user can still correct the result by hand.
"""
import json
import logging
import re
from typing import Any, Dict, List, Optional

from app.models.places import CandidateContext, ScreenshotSource, SocialLinkSource
from app.services.openai_client import GenerativeClient, generative_client

logger = logging.getLogger(__name__)

LINK_STUB_NAME = "Restaurant from Instagram"
SCREENSHOT_STUB_NAME = "Restaurant from screenshot"

LINK_SYSTEM_PROMPT = (
    "Extract restaurant information from Instagram URLs. Focus on WHY someone would save "
    "this place. Return only JSON with: "
    '"name" (restaurant name), '
    '"locationHint" (city, neighborhood, or area if mentioned), '
    '"description" (personal reason for saving), '
    '"tags" (short descriptive tags), '
    '"sentiment" (positive/neutral/negative), '
    '"mentions" (specific things mentioned), '
    '"confidence" (high/medium/low). '
    'Example: {"name": "Joe\'s Pizza", "locationHint": "Brooklyn NYC", '
    '"description": "Classic NY slice", "tags": ["pizza", "cheap-eats"], '
    '"sentiment": "positive", "mentions": ["plain slice"], "confidence": "medium"}'
)

SCREENSHOT_PROMPT = (
    "This is a screenshot of a social media post or map listing about a restaurant. "
    "Identify the restaurant and return only a JSON object with these keys: "
    '"name", "address", "neighborhood", "city", "cuisine", "phone", '
    '"description" (one sentence on why it is worth saving), '
    '"tags" (short descriptive tags), '
    '"confidence" (high/medium/low). '
    "Use null for anything you cannot read."
)

_FENCE_START = re.compile(r"^\s*```[a-zA-Z]*\s*")
_FENCE_END = re.compile(r"\s*```\s*$")
_POST_ID = re.compile(r"/(?:p|reel|reels|tv)/([A-Za-z0-9_-]+)")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```), if any."""
    stripped = _FENCE_START.sub("", text, count=1)
    return _FENCE_END.sub("", stripped, count=1).strip()


def parse_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse a JSON object out of a model response; None if it is not one."""
    if not text:
        return None
    try:
        data = json.loads(strip_code_fences(text))
    except (json.JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None


def extract_post_id(url: str) -> Optional[str]:
    """Instagram post/reel shortcode from a URL."""
    match = _POST_ID.search(url or "")
    return match.group(1) if match else None


def _clean_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in ("null", "none", "unknown"):
        return None
    return text


def _clean_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    cleaned = []
    for item in value:
        text = _clean_str(item)
        if text and text not in cleaned:
            cleaned.append(text)
    return cleaned


class SourceExtractor:
    """Turns a social link or a screenshot into a ``CandidateContext``."""

    def __init__(self, client: Optional[GenerativeClient] = None):
        self.client = client or generative_client

    async def extract_from_link(self, url: str) -> CandidateContext:
        """
        Guess the restaurant behind a post URL from the URL text alone.

        The page is never fetched. A response that is not JSON is taken as
        the restaurant name with an empty location hint.
        """
        url = url.strip()
        if not self.client.is_configured:
            logger.warning("Generative API key not configured, using link stub")
            return self._link_stub(url)

        try:
            content = await self.client.complete(
                LINK_SYSTEM_PROMPT,
                f"Extract restaurant name, location and personal context from: {url}",
                max_tokens=300,
                temperature=0.1,
            )
        except Exception as e:
            logger.error(f"Link extraction failed: {e}")
            return self._link_stub(url)

        source = SocialLinkSource(url=url, post_id=extract_post_id(url))
        data = parse_json_object(content)
        if data is None:
            name = _clean_str(content)
            if not name:
                return self._link_stub(url)
            return CandidateContext(name=name, location_hint="", source=source)

        return CandidateContext(
            name=_clean_str(data.get("name")) or LINK_STUB_NAME,
            location_hint=_clean_str(data.get("locationHint") or data.get("location_hint")) or "",
            description=_clean_str(data.get("description")),
            tags=_clean_list(data.get("tags")),
            sentiment=_clean_str(data.get("sentiment")),
            mentions=_clean_list(data.get("mentions")),
            confidence=_clean_str(data.get("confidence")) or "low",
            source=source,
        )

    async def extract_from_screenshot(
        self,
        image_bytes: bytes,
        content_type: str = "image/jpeg",
        filename: Optional[str] = None,
    ) -> CandidateContext:
        """
        Ask the vision model to read a restaurant off a screenshot.

        Unparseable output becomes the description of a placeholder
        candidate tagged ``screenshot``.
        """
        if not self.client.is_configured:
            logger.warning("Generative API key not configured, using screenshot stub")
            return self._screenshot_stub(filename)

        try:
            content = await self.client.complete_with_image(
                SCREENSHOT_PROMPT,
                image_bytes,
                content_type=content_type,
                max_tokens=500,
            )
        except Exception as e:
            logger.error(f"Screenshot analysis failed: {e}")
            return self._screenshot_stub(filename)

        data = parse_json_object(content)
        if data is None:
            logger.warning("Screenshot analysis returned non-JSON content")
            return self._screenshot_stub(filename, description=_clean_str(content))

        address = _clean_str(data.get("address"))
        neighborhood = _clean_str(data.get("neighborhood"))
        city = _clean_str(data.get("city"))
        cuisine = _clean_str(data.get("cuisine"))

        if address:
            location_hint = address
        else:
            location_hint = " ".join(part for part in (neighborhood, city) if part)

        tags = _clean_list(data.get("tags"))
        if cuisine and cuisine.lower() not in (t.lower() for t in tags):
            tags.append(cuisine.lower())
        if "screenshot" not in tags:
            tags.insert(0, "screenshot")

        return CandidateContext(
            name=_clean_str(data.get("name")) or SCREENSHOT_STUB_NAME,
            location_hint=location_hint,
            cuisine_hint=cuisine,
            description=_clean_str(data.get("description")),
            tags=tags,
            sentiment=_clean_str(data.get("sentiment")),
            mentions=_clean_list(data.get("mentions")),
            confidence=_clean_str(data.get("confidence")) or "low",
            source=ScreenshotSource(
                filename=filename,
                address=address,
                neighborhood=neighborhood,
                city=city,
                cuisine=cuisine,
                phone=_clean_str(data.get("phone")),
            ),
        )

    def _link_stub(self, url: str) -> CandidateContext:
        return CandidateContext(
            name=LINK_STUB_NAME,
            location_hint="",
            description=f"Saved from Instagram: {url}",
            tags=["instagram"],
            confidence="low",
            source=SocialLinkSource(url=url, post_id=extract_post_id(url)),
        )

    def _screenshot_stub(
        self,
        filename: Optional[str],
        description: Optional[str] = None,
    ) -> CandidateContext:
        return CandidateContext(
            name=SCREENSHOT_STUB_NAME,
            location_hint="",
            description=description,
            tags=["screenshot"],
            confidence="low",
            source=ScreenshotSource(filename=filename),
        )


# Global instance
source_extractor = SourceExtractor()
