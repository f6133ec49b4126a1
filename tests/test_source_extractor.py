"""Unit tests for the source extractor (generative API mocked)."""
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from app.enrichment.source_extractor import (
    LINK_STUB_NAME,
    SCREENSHOT_STUB_NAME,
    SourceExtractor,
    extract_post_id,
    parse_json_object,
    strip_code_fences,
)
from app.models.places import ScreenshotSource, SocialLinkSource
from app.services.openai_client import GenerativeClient

POST_URL = "https://www.instagram.com/p/C1xYz_9/"


def _client(content=None, error=None, configured=True) -> MagicMock:
    client = MagicMock(spec=GenerativeClient)
    client.is_configured = configured
    client.complete = AsyncMock(return_value=content, side_effect=error)
    client.complete_with_image = AsyncMock(return_value=content, side_effect=error)
    return client


# ======================================================================
# Parsing helpers
# ======================================================================


class TestParsingHelpers:
    def test_strip_json_fence(self) -> None:
        assert strip_code_fences('```json\n{"name": "Lucali"}\n```') == '{"name": "Lucali"}'

    def test_strip_bare_fence(self) -> None:
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_unfenced_text_unchanged(self) -> None:
        assert strip_code_fences('{"a": 1}') == '{"a": 1}'

    def test_parse_fenced_object(self) -> None:
        assert parse_json_object('```json\n{"name": "Lucali"}\n```') == {"name": "Lucali"}

    def test_parse_rejects_non_objects(self) -> None:
        assert parse_json_object("[1, 2]") is None
        assert parse_json_object("Lucali in Brooklyn") is None
        assert parse_json_object("") is None

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://www.instagram.com/p/C1xYz_9/", "C1xYz_9"),
            ("https://instagram.com/reel/Abc-123/?igsh=x", "Abc-123"),
            ("https://example.com/restaurant", None),
        ],
    )
    def test_extract_post_id(self, url, expected) -> None:
        assert extract_post_id(url) == expected


# ======================================================================
# Links
# ======================================================================


class TestExtractFromLink:
    @pytest.mark.asyncio
    async def test_json_response_maps_to_candidate(self) -> None:
        content = json.dumps({
            "name": "Lucali",
            "locationHint": "Carroll Gardens, Brooklyn",
            "description": "Candlelit pizza worth the wait",
            "tags": ["pizza", "date-night"],
            "sentiment": "positive",
            "mentions": ["calzone"],
            "confidence": "high",
        })
        extractor = SourceExtractor(client=_client(content))

        candidate = await extractor.extract_from_link(POST_URL)

        assert candidate.name == "Lucali"
        assert candidate.location_hint == "Carroll Gardens, Brooklyn"
        assert candidate.tags == ["pizza", "date-night"]
        assert candidate.mentions == ["calzone"]
        assert candidate.confidence == "high"
        assert isinstance(candidate.source, SocialLinkSource)
        assert candidate.source.post_id == "C1xYz_9"

    @pytest.mark.asyncio
    async def test_missing_confidence_defaults_to_low(self) -> None:
        extractor = SourceExtractor(client=_client('{"name": "Lucali"}'))

        candidate = await extractor.extract_from_link(POST_URL)

        assert candidate.confidence == "low"
        assert candidate.location_hint == ""

    @pytest.mark.asyncio
    async def test_plain_text_response_becomes_name(self) -> None:
        extractor = SourceExtractor(client=_client("Joe's Pizza"))

        candidate = await extractor.extract_from_link(POST_URL)

        assert candidate.name == "Joe's Pizza"
        assert candidate.location_hint == ""

    @pytest.mark.asyncio
    async def test_http_error_yields_stub(self) -> None:
        error = httpx.ConnectError("connection refused")
        extractor = SourceExtractor(client=_client(error=error))

        candidate = await extractor.extract_from_link(POST_URL)

        assert candidate.name == LINK_STUB_NAME
        assert candidate.confidence == "low"
        assert candidate.tags == ["instagram"]
        assert candidate.source.post_id == "C1xYz_9"

    @pytest.mark.asyncio
    async def test_unconfigured_client_yields_stub_without_calling(self) -> None:
        client = _client("ignored", configured=False)
        extractor = SourceExtractor(client=client)

        candidate = await extractor.extract_from_link(POST_URL)

        assert candidate.name == LINK_STUB_NAME
        client.complete.assert_not_called()


# ======================================================================
# Screenshots
# ======================================================================


class TestExtractFromScreenshot:
    @pytest.mark.asyncio
    async def test_fenced_json_is_parsed(self) -> None:
        content = (
            "```json\n"
            + json.dumps({
                "name": "Via Carota",
                "address": "51 Grove St, New York",
                "neighborhood": "West Village",
                "city": "New York",
                "cuisine": "Italian",
                "phone": "(212) 255-1962",
                "confidence": "medium",
            })
            + "\n```"
        )
        extractor = SourceExtractor(client=_client(content))

        candidate = await extractor.extract_from_screenshot(b"\xff\xd8img", "image/png", "shot.png")

        assert candidate.name == "Via Carota"
        assert candidate.location_hint == "51 Grove St, New York"
        assert candidate.cuisine_hint == "Italian"
        assert candidate.confidence == "medium"
        assert "screenshot" in candidate.tags
        assert "italian" in candidate.tags
        assert isinstance(candidate.source, ScreenshotSource)
        assert candidate.source.phone == "(212) 255-1962"
        assert candidate.source.filename == "shot.png"

    @pytest.mark.asyncio
    async def test_location_falls_back_to_neighborhood_and_city(self) -> None:
        content = json.dumps({"name": "Dante", "neighborhood": "West Village", "city": "New York"})
        extractor = SourceExtractor(client=_client(content))

        candidate = await extractor.extract_from_screenshot(b"img")

        assert candidate.location_hint == "West Village New York"

    @pytest.mark.asyncio
    async def test_unparseable_response_yields_stub(self) -> None:
        extractor = SourceExtractor(client=_client("I can't tell which restaurant this is."))

        candidate = await extractor.extract_from_screenshot(b"img")

        assert candidate.name == SCREENSHOT_STUB_NAME
        assert candidate.tags == ["screenshot"]
        assert candidate.confidence == "low"
        assert candidate.description == "I can't tell which restaurant this is."

    @pytest.mark.asyncio
    async def test_api_error_yields_stub(self) -> None:
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        response = httpx.Response(500, request=request)
        error = httpx.HTTPStatusError("server error", request=request, response=response)
        extractor = SourceExtractor(client=_client(error=error))

        candidate = await extractor.extract_from_screenshot(b"img")

        assert candidate.name == SCREENSHOT_STUB_NAME
        assert candidate.tags == ["screenshot"]
