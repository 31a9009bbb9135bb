"""Tests for the vision extraction client and the per-image fan-out."""

import json

import httpx
import pytest

from ranger_standings.models.roster import Team
from ranger_standings.services.vision_client import (
    StaticExtractionClient,
    VisionExtractionClient,
    extract_image_results,
    gather_result_extractions,
    get_extraction_client,
)

pytestmark = pytest.mark.anyio

VALID = json.dumps([{"placement": 1, "players": ["p1", "p2", "p3", "p4"], "kills": 8}])


def _completion(content):
    return {"choices": [{"message": {"content": content}}]}


def _client(handler):
    return VisionExtractionClient(api_key="test-key", transport=httpx.MockTransport(handler))


class TestVisionExtractionClient:
    async def test_posts_image_and_prompt(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_completion(VALID))

        client = _client(handler)
        content = await client.extract_match_result("https://img.example/1.png")
        await client.close()

        assert content == VALID
        assert seen["auth"] == "Bearer test-key"
        assert seen["body"]["model"] == "gpt-4o"
        parts = seen["body"]["messages"][0]["content"]
        assert parts[0]["type"] == "text"
        assert "exactly 4 player names" in parts[0]["text"].lower()
        assert parts[1]["image_url"]["url"] == "https://img.example/1.png"

    async def test_http_error_raised(self):
        client = _client(lambda request: httpx.Response(500, json={"error": "boom"}))
        with pytest.raises(httpx.HTTPStatusError):
            await client.extract_match_result("ref")
        await client.close()

    async def test_bad_structure(self):
        client = _client(lambda request: httpx.Response(200, json={"choices": []}))
        with pytest.raises(ValueError, match="Invalid vision response structure"):
            await client.extract_match_result("ref")
        await client.close()

    async def test_player_prompt_lists_known_teams(self):
        seen = {}

        def handler(request):
            seen["text"] = json.loads(request.content)["messages"][0]["content"][0]["text"]
            return httpx.Response(200, json=_completion('{"players": []}'))

        client = _client(handler)
        await client.extract_players("ref", [Team(3, "TEAM TSM ENT"), Team(None, "Wolves")])
        await client.close()

        assert "Slot 3: TEAM TSM ENT" in seen["text"]
        assert "Slot : Wolves" in seen["text"]
        assert '{"players": [{"name"' in seen["text"]


class TestStaticExtractionClient:
    async def test_serves_responses_in_order(self):
        client = StaticExtractionClient({"a": ["one", "two"]})
        assert await client.extract_match_result("a") == "one"
        assert await client.extract_slotlist("a") == "two"
        assert client.calls == ["a", "a"]

    async def test_exhausted_reference_fails(self):
        client = StaticExtractionClient({"a": []})
        with pytest.raises(ValueError, match="No canned response"):
            await client.extract_match_result("a")


class TestExtractImageResults:
    async def test_first_attempt_success(self):
        client = StaticExtractionClient({"img": [VALID, VALID]})
        extraction = await extract_image_results(client, "img", 1)
        assert extraction.succeeded
        assert len(extraction.attempts) == 1
        assert client.calls == ["img"]

    async def test_retry_after_malformed_response(self):
        client = StaticExtractionClient({"img": ["no json here", VALID]})
        extraction = await extract_image_results(client, "img", 1)
        assert extraction.succeeded
        assert len(extraction.attempts) == 2

    async def test_retry_after_transport_error(self):
        responses = iter([httpx.Response(503), httpx.Response(200, json=_completion(VALID))])
        client = _client(lambda request: next(responses))
        extraction = await extract_image_results(client, "img", 4)
        await client.close()
        assert extraction.image_index == 4
        assert extraction.succeeded

    async def test_budget_exhausted(self):
        client = StaticExtractionClient({"img": ["bad", "[]", VALID]})
        extraction = await extract_image_results(client, "img", 1, max_attempts=2)
        assert not extraction.succeeded
        assert len(extraction.attempts) == 2
        assert client.calls == ["img", "img"]

    async def test_provider_failure_recorded(self):
        extraction = await extract_image_results(StaticExtractionClient(), "missing", 2)
        assert not extraction.succeeded
        assert "No canned response" in extraction.final.reason


async def test_gather_keeps_input_order():
    client = StaticExtractionClient({
        "a": [VALID],
        "b": ["garbage", "garbage"],
        "c": [json.dumps({"placement": 2, "players": ["q1", "q2", "q3", "q4"], "kills": 1})],
    })
    extractions = await gather_result_extractions(client, ["a", "b", "c"])
    assert [e.image_index for e in extractions] == [1, 2, 3]
    assert [e.succeeded for e in extractions] == [True, False, True]
    assert len(extractions[1].attempts) == 2


def test_get_extraction_client():
    assert isinstance(get_extraction_client(""), StaticExtractionClient)
    assert isinstance(get_extraction_client("key", enabled=False), StaticExtractionClient)
    client = get_extraction_client("key", model="gpt-4o-mini", timeout=5.0)
    assert isinstance(client, VisionExtractionClient)
    assert client.model == "gpt-4o-mini"


async def test_gather_survives_non_finite_kills():
    infinite = '[{"placement": 2, "players": ["w", "x", "y", "z"], "kills": Infinity}]'
    client = StaticExtractionClient({"ok": [VALID], "bad": [infinite, infinite]})
    extractions = await gather_result_extractions(client, ["ok", "bad"])
    assert [e.succeeded for e in extractions] == [True, False]
    assert len(extractions[1].attempts) == 2
