"""Client for the image-understanding collaborator.

Screenshots are sent by URL to an OpenAI-compatible chat completions
endpoint; responses come back as raw text and are parsed elsewhere.
Provides both the real client and a static one for testing/development.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol, Sequence

import httpx

from ranger_standings.models.results import ImageExtraction, ParseErr, ParseOk
from ranger_standings.models.roster import Team
from ranger_standings.services.result_normalizer import parse_result_payload

logger = logging.getLogger(__name__)

MATCH_RESULT_PROMPT = """
You are an esports result parser. Read the match result screenshot.
Every result box shows:
1. A placement/rank number (1-25)
2. Exactly 4 player names
3. A kill (finish) count

Rules:
- Copy player names exactly as shown, including spacing and special characters
- Re-check every placement number
- Kill counts must be plain numbers
- If a slot number or team name is printed on the box, include it as "slot" / "teamName"

Return ONLY a JSON array in this format:
[
  {"placement": 1, "players": ["Name1", "Name2", "Name3", "Name4"], "kills": 12}
]
No prose and no markdown.
"""

SLOTLIST_PROMPT = """
You are reading an esports tournament slot list image that pairs slot numbers
with team names. Extract every slot number and its team name, keeping team
names exactly as written (prefixes such as "TEAM" and clan tags included).
Include slots without a team name with an empty name.

Return ONLY JSON in this format:
{"teams": [{"slot": 3, "name": "TEAM TSM ENT"}, {"slot": 4, "name": "TEAM TX4G"}]}
"""

PLAYER_PROMPT = """
You are reading an esports tournament screenshot listing player names,
possibly grouped under team banners or slot numbers (like 03, 04, 05).
Extract every visible player name exactly as written, with the team name
and slot number each player belongs to when visible.{known_teams}

Return ONLY JSON in this format:
{{"players": [{{"name": "DYnaMicNinjA", "team": "TEAM TSM ENT", "slot": 3, "role": "Player"}}]}}
"""


class ExtractionClient(Protocol):
    async def extract_match_result(self, image_ref: str) -> str:
        ...

    async def extract_slotlist(self, image_ref: str) -> str:
        ...

    async def extract_players(self, image_ref: str, known_teams: Sequence[Team] = ()) -> str:
        ...


class VisionExtractionClient:
    """Extracts structured text from screenshots with a vision model."""

    DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
    DEFAULT_MODEL = "gpt-4o"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the vision client.

        Args:
            api_key: Provider API key
            model: Vision-capable model id
            api_url: Chat completions endpoint
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key
        self.model = model
        self.api_url = api_url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _call_vision(self, prompt: str, image_ref: str, max_tokens: int) -> str:
        """Send one prompt + image and return the message text.

        Raises:
            httpx.HTTPError: On transport failure or non-2xx status
            ValueError: If the response has no message content
        """
        client = await self._get_client()

        response = await client.post(
            self.api_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": self.model,
                "messages": [
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": prompt},
                            {"type": "image_url", "image_url": {"url": image_ref, "detail": "high"}},
                        ],
                    }
                ],
                "max_tokens": max_tokens,
                "temperature": 0.05,
                "top_p": 0.1,
            },
        )
        response.raise_for_status()

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise ValueError("Invalid vision response structure") from None
        if not content:
            raise ValueError("Invalid vision response structure")
        return content

    async def extract_match_result(self, image_ref: str) -> str:
        return await self._call_vision(MATCH_RESULT_PROMPT, image_ref, max_tokens=4000)

    async def extract_slotlist(self, image_ref: str) -> str:
        return await self._call_vision(SLOTLIST_PROMPT, image_ref, max_tokens=2000)

    async def extract_players(self, image_ref: str, known_teams: Sequence[Team] = ()) -> str:
        listing = ""
        if known_teams:
            lines = "\n".join(f"Slot {t.slot_label}: {t.name}" for t in known_teams)
            listing = f"\n\nKnown teams from the slot list:\n{lines}"
        return await self._call_vision(PLAYER_PROMPT.format(known_teams=listing), image_ref, max_tokens=3000)


class StaticExtractionClient:
    """Returns canned responses per image reference.

    Each reference maps to a list of responses served one per call; a
    reference with no remaining response fails like a provider error.
    Use this for testing and for development without an API key.
    """

    def __init__(self, responses: Optional[dict[str, list[str]]] = None):
        self._responses = {ref: list(items) for ref, items in (responses or {}).items()}
        self.calls: list[str] = []

    def _next(self, image_ref: str) -> str:
        self.calls.append(image_ref)
        queue = self._responses.get(image_ref)
        if not queue:
            raise ValueError(f"No canned response for {image_ref}")
        return queue.pop(0)

    async def extract_match_result(self, image_ref: str) -> str:
        return self._next(image_ref)

    async def extract_slotlist(self, image_ref: str) -> str:
        return self._next(image_ref)

    async def extract_players(self, image_ref: str, known_teams: Sequence[Team] = ()) -> str:
        return self._next(image_ref)


async def extract_image_results(
    client: ExtractionClient,
    image_ref: str,
    image_index: int,
    max_attempts: int = 2,
) -> ImageExtraction:
    """Run up to `max_attempts` extractions for one screenshot.

    Stops at the first attempt that yields at least one valid record.
    Provider and transport failures are recorded as failed attempts.
    """
    extraction = ImageExtraction(image_index=image_index)
    for attempt in range(1, max_attempts + 1):
        try:
            content = await client.extract_match_result(image_ref)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error processing image {image_index} (attempt {attempt}): {e}")
            extraction.attempts.append(ParseErr(str(e) or type(e).__name__))
            continue

        result = parse_result_payload(content)
        extraction.attempts.append(result)
        if isinstance(result, ParseOk) and result.usable:
            break
        reason = result.reason if isinstance(result, ParseErr) else "No valid results in parsed data"
        logger.warning(f"Failed to parse response for image {image_index} (attempt {attempt}): {reason}")

    return extraction


async def gather_result_extractions(
    client: ExtractionClient,
    image_refs: Sequence[str],
    max_attempts: int = 2,
) -> list[ImageExtraction]:
    """Extract every screenshot concurrently and wait for all of them.

    Each image has its own attempt budget. Results keep input order.
    """
    tasks = [
        extract_image_results(client, image_ref, index, max_attempts=max_attempts)
        for index, image_ref in enumerate(image_refs, start=1)
    ]
    return list(await asyncio.gather(*tasks))


def get_extraction_client(api_key: str, enabled: bool = True, **kwargs) -> ExtractionClient:
    """Factory: the vision client when configured, a static client otherwise."""
    if enabled and api_key:
        return VisionExtractionClient(api_key=api_key, **kwargs)
    logger.warning("Vision extraction disabled or no API key set; using static extraction client")
    return StaticExtractionClient()
