"""Validation and cleanup of raw screenshot extraction output.

The image-understanding collaborator is asked for a bare JSON array but
regularly answers with markdown fences, a sentence of prose, reasoning
blocks, or a single object instead of an array. Every payload is reduced
to a tagged `ParseOk` / `ParseErr` value so callers must handle failure
explicitly.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Union

from ranger_standings.models.results import (
    ImageError,
    ImageExtraction,
    ParseErr,
    ParseOk,
    ParseResult,
    RawResultRecord,
    RecordRejection,
)
from ranger_standings.models.roster import parse_slot

logger = logging.getLogger(__name__)

PLAYERS_PER_RECORD = 4

_OPENERS = {"[": "]", "{": "}"}


@dataclass
class NormalizedBatch:
    """Flat usable records plus every error met while producing them."""

    records: list[RawResultRecord] = field(default_factory=list)
    errors: list[ImageError] = field(default_factory=list)
    total_images: int = 0

    @property
    def failed_images(self) -> list[int]:
        return sorted({e.image_index for e in self.errors if e.record_index is None})


def extract_json_text(content: str) -> str:
    """Cut the JSON array or object out of a model response.

    Handles:
    - Pure JSON
    - JSON wrapped in ```json ... ``` markdown
    - JSON with <think>...</think> reasoning blocks
    - JSON with leading/trailing text

    Raises:
        ValueError: If no balanced JSON array/object is present
    """
    content = content.strip()

    # Remove reasoning blocks
    if "<think>" in content:
        think_end = content.rfind("</think>")
        if think_end != -1:
            content = content[think_end + len("</think>"):].strip()

    # Handle markdown code blocks - could be ```json or just ```
    if "```" in content:
        for part in content.split("```"):
            part = part.strip()
            if part.startswith("json"):
                part = part[4:].strip()
            if part[:1] in _OPENERS:
                content = part
                break

    starts = [pos for pos in (content.find("["), content.find("{")) if pos != -1]
    if not starts:
        raise ValueError("No JSON payload found in response")
    content = content[min(starts):]

    # Find the matching closer, ignoring brackets inside strings
    stack: list[str] = []
    in_string = False
    escape_next = False
    end_pos = -1

    for i, char in enumerate(content):
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char in _OPENERS:
            stack.append(_OPENERS[char])
        elif stack and char == stack[-1]:
            stack.pop()
            if not stack:
                end_pos = i
                break

    if end_pos == -1:
        raise ValueError("No matching closing bracket found")

    return content[:end_pos + 1]


def validate_record(item: Any, record_index: int) -> Union[RawResultRecord, RecordRejection]:
    """Check one candidate record; invalid shapes are rejected, never coerced."""
    if not isinstance(item, dict):
        return RecordRejection(record_index, "Record is not an object")

    placement = _as_int(item.get("placement"))
    if not placement:
        return RecordRejection(record_index, "Missing or non-numeric placement")

    players = item.get("players")
    if not isinstance(players, list) or len(players) != PLAYERS_PER_RECORD:
        return RecordRejection(
            record_index, f"Players must be a list of exactly {PLAYERS_PER_RECORD} names"
        )
    if not all(isinstance(p, str) and p.strip() for p in players):
        return RecordRejection(record_index, "Player names must be non-empty strings")

    kills = item.get("kills")
    if (
        isinstance(kills, bool)
        or not isinstance(kills, (int, float))
        or not math.isfinite(kills)
        or kills < 0
    ):
        return RecordRejection(record_index, "Kills must be a non-negative number")

    team_name = item.get("teamName", item.get("team"))
    return RawResultRecord(
        placement=placement,
        players=tuple(p.strip() for p in players),
        kills=int(kills),
        slot=parse_slot(item.get("slot", item.get("slotNumber"))),
        team_name=team_name.strip() if isinstance(team_name, str) and team_name.strip() else None,
    )


def parse_result_payload(content: Optional[str]) -> ParseResult:
    """Parse one raw extraction response into records.

    Accepts a JSON array of records or a single record object. Never
    raises: every failure comes back as a `ParseErr`.
    """
    if content is None:
        return ParseErr("Empty extraction response")
    if not isinstance(content, str):
        return ParseErr("Extraction response is not text")
    if not content.strip():
        return ParseErr("Empty extraction response")

    try:
        parsed = json.loads(extract_json_text(content))
    except json.JSONDecodeError as e:
        return ParseErr(f"JSON parse error: {e.msg}")
    except ValueError as e:
        return ParseErr(str(e))

    if isinstance(parsed, dict) and "placement" in parsed and "players" in parsed:
        candidates = [parsed]
    elif isinstance(parsed, list):
        candidates = parsed
    else:
        return ParseErr("Unexpected JSON structure")

    records: list[RawResultRecord] = []
    rejected: list[RecordRejection] = []
    for index, item in enumerate(candidates, start=1):
        checked = validate_record(item, index)
        if isinstance(checked, RecordRejection):
            rejected.append(checked)
        else:
            records.append(checked)

    return ParseOk(records=tuple(records), rejected=tuple(rejected))


def extraction_from_outputs(
    image_index: int,
    outputs: Sequence[Optional[str]],
    max_attempts: int = 2,
) -> ImageExtraction:
    """Replay already-collected attempt outputs for one image.

    Stops at the first attempt that yields a usable record, like the live
    fan-out does.
    """
    extraction = ImageExtraction(image_index=image_index)
    for content in list(outputs)[:max_attempts]:
        result = parse_result_payload(content)
        extraction.attempts.append(result)
        if isinstance(result, ParseOk) and result.usable:
            break
    return extraction


def normalize_extractions(extractions: Sequence[ImageExtraction]) -> NormalizedBatch:
    """Flatten per-image outcomes into usable records and an error list.

    A failed image is recorded once and excluded; dropped records from a
    successful image are recorded individually. Inputs are not modified.
    """
    batch = NormalizedBatch(total_images=len(extractions))

    for extraction in extractions:
        final = extraction.final
        if isinstance(final, ParseErr):
            logger.error(f"Image {extraction.image_index} failed after {len(extraction.attempts)} attempt(s): {final.reason}")
            batch.errors.append(ImageError(extraction.image_index, final.reason))
            continue

        if not final.usable:
            logger.error(f"Image {extraction.image_index} produced no valid results")
            batch.errors.append(ImageError(extraction.image_index, "No valid results in parsed data"))
            continue

        for rejection in final.rejected:
            logger.warning(
                f"Dropped record {rejection.record_index} from image {extraction.image_index}: {rejection.reason}"
            )
            batch.errors.append(
                ImageError(extraction.image_index, rejection.reason, record_index=rejection.record_index)
            )

        logger.info(f"Processed image {extraction.image_index}: {len(final.records)} teams found")
        batch.records.extend(final.records)

    return batch


def normalize_raw_outputs(
    outputs: Sequence[Union[str, None, Sequence[Optional[str]]]],
    max_attempts: int = 2,
) -> NormalizedBatch:
    """Normalize raw responses given per image as a string or a list of attempts."""
    extractions = []
    for index, output in enumerate(outputs, start=1):
        attempts = [output] if output is None or isinstance(output, str) else output
        extractions.append(extraction_from_outputs(index, attempts, max_attempts=max_attempts))
    return normalize_extractions(extractions)


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
    return None
