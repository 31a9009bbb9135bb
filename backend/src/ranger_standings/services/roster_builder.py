"""Builds a Roster from slotlist and player-screenshot extractions."""

import asyncio
import csv
import io
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import httpx

from ranger_standings.models.roster import MAX_PLAYERS_PER_TEAM, Player, Roster, Team, parse_slot
from ranger_standings.services.result_normalizer import extract_json_text
from ranger_standings.services.vision_client import ExtractionClient
from ranger_standings.utils.name_matching import (
    clean_team_name,
    names_overlap,
    significant_words,
    similarity,
)

logger = logging.getLogger(__name__)

CLEANED_NAME_SIMILARITY = 0.6
WORD_SIMILARITY = 0.7

ROSTER_CSV_HEADER = ("Team", "Slot", "Player", "Role")

_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_UNQUOTED_KEY = re.compile(r"([{,]\s*)(\w+):")


@dataclass
class _TeamDraft:
    slot: Optional[int]
    name: str
    players: list[Player] = field(default_factory=list)


@dataclass(frozen=True)
class RosterBuild:
    """A built roster plus what could not be placed."""

    roster: Roster
    unmatched_players: list[dict] = field(default_factory=list)
    full_team_overflow: list[dict] = field(default_factory=list)

    @property
    def total_players(self) -> int:
        return self.roster.player_count

    @property
    def teams_without_players(self) -> int:
        return sum(1 for team in self.roster.teams if not team.players)

    def statistics(self) -> dict:
        return {
            "teamsFound": len(self.roster.teams),
            "playersExtracted": self.total_players,
            "teamsWithoutPlayers": self.teams_without_players,
            "unmatchedPlayers": len(self.unmatched_players),
        }


def parse_json_object(text: Optional[str]) -> Optional[dict]:
    """Best-effort parse of a JSON object from a model response.

    Retries once after removing trailing commas and quoting bare keys.
    Returns None when nothing usable is found.
    """
    if not text:
        return None
    try:
        candidate = extract_json_text(text)
    except ValueError as e:
        logger.warning(f"No JSON object in extraction response: {e}")
        return None

    for attempt in (candidate, _repair_json(candidate)):
        try:
            parsed = json.loads(attempt)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    logger.warning("Extraction response JSON could not be parsed")
    return None


def build_roster(slotlist: Optional[dict], player_fragments: Sequence[dict]) -> RosterBuild:
    """Merge slotlist teams with extracted players.

    Args:
        slotlist: `{teams: [{slot, name}]}` from the slotlist image, or None
        player_fragments: `{name, team, slot, role}` entries from player screenshots

    Returns:
        RosterBuild with at most 4 players per team, slotlist order preserved
    """
    drafts: list[_TeamDraft] = []
    seen_slots: set[int] = set()
    for item in (slotlist or {}).get("teams") or []:
        if not isinstance(item, dict):
            continue
        name = str(item.get("name") or "").strip()
        slot = parse_slot(item.get("slot"))
        if not name:
            logger.warning(f"Slot {slot} has no team name; skipped")
            continue
        if slot is not None and slot in seen_slots:
            logger.warning(f"Slot {slot} listed twice; keeping the first team")
            continue
        if slot is not None:
            seen_slots.add(slot)
        drafts.append(_TeamDraft(slot=slot, name=name))

    unmatched: list[dict] = []
    overflow: list[dict] = []
    for fragment in player_fragments:
        if not isinstance(fragment, dict):
            continue
        player_name = str(fragment.get("name") or "").strip()
        if not player_name:
            continue

        target = _find_team(drafts, parse_slot(fragment.get("slot")), fragment.get("team"))
        if target is None:
            logger.warning(
                f"No team match found for player: {player_name} "
                f"(team: {fragment.get('team')}, slot: {fragment.get('slot')})"
            )
            unmatched.append(fragment)
            continue
        if len(target.players) >= MAX_PLAYERS_PER_TEAM:
            logger.warning(f"Team '{target.name}' already has {MAX_PLAYERS_PER_TEAM} players; dropping {player_name}")
            overflow.append(fragment)
            continue
        target.players.append(Player(name=player_name, role=str(fragment.get("role") or "Player")))

    roster = Roster(
        teams=tuple(Team(slot=d.slot, name=d.name, players=tuple(d.players)) for d in drafts)
    )
    return RosterBuild(roster=roster, unmatched_players=unmatched, full_team_overflow=overflow)


def encode_roster_csv(roster: Roster) -> str:
    """Slotlist CSV: one line per player, a placeholder line for empty teams."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(ROSTER_CSV_HEADER)
    for team in roster.teams:
        if team.players:
            for player in team.players:
                writer.writerow([team.name, team.slot_label, player.name, player.role])
        else:
            writer.writerow([team.name, team.slot_label, "", "Player"])
    return buffer.getvalue().rstrip("\n")


def _find_team(drafts: list[_TeamDraft], slot: Optional[int], team_token: Any) -> Optional[_TeamDraft]:
    if slot is not None:
        for draft in drafts:
            if draft.slot == slot:
                return draft

    if not isinstance(team_token, str) or not team_token.strip():
        return None

    for draft in drafts:
        if names_overlap(draft.name, team_token):
            return draft

    token_clean = clean_team_name(team_token)
    for draft in drafts:
        draft_clean = clean_team_name(draft.name)
        if names_overlap(draft_clean, token_clean) or similarity(draft_clean, token_clean) > CLEANED_NAME_SIMILARITY:
            return draft

    token_words = significant_words(team_token)
    for draft in drafts:
        for word in significant_words(draft.name):
            if any(names_overlap(word, other) or similarity(word, other) > WORD_SIMILARITY for other in token_words):
                return draft

    return None


def _repair_json(text: str) -> str:
    text = _TRAILING_COMMA.sub(r"\1", text)
    return _UNQUOTED_KEY.sub(r'\1"\2":', text)


async def extract_teams_and_players(
    client: ExtractionClient,
    slotlist_ref: Optional[str],
    player_refs: Sequence[str],
) -> RosterBuild:
    """Read the slotlist, then every player screenshot concurrently, and build the roster.

    A failed screenshot contributes no players; it never fails the build.
    """
    slotlist: Optional[dict] = None
    if slotlist_ref:
        try:
            slotlist = parse_json_object(await client.extract_slotlist(slotlist_ref))
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Slotlist extraction failed: {e}")
        if slotlist is not None:
            logger.info(f"Slotlist extracted {len(slotlist.get('teams') or [])} teams")

    known_teams = build_roster(slotlist, []).roster.teams

    async def read_players(index: int, image_ref: str) -> list[dict]:
        try:
            payload = parse_json_object(await client.extract_players(image_ref, known_teams))
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error processing player image {index}: {e}")
            return []
        players = (payload or {}).get("players") or []
        logger.info(f"Player image {index}: {len(players)} players found")
        return [p for p in players if isinstance(p, dict)]

    batches = await asyncio.gather(
        *(read_players(index, ref) for index, ref in enumerate(player_refs, start=1))
    )
    fragments = [player for batch in batches for player in batch]
    return build_roster(slotlist, fragments)
