"""Extraction and merge result models."""

from dataclasses import dataclass, field
from typing import Optional, Union


@dataclass(frozen=True)
class RawResultRecord:
    """One ranked team box read from a result screenshot."""

    placement: int  # 1-25 as extracted, clamped later by scoring
    players: tuple[str, str, str, str]
    kills: int
    slot: Optional[int] = None  # Present only when the extractor saw a slot number
    team_name: Optional[str] = None  # Team token printed on the box, if any

    def to_dict(self) -> dict:
        data = {
            "placement": self.placement,
            "players": list(self.players),
            "kills": self.kills,
        }
        if self.slot is not None:
            data["slot"] = self.slot
        if self.team_name:
            data["teamName"] = self.team_name
        return data


@dataclass(frozen=True)
class RecordRejection:
    """A candidate record that failed validation and was dropped."""

    record_index: int  # 1-based position inside the parsed payload
    reason: str


@dataclass(frozen=True)
class ParseOk:
    """A payload that parsed into at least a JSON structure."""

    records: tuple[RawResultRecord, ...]
    rejected: tuple[RecordRejection, ...] = ()

    @property
    def usable(self) -> bool:
        return len(self.records) > 0


@dataclass(frozen=True)
class ParseErr:
    """A payload that could not be turned into result records."""

    reason: str


ParseResult = Union[ParseOk, ParseErr]


@dataclass
class ImageExtraction:
    """All attempts made for one screenshot, in attempt order."""

    image_index: int  # 1-based, matches the order images were submitted
    attempts: list[ParseResult] = field(default_factory=list)

    @property
    def final(self) -> ParseResult:
        if not self.attempts:
            return ParseErr("No extraction attempts were made")
        return self.attempts[-1]

    @property
    def succeeded(self) -> bool:
        final = self.final
        return isinstance(final, ParseOk) and final.usable


@dataclass(frozen=True)
class ImageError:
    """An image-level failure or a dropped record inside an image."""

    image_index: int
    error: str
    record_index: Optional[int] = None  # None when the whole image failed

    def to_dict(self) -> dict:
        data = {"imageIndex": self.image_index, "error": self.error}
        if self.record_index is not None:
            data["recordIndex"] = self.record_index
        return data


@dataclass(frozen=True)
class MergedTeamResult:
    """A scored result bound to a team identity."""

    team_name: str
    placement: int  # Clamped placement
    win: int
    placement_point: int
    finish_point: int
    players: tuple[str, ...]
    match_found: bool
    slot_number: str = ""

    @property
    def total_point(self) -> int:
        return self.placement_point + self.finish_point

    def to_dict(self) -> dict:
        return {
            "teamName": self.team_name,
            "placement": self.placement,
            "win": self.win,
            "placementPoint": self.placement_point,
            "finishPoint": self.finish_point,
            "totalPoint": self.total_point,
            "players": list(self.players),
            "matchFound": self.match_found,
            "slotNumber": self.slot_number,
        }


@dataclass(frozen=True)
class UnidentifiedTeam:
    """A result whose team could not be identified; kept under a synthesized name."""

    placement: int
    players: tuple[str, ...]
    kills: int
    suggested_team_name: str

    def to_dict(self) -> dict:
        return {
            "placement": self.placement,
            "players": list(self.players),
            "kills": self.kills,
            "suggestedTeamName": self.suggested_team_name,
        }
