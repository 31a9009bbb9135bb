"""Centralized team/player name matching.

Every fuzzy identity decision in the codebase goes through this module so the
heuristics can be tested on their own. Matching is permissive:
screenshot-extracted names are often truncated or carry clan tags.
"""

import re
from difflib import SequenceMatcher
from typing import Iterable, Optional, TypeVar

T = TypeVar("T")

# Decorations stripped before comparing slotlist team names
TEAM_PREFIX_PATTERN = re.compile(r"^(team\s+|clan\s+)", re.IGNORECASE)
TEAM_SUFFIX_PATTERN = re.compile(r"(\s+esports?|\s+gaming|\s+ent)$", re.IGNORECASE)

# Words this short are ignored by word-overlap matching
MIN_WORD_LENGTH = 3


def fold(name: Optional[str]) -> str:
    """Trim and case-fold a name for comparison."""
    if not name:
        return ""
    return name.strip().casefold()


def names_overlap(a: Optional[str], b: Optional[str]) -> bool:
    """Case-insensitive substring containment in either direction.

    `a in b or b in a` after trimming and case folding. An empty or
    whitespace-only name never matches, even though the empty string is a
    substring of everything.
    """
    left, right = fold(a), fold(b)
    if not left or not right:
        return False
    return left in right or right in left


def clean_team_name(name: Optional[str]) -> str:
    """Fold a team name and drop common "Team"/"Clan" prefixes and org suffixes."""
    cleaned = fold(name)
    cleaned = TEAM_PREFIX_PATTERN.sub("", cleaned)
    cleaned = TEAM_SUFFIX_PATTERN.sub("", cleaned)
    return cleaned.strip()


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """Similarity ratio in [0, 1] between two folded names."""
    left, right = fold(a), fold(b)
    if not left and not right:
        return 1.0
    return SequenceMatcher(None, left, right).ratio()


def significant_words(name: Optional[str]) -> list[str]:
    return [word for word in fold(name).split() if len(word) >= MIN_WORD_LENGTH]


def first_overlap(token: Optional[str], candidates: Iterable[tuple[str, T]]) -> Optional[T]:
    """Return the first candidate whose name overlaps `token`.

    Candidates are `(name, value)` pairs; iteration order breaks ties.
    """
    for name, value in candidates:
        if names_overlap(token, name):
            return value
    return None
