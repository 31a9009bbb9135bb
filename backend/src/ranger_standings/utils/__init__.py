"""Utility modules for ranger_standings."""

from ranger_standings.utils.name_matching import (
    clean_team_name,
    first_overlap,
    fold,
    names_overlap,
    significant_words,
    similarity,
)

__all__ = [
    "clean_team_name",
    "first_overlap",
    "fold",
    "names_overlap",
    "significant_words",
    "similarity",
]
