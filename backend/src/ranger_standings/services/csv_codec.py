"""Canonical standings CSV encoding and decoding.

The header and its column order are consumed by other tooling and must not
change. Decoding locates columns by header name, so hand-edited files with
reordered columns are accepted.
"""

import csv
import io
import logging
from typing import Optional

from ranger_standings.models.standings import StandingsRow, StandingsTable

logger = logging.getLogger(__name__)

TEAM_NAME = "TEAM NAME"
WIN = "WIN"
MATCHES_PLAYED = "MATCHES PLAYED"
PLACEMENT_POINT = "PLACEMENT POINT"
KILL_POINT = "KILL POINT"
TOTAL_POINT = "TOTAL POINT"
GROUP_NAME = "GROUP NAME"
SLOT_NUMBER = "SLOT NUMBER"

HEADER = (
    TEAM_NAME,
    WIN,
    MATCHES_PLAYED,
    PLACEMENT_POINT,
    KILL_POINT,
    TOTAL_POINT,
    GROUP_NAME,
    SLOT_NUMBER,
)

NUMERIC_COLUMNS = (WIN, MATCHES_PLAYED, PLACEMENT_POINT, KILL_POINT, TOTAL_POINT)

# Loose header keywords for files whose headers were renamed by hand
HEADER_KEYWORDS: dict[str, tuple[str, ...]] = {
    TEAM_NAME: ("TEAM",),
    WIN: ("WIN",),
    MATCHES_PLAYED: ("MATCHES",),
    PLACEMENT_POINT: ("PLACEMENT",),
    KILL_POINT: ("KILL", "FINISH"),
    TOTAL_POINT: ("TOTAL",),
    GROUP_NAME: ("GROUP",),
    SLOT_NUMBER: ("SLOT",),
}


class CsvDecodeError(ValueError):
    """Standings CSV text cannot be read back into a table."""


def encode(table: StandingsTable) -> str:
    """Serialize a table to the canonical CSV text (no trailing newline)."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(HEADER)
    for row in table:
        writer.writerow([
            row.team_name,
            row.wins,
            row.matches_played,
            row.placement_points,
            row.kill_points,
            row.total_points,
            row.group_name,
            row.slot_number,
        ])
    return buffer.getvalue().rstrip("\n")


def locate_columns(header: list[str]) -> dict[str, int]:
    """Map canonical column names to positions in `header`.

    Exact (case-insensitive) names win; keyword containment is the fallback.

    Raises:
        CsvDecodeError: If no team name column can be found, or a keyword-only
            header resolves no numeric column
    """
    normalized = [cell.replace('"', "").strip().upper() for cell in header]
    positions: dict[str, int] = {}

    for column in HEADER:
        if column in normalized:
            positions[column] = normalized.index(column)
    exact_match = bool(positions)

    for column, keywords in HEADER_KEYWORDS.items():
        if column in positions:
            continue
        for index, cell in enumerate(normalized):
            if index in positions.values():
                continue
            if any(keyword in cell for keyword in keywords):
                positions[column] = index
                break

    if TEAM_NAME not in positions:
        raise CsvDecodeError("Invalid CSV format: Team name column not found")
    if not exact_match and not any(column in positions for column in NUMERIC_COLUMNS):
        # A data row such as "Team Alpha,1,..." only hits the team keyword
        raise CsvDecodeError("Invalid CSV format: header row not recognized")
    return positions


def decode(text: str) -> StandingsTable:
    """Parse standings CSV text back into a table, preserving row order.

    Blank lines are skipped. `TOTAL POINT` is not trusted: the total is
    always recomputed from placement and kill points.

    Raises:
        CsvDecodeError: If the header is missing or a numeric cell is not an integer
    """
    if text is None:
        raise CsvDecodeError("Missing standings CSV")

    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    header: Optional[list[str]] = None
    positions: dict[str, int] = {}
    rows: list[StandingsRow] = []

    for cells in reader:
        line_number = reader.line_num
        if not any(cell.strip() for cell in cells):
            continue
        if header is None:
            header = cells
            positions = locate_columns(header)
            continue

        def cell(column: str) -> str:
            position = positions.get(column)
            if position is None or position >= len(cells):
                return ""
            return cells[position].strip()

        team_name = cell(TEAM_NAME)
        if not team_name:
            logger.warning(f"Skipping standings CSV line {line_number}: empty team name")
            continue

        row = StandingsRow(
            team_name=team_name,
            wins=_parse_int(cell(WIN), WIN, line_number),
            matches_played=_parse_int(cell(MATCHES_PLAYED), MATCHES_PLAYED, line_number),
            placement_points=_parse_int(cell(PLACEMENT_POINT), PLACEMENT_POINT, line_number),
            kill_points=_parse_int(cell(KILL_POINT), KILL_POINT, line_number),
            group_name=cell(GROUP_NAME),
            slot_number=cell(SLOT_NUMBER),
        )

        stated_total = cell(TOTAL_POINT)
        if stated_total and stated_total != str(row.total_points):
            logger.warning(
                f"Standings CSV line {line_number}: TOTAL POINT {stated_total} for "
                f"'{team_name}' replaced by {row.total_points}"
            )
        rows.append(row)

    if header is None:
        raise CsvDecodeError("Invalid CSV format: header row not found")

    return StandingsTable(rows=tuple(rows))


def _parse_int(value: str, column: str, line_number: int) -> int:
    if not value:
        return 0
    try:
        return int(value)
    except ValueError:
        raise CsvDecodeError(f"Line {line_number}: {column} value '{value}' is not an integer") from None
