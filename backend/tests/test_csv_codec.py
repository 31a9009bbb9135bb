"""Tests for the canonical standings CSV."""

import pytest

from ranger_standings.models.standings import StandingsRow, StandingsTable
from ranger_standings.services.csv_codec import CsvDecodeError, HEADER, decode, encode, locate_columns

HEADER_LINE = "TEAM NAME,WIN,MATCHES PLAYED,PLACEMENT POINT,KILL POINT,TOTAL POINT,GROUP NAME,SLOT NUMBER"


@pytest.fixture
def table():
    return StandingsTable(rows=(
        StandingsRow("Alpha", wins=1, matches_played=2, placement_points=15, kill_points=13, group_name="G2", slot_number="1"),
        StandingsRow('Wolves, "The Pack"', wins=0, matches_played=2, placement_points=6, kill_points=9, group_name="G2", slot_number="12"),
        StandingsRow("Line\nBreak", matches_played=2, group_name="G2"),
    ))


class TestEncode:
    def test_header_is_fixed(self):
        assert encode(StandingsTable()) == HEADER_LINE
        assert ",".join(HEADER) == HEADER_LINE

    def test_single_row(self):
        row = StandingsRow("Alpha", wins=1, matches_played=1, placement_points=10, kill_points=8, group_name="G1", slot_number="1")
        assert encode(StandingsTable(rows=(row,))) == f"{HEADER_LINE}\nAlpha,1,1,10,8,18,G1,1"

    def test_escapes_commas_and_quotes(self, table):
        assert '"Wolves, ""The Pack"""' in encode(table)

    def test_total_written_from_points(self):
        text = encode(StandingsTable(rows=(StandingsRow("Alpha", placement_points=4, kill_points=3),)))
        assert text.splitlines()[1] == "Alpha,0,0,4,3,7,,"


class TestRoundTrip:
    def test_decode_encode_identity(self, table):
        assert decode(encode(table)) == table

    def test_order_preserved(self, table):
        assert decode(encode(table)).team_names == table.team_names

    def test_scenario_one_row(self):
        text = f"{HEADER_LINE}\nAlpha,1,1,10,8,18,G1,1\n"
        decoded = decode(text)
        assert len(decoded) == 1
        assert decoded[0] == StandingsRow("Alpha", 1, 1, 10, 8, "G1", "1")
        assert decoded[0].total_points == 18


class TestDecodeTolerance:
    def test_trailing_blank_lines(self):
        assert len(decode(f"{HEADER_LINE}\nAlpha,1,1,10,8,18,G1,1\n\n\n")) == 1

    def test_crlf_line_endings(self):
        assert len(decode(f"{HEADER_LINE}\r\nAlpha,1,1,10,8,18,G1,1\r\n")) == 1

    def test_byte_order_mark(self):
        assert decode(f"\ufeff{HEADER_LINE}\nAlpha,1,1,10,8,18,G1,1")[0].team_name == "Alpha"

    def test_reordered_columns(self):
        text = "SLOT NUMBER,KILL POINT,TEAM NAME,PLACEMENT POINT,WIN\n4,7,Bravo,6,0\n"
        row = decode(text)[0]
        assert (row.team_name, row.kill_points, row.placement_points, row.slot_number) == ("Bravo", 7, 6, "4")
        assert row.matches_played == 0
        assert row.group_name == ""

    def test_renamed_headers_matched_by_keyword(self):
        text = "Team,Wins,Matches,Placement Pts,Finish Pts,Total,Group,Slot\nAlpha,1,3,10,8,18,G1,2\n"
        row = decode(text)[0]
        assert row == StandingsRow("Alpha", 1, 3, 10, 8, "G1", "2")

    def test_lowercase_and_padded_header(self):
        text = " team name , win ,placement point,kill point\nAlpha,1,10,8\n"
        assert decode(text)[0].total_points == 18

    def test_total_point_recomputed(self):
        row = decode(f"{HEADER_LINE}\nAlpha,1,1,10,8,99,G1,1")[0]
        assert row.total_points == 18

    def test_blank_numeric_cells_are_zero(self):
        row = decode(f"{HEADER_LINE}\nAlpha,,,,5,,G1,")[0]
        assert (row.wins, row.matches_played, row.placement_points, row.kill_points) == (0, 0, 0, 5)

    def test_rows_without_team_name_skipped(self):
        table = decode(f"{HEADER_LINE}\n,1,1,10,8,18,G1,1\nBravo,0,1,6,2,8,G1,2")
        assert table.team_names == ["Bravo"]

    def test_header_only(self):
        assert len(decode(HEADER_LINE)) == 0


class TestDecodeErrors:
    @pytest.mark.parametrize("text", ["", "\n\n  \n"])
    def test_missing_header(self, text):
        with pytest.raises(CsvDecodeError, match="header row not found"):
            decode(text)

    def test_none(self):
        with pytest.raises(CsvDecodeError):
            decode(None)

    def test_no_team_column(self):
        with pytest.raises(CsvDecodeError, match="Team name column not found"):
            decode("WIN,KILL POINT\n1,8\n")

    @pytest.mark.parametrize(
        "text",
        [
            "Team Alpha,1,1,10,8,18,G1,1\nBravo,0,1,6,2,8,G1,2\n",
            "TEAM SOLO\nBravo\n",
        ],
    )
    def test_headerless_rows_not_taken_as_header(self, text):
        with pytest.raises(CsvDecodeError, match="header row not recognized"):
            decode(text)

    def test_non_integer_cell(self):
        with pytest.raises(CsvDecodeError, match="KILL POINT"):
            decode(f"{HEADER_LINE}\nAlpha,1,1,10,eight,18,G1,1")

    def test_decode_error_is_value_error(self):
        with pytest.raises(ValueError):
            decode("")


def test_locate_columns_prefers_exact_names():
    positions = locate_columns(["KILLS TOTAL", "TEAM NAME", "KILL POINT"])
    assert positions["KILL POINT"] == 2
    assert positions["TEAM NAME"] == 1
