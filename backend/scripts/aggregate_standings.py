#!/usr/bin/env python3
"""
Aggregate standings offline from saved extraction outputs.

Each --results file holds the raw text one extraction call returned for
one screenshot. A first round is scored against a roster JSON; a later
round is combined into a previous standings CSV.

Usage:
    uv run python backend/scripts/aggregate_standings.py \
        --roster data/roster.json \
        --results outputs/round1/*.txt \
        --output outputs/round1.csv

    uv run python backend/scripts/aggregate_standings.py \
        --previous-csv outputs/round1.csv \
        --results outputs/round2/*.txt \
        --matches-played 2 \
        --output outputs/round2.csv \
        --summary outputs/round2_summary.json
"""

import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ranger_standings.models.roster import Roster
from ranger_standings.services.result_normalizer import normalize_raw_outputs
from ranger_standings.services.standings_service import (
    NothingToAggregateError,
    aggregate_csv,
    aggregate_roster,
)


def main():
    parser = argparse.ArgumentParser(description="Aggregate standings from saved extraction outputs")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--roster", type=Path, help="Roster JSON for a first round")
    source.add_argument("--previous-csv", type=Path, help="Previous standings CSV for a later round")
    parser.add_argument("--results", type=Path, nargs="+", required=True,
                        help="Raw extraction output files, one per screenshot")
    parser.add_argument("--matches-played", type=int, default=1,
                        help="Rounds played so far across the series (default: 1)")
    parser.add_argument("--group-name", help="Group label (default: G1 for rosters, G2 for combines)")
    parser.add_argument("--output", type=Path, help="Write the standings CSV here (default: stdout)")
    parser.add_argument("--summary", type=Path, help="Write the JSON summary here")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log each processing step")

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    for path in args.results:
        if not path.exists():
            raise FileNotFoundError(f"Results file not found: {path}")

    batch = normalize_raw_outputs([path.read_text(encoding="utf-8") for path in args.results])

    try:
        if args.roster:
            roster = Roster.from_json(json.loads(args.roster.read_text(encoding="utf-8")))
            outcome = aggregate_roster(
                roster, batch, matches_played=args.matches_played, group_name=args.group_name or "G1"
            )
        else:
            outcome = aggregate_csv(
                args.previous_csv.read_text(encoding="utf-8"),
                batch,
                matches_played=args.matches_played,
                group_name=args.group_name or "G2",
            )
    except NothingToAggregateError as e:
        print(f"Error: {e}", file=sys.stderr)
        for error in e.errors:
            print(f"  image {error.image_index}: {error.error}", file=sys.stderr)
        sys.exit(1)

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(outcome.csv_text + "\n", encoding="utf-8")
        print(f"Wrote {len(outcome.table)} teams to {args.output}")
    else:
        print(outcome.csv_text)

    summary = outcome.summary
    if args.summary:
        args.summary.parent.mkdir(parents=True, exist_ok=True)
        args.summary.write_text(json.dumps(summary.to_dict(), indent=2), encoding="utf-8")
        print(f"Wrote summary to {args.summary}")

    print(
        f"Winner: {summary.winner} ({summary.winner_points} pts), "
        f"{len(summary.unidentified_teams)} unidentified, "
        f"{len(summary.image_processing_errors)} processing errors",
        file=sys.stderr,
    )


if __name__ == "__main__":
    main()
