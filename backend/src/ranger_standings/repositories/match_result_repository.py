"""DuckDB-based persistence for committed aggregations."""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

import duckdb
import pandas as pd

logger = logging.getLogger(__name__)

PersistStatus = Literal["ok", "duplicate"]

SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS match_results (
        user_namespace VARCHAR NOT NULL,
        match_id VARCHAR NOT NULL,
        group_name VARCHAR NOT NULL,
        matches_played INTEGER NOT NULL,
        csv_data VARCHAR NOT NULL,
        summary_json VARCHAR NOT NULL,
        source_match_id VARCHAR,
        created_at TIMESTAMP NOT NULL,
        PRIMARY KEY (user_namespace, match_id)
    )
"""


@dataclass(frozen=True)
class StoredMatch:
    """A committed aggregation as read back from the store."""

    user_namespace: str
    match_id: str
    group_name: str
    matches_played: int
    csv_data: str
    summary: dict
    source_match_id: Optional[str]
    created_at: datetime


class MatchResultRepository:
    """Data access layer for match results keyed by (namespace, match id).

    The primary key is what makes duplicate commits fail, including two
    requests racing from different processes.
    """

    def __init__(self, database_path: str | Path):
        """Open (and create if needed) the match result store.

        Args:
            database_path: Path to the .duckdb file; parent directories are created
        """
        self._db_path = Path(database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        with duckdb.connect(str(self._db_path)) as conn:
            conn.execute(SCHEMA_SQL)
            count = conn.execute("SELECT COUNT(*) FROM match_results").fetchone()[0]
        logger.info(f"MatchResultRepository: Using {self._db_path} ({count} stored matches)")

    def persist_aggregation(
        self,
        match_id: str,
        user_namespace: str,
        group_name: str,
        matches_played: int,
        csv_data: str,
        summary: dict,
        source_match_id: Optional[str] = None,
    ) -> PersistStatus:
        """Insert one aggregation; never overwrites.

        Returns:
            "ok" when written, "duplicate" when the key already exists
        """
        try:
            with duckdb.connect(str(self._db_path)) as conn:
                conn.execute(
                    """
                    INSERT INTO match_results (
                        user_namespace, match_id, group_name, matches_played,
                        csv_data, summary_json, source_match_id, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        user_namespace,
                        match_id,
                        group_name,
                        matches_played,
                        csv_data,
                        json.dumps(summary),
                        source_match_id,
                        datetime.now(),
                    ],
                )
        except duckdb.ConstraintException:
            logger.warning(f"Match '{match_id}' already stored for namespace '{user_namespace}'")
            return "duplicate"

        logger.info(f"Stored match '{match_id}' for namespace '{user_namespace}'")
        return "ok"

    def exists(self, match_id: str, user_namespace: str) -> bool:
        with duckdb.connect(str(self._db_path)) as conn:
            row = conn.execute(
                "SELECT 1 FROM match_results WHERE user_namespace = ? AND match_id = ?",
                [user_namespace, match_id],
            ).fetchone()
        return row is not None

    def get_match(self, match_id: str, user_namespace: str) -> Optional[StoredMatch]:
        with duckdb.connect(str(self._db_path)) as conn:
            row = conn.execute(
                """
                SELECT user_namespace, match_id, group_name, matches_played,
                       csv_data, summary_json, source_match_id, created_at
                FROM match_results
                WHERE user_namespace = ? AND match_id = ?
                """,
                [user_namespace, match_id],
            ).fetchone()
        if row is None:
            return None
        return StoredMatch(
            user_namespace=row[0],
            match_id=row[1],
            group_name=row[2],
            matches_played=row[3],
            csv_data=row[4],
            summary=json.loads(row[5]),
            source_match_id=row[6],
            created_at=row[7],
        )

    def list_matches(self, user_namespace: str, limit: int = 20) -> list[dict]:
        """Recent matches for a namespace, newest first, without CSV bodies."""
        with duckdb.connect(str(self._db_path)) as conn:
            df = conn.execute(
                """
                SELECT match_id, group_name, matches_played, source_match_id,
                       summary_json, created_at
                FROM match_results
                WHERE user_namespace = ?
                ORDER BY created_at DESC, match_id DESC
                LIMIT ?
                """,
                [user_namespace, limit],
            ).df()

        if df.empty:
            return []

        df["created_at"] = pd.to_datetime(df["created_at"]).dt.strftime("%Y-%m-%dT%H:%M:%S")
        summaries = df.pop("summary_json").map(json.loads)
        df["winner"] = summaries.map(lambda s: s.get("winner"))
        df["total_teams"] = summaries.map(lambda s: s.get("totalTeams", 0)).astype(int)
        df["source_match_id"] = df["source_match_id"].astype(object).where(df["source_match_id"].notna(), None)
        df["matches_played"] = df["matches_played"].astype(int)
        return df.to_dict(orient="records")
