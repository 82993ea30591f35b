from __future__ import annotations

import sqlite3
import threading
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from shared.logging.logger import get_logger
from shared.storage.tournaments.base import TournamentStorage

log = get_logger("shared.storage.tournaments")

DEFAULT_DB_PATH = Path("data/tournaments.db")


class SQLiteTournamentStorage(TournamentStorage):
    """
    SQLite-backed tournament store.

    Tables:
      - participants
      - action_queue

    Ranking rule: score DESC, then whoever reached the score first
    (updated_at ASC), then participant_id for a stable order.
    """

    def __init__(self, db_path: Path | str = DEFAULT_DB_PATH):
        self._memory = str(db_path) == ":memory:"
        self._path = Path(db_path) if not self._memory else None
        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._shared_conn: Optional[sqlite3.Connection] = None
        self._init_schema()

    # ------------------------------------------------------------------
    # INTERNALS
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        if self._memory:
            # One connection for the lifetime of an in-memory database
            if self._shared_conn is None:
                self._shared_conn = sqlite3.connect(":memory:", check_same_thread=False)
                self._shared_conn.row_factory = sqlite3.Row
            return self._shared_conn

        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS participants (
                    tournament_id TEXT NOT NULL,
                    participant_id TEXT NOT NULL,
                    score INTEGER NOT NULL DEFAULT 0,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (tournament_id, participant_id)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS action_queue (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    participant_id TEXT NOT NULL,
                    action TEXT NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_participants_rank
                ON participants(tournament_id, score DESC, updated_at ASC)
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_action_queue_participant
                ON action_queue(participant_id, id)
                """
            )

    # ------------------------------------------------------------------
    # PARTICIPANTS
    # ------------------------------------------------------------------

    def register_participant(self, tournament_id: str, participant_id: str) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT OR IGNORE INTO participants (tournament_id, participant_id, score, updated_at)
                VALUES (?, ?, 0, ?)
                """,
                (tournament_id, participant_id, time.time()),
            )

    def persist_score_update(self, tournament_id: str, participant_id: str, score: int) -> None:
        with self._lock, self._connect() as conn:
            # updated_at only moves when the score changes, so ties keep
            # ranking whoever got there first
            conn.execute(
                """
                INSERT INTO participants (tournament_id, participant_id, score, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(tournament_id, participant_id) DO UPDATE SET
                    updated_at = CASE WHEN participants.score != excluded.score
                                      THEN excluded.updated_at
                                      ELSE participants.updated_at END,
                    score = excluded.score
                """,
                (tournament_id, participant_id, int(score), time.time()),
            )

    def forget_participant(self, tournament_id: str, participant_id: str) -> None:
        with self._lock, self._connect() as conn:
            conn.execute(
                "DELETE FROM participants WHERE tournament_id = ? AND participant_id = ?",
                (tournament_id, participant_id),
            )

    def forget_all_participants(self, tournament_id: str) -> None:
        with self._lock, self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM participants WHERE tournament_id = ?",
                (tournament_id,),
            )
        log.debug(f"[{tournament_id}] Cleared {cursor.rowcount} participant row(s)")

    def get_score(self, tournament_id: str, participant_id: str) -> Optional[int]:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT score FROM participants WHERE tournament_id = ? AND participant_id = ?",
                (tournament_id, participant_id),
            ).fetchone()
        return None if row is None else int(row["score"])

    # ------------------------------------------------------------------
    # RANKINGS
    # ------------------------------------------------------------------

    def top_ranking(self, tournament_id: str, limit: Optional[int] = None) -> Dict[str, int]:
        query = """
            SELECT participant_id, score FROM participants
            WHERE tournament_id = ?
            ORDER BY score DESC, updated_at ASC, participant_id ASC
        """
        params: tuple = (tournament_id,)
        if limit is not None:
            query += " LIMIT ?"
            params = (tournament_id, int(limit))

        with self._lock, self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return {row["participant_id"]: int(row["score"]) for row in rows}

    def top_ranking_above_score(self, tournament_id: str, threshold: int) -> Set[str]:
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                """
                SELECT participant_id FROM participants
                WHERE tournament_id = ? AND score >= ?
                """,
                (tournament_id, int(threshold)),
            ).fetchall()
        return {row["participant_id"] for row in rows}

    # ------------------------------------------------------------------
    # DEFERRED ACTIONS
    # ------------------------------------------------------------------

    def enqueue_deferred_action(self, participant_id: str, action: str) -> None:
        self.enqueue_deferred_actions(participant_id, [action])

    def enqueue_deferred_actions(self, participant_id: str, actions: Iterable[str]) -> None:
        now = time.time()
        rows = [(participant_id, str(action), now) for action in actions]
        if not rows:
            return

        # Single transaction: either every action of the group is queued or none
        with self._lock, self._connect() as conn:
            conn.executemany(
                "INSERT INTO action_queue (participant_id, action, created_at) VALUES (?, ?, ?)",
                rows,
            )

    def pop_deferred_actions(self, participant_id: str) -> List[str]:
        with self._lock, self._connect() as conn:
            rows = conn.execute(
                "SELECT id, action FROM action_queue WHERE participant_id = ? ORDER BY id ASC",
                (participant_id,),
            ).fetchall()
            if rows:
                conn.executemany(
                    "DELETE FROM action_queue WHERE id = ?",
                    [(row["id"],) for row in rows],
                )
        return [row["action"] for row in rows]

    def pending_action_count(self, participant_id: str) -> int:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM action_queue WHERE participant_id = ?",
                (participant_id,),
            ).fetchone()
        return int(row[0])

    def close(self) -> None:
        with self._lock:
            if self._shared_conn is not None:
                self._shared_conn.close()
                self._shared_conn = None
