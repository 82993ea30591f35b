"""Tournament persistence: storage contract plus the SQLite reference store."""

from shared.storage.tournaments.base import TournamentStorage
from shared.storage.tournaments.store import DEFAULT_DB_PATH, SQLiteTournamentStorage

__all__ = ["TournamentStorage", "SQLiteTournamentStorage", "DEFAULT_DB_PATH"]
