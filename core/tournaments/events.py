"""Lifecycle notification records published through an EventPublisher."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict

from core.tournaments.scoreboard import RankingSnapshot

if TYPE_CHECKING:
    from core.tournaments.lifecycle import Tournament
    from services.players.directory import Player


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class TournamentData:
    """Immutable copy of one finished run."""

    identifier: str
    game_id: str
    ranking: RankingSnapshot

    def to_document(self) -> Dict[str, Any]:
        return {
            "tournament_id": self.identifier,
            "game_id": self.game_id,
            "ranking": self.ranking.to_document(),
        }


@dataclass(frozen=True)
class TournamentStartEvent:
    tournament: "Tournament"
    generated_at: str = field(default_factory=_utc_now)

    name = "tournament_start"

    def to_document(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "generated_at": self.generated_at,
            "tournament_id": self.tournament.identifier,
            "game_id": self.tournament.game_id,
            "window": self.tournament.window.to_document(),
        }


@dataclass(frozen=True)
class TournamentEndEvent:
    data: TournamentData
    generated_at: str = field(default_factory=_utc_now)

    name = "tournament_end"

    @property
    def identifier(self) -> str:
        return self.data.identifier

    def to_document(self) -> Dict[str, Any]:
        doc = {"event": self.name, "generated_at": self.generated_at}
        doc.update(self.data.to_document())
        return doc


@dataclass(frozen=True)
class ChallengeCompletedEvent:
    player: "Player"
    position: int
    tournament: "Tournament"
    generated_at: str = field(default_factory=_utc_now)

    name = "challenge_completed"

    def to_document(self) -> Dict[str, Any]:
        return {
            "event": self.name,
            "generated_at": self.generated_at,
            "tournament_id": self.tournament.identifier,
            "game_id": self.tournament.game_id,
            "participant_id": self.player.player_id,
            "participant_name": self.player.name,
            "position": self.position,
        }


__all__ = [
    "TournamentData",
    "TournamentStartEvent",
    "TournamentEndEvent",
    "ChallengeCompletedEvent",
]
