from __future__ import annotations

from pathlib import Path
from typing import Any

from core.tournaments.events import ChallengeCompletedEvent, TournamentEndEvent
from services.events.publisher import EventPublisher
from shared.logging.logger import get_logger
from shared.storage.state_publisher import StateFilePublisher

log = get_logger("services.events.state_file")


class StateFileEventPublisher(EventPublisher):
    """
    Writes finished-run results to disk for leaderboard consumers.

    Layout under the publisher's base dir:
      tournaments/<id>.json              latest end-of-run ranking
      tournaments/<id>.challenge.json    challenge completions of the current run
    """

    def __init__(self, writer: StateFilePublisher) -> None:
        self._writer = writer

    def publish(self, event: Any) -> None:
        if isinstance(event, TournamentEndEvent):
            self._writer.publish(Path("tournaments") / f"{event.identifier}.json", event.to_document())
            log.info(f"[{event.identifier}] Results snapshot written")
        elif isinstance(event, ChallengeCompletedEvent):
            self._record_completion(event)

    def _record_completion(self, event: ChallengeCompletedEvent) -> None:
        tournament_id = event.tournament.identifier
        rel = Path("tournaments") / f"{tournament_id}.challenge.json"

        doc = self._writer.read(rel) or {}
        if doc.get("game_id") != event.tournament.game_id:
            doc = {"tournament_id": tournament_id, "game_id": event.tournament.game_id, "completions": []}

        doc["completions"].append(
            {
                "position": event.position,
                "participant_id": event.player.player_id,
                "participant_name": event.player.name,
                "completed_at": event.generated_at,
            }
        )
        self._writer.publish(rel, doc)
