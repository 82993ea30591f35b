from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Set


class TournamentStorage(ABC):
    """
    Persistence contract used by the tournament lifecycle.

    Implementations own the ranking rule: top_ranking() must return
    participants in final display order (highest score first, ties broken
    however the backend decides). Callers never re-sort.
    """

    # ------------------------------------------------------------
    # Participants
    # ------------------------------------------------------------

    @abstractmethod
    def register_participant(self, tournament_id: str, participant_id: str) -> None:
        """Insert a zero-score row if none exists."""
        raise NotImplementedError

    @abstractmethod
    def persist_score_update(self, tournament_id: str, participant_id: str, score: int) -> None:
        """Update-or-insert the participant's score."""
        raise NotImplementedError

    @abstractmethod
    def forget_participant(self, tournament_id: str, participant_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def forget_all_participants(self, tournament_id: str) -> None:
        raise NotImplementedError

    # ------------------------------------------------------------
    # Rankings
    # ------------------------------------------------------------

    @abstractmethod
    def top_ranking(self, tournament_id: str, limit: Optional[int] = None) -> Dict[str, int]:
        """Ordered participant_id -> score mapping."""
        raise NotImplementedError

    @abstractmethod
    def top_ranking_above_score(self, tournament_id: str, threshold: int) -> Set[str]:
        """Participants whose persisted score is >= threshold."""
        raise NotImplementedError

    # ------------------------------------------------------------
    # Deferred actions
    # ------------------------------------------------------------

    @abstractmethod
    def enqueue_deferred_action(self, participant_id: str, action: str) -> None:
        raise NotImplementedError

    def enqueue_deferred_actions(self, participant_id: str, actions: Iterable[str]) -> None:
        """
        Queue several actions for one participant.

        The default is one call per action; backends that can should override
        this to write the whole group atomically.
        """
        for action in actions:
            self.enqueue_deferred_action(participant_id, action)

    @abstractmethod
    def pop_deferred_actions(self, participant_id: str) -> list:
        """Remove and return queued actions in insertion order."""
        raise NotImplementedError
