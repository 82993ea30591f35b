"""
End-of-run reward resolution.

Given the final ranking and a reward table, every configured position with a
participant gets exactly one delivery: executed on the primary context when
the player is online, queued for later delivery otherwise. Positions beyond
the number of participants are skipped.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Mapping, Optional, Sequence, Tuple

from core.tournaments.scoreboard import RankingSnapshot
from shared.logging.logger import get_logger

if TYPE_CHECKING:
    from core.scheduler import Scheduler
    from services.actions.executor import ActionExecutor
    from services.players.directory import Player, PlayerDirectory
    from shared.storage.tournaments.base import TournamentStorage

log = get_logger("tournaments.rewards")

DELIVERY_LIVE = "live"
DELIVERY_QUEUED = "queued"


@dataclass(frozen=True)
class RewardOutcome:
    position: int
    participant_id: str
    delivery: str


class RewardDispatcher:
    def __init__(
        self,
        *,
        scheduler: "Scheduler",
        actions: "ActionExecutor",
        storage: "TournamentStorage",
        players: "PlayerDirectory",
        tournament_id: str = "",
        debug: bool = False,
    ) -> None:
        self._scheduler = scheduler
        self._actions = actions
        self._storage = storage
        self._players = players
        self._tournament_id = tournament_id
        self._debug = debug

    def dispatch(
        self,
        rewards: Mapping[int, Sequence[str]],
        ranking: RankingSnapshot,
    ) -> List[RewardOutcome]:
        outcomes: List[RewardOutcome] = []

        for position in sorted(rewards):
            participant_id = ranking.participant_at(position)
            if participant_id is None:
                continue

            actions = list(rewards[position])
            player = self._players.get_player(participant_id)

            if player is not None:
                self._deliver_live(player, actions)
                outcomes.append(RewardOutcome(position, participant_id, DELIVERY_LIVE))
                if self._debug:
                    log.info(
                        f"[{self._tournament_id}] Executed rewards for position {position}: "
                        f"{player.name} ({participant_id})"
                    )
                continue

            self._queue(participant_id, actions)
            outcomes.append(RewardOutcome(position, participant_id, DELIVERY_QUEUED))
            if self._debug:
                log.info(
                    f"[{self._tournament_id}] Queued rewards for position {position}: "
                    f"{participant_id}"
                )

        return outcomes

    def dispatch_completion(
        self,
        participant_id: str,
        rank: int,
        rewards: Mapping[int, Sequence[str]],
    ) -> Tuple["Player", Optional[str]]:
        """
        Deliver the reward configured for a challenge completion rank.

        Runs on a worker: offline participants are queued in place, live
        ones get the actions on the primary context. Returns the player
        handle and the delivery kind (None when ``rank`` has no reward).
        """
        actions = list(rewards.get(rank, ()))
        player = self._players.get_player(participant_id)

        if player is None:
            offline = self._players.get_offline_player(participant_id)
            if not actions:
                return offline, None
            self._storage.enqueue_deferred_actions(participant_id, actions)
            return offline, DELIVERY_QUEUED

        if not actions:
            return player, None
        self._deliver_live(player, actions)
        return player, DELIVERY_LIVE

    # ------------------------------------------------------------

    def _deliver_live(self, player: "Player", actions: List[str]) -> None:
        executor = self._actions
        self._scheduler.run_on_primary(lambda: executor.execute(player, actions))

    def _queue(self, participant_id: str, actions: List[str]) -> None:
        storage = self._storage
        # All actions for one position go in as a single group
        self._scheduler.run_async(
            lambda: storage.enqueue_deferred_actions(participant_id, actions)
        )
