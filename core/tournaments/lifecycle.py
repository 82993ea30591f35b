"""
Tournament lifecycle and scoring engine.

A Tournament is built once from a TournamentConfig and then started and
stopped across many runs. While ACTIVE it accepts concurrent score updates
into its ScoreBoard and periodically reconciles them with storage, which
hands back the authoritative RankingSnapshot.

Threading model:
- score writes may come from any thread (ScoreBoard lock)
- recomputation passes run on a worker and never overlap (update lock)
- events, start/end actions and live rewards go through run_on_primary
"""
from __future__ import annotations

import threading
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Set

from core.tournaments.config import TournamentConfig
from core.tournaments.events import (
    ChallengeCompletedEvent,
    TournamentData,
    TournamentEndEvent,
    TournamentStartEvent,
)
from core.tournaments.rewards import RewardDispatcher
from core.tournaments.scoreboard import EMPTY_SNAPSHOT, RankingSnapshot, ScoreBoard
from core.tournaments.status import TournamentStateError, TournamentStatus
from core.tournaments.timewindow import TimeWindow
from shared.logging.logger import get_logger

if TYPE_CHECKING:
    from core.context import RuntimeSettings
    from core.scheduler import PeriodicHandle, Scheduler
    from services.actions.executor import ActionExecutor
    from services.events.publisher import EventPublisher
    from services.players.directory import Player, PlayerDirectory
    from shared.storage.tournaments.base import TournamentStorage

log = get_logger("tournaments.lifecycle")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Tournament:
    def __init__(
        self,
        config: TournamentConfig,
        *,
        storage: "TournamentStorage",
        actions: "ActionExecutor",
        events: "EventPublisher",
        players: "PlayerDirectory",
        scheduler: "Scheduler",
        settings: Optional["RuntimeSettings"] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._config = config
        self._identifier = config.identifier
        self._storage = storage
        self._actions = actions
        self._events = events
        self._players = players
        self._scheduler = scheduler
        self._debug = bool(settings.debug) if settings is not None else False
        self._clock = clock

        # -------------------------------------------------
        # RUNTIME STATE
        # -------------------------------------------------
        self._status = TournamentStatus.WAITING
        self._window: TimeWindow = config.new_window()
        self._game_id: Optional[str] = None
        self._update_task: Optional["PeriodicHandle"] = None

        self._scores = ScoreBoard()
        self._ranking: RankingSnapshot = EMPTY_SNAPSHOT
        self._update_lock = threading.Lock()

        # Challenge completions for the current run
        self._completed: Set[str] = set()
        self._completed_lock = threading.Lock()

        self._meta: Dict[str, Any] = dict(config.meta)

        self._rewards = RewardDispatcher(
            scheduler=scheduler,
            actions=actions,
            storage=storage,
            players=players,
            tournament_id=self._identifier,
            debug=self._debug,
        )

    # ------------------------------------------------------------------
    # STATUS
    # ------------------------------------------------------------------

    def update_status(self) -> TournamentStatus:
        """
        Derive the status from the time window.

        Recurring windows are re-resolved first. Only the cached window bounds
        and the status change; nothing is published.
        """
        now = self._clock()
        self._window.refresh(now)
        self._status = self._window.status_at(now)
        return self._status

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    def start(self, clear_participants: bool) -> str:
        """
        Start a run and return its running-instance token.

        Calling start() again replaces the periodic refresh task and mints a
        new token.
        """
        self._debug_log("Executing tournament start")

        if clear_participants:
            self._debug_log("Clearing tournament participants")
            self._scheduler.run_async(self.clear_participants)

            if self._config.start_actions:
                self._debug_log("Executing start actions")
                self._run_actions(None, self._config.start_actions)

        self._status = TournamentStatus.ACTIVE
        self._game_id = str(uuid.uuid4())

        if self._update_task is not None:
            self._update_task.cancel()
        self._update_task = self._scheduler.run_periodic_async(
            self._scheduled_update, 0, self._config.refresh_seconds
        )

        event = TournamentStartEvent(self)
        self._scheduler.run_on_primary(lambda: self._events.publish(event))

        log.info(f"[{self._identifier}] Tournament started (game_id={self._game_id})")
        return self._game_id

    def stop(self) -> TournamentData:
        """
        End the current run.

        Raises TournamentStateError when the tournament is not ACTIVE; in that
        case nothing else happens.
        """
        self._debug_log("Executing tournament stop")
        if self._status != TournamentStatus.ACTIVE:
            raise TournamentStateError(
                f"[{self._identifier}] Attempted to stop a tournament that is not ACTIVE "
                f"(status={self._status.value})"
            )
        self._status = TournamentStatus.ENDED

        if self._update_task is not None:
            self._update_task.cancel()
            self._update_task = None
        self.update()

        data = TournamentData(
            identifier=self._identifier,
            game_id=self._game_id or "",
            ranking=self._ranking,
        )
        self._events.publish(TournamentEndEvent(data))
        log.info(
            f"[{self._identifier}] Tournament stopped "
            f"(game_id={data.game_id}, participants={len(data.ranking)})"
        )

        # Challenge rewards were delivered as each participant hit the goal
        if self._config.challenge:
            return data

        self._rewards.dispatch(self._config.rewards, data.ranking)

        if self._config.end_actions:
            self._debug_log("Executing end actions")
            self._run_actions(None, self._config.end_actions)

        self.clear_participants()
        return data

    def update(self, *, wait: bool = True) -> bool:
        """
        Recomputation pass: push live scores to storage, then replace the
        ranking with storage's view.

        With ``wait=False`` the pass is skipped (returns False) when another
        pass is in flight. The previous ranking stays readable until the new
        one is swapped in.
        """
        if not self._update_lock.acquire(blocking=wait):
            return False

        try:
            self._recompute()
        finally:
            self._update_lock.release()
        return True

    def is_updating(self) -> bool:
        return self._update_lock.locked()

    def _recompute(self) -> None:
        # Caller holds _update_lock
        for participant_id, score in self._scores.items():
            self._storage.persist_score_update(self._identifier, participant_id, score)

        self._ranking = RankingSnapshot(self._storage.top_ranking(self._identifier))

    def _scheduled_update(self) -> None:
        if not self._update_lock.acquire(blocking=False):
            self._debug_log("Previous leaderboard refresh still running; tick skipped")
            return

        try:
            # A tick queued before stop() must not write scores back after the final clear
            if self._status != TournamentStatus.ACTIVE:
                self._debug_log(f"Refresh tick dropped (status={self._status.value})")
                return
            self._recompute()
        finally:
            self._update_lock.release()

    # ------------------------------------------------------------------
    # PARTICIPANTS
    # ------------------------------------------------------------------

    def add_participant(self, participant_id: str, score: int = 0, persist: bool = True) -> None:
        self._debug_log(f"Adding {participant_id} to tournament")
        self._scores.put(participant_id, score)
        if persist:
            self._storage.register_participant(self._identifier, participant_id)

    def join(self, participant_id: str) -> bool:
        """
        Enter a participant with a persisted zero score and run the
        participation actions for them. Returns False when already in or when
        the tournament has ended.
        """
        if self._status == TournamentStatus.ENDED or self.is_participant(participant_id):
            return False

        self.add_participant(participant_id, 0, persist=True)

        actions = self._config.participation.actions
        if actions:
            player = self._players.get_player(participant_id)
            if player is not None:
                self._run_actions(player, actions)
        return True

    def add_score(self, participant_id: str, amount: int, replace: bool = False) -> int:
        value = self._scores.add(participant_id, amount, replace=replace)

        if self.has_finished_challenge(participant_id, value) and self._mark_completed(participant_id):
            self._complete_challenge(participant_id, value)

        return value

    def get_score(self, participant_id: str) -> int:
        return self._scores.get(participant_id, 0)

    def is_participant(self, participant_id: str) -> bool:
        return self._scores.contains(participant_id)

    def clear_participant(self, participant_id: str) -> None:
        with self._update_lock:
            self._scores.remove(participant_id)
            self._ranking = self._ranking.without(participant_id)
            with self._completed_lock:
                self._completed.discard(participant_id)
            self._storage.forget_participant(self._identifier, participant_id)

    remove_participant = clear_participant

    def clear_participants(self) -> None:
        self._debug_log("Clearing participants")
        # Serialized with refresh passes so an in-flight pass cannot persist cleared scores
        with self._update_lock:
            self._scores.clear()
            self._ranking = EMPTY_SNAPSHOT
            with self._completed_lock:
                self._completed.clear()
            self._storage.forget_all_participants(self._identifier)

    # ------------------------------------------------------------------
    # CHALLENGES
    # ------------------------------------------------------------------

    def has_finished_challenge(self, participant_id: str, score: Optional[int] = None) -> bool:
        if not self._config.challenge:
            return False
        value = self.get_score(participant_id) if score is None else score
        return value >= self._config.challenge_goal

    def completed_challenge(self, participant_id: str) -> bool:
        with self._completed_lock:
            return participant_id in self._completed

    def get_players_completed_challenge(self) -> int:
        return len(self._storage.top_ranking_above_score(self._identifier, self._config.challenge_goal))

    def _mark_completed(self, participant_id: str) -> bool:
        with self._completed_lock:
            if participant_id in self._completed:
                return False
            self._completed.add(participant_id)
            return True

    def _complete_challenge(self, participant_id: str, score: int) -> None:
        self._storage.persist_score_update(self._identifier, participant_id, score)

        def _follow_up() -> None:
            rank = self.get_players_completed_challenge()
            player, delivery = self._rewards.dispatch_completion(
                participant_id, rank, self._config.rewards
            )
            log.info(
                f"[{self._identifier}] {player.name} ({participant_id}) completed the "
                f"challenge at rank {rank} (reward={delivery or 'none'})"
            )
            event = ChallengeCompletedEvent(player, rank, self)
            self._scheduler.run_on_primary(lambda: self._events.publish(event))

        self._scheduler.run_async(_follow_up)

    # ------------------------------------------------------------------
    # RANKING LOOKUPS
    # ------------------------------------------------------------------

    def get_position(self, participant_id: str) -> int:
        return self._ranking.position(participant_id)

    def get_score_from_position(self, position: int) -> int:
        return self._ranking.score_at(position)

    def get_participant_from_position(self, position: int) -> Optional[str]:
        return self._ranking.participant_at(position)

    def get_player_from_position(self, position: int) -> Optional["Player"]:
        participant_id = self._ranking.participant_at(position)
        if participant_id is None:
            return None
        return self._players.get_player(participant_id) or self._players.get_offline_player(participant_id)

    # ------------------------------------------------------------------
    # METADATA
    # ------------------------------------------------------------------

    def get_meta(self, key: str, default: Any = None) -> Any:
        return self._meta.get(key, default)

    def set_meta(self, key: str, value: Any) -> None:
        self._meta[key] = value

    def has_meta(self, key: str) -> bool:
        return key in self._meta

    def clear_meta(self) -> None:
        self._meta.clear()

    @property
    def meta(self) -> Dict[str, Any]:
        return self._meta

    # ------------------------------------------------------------------
    # READ-ONLY VIEWS
    # ------------------------------------------------------------------

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def config(self) -> TournamentConfig:
        return self._config

    @property
    def status(self) -> TournamentStatus:
        return self._status

    @property
    def game_id(self) -> Optional[str]:
        return self._game_id

    @property
    def window(self) -> TimeWindow:
        return self._window

    @property
    def ranking(self) -> RankingSnapshot:
        return self._ranking

    @property
    def participants(self) -> Dict[str, int]:
        return self._scores.as_dict()

    @property
    def update_task(self) -> Optional["PeriodicHandle"]:
        return self._update_task

    @property
    def challenge(self) -> bool:
        return self._config.challenge

    @property
    def challenge_goal(self) -> int:
        return self._config.challenge_goal

    def time_remaining(self) -> str:
        return self._window.time_remaining(self._status, self._clock())

    # ------------------------------------------------------------------
    # INTERNALS
    # ------------------------------------------------------------------

    def _run_actions(self, player: Optional["Player"], actions) -> None:
        batch: List[str] = list(actions)
        executor = self._actions
        self._scheduler.run_on_primary(lambda: executor.execute(player, batch))

    def _debug_log(self, message: str) -> None:
        if self._debug:
            log.info(f"[{self._identifier}] {message}")

    def __repr__(self) -> str:
        return f"Tournament({self._identifier!r}, status={self._status.value})"
