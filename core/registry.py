from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from core.config_loader import ConfigLoader
from core.tournaments.config import TournamentConfig
from core.tournaments.lifecycle import Tournament
from core.tournaments.status import TournamentStateError, TournamentStatus
from shared.logging.logger import get_logger

if TYPE_CHECKING:
    from core.context import RuntimeSettings
    from core.scheduler import PeriodicHandle, Scheduler
    from services.actions.executor import ActionExecutor
    from services.events.publisher import EventPublisher
    from services.players.directory import PlayerDirectory
    from shared.storage.tournaments.base import TournamentStorage

log = get_logger("core.registry")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TournamentRegistry:
    """
    Owns every loaded Tournament and drives their windows.

    The status watcher runs on the primary context: an ACTIVE tournament whose
    window has elapsed is stopped, and a tournament whose (re-resolved) window
    is open gets started with a clean scoreboard.
    """

    def __init__(
        self,
        *,
        storage: "TournamentStorage",
        actions: "ActionExecutor",
        events: "EventPublisher",
        players: "PlayerDirectory",
        scheduler: "Scheduler",
        settings: Optional["RuntimeSettings"] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._storage = storage
        self._actions = actions
        self._events = events
        self._players = players
        self._scheduler = scheduler
        self._settings = settings
        self._clock = clock

        self._tournaments: Dict[str, Tournament] = {}
        self._lock = threading.Lock()
        self._watcher: Optional["PeriodicHandle"] = None

    # ------------------------------------------------------------------
    # REGISTRATION
    # ------------------------------------------------------------------

    def register(self, config: TournamentConfig) -> Tournament:
        with self._lock:
            if config.identifier in self._tournaments:
                raise ValueError(f"Tournament already registered: {config.identifier}")

            tournament = Tournament(
                config,
                storage=self._storage,
                actions=self._actions,
                events=self._events,
                players=self._players,
                scheduler=self._scheduler,
                settings=self._settings,
                clock=self._clock,
            )
            self._tournaments[config.identifier] = tournament

        log.info(f"[{config.identifier}] Registered tournament ({config.timeline.value})")
        return tournament

    def load(self, loader: Optional[ConfigLoader] = None) -> Dict[str, Tournament]:
        loader = loader or ConfigLoader()
        for config in loader.load_tournament_configs():
            try:
                self.register(config)
            except ValueError as e:
                log.warning(str(e))
        return self.as_dict()

    def get(self, identifier: str) -> Optional[Tournament]:
        with self._lock:
            return self._tournaments.get(identifier)

    def all(self) -> List[Tournament]:
        with self._lock:
            return list(self._tournaments.values())

    def as_dict(self) -> Dict[str, Tournament]:
        with self._lock:
            return dict(self._tournaments)

    # ------------------------------------------------------------------
    # BOOT / STATUS WATCH
    # ------------------------------------------------------------------

    def boot(self) -> None:
        """
        Resolve initial statuses. Tournaments already inside their window
        resume the current run: persisted scores are reloaded into the live
        scoreboard and start() runs without clearing.
        """
        for tournament in self.all():
            status = tournament.update_status()
            log.info(f"[{tournament.identifier}] Initial status: {status.value}")

            if status != TournamentStatus.ACTIVE:
                continue

            restored = self._storage.top_ranking(tournament.identifier)
            for participant_id, score in restored.items():
                tournament.add_participant(participant_id, score, persist=False)
            tournament.start(clear_participants=False)
            log.info(
                f"[{tournament.identifier}] Resumed active run with "
                f"{len(restored)} participant(s)"
            )

    def check_statuses(self) -> None:
        for tournament in self.all():
            try:
                self._check(tournament)
            except Exception:
                log.exception(f"[{tournament.identifier}] Status check failed")

    def _check(self, tournament: Tournament) -> None:
        now = self._clock()
        window = tournament.window

        if (
            tournament.status == TournamentStatus.ACTIVE
            and window.end is not None
            and now >= window.end
        ):
            try:
                tournament.stop()
            except TournamentStateError as e:
                log.warning(str(e))

        previous = tournament.status
        status = tournament.update_status()

        if status == TournamentStatus.ACTIVE and previous != TournamentStatus.ACTIVE:
            tournament.start(clear_participants=True)

    def start_watching(self, interval_seconds: Optional[float] = None) -> None:
        if self._watcher is not None:
            log.warning("Status watcher already running; skipping")
            return

        interval = interval_seconds
        if interval is None:
            interval = self._settings.status_check_seconds if self._settings else 10

        scheduler = self._scheduler
        self._watcher = scheduler.run_periodic_async(
            lambda: scheduler.run_on_primary(self.check_statuses),
            interval,
            interval,
        )
        log.info(f"Status watcher started (every {interval}s)")

    # ------------------------------------------------------------------
    # SHUTDOWN
    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        """
        Stop watching and flush live scores. Runs are not ended: a restart
        inside the same window resumes them through boot().
        """
        log.info("Tournament registry shutdown initiated")

        if self._watcher is not None:
            self._watcher.cancel()
            self._watcher = None

        for tournament in self.all():
            if tournament.update_task is not None:
                tournament.update_task.cancel()
            if tournament.status == TournamentStatus.ACTIVE:
                try:
                    tournament.update()
                except Exception as e:
                    log.warning(f"[{tournament.identifier}] Final score flush failed: {e}")

        log.info("Tournament registry shutdown complete")
