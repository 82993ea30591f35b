from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Dict, List, Optional

from shared.logging.logger import get_logger

if TYPE_CHECKING:
    from core.scheduler import Scheduler
    from services.actions.executor import ActionExecutor
    from shared.storage.tournaments.base import TournamentStorage

log = get_logger("services.players")


@dataclass(frozen=True)
class Player:
    """
    Handle for a participant identity.

    Live handles come from get_player(); offline handles carry the id and
    last known name for display only.
    """

    player_id: str
    name: str
    online: bool = False


class PlayerDirectory(ABC):
    """Resolves participant identities to live or offline player handles."""

    @abstractmethod
    def is_online(self, player_id: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_player(self, player_id: str) -> Optional[Player]:
        """Live handle, or None when the player is not reachable."""
        raise NotImplementedError

    @abstractmethod
    def get_offline_player(self, player_id: str) -> Player:
        """Display handle; always resolves, even for unknown ids."""
        raise NotImplementedError


class InMemoryPlayerDirectory(PlayerDirectory):
    """
    Directory fed by connect/disconnect calls from the host.

    When storage, an action executor and a scheduler are supplied, actions
    queued for a player while offline are delivered as soon as they connect:
    the queue is drained on a worker and executed on the primary context.
    """

    def __init__(
        self,
        *,
        storage: Optional["TournamentStorage"] = None,
        actions: Optional["ActionExecutor"] = None,
        scheduler: Optional["Scheduler"] = None,
    ) -> None:
        self._known: Dict[str, Player] = {}
        self._lock = threading.Lock()
        self._storage = storage
        self._actions = actions
        self._scheduler = scheduler

    # ------------------------------------------------------------
    # Host hooks
    # ------------------------------------------------------------

    def connect(self, player_id: str, name: Optional[str] = None) -> Player:
        with self._lock:
            previous = self._known.get(player_id)
            player = Player(
                player_id=player_id,
                name=name or (previous.name if previous else player_id),
                online=True,
            )
            self._known[player_id] = player

        log.debug(f"Player connected: {player.name} ({player_id})")
        self._deliver_deferred(player)
        return player

    def disconnect(self, player_id: str) -> None:
        with self._lock:
            player = self._known.get(player_id)
            if player is not None:
                self._known[player_id] = replace(player, online=False)
        log.debug(f"Player disconnected: {player_id}")

    # ------------------------------------------------------------
    # PlayerDirectory
    # ------------------------------------------------------------

    def is_online(self, player_id: str) -> bool:
        with self._lock:
            player = self._known.get(player_id)
        return bool(player and player.online)

    def get_player(self, player_id: str) -> Optional[Player]:
        with self._lock:
            player = self._known.get(player_id)
        if player is None or not player.online:
            return None
        return player

    def get_offline_player(self, player_id: str) -> Player:
        with self._lock:
            player = self._known.get(player_id)
        if player is None:
            return Player(player_id=player_id, name=player_id, online=False)
        return replace(player, online=False)

    def online_players(self) -> List[Player]:
        with self._lock:
            return [p for p in self._known.values() if p.online]

    # ------------------------------------------------------------
    # Deferred delivery
    # ------------------------------------------------------------

    def _deliver_deferred(self, player: Player) -> None:
        if not (self._storage and self._actions and self._scheduler):
            return

        storage, executor, scheduler = self._storage, self._actions, self._scheduler

        def _drain() -> None:
            pending = storage.pop_deferred_actions(player.player_id)
            if not pending:
                return
            log.info(
                f"Delivering {len(pending)} queued action(s) to "
                f"{player.name} ({player.player_id})"
            )
            scheduler.run_on_primary(lambda: executor.execute(player, pending))

        scheduler.run_async(_drain)
