"""
Tournament definitions.

TournamentConfig is the immutable, one-time setup of a tournament. It is
assembled by TournamentConfigBuilder (usually from the config loader) and
never changes while the tournament runs; runtime state (status, scores,
rankings, running-instance token) lives on the Tournament itself.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from core.tournaments.status import TournamentConfigError
from core.tournaments.timewindow import UTC, Timeline, TimeWindow

MIN_REFRESH_SECONDS = 10
DEFAULT_REFRESH_SECONDS = 60


@dataclass(frozen=True)
class ParticipationPolicy:
    """How players enter a tournament. Cost and permission are data only."""

    automatic: bool = False
    cost: float = 0.0
    permission: Optional[str] = None
    actions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TournamentConfig:
    identifier: str
    timeline: Timeline
    zone: tzinfo = UTC
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    objective: Optional[str] = None
    refresh_seconds: int = DEFAULT_REFRESH_SECONDS
    challenge: bool = False
    challenge_goal: int = -1
    rewards: Mapping[int, Tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    start_actions: Tuple[str, ...] = ()
    end_actions: Tuple[str, ...] = ()
    participation: ParticipationPolicy = field(default_factory=ParticipationPolicy)
    disabled_worlds: Tuple[str, ...] = ()
    disabled_gamemodes: Tuple[str, ...] = ()
    meta: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def new_window(self) -> TimeWindow:
        return TimeWindow(
            timeline=self.timeline,
            zone=self.zone,
            start=self.start,
            end=self.end,
        )

    def reward_positions(self) -> List[int]:
        return sorted(self.rewards)

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.identifier,
            "objective": self.objective,
            "timeline": self.timeline.value,
            "timezone": str(self.zone),
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
            "refresh_seconds": self.refresh_seconds,
            "challenge": {"enabled": self.challenge, "goal": self.challenge_goal},
            "rewards": {str(pos): list(actions) for pos, actions in sorted(self.rewards.items())},
            "start_actions": list(self.start_actions),
            "end_actions": list(self.end_actions),
            "participation": {
                "automatic": self.participation.automatic,
                "cost": self.participation.cost,
                "permission": self.participation.permission,
                "actions": list(self.participation.actions),
            },
        }


class TournamentConfigBuilder:
    """
    Step-by-step assembly of a TournamentConfig.

    Setters return the builder so definitions read top to bottom:

        config = (
            TournamentConfigBuilder("weekly_mining")
            .timeline(Timeline.WEEKLY)
            .refresh_seconds(30)
            .reward(1, ["[MESSAGE] You won!"])
            .build()
        )
    """

    def __init__(self, identifier: str) -> None:
        self._identifier = identifier
        self._timeline = Timeline.SPECIFIC
        self._zone: tzinfo = UTC
        self._start: Optional[datetime] = None
        self._end: Optional[datetime] = None
        self._objective: Optional[str] = None
        self._refresh_seconds = DEFAULT_REFRESH_SECONDS
        self._challenge = False
        self._challenge_goal = -1
        self._rewards: Dict[int, Tuple[str, ...]] = {}
        self._start_actions: Tuple[str, ...] = ()
        self._end_actions: Tuple[str, ...] = ()
        self._participation = ParticipationPolicy()
        self._disabled_worlds: Tuple[str, ...] = ()
        self._disabled_gamemodes: Tuple[str, ...] = ()
        self._meta: Dict[str, Any] = {}

    # ------------------------------------------------------------
    # Schedule
    # ------------------------------------------------------------

    def timeline(self, timeline: Timeline | str) -> "TournamentConfigBuilder":
        self._timeline = Timeline.from_value(timeline)
        return self

    def zone(self, zone: tzinfo) -> "TournamentConfigBuilder":
        self._zone = zone
        return self

    def window(self, start: datetime, end: datetime) -> "TournamentConfigBuilder":
        self._timeline = Timeline.SPECIFIC
        self._start = start
        self._end = end
        return self

    def refresh_seconds(self, seconds: int) -> "TournamentConfigBuilder":
        self._refresh_seconds = max(MIN_REFRESH_SECONDS, int(seconds))
        return self

    # ------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------

    def objective(self, name: Optional[str]) -> "TournamentConfigBuilder":
        self._objective = name
        return self

    def challenge(self, goal: int) -> "TournamentConfigBuilder":
        self._challenge = True
        self._challenge_goal = int(goal)
        return self

    # ------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------

    def reward(self, position: int, actions: Iterable[str]) -> "TournamentConfigBuilder":
        self._rewards[int(position)] = tuple(actions)
        return self

    def rewards(self, table: Mapping[int, Iterable[str]]) -> "TournamentConfigBuilder":
        for position, actions in table.items():
            self.reward(position, actions)
        return self

    def start_actions(self, actions: Iterable[str]) -> "TournamentConfigBuilder":
        self._start_actions = tuple(actions)
        return self

    def end_actions(self, actions: Iterable[str]) -> "TournamentConfigBuilder":
        self._end_actions = tuple(actions)
        return self

    def participation(
        self,
        *,
        automatic: bool = False,
        cost: float = 0.0,
        permission: Optional[str] = None,
        actions: Iterable[str] = (),
    ) -> "TournamentConfigBuilder":
        self._participation = ParticipationPolicy(
            automatic=bool(automatic),
            cost=float(cost),
            permission=permission,
            actions=tuple(actions),
        )
        return self

    def disabled_worlds(self, worlds: Iterable[str]) -> "TournamentConfigBuilder":
        self._disabled_worlds = tuple(worlds)
        return self

    def disabled_gamemodes(self, gamemodes: Iterable[str]) -> "TournamentConfigBuilder":
        self._disabled_gamemodes = tuple(gamemodes)
        return self

    def meta(self, key: str, value: Any) -> "TournamentConfigBuilder":
        self._meta[key] = value
        return self

    # ------------------------------------------------------------

    def build(self) -> TournamentConfig:
        if not self._identifier or not str(self._identifier).strip():
            raise TournamentConfigError("Tournament identifier is required")

        if self._timeline == Timeline.SPECIFIC:
            if self._start is None or self._end is None:
                raise TournamentConfigError(
                    f"[{self._identifier}] SPECIFIC timeline requires start and end"
                )
            window = TimeWindow(self._timeline, self._zone, self._start, self._end)
            if window.start >= window.end:
                raise TournamentConfigError(
                    f"[{self._identifier}] start must be before end"
                )
            start, end = window.start, window.end
        else:
            start, end = None, None

        if self._challenge and self._challenge_goal <= 0:
            raise TournamentConfigError(
                f"[{self._identifier}] challenge goal must be positive"
            )

        return TournamentConfig(
            identifier=str(self._identifier),
            timeline=self._timeline,
            zone=self._zone,
            start=start,
            end=end,
            objective=self._objective,
            refresh_seconds=self._refresh_seconds,
            challenge=self._challenge,
            challenge_goal=self._challenge_goal,
            rewards=MappingProxyType(dict(self._rewards)),
            start_actions=self._start_actions,
            end_actions=self._end_actions,
            participation=self._participation,
            disabled_worlds=self._disabled_worlds,
            disabled_gamemodes=self._disabled_gamemodes,
            meta=MappingProxyType(dict(self._meta)),
        )
