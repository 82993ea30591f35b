"""
Tournaments package.

Lifecycle state machine, live scoreboard, ranking snapshots, time windows and
reward resolution. Collaborators (storage, actions, events, players,
scheduler) are injected; nothing here starts tasks on import.
"""

from .config import (
    MIN_REFRESH_SECONDS,
    ParticipationPolicy,
    TournamentConfig,
    TournamentConfigBuilder,
)
from .events import (
    ChallengeCompletedEvent,
    TournamentData,
    TournamentEndEvent,
    TournamentStartEvent,
)
from .lifecycle import Tournament
from .rewards import RewardDispatcher, RewardOutcome
from .scoreboard import EMPTY_SNAPSHOT, RankingSnapshot, ScoreBoard
from .status import TournamentConfigError, TournamentStateError, TournamentStatus
from .timewindow import Timeline, TimeWindow

__all__ = [
    "MIN_REFRESH_SECONDS",
    "ParticipationPolicy",
    "TournamentConfig",
    "TournamentConfigBuilder",
    "ChallengeCompletedEvent",
    "TournamentData",
    "TournamentEndEvent",
    "TournamentStartEvent",
    "Tournament",
    "RewardDispatcher",
    "RewardOutcome",
    "EMPTY_SNAPSHOT",
    "RankingSnapshot",
    "ScoreBoard",
    "TournamentConfigError",
    "TournamentStateError",
    "TournamentStatus",
    "Timeline",
    "TimeWindow",
]
