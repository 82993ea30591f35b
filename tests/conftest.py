"""Shared fixtures: inline scheduler, recording collaborators, fixed clock."""

import os

os.environ.setdefault("TOURNAMENT_LOG_FILE", "0")

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Callable, List, Optional, Tuple  # noqa: E402

import pytest  # noqa: E402

from core.scheduler import PeriodicHandle, Scheduler  # noqa: E402
from core.tournaments import TournamentConfigBuilder, Tournament  # noqa: E402
from services.actions.executor import ActionExecutor  # noqa: E402
from services.events.publisher import EventPublisher  # noqa: E402
from services.players.directory import InMemoryPlayerDirectory  # noqa: E402
from shared.storage.tournaments.store import SQLiteTournamentStorage  # noqa: E402


# ============================================================================
# Test doubles
# ============================================================================


class RecordingHandle(PeriodicHandle):
    def __init__(self, fn, initial_delay, period):
        self.fn = fn
        self.initial_delay = initial_delay
        self.period = period
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class InlineScheduler(Scheduler):
    """Runs every task immediately on the calling thread; periodic tasks fire on tick()."""

    def __init__(self):
        self.async_calls = 0
        self.primary_calls = 0
        self.periodic: List[RecordingHandle] = []

    def run_async(self, fn) -> None:
        self.async_calls += 1
        fn()

    def run_on_primary(self, fn) -> None:
        self.primary_calls += 1
        fn()

    def run_periodic_async(self, fn, initial_delay, period) -> PeriodicHandle:
        handle = RecordingHandle(fn, initial_delay, period)
        self.periodic.append(handle)
        return handle

    def tick(self) -> None:
        for handle in list(self.periodic):
            if not handle.cancelled:
                handle.fn()


class RecordingExecutor(ActionExecutor):
    def __init__(self):
        self.calls: List[Tuple[Optional[str], List[str]]] = []

    def execute(self, player, actions):
        self.calls.append((player.player_id if player else None, list(actions)))
        return []


class RecordingPublisher(EventPublisher):
    def __init__(self):
        self.events = []

    def publish(self, event) -> None:
        self.events.append(event)

    def named(self, name: str):
        return [e for e in self.events if e.name == name]


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


# ============================================================================
# Fixtures
# ============================================================================

WINDOW_START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
WINDOW_END = datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc)


@pytest.fixture
def scheduler():
    return InlineScheduler()


@pytest.fixture
def storage():
    store = SQLiteTournamentStorage(":memory:")
    yield store
    store.close()


@pytest.fixture
def actions():
    return RecordingExecutor()


@pytest.fixture
def events():
    return RecordingPublisher()


@pytest.fixture
def players():
    return InMemoryPlayerDirectory()


@pytest.fixture
def clock():
    return FixedClock(WINDOW_START + timedelta(hours=1))


@pytest.fixture
def make_tournament(storage, actions, events, players, scheduler, clock) -> Callable[..., Tournament]:
    """Factory for tournaments with a fixed SPECIFIC window and the shared doubles."""

    def _make(identifier: str = "cup", configure=None) -> Tournament:
        builder = TournamentConfigBuilder(identifier).window(WINDOW_START, WINDOW_END)
        if configure is not None:
            configure(builder)
        return Tournament(
            builder.build(),
            storage=storage,
            actions=actions,
            events=events,
            players=players,
            scheduler=scheduler,
            clock=clock,
        )

    return _make


@pytest.fixture
def window():
    """(start, end) of the fixed window used by make_tournament."""
    return WINDOW_START, WINDOW_END
