"""Tests for core.registry.TournamentRegistry: loading, boot resume and window-driven transitions."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from core.config_loader import ConfigLoader
from core.registry import TournamentRegistry
from core.tournaments import TournamentConfigBuilder, TournamentStatus

UTC = timezone.utc


@pytest.fixture
def registry(storage, actions, events, players, scheduler, clock):
    return TournamentRegistry(
        storage=storage,
        actions=actions,
        events=events,
        players=players,
        scheduler=scheduler,
        clock=clock,
    )


def _specific(identifier, window):
    start, end = window
    return TournamentConfigBuilder(identifier).window(start, end).build()


class TestRegistration:
    def test_register_and_lookup(self, registry, window):
        t = registry.register(_specific("cup", window))
        assert registry.get("cup") is t
        assert registry.all() == [t]
        assert registry.get("missing") is None

    def test_duplicate_id_rejected(self, registry, window):
        registry.register(_specific("cup", window))
        with pytest.raises(ValueError):
            registry.register(_specific("cup", window))

    def test_load_from_definitions(self, registry, tmp_path):
        path = tmp_path / "tournaments.json"
        path.write_text(
            json.dumps({"tournaments": [{"id": "a", "timeline": "daily"}, {"id": "b", "timeline": "hourly"}]}),
            encoding="utf-8",
        )
        loaded = registry.load(ConfigLoader(path))
        assert sorted(loaded) == ["a", "b"]


class TestStatusWatch:
    def test_specific_window_starts_then_stops(self, registry, clock, window, events):
        start, end = window
        t = registry.register(_specific("cup", window))

        clock.now = start - timedelta(minutes=5)
        registry.check_statuses()
        assert t.status is TournamentStatus.WAITING

        clock.now = start + timedelta(minutes=1)
        registry.check_statuses()
        assert t.status is TournamentStatus.ACTIVE
        assert len(events.named("tournament_start")) == 1

        registry.check_statuses()
        assert len(events.named("tournament_start")) == 1

        clock.now = end
        registry.check_statuses()
        assert t.status is TournamentStatus.ENDED
        assert len(events.named("tournament_end")) == 1

        clock.advance(hours=1)
        registry.check_statuses()
        assert len(events.named("tournament_end")) == 1

    def test_recurring_window_rolls_into_next_run(self, registry, clock, events):
        clock.now = datetime(2026, 4, 1, 10, 0, tzinfo=UTC)
        t = registry.register(TournamentConfigBuilder("daily").timeline("daily").build())

        registry.check_statuses()
        first_game = t.game_id
        t.add_score("a", 3)

        clock.advance(days=1)
        registry.check_statuses()

        assert t.status is TournamentStatus.ACTIVE
        assert t.game_id != first_game
        (end_event,) = events.named("tournament_end")
        assert end_event.data.ranking.score_of("a") == 3
        assert len(events.named("tournament_start")) == 2
        assert t.participants == {}

    def test_start_watching_schedules_checks(self, registry, scheduler, clock, window):
        t = registry.register(_specific("cup", window))
        registry.start_watching(5)

        (handle,) = scheduler.periodic
        assert handle.period == 5

        clock.now = window[0] + timedelta(seconds=1)
        handle.fn()
        assert t.status is TournamentStatus.ACTIVE

    def test_start_watching_twice_is_ignored(self, registry, scheduler):
        registry.start_watching(5)
        registry.start_watching(5)
        assert len(scheduler.periodic) == 1


class TestBootAndShutdown:
    def test_boot_resumes_active_run_without_clearing(self, registry, storage, window, actions):
        storage.persist_score_update("cup", "a", 7)
        storage.persist_score_update("cup", "b", 2)
        t = registry.register(
            TournamentConfigBuilder("cup").window(*window).start_actions(["[LOG] go"]).build()
        )

        registry.boot()

        assert t.status is TournamentStatus.ACTIVE
        assert t.participants == {"a": 7, "b": 2}
        assert actions.calls == []

    def test_boot_leaves_waiting_tournament_alone(self, registry, clock, window):
        clock.now = window[0] - timedelta(days=1)
        t = registry.register(_specific("cup", window))
        registry.boot()
        assert t.status is TournamentStatus.WAITING
        assert t.game_id is None

    def test_shutdown_cancels_tasks_and_flushes_scores(self, registry, scheduler, storage, window):
        t = registry.register(_specific("cup", window))
        registry.start_watching(5)
        registry.check_statuses()
        t.add_score("a", 4)

        registry.shutdown()

        assert all(handle.cancelled for handle in scheduler.periodic)
        assert storage.get_score("cup", "a") == 4
        assert t.status is TournamentStatus.ACTIVE
