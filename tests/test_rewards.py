"""Tests for core.tournaments.rewards: live vs queued delivery."""

import pytest

from core.tournaments.rewards import DELIVERY_LIVE, DELIVERY_QUEUED, RewardDispatcher
from core.tournaments.scoreboard import RankingSnapshot


@pytest.fixture
def dispatcher(scheduler, actions, storage, players):
    return RewardDispatcher(
        scheduler=scheduler,
        actions=actions,
        storage=storage,
        players=players,
        tournament_id="cup",
    )


class TestDispatch:
    def test_each_rewarded_position_delivered_once(self, dispatcher, players, actions, storage):
        players.connect("a", "A")
        ranking = RankingSnapshot({"a": 9, "b": 5})
        rewards = {1: ("[LOG] one",), 2: ("[LOG] two",), 3: ("[LOG] three",)}

        outcomes = dispatcher.dispatch(rewards, ranking)

        assert [(o.position, o.participant_id, o.delivery) for o in outcomes] == [
            (1, "a", DELIVERY_LIVE),
            (2, "b", DELIVERY_QUEUED),
        ]
        assert actions.calls == [("a", ["[LOG] one"])]
        assert storage.pop_deferred_actions("b") == ["[LOG] two"]
        assert storage.pop_deferred_actions("a") == []

    def test_disconnected_player_is_queued(self, dispatcher, players, storage):
        players.connect("a", "A")
        players.disconnect("a")
        outcomes = dispatcher.dispatch({1: ("[LOG] x",)}, RankingSnapshot({"a": 1}))
        assert outcomes[0].delivery == DELIVERY_QUEUED
        assert storage.pending_action_count("a") == 1

    def test_empty_ranking_dispatches_nothing(self, dispatcher, actions):
        assert dispatcher.dispatch({1: ("[LOG] x",)}, RankingSnapshot()) == []
        assert actions.calls == []


class TestDispatchCompletion:
    def test_live_completion(self, dispatcher, players, actions):
        players.connect("a", "Alice")
        player, delivery = dispatcher.dispatch_completion("a", 1, {1: ("[LOG] first",)})
        assert player.name == "Alice"
        assert delivery == DELIVERY_LIVE
        assert actions.calls == [("a", ["[LOG] first"])]

    def test_offline_completion_is_queued(self, dispatcher, storage):
        player, delivery = dispatcher.dispatch_completion("b", 2, {2: ("[LOG] second",)})
        assert player.player_id == "b"
        assert player.online is False
        assert delivery == DELIVERY_QUEUED
        assert storage.pop_deferred_actions("b") == ["[LOG] second"]

    def test_unrewarded_rank(self, dispatcher, actions, storage):
        _, delivery = dispatcher.dispatch_completion("c", 4, {1: ("[LOG] first",)})
        assert delivery is None
        assert actions.calls == []
        assert storage.pending_action_count("c") == 0
