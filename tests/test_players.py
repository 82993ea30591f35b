"""Tests for services.players.directory: presence tracking and deferred delivery on connect."""

from services.players.directory import InMemoryPlayerDirectory


class TestPresence:
    def test_unknown_player(self, players):
        assert players.get_player("x") is None
        assert players.is_online("x") is False
        offline = players.get_offline_player("x")
        assert (offline.player_id, offline.name, offline.online) == ("x", "x", False)

    def test_connect_and_disconnect(self, players):
        players.connect("p", "Pat")
        assert players.get_player("p").name == "Pat"
        assert [p.player_id for p in players.online_players()] == ["p"]

        players.disconnect("p")
        assert players.get_player("p") is None
        assert players.get_offline_player("p").name == "Pat"

    def test_reconnect_keeps_known_name(self, players):
        players.connect("p", "Pat")
        players.disconnect("p")
        assert players.connect("p").name == "Pat"


class TestDeferredDelivery:
    def test_queued_actions_run_on_connect(self, storage, actions, scheduler):
        directory = InMemoryPlayerDirectory(storage=storage, actions=actions, scheduler=scheduler)
        storage.enqueue_deferred_actions("p", ["[LOG] one", "[LOG] two"])

        directory.connect("p", "Pat")

        assert actions.calls == [("p", ["[LOG] one", "[LOG] two"])]
        assert storage.pending_action_count("p") == 0

    def test_delivery_happens_once(self, storage, actions, scheduler):
        directory = InMemoryPlayerDirectory(storage=storage, actions=actions, scheduler=scheduler)
        storage.enqueue_deferred_actions("p", ["[LOG] one"])

        directory.connect("p")
        directory.disconnect("p")
        directory.connect("p")

        assert len(actions.calls) == 1

    def test_nothing_queued_executes_nothing(self, storage, actions, scheduler):
        directory = InMemoryPlayerDirectory(storage=storage, actions=actions, scheduler=scheduler)
        directory.connect("p")
        assert actions.calls == []
