"""Tests for join/departure bookkeeping and host election."""

import pytest

from poker.presence import PresenceManager
from poker.registry import ConnectionRegistry
from poker.state import RoomState


@pytest.fixture
def presence():
    return PresenceManager(RoomState(), ConnectionRegistry())


def join_all(presence, *ids):
    conns = {}
    for pid in ids:
        conns[pid] = object()
        presence.join(conns[pid], pid, pid.upper())
    return conns


class TestJoin:
    def test_first_joiner_becomes_host(self, presence):
        join_all(presence, "a")
        assert presence.state.host_id == "a"

    def test_later_joiners_do_not_take_host(self, presence):
        join_all(presence, "a", "b", "c")
        assert presence.state.host_id == "a"

    def test_stale_host_is_replaced_on_join(self, presence):
        join_all(presence, "a")
        presence.state.set_host("ghost")
        join_all(presence, "b")
        assert presence.state.host_id == "b"

    def test_joiner_gets_roster_then_ack(self, presence):
        conns = join_all(presence, "a")
        newcomer = object()
        outcome = presence.join(newcomer, "b", "Bob")
        roster, ack = outcome.messages_for(newcomer)
        assert roster["type"] == "roster"
        assert roster["participants"] == [{"id": "a", "name": "A"}, {"id": "b", "name": "Bob"}]
        assert roster["hostId"] == "a"
        assert ack == {"type": "joined", "id": "b"}
        assert outcome.messages_for(conns["a"]) == [{"type": "presence", "id": "b", "name": "Bob"}]

    def test_rejoin_under_new_id_drops_old_vote(self, presence):
        conns = join_all(presence, "a", "b")
        presence.state.cast_vote("b", 5)
        presence.join(conns["b"], "b2", "Bob")
        assert "b" not in presence.state.votes
        assert len(presence.registry) == 2


class TestDepart:
    def test_non_host_departure(self, presence):
        conns = join_all(presence, "a", "b")
        presence.state.cast_vote("b", 5)
        outcome = presence.depart(conns["b"])
        assert presence.state.host_id == "a"
        assert presence.state.votes == {}
        assert outcome.messages_for(conns["a"]) == [{"type": "leave", "id": "b"}]

    def test_host_departure_elects_earliest_remaining(self, presence):
        conns = join_all(presence, "a", "b", "c")
        outcome = presence.depart(conns["a"])
        assert presence.state.host_id == "b"
        assert outcome.messages_for(conns["c"]) == [
            {"type": "leave", "id": "a"},
            {"type": "host", "hostId": "b"},
        ]

    def test_departure_is_idempotent(self, presence):
        conns = join_all(presence, "a", "b")
        presence.depart(conns["a"])
        second = presence.depart(conns["a"])
        assert second.ignored
        assert presence.state.host_id == "b"
        assert len(presence.registry) == 1

    def test_last_departure_resets_room(self, presence):
        conns = join_all(presence, "a")
        presence.state.set_ticket("PROJ-9")
        presence.state.cast_vote("a", 2)
        presence.state.reveal()
        outcome = presence.depart(conns["a"])
        assert presence.state.is_initial()
        assert outcome.deliveries[0].targets == ()

    def test_departure_heals_stale_host(self, presence):
        conns = join_all(presence, "a", "b", "c")
        presence.state.set_host("ghost")
        presence.depart(conns["c"])
        assert presence.state.host_id == "a"


class TestTransfer:
    def test_transfer_broadcasts_to_everyone(self, presence):
        conns = join_all(presence, "a", "b")
        outcome = presence.transfer_host("b")
        assert presence.state.host_id == "b"
        for conn in conns.values():
            assert outcome.messages_for(conn) == [{"type": "host", "hostId": "b"}]

    def test_transfer_to_unknown_id_is_accepted(self, presence):
        join_all(presence, "a")
        presence.transfer_host("nobody")
        assert presence.state.host_id == "nobody"
