"""
Test suite for the table session: seating, reconnects, restarts, delivery.

Covers:
- Lobby seating and the third-join deal
- Game full and reconnect during a dealt game
- Disconnect keeps seats in a game, frees them in the lobby
- Unanimous restart voting and the single-no veto
- Message broadcast and send_to

Run with: pytest test_room.py -v
"""

import asyncio

import pytest

from cards import Card, Rank, Suit
from game import GamePhase
from room import JoinResult, RestartVote, Room

PLAYERS = ["roy", "lomba", "gaal"]


# =============================================================================
# Mock helpers
# =============================================================================

class MockWebSocket:
    """Mock WebSocket that collects sent messages."""

    def __init__(self):
        self.messages: list[dict] = []

    async def send_json(self, data: dict):
        self.messages.append(data)

    def messages_of_type(self, msg_type: str) -> list[dict]:
        return [m for m in self.messages if m.get("type") == msg_type]


class BrokenWebSocket:
    """WebSocket whose peer has gone away."""

    async def send_json(self, data: dict):
        raise RuntimeError("socket closed")


def make_full_room() -> tuple[Room, dict[str, MockWebSocket]]:
    room = Room()
    sockets = {name: MockWebSocket() for name in PLAYERS}
    for name in PLAYERS:
        room.join(name, sockets[name], seed=1)
    return room, sockets


# =============================================================================
# Seating
# =============================================================================

class TestJoin:

    def test_first_join_seated(self):
        room = Room()
        assert room.join("roy", MockWebSocket()) == JoinResult.SEATED
        assert room.roster() == [{"username": "roy", "connected": True}]
        assert room.game.phase == GamePhase.WAITING

    def test_third_join_deals(self):
        room = Room()
        room.join("roy", MockWebSocket())
        room.join("lomba", MockWebSocket())
        assert room.join("gaal", MockWebSocket(), seed=1) == JoinResult.STARTED
        assert room.game.phase == GamePhase.IN_PROGRESS
        assert [p.username for p in room.game.players] == PLAYERS

    def test_rejoin_in_lobby_rebinds(self):
        room = Room()
        room.join("roy", MockWebSocket())
        ws = MockWebSocket()
        assert room.join("roy", ws) == JoinResult.REBOUND
        assert len(room.seats) == 1
        assert room.get_seat("roy").websocket is ws

    def test_connection_holds_one_seat(self):
        room = Room()
        ws = MockWebSocket()
        room.join("roy", ws)
        assert room.join("lomba", ws) == JoinResult.REJECTED
        assert [s.username for s in room.seats] == ["roy"]

        room.disconnect(ws)
        assert room.seats == []
        assert room.game.players == []

    def test_unknown_user_after_deal_is_full(self):
        room, _ = make_full_room()
        assert room.join("extra", MockWebSocket()) == JoinResult.FULL
        assert len(room.seats) == 3

    def test_reconnect_after_deal(self):
        room, _ = make_full_room()
        hand = list(room.game.get_player("lomba").hand)
        ws = MockWebSocket()
        assert room.join("lomba", ws) == JoinResult.RECONNECTED
        assert room.get_seat("lomba").websocket is ws
        assert room.game.get_player("lomba").hand == hand

    def test_full_after_win(self):
        room, _ = make_full_room()
        room.game.phase = GamePhase.WON
        assert room.join("extra", MockWebSocket()) == JoinResult.FULL


class TestDisconnect:

    def test_lobby_disconnect_frees_seat(self):
        room = Room()
        ws = MockWebSocket()
        room.join("roy", ws)
        room.join("lomba", MockWebSocket())
        seat = room.disconnect(ws)
        assert seat.username == "roy"
        assert [s.username for s in room.seats] == ["lomba"]
        assert room.game.get_player("roy") is None

    def test_game_disconnect_keeps_seat(self):
        room, sockets = make_full_room()
        room.disconnect(sockets["gaal"])
        assert len(room.seats) == 3
        assert not room.get_seat("gaal").connected
        assert room.game.get_player("gaal").card_count() == 17

    def test_stale_socket_ignored(self):
        room, _ = make_full_room()
        assert room.disconnect(MockWebSocket()) is None

    def test_stale_socket_after_reconnect(self):
        room, sockets = make_full_room()
        room.join("roy", MockWebSocket())
        assert room.disconnect(sockets["roy"]) is None
        assert room.get_seat("roy").connected


# =============================================================================
# Restart protocol
# =============================================================================

class TestRestart:

    def test_request_requires_dealt_game(self):
        room = Room()
        room.join("roy", MockWebSocket())
        assert not room.request_restart("roy")

    def test_request_counts_requester(self):
        room, _ = make_full_room()
        assert room.request_restart("roy")
        assert room.restart_requester == "roy"
        assert room.restart_votes == {"roy"}

    def test_unseated_cannot_request(self):
        room, _ = make_full_room()
        assert not room.request_restart("extra")

    def test_vote_without_request_ignored(self):
        room, _ = make_full_room()
        assert room.vote_restart("roy", True) == RestartVote.IGNORED

    def test_unanimous_yes_redeals(self):
        room, _ = make_full_room()
        game = room.game
        opener = game.current_player()
        game.play_turn(opener.username, [opener.hand.index(Card(Rank.THREE, Suit.CLUBS))])
        assert len(game.table_cards) == 1

        room.request_restart("roy")
        assert room.vote_restart("lomba", True) == RestartVote.COUNTED
        assert room.vote_restart("gaal", True, seed=2) == RestartVote.RESTARTED

        assert game.table_cards == []
        assert game.play_history == []
        assert len(game.history) == 0
        assert game.undo_budgets() == {"roy": 3, "lomba": 3, "gaal": 3}
        assert [p.username for p in game.players] == PLAYERS
        assert room.restart_requester is None
        assert room.restart_votes == set()

    def test_duplicate_yes_not_double_counted(self):
        room, _ = make_full_room()
        room.request_restart("roy")
        assert room.vote_restart("roy", True) == RestartVote.COUNTED
        assert room.vote_restart("lomba", True) == RestartVote.COUNTED
        assert len(room.restart_votes) == 2

    def test_single_no_cancels(self):
        room, _ = make_full_room()
        room.request_restart("roy")
        room.vote_restart("lomba", True)
        assert room.vote_restart("gaal", False) == RestartVote.CANCELLED
        assert room.restart_requester is None
        assert room.restart_votes == set()
        assert room.vote_restart("gaal", True) == RestartVote.IGNORED

    def test_restart_after_win(self):
        room, _ = make_full_room()
        room.game.phase = GamePhase.WON
        room.game.winner = "roy"
        room.request_restart("lomba")
        room.vote_restart("roy", True)
        assert room.vote_restart("gaal", True) == RestartVote.RESTARTED
        assert room.game.phase == GamePhase.IN_PROGRESS
        assert room.game.winner is None


# =============================================================================
# Delivery
# =============================================================================

class TestBroadcast:

    @pytest.mark.asyncio
    async def test_broadcast_reaches_connected_seats(self):
        room, sockets = make_full_room()
        room.disconnect(sockets["gaal"])
        await room.broadcast({"type": "ping"})
        assert sockets["roy"].messages == [{"type": "ping"}]
        assert sockets["lomba"].messages == [{"type": "ping"}]
        assert sockets["gaal"].messages == []

    @pytest.mark.asyncio
    async def test_broadcast_exclude(self):
        room, sockets = make_full_room()
        await room.broadcast({"type": "ping"}, exclude="roy")
        assert sockets["roy"].messages == []
        assert len(sockets["gaal"].messages) == 1

    @pytest.mark.asyncio
    async def test_broken_socket_does_not_abort_broadcast(self):
        room, sockets = make_full_room()
        room.get_seat("roy").websocket = BrokenWebSocket()
        await room.broadcast({"type": "ping"})
        assert sockets["lomba"].messages == [{"type": "ping"}]
        assert sockets["gaal"].messages == [{"type": "ping"}]

    @pytest.mark.asyncio
    async def test_send_to(self):
        room, sockets = make_full_room()
        await room.send_to("lomba", {"type": "hello"})
        await room.send_to("nobody", {"type": "hello"})
        assert sockets["lomba"].messages == [{"type": "hello"}]
        assert sockets["roy"].messages == []

    @pytest.mark.asyncio
    async def test_lock_expiry_announced(self):
        room, sockets = make_full_room()
        room.game.turn_lock.seconds = 0.01
        room.game.turn_lock.arm()
        await asyncio.sleep(0.05)
        for ws in sockets.values():
            assert ws.messages_of_type("turn_unlocked") == [{"type": "turn_unlocked"}]
