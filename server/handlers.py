"""WebSocket message handlers for the Big Two table.

Each handler corresponds to a single message type from the client.
Handlers are dispatched via the HANDLERS dict in main.py.

Invalid requests are dropped without a reply; the engine logs the reason.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import WebSocket

from combos import Combo, ComboType
from constants import NUM_PLAYERS
from game import GamePhase
from room import JoinResult, RestartVote, Room

logger = logging.getLogger(__name__)


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: WebSocket
    connection_id: str
    username: Optional[str] = None


def describe_play(username: str, combo: Combo) -> str:
    """Human-readable summary of a play for the table log."""
    if combo.type == ComboType.SINGLE:
        return f"{username} played {combo.cards[0]}"
    return f"{username} played {combo.type.value}"


async def send_game_started(room: Room, username: Optional[str] = None) -> None:
    """Send each seat (or one seat) the full game state including its hand."""
    for seat in room.seats:
        if username is not None and seat.username != username:
            continue
        await room.send_to(seat.username, {
            "type": "game_started",
            **room.game.get_state(seat.username),
        })


async def broadcast_game_update(room: Room, last_action: str) -> None:
    await room.broadcast({
        "type": "game_updated",
        **room.game.get_public_state(),
        "last_action": last_action,
    })


async def send_hand_update(room: Room, username: str) -> None:
    player = room.game.get_player(username)
    if player:
        await room.send_to(username, {
            "type": "hand_updated",
            "hand": player.hand_to_dict(),
        })


async def broadcast_undo_budgets(room: Room) -> None:
    await room.broadcast({
        "type": "undo_budgets_updated",
        "undo_budgets": room.game.undo_budgets(),
    })


async def broadcast_roster(room: Room) -> None:
    await room.broadcast({
        "type": "player_roster_updated",
        "players": room.roster(),
    })


def acting_username(ctx: ConnectionContext, room: Room) -> Optional[str]:
    """
    Username this connection may act as.

    A seat answers only to the connection currently bound to it, so a
    socket replaced by a reconnect can no longer act.
    """
    if not ctx.username:
        return None
    seat = room.get_seat(ctx.username)
    if seat is None or seat.websocket is not ctx.websocket:
        logger.info(f"Ignoring message from a stale connection for {ctx.username}")
        return None
    return ctx.username


# ---------------------------------------------------------------------------
# Lobby handlers
# ---------------------------------------------------------------------------

async def handle_join(data: dict, ctx: ConnectionContext, *, room: Room, **kw) -> None:
    username = data.get("username")
    if not isinstance(username, str) or not username.strip():
        logger.debug("join: missing username")
        return
    username = username.strip()

    async with room.game_lock:
        result = room.join(username, ctx.websocket)

        if result == JoinResult.REJECTED:
            return

        if result == JoinResult.FULL:
            await ctx.websocket.send_json({"type": "game_full"})
            return

        ctx.username = username

        if result == JoinResult.RECONNECTED:
            await send_game_started(room, username)
            return

        await broadcast_roster(room)

        if result == JoinResult.STARTED:
            await send_game_started(room)


# ---------------------------------------------------------------------------
# Turn action handlers
# ---------------------------------------------------------------------------

async def handle_play_turn(data: dict, ctx: ConnectionContext, *, room: Room, **kw) -> None:
    indices = data.get("indices", [])
    async with room.game_lock:
        username = acting_username(ctx, room)
        if username is None:
            return

        combo = room.game.play_turn(username, indices)
        if combo is None:
            return

        await broadcast_game_update(room, describe_play(username, combo))
        await send_hand_update(room, username)
        await broadcast_undo_budgets(room)

        if room.game.phase == GamePhase.WON:
            await room.broadcast({"type": "game_won", "winner": room.game.winner})


async def handle_pass_turn(data: dict, ctx: ConnectionContext, *, room: Room, **kw) -> None:
    async with room.game_lock:
        username = acting_username(ctx, room)
        if username is None:
            return

        result = room.game.pass_turn(username)
        if result is None:
            return

        action = f"{username} passed"
        if result.round_won_by:
            action = f"{username} passed. Round won by {result.round_won_by}!"
        await broadcast_game_update(room, action)


async def handle_undo_turn(data: dict, ctx: ConnectionContext, *, room: Room, **kw) -> None:
    async with room.game_lock:
        username = acting_username(ctx, room)
        if username is None or not room.game.undo(username):
            return

        await broadcast_game_update(room, f"{username} undid their last move.")
        await send_hand_update(room, username)
        await broadcast_undo_budgets(room)


async def handle_get_combo_options(data: dict, ctx: ConnectionContext, *, room: Room, **kw) -> None:
    username = acting_username(ctx, room)
    if username is None:
        return

    options = room.game.combo_options(username)
    if options is not None:
        await ctx.websocket.send_json({"type": "combo_options", **options})


# ---------------------------------------------------------------------------
# Restart handlers
# ---------------------------------------------------------------------------

async def handle_request_restart(data: dict, ctx: ConnectionContext, *, room: Room, **kw) -> None:
    async with room.game_lock:
        username = acting_username(ctx, room)
        if username is None or not room.request_restart(username):
            return

        await room.broadcast({"type": "restart_requested", "requester": username})
        await room.broadcast({"type": "restart_vote_tally", "count": len(room.restart_votes)})


async def handle_vote_restart(data: dict, ctx: ConnectionContext, *, room: Room, **kw) -> None:
    vote = data.get("vote")
    if not isinstance(vote, bool):
        logger.debug(f"vote_restart: ignoring non-boolean vote {vote!r}")
        return

    async with room.game_lock:
        username = acting_username(ctx, room)
        if username is None:
            return

        outcome = room.vote_restart(username, vote)

        if outcome == RestartVote.CANCELLED:
            await room.broadcast({"type": "restart_cancelled"})
        elif outcome == RestartVote.COUNTED:
            await room.broadcast({"type": "restart_vote_tally", "count": len(room.restart_votes)})
        elif outcome == RestartVote.RESTARTED:
            await room.broadcast({"type": "restart_vote_tally", "count": NUM_PLAYERS})
            await send_game_started(room)


# ---------------------------------------------------------------------------
# Handler dispatch table
# ---------------------------------------------------------------------------

HANDLERS = {
    "join": handle_join,
    "play_turn": handle_play_turn,
    "pass_turn": handle_pass_turn,
    "undo_turn": handle_undo_turn,
    "get_combo_options": handle_get_combo_options,
    "request_restart": handle_request_restart,
    "vote_restart": handle_vote_restart,
}
