"""
Session management for the Big Two table.

This module handles seating, reconnects, restart voting, and WebSocket
delivery for the single table the server hosts.

A Room contains:
    - Up to three Seats, in join order (the order is the seating order)
    - A Game instance with the actual game state
    - The pending restart vote, if any
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from fastapi import WebSocket

from constants import NUM_PLAYERS
from game import Game

logger = logging.getLogger(__name__)


@dataclass
class Seat:
    """
    A seat at the table (session-level representation).

    This is separate from game.Player - Seat tracks the connection, while
    game.Player tracks the hand and undo budget. Both are keyed by username.

    Attributes:
        username: Stable identity across reconnects.
        websocket: Current connection, or None while disconnected.
    """

    username: str
    websocket: Optional[WebSocket] = None

    @property
    def connected(self) -> bool:
        return self.websocket is not None


class JoinResult(Enum):
    """Outcome of a join request."""

    SEATED = "seated"            # New lobby seat
    REBOUND = "rebound"          # Known username re-joined the lobby
    STARTED = "started"          # Third seat filled, game dealt
    RECONNECTED = "reconnected"  # Known username back into a dealt game
    FULL = "full"                # No seat available
    REJECTED = "rejected"        # Connection already holds another seat


class RestartVote(Enum):
    """Outcome of a restart vote."""

    IGNORED = "ignored"
    COUNTED = "counted"
    RESTARTED = "restarted"
    CANCELLED = "cancelled"


@dataclass
class Room:
    """
    The table: seats, game, and restart protocol.

    Attributes:
        seats: Seats in seating order.
        game: The Game instance containing actual game state.
        restart_votes: Usernames that voted yes on the pending restart.
        restart_requester: Who asked for the pending restart, if any.
        game_lock: asyncio.Lock serializing every game mutation.
    """

    seats: list[Seat] = field(default_factory=list)
    game: Game = field(default_factory=Game)
    restart_votes: set[str] = field(default_factory=set)
    restart_requester: Optional[str] = None
    game_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def __post_init__(self) -> None:
        self.game.turn_lock.on_release = self._announce_unlock

    # -------------------------------------------------------------------------
    # Seating
    # -------------------------------------------------------------------------

    def get_seat(self, username: str) -> Optional[Seat]:
        """Get a seat by username, or None if not seated."""
        for seat in self.seats:
            if seat.username == username:
                return seat
        return None

    def seat_for_websocket(self, websocket: WebSocket) -> Optional[Seat]:
        """Find the seat currently bound to a connection."""
        for seat in self.seats:
            if seat.websocket is websocket:
                return seat
        return None

    def join(self, username: str, websocket: WebSocket, seed: Optional[int] = None) -> JoinResult:
        """
        Seat a player, rebind a reconnecting one, or refuse.

        Filling the third seat deals the game immediately. A connection
        holds at most one seat.

        Args:
            username: Player identity.
            websocket: The connection the player joined on.
            seed: Optional shuffle seed for the deal (tests).
        """
        bound = self.seat_for_websocket(websocket)
        if bound is not None and bound.username != username:
            logger.info(f"Connection seated as {bound.username} tried to join as {username}")
            return JoinResult.REJECTED

        existing = self.get_seat(username)

        if self.game.is_dealt():
            if existing is None:
                logger.info(f"{username} tried to join a game in progress")
                return JoinResult.FULL
            existing.websocket = websocket
            logger.info(f"Player {username} reconnected")
            return JoinResult.RECONNECTED

        if existing is not None:
            existing.websocket = websocket
            return JoinResult.REBOUND

        if len(self.seats) >= NUM_PLAYERS or not self.game.add_player(username):
            return JoinResult.FULL

        self.seats.append(Seat(username=username, websocket=websocket))
        logger.info(f"{username} took seat {len(self.seats) - 1}")

        if len(self.seats) == NUM_PLAYERS:
            logger.info(f"{NUM_PLAYERS} players joined, starting game")
            self.game.start_game(seed=seed)
            return JoinResult.STARTED
        return JoinResult.SEATED

    def disconnect(self, websocket: WebSocket) -> Optional[Seat]:
        """
        Handle a dropped connection.

        During a dealt game the seat is kept so the table never shrinks;
        in the lobby the seat is freed.

        Returns:
            The affected Seat, or None if the connection was stale.
        """
        seat = self.seat_for_websocket(websocket)
        if seat is None:
            return None

        if self.game.is_dealt():
            seat.websocket = None
            logger.info(f"{seat.username} disconnected, seat kept")
        else:
            self.seats.remove(seat)
            self.game.remove_player(seat.username)
            logger.info(f"{seat.username} left the lobby")
        return seat

    def roster(self) -> list[dict]:
        """Seats for client display."""
        return [{"username": s.username, "connected": s.connected} for s in self.seats]

    # -------------------------------------------------------------------------
    # Restart protocol
    # -------------------------------------------------------------------------

    def request_restart(self, username: str) -> bool:
        """
        Open a restart vote. The requester counts as a yes.

        Returns:
            True if a vote was opened.
        """
        if not self.game.is_dealt() or self.get_seat(username) is None:
            return False
        self.restart_requester = username
        self.restart_votes = {username}
        logger.info(f"{username} requested restart")
        return True

    def vote_restart(self, username: str, vote: bool, seed: Optional[int] = None) -> RestartVote:
        """
        Record a restart vote.

        Any no cancels the pending restart for everyone. The last yes
        re-deals with the same seating order.

        Args:
            username: Voter.
            vote: True for yes.
            seed: Optional shuffle seed for the re-deal (tests).
        """
        if self.restart_requester is None or self.get_seat(username) is None:
            return RestartVote.IGNORED

        if not vote:
            logger.info(f"{username} voted no, restart cancelled")
            self._clear_restart()
            return RestartVote.CANCELLED

        self.restart_votes.add(username)
        logger.info(f"{username} voted yes ({len(self.restart_votes)}/{NUM_PLAYERS})")

        if len(self.restart_votes) < NUM_PLAYERS:
            return RestartVote.COUNTED

        logger.info("Restarting game")
        self.game.start_game(seed=seed)
        self._clear_restart()
        return RestartVote.RESTARTED

    def _clear_restart(self) -> None:
        self.restart_votes.clear()
        self.restart_requester = None

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    async def broadcast(self, message: dict, exclude: Optional[str] = None) -> None:
        """
        Send a message to every connected seat.

        Args:
            message: JSON-serializable message dict.
            exclude: Optional username to skip.
        """
        for seat in self.seats:
            if seat.username != exclude and seat.websocket:
                try:
                    await seat.websocket.send_json(message)
                except Exception as e:
                    logger.warning(f"Failed to send {message.get('type')} to {seat.username}: {e}")

    async def send_to(self, username: str, message: dict) -> None:
        """
        Send a message to one seat.

        Args:
            username: Recipient.
            message: JSON-serializable message dict.
        """
        seat = self.get_seat(username)
        if seat and seat.websocket:
            try:
                await seat.websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Failed to send {message.get('type')} to {username}: {e}")

    async def _announce_unlock(self) -> None:
        await self.broadcast({"type": "turn_unlocked"})
