"""
Game logic for three-player Big Two.

This module implements the authoritative turn and round state machine:
dealing, whose turn it is, what combo owns the table, soft round resets,
undo, and win detection.

Big Two Rules Summary:
    - 51 cards (3 of diamonds removed), 17 per player, three seats
    - The player holding the 3 of clubs opens, and must open with it as a single
    - Turns rotate anti-clockwise: seat index decreases by one each action
    - A round is owned by the type of its opening combo; later plays must be
      the same type with a strictly higher value
    - If both other players pass back to the last player who played, that
      player wins the round and opens the next one with anything
    - First player to empty their hand wins the game

Table Layout:
    table_cards keeps every card played this game. round_start_index marks
    where the current round begins, so a round reset never discards history:

        table_cards:  [ 3C  5H  8S | 4D 4C 4H 4S 9D | ... ]
                                   ^ round_start_index
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from cards import Card, Deck
from combos import Combo, ComboType, find_combo_options, identify_combo
from constants import MAX_UNDO, NUM_PLAYERS, TURN_LOCK_ENFORCED
from history import GameSnapshot, PlayRecord, SnapshotHistory
from turn_lock import TurnLock

logger = logging.getLogger(__name__)


@dataclass
class Player:
    """
    A seated player in the game.

    Attributes:
        username: Stable identity, survives reconnects.
        hand: Cards held, in dealt order. Clients refer to cards by index.
        undo_budget: Undos left this game.
    """

    username: str
    hand: list[Card] = field(default_factory=list)
    undo_budget: int = MAX_UNDO

    def card_count(self) -> int:
        return len(self.hand)

    def hand_to_dict(self) -> list[dict]:
        return [card.to_dict() for card in self.hand]


class GamePhase(Enum):
    """
    Phases of a game.

    Flow: WAITING -> DEALING -> IN_PROGRESS -> WON
    A unanimous restart re-deals from IN_PROGRESS or WON.
    """

    WAITING = "waiting"          # Lobby, fewer than three seats filled
    DEALING = "dealing"          # Transient while hands are dealt
    IN_PROGRESS = "in_progress"  # Turns are being played
    WON = "won"                  # Someone emptied their hand


@dataclass
class PassResult:
    """Outcome of an accepted pass."""

    round_won_by: Optional[str] = None


@dataclass
class Game:
    """
    Main game state and rules controller.

    All player-facing operations validate first and mutate only on
    acceptance. Invalid requests return None/False and leave the state
    untouched; nothing is raised for bad player input.

    Attributes:
        players: Seated players in fixed seat order.
        phase: Current game phase.
        turn_index: Seat whose turn it is.
        table_cards: Every card played this game.
        round_start_index: Offset into table_cards where the round began.
        active_combo_type: Type owning the current round (None if empty).
        active_combo_value: Value to beat (0 if empty).
        play_history: One record per executed play.
        last_player_to_play: Username of the last player who played cards.
        last_actor: Username of the last player who played or passed.
        winner: Username of the winner once phase is WON.
        history: Snapshots for undo.
        turn_lock: Post-play undo window.
        enforce_turn_lock: Reject plays and passes while the lock is armed.
        max_undo: Undo budget each player starts a game with.
        deck_seed: Seed of the last deal.
    """

    players: list[Player] = field(default_factory=list)
    phase: GamePhase = GamePhase.WAITING
    turn_index: int = 0
    table_cards: list[Card] = field(default_factory=list)
    round_start_index: int = 0
    active_combo_type: Optional[ComboType] = None
    active_combo_value: int = 0
    play_history: list[PlayRecord] = field(default_factory=list)
    last_player_to_play: Optional[str] = None
    last_actor: Optional[str] = None
    winner: Optional[str] = None
    history: SnapshotHistory = field(default_factory=SnapshotHistory)
    turn_lock: TurnLock = field(default_factory=TurnLock)
    enforce_turn_lock: bool = TURN_LOCK_ENFORCED
    max_undo: int = MAX_UNDO
    deck_seed: Optional[int] = None

    # -------------------------------------------------------------------------
    # Player Management
    # -------------------------------------------------------------------------

    def add_player(self, username: str) -> bool:
        """
        Seat a player in the lobby.

        Returns:
            True if seated, False if the lobby is closed, full, or the
            username is already seated.
        """
        if self.phase != GamePhase.WAITING:
            return False
        if self.is_full() or self.get_player(username):
            return False
        self.players.append(Player(username=username, undo_budget=self.max_undo))
        return True

    def remove_player(self, username: str) -> Optional[Player]:
        """
        Free a lobby seat. Seats are never freed once a game is dealt.

        Returns:
            The removed Player, or None if not found or a game is dealt.
        """
        if self.phase != GamePhase.WAITING:
            return None
        for i, player in enumerate(self.players):
            if player.username == username:
                return self.players.pop(i)
        return None

    def get_player(self, username: str) -> Optional[Player]:
        """Find a seated player by username."""
        for player in self.players:
            if player.username == username:
                return player
        return None

    def seat_of(self, username: str) -> Optional[int]:
        """Seat index of a player, or None if not seated."""
        for i, player in enumerate(self.players):
            if player.username == username:
                return i
        return None

    def current_player(self) -> Optional[Player]:
        """Get the player whose turn it currently is."""
        if self.players:
            return self.players[self.turn_index]
        return None

    def is_full(self) -> bool:
        return len(self.players) >= NUM_PLAYERS

    def is_dealt(self) -> bool:
        """True once hands exist: the game is in progress or already won."""
        return self.phase in (GamePhase.IN_PROGRESS, GamePhase.WON)

    # -------------------------------------------------------------------------
    # Game Lifecycle
    # -------------------------------------------------------------------------

    def start_game(self, seed: Optional[int] = None) -> None:
        """
        Deal a fresh game to the seated players.

        Used both for the first deal and for restarts; seat order is kept.
        Clears the table, play log, undo history and turn lock, restores
        every undo budget, and gives the turn to whoever holds the 3 of clubs.

        Args:
            seed: Optional shuffle seed for a reproducible deal.

        Raises:
            ValueError: If fewer than three players are seated.
        """
        if len(self.players) != NUM_PLAYERS:
            raise ValueError(f"Need exactly {NUM_PLAYERS} players to deal, have {len(self.players)}")

        self.phase = GamePhase.DEALING
        self.turn_lock.cancel()

        deck = Deck(seed=seed)
        self.deck_seed = deck.seed
        for player, hand in zip(self.players, deck.deal()):
            player.hand = hand
            player.undo_budget = self.max_undo

        self.table_cards = []
        self.round_start_index = 0
        self.active_combo_type = None
        self.active_combo_value = 0
        self.play_history = []
        self.last_player_to_play = None
        self.last_actor = None
        self.winner = None
        self.history.clear()

        self.turn_index = self.opening_seat()
        self.phase = GamePhase.IN_PROGRESS
        logger.info(
            f"Game dealt (seed={self.deck_seed}), "
            f"{self.players[self.turn_index].username} holds the 3 of clubs"
        )

    def opening_seat(self) -> int:
        """Seat holding the 3 of clubs."""
        for i, player in enumerate(self.players):
            if any(card.is_opening_card() for card in player.hand):
                return i
        raise ValueError("No player holds the 3 of clubs")

    # -------------------------------------------------------------------------
    # Round State
    # -------------------------------------------------------------------------

    @property
    def active_table_cards(self) -> list[Card]:
        """Cards played in the current round."""
        return self.table_cards[self.round_start_index:]

    @property
    def is_first_play(self) -> bool:
        """Nothing has been played yet this game."""
        return not self.table_cards and self.round_start_index == 0

    def _next_seat(self) -> int:
        # Anti-clockwise rotation
        return (self.turn_index - 1 + NUM_PLAYERS) % NUM_PLAYERS

    def _can_act(self, username: str, action: str) -> Optional[Player]:
        if self.phase != GamePhase.IN_PROGRESS:
            logger.info(f"{action}: rejected from {username}, game is {self.phase.value}")
            return None
        current = self.current_player()
        if current is None or current.username != username:
            logger.info(
                f"{action}: not {username}'s turn "
                f"(current turn is {current.username if current else None})"
            )
            return None
        if self.enforce_turn_lock and self.turn_lock.locked:
            logger.info(f"{action}: {username} tried to act during the turn lock")
            return None
        return current

    # -------------------------------------------------------------------------
    # Turn Actions
    # -------------------------------------------------------------------------

    def play_turn(self, username: str, indices: list[int]) -> Optional[Combo]:
        """
        Play cards from the current player's hand.

        Args:
            username: Player attempting the play.
            indices: Positions of the cards in the player's hand.

        Returns:
            The played Combo, or None if the play was rejected.
        """
        player = self._can_act(username, "play_turn")
        if player is None:
            return None

        if not self._valid_indices(player, indices):
            logger.info(f"play_turn: invalid indices {indices!r} from {username}")
            return None

        cards = [player.hand[i] for i in indices]
        combo = identify_combo(cards)
        if combo is None:
            logger.info(f"play_turn: {username} played an invalid combination {[str(c) for c in cards]}")
            return None

        if self.active_combo_type is None:
            if self.is_first_play:
                if combo.type != ComboType.SINGLE or not cards[0].is_opening_card():
                    logger.info(f"play_turn: {username} must open the game with the 3 of clubs as a single")
                    return None
        elif combo.type != self.active_combo_type:
            logger.info(
                f"play_turn: {username} must play {self.active_combo_type.value}, "
                f"played {combo.type.value}"
            )
            return None
        elif combo.value <= self.active_combo_value:
            logger.info(
                f"play_turn: {username}'s {combo.type.value} ({combo.value}) does not beat "
                f"{self.active_combo_value}"
            )
            return None

        self._save_snapshot()

        for i in sorted(indices, reverse=True):
            del player.hand[i]

        self.table_cards.extend(cards)
        self.play_history.append(PlayRecord(player=username, card_count=len(cards)))
        self.active_combo_type = combo.type
        self.active_combo_value = combo.value
        self.turn_index = self._next_seat()
        self.last_player_to_play = username
        self.last_actor = username
        logger.info(f"{username} played {combo.type.value} ({combo.value})")

        if not player.hand:
            self.phase = GamePhase.WON
            self.winner = username
            self.turn_lock.cancel()
            logger.info(f"{username} has won the game")
        else:
            self.turn_lock.arm()

        return combo

    @staticmethod
    def _valid_indices(player: Player, indices: list[int]) -> bool:
        if not isinstance(indices, list) or not indices:
            return False
        if len(set(indices)) != len(indices):
            return False
        return all(
            isinstance(i, int) and not isinstance(i, bool) and 0 <= i < len(player.hand)
            for i in indices
        )

    def pass_turn(self, username: str) -> Optional[PassResult]:
        """
        Pass the current player's turn.

        If the turn comes back round to the last player who played, that
        player has won the round and the table soft-resets: a new round starts
        after the existing cards, which stay on the table.

        Returns:
            PassResult (naming the round winner on a reset), or None if rejected.
        """
        if self._can_act(username, "pass_turn") is None:
            return None

        self._save_snapshot()

        next_seat = self._next_seat()
        next_player = self.players[next_seat].username
        result = PassResult()

        if next_player == self.last_player_to_play:
            self.round_start_index = len(self.table_cards)
            self.active_combo_type = None
            self.active_combo_value = 0
            result.round_won_by = next_player
            logger.info(f"Round won by {next_player}, soft reset at {self.round_start_index}")

        self.turn_index = next_seat
        self.last_actor = username
        logger.info(f"{username} passed")
        return result

    # -------------------------------------------------------------------------
    # Undo
    # -------------------------------------------------------------------------

    def _save_snapshot(self) -> None:
        self.history.push(GameSnapshot(
            table_cards=tuple(self.table_cards),
            hands=tuple((p.username, tuple(p.hand)) for p in self.players),
            turn_index=self.turn_index,
            active_combo_type=self.active_combo_type,
            active_combo_value=self.active_combo_value,
            round_start_index=self.round_start_index,
            last_player_to_play=self.last_player_to_play,
            last_actor=self.last_actor,
            play_history=tuple(self.play_history),
        ))

    def _restore(self, snapshot: GameSnapshot) -> None:
        hands = snapshot.hands_dict()
        for player in self.players:
            player.hand = hands.get(player.username, [])
        self.table_cards = list(snapshot.table_cards)
        self.turn_index = snapshot.turn_index
        self.active_combo_type = snapshot.active_combo_type
        self.active_combo_value = snapshot.active_combo_value
        self.round_start_index = snapshot.round_start_index
        self.last_player_to_play = snapshot.last_player_to_play
        self.last_actor = snapshot.last_actor
        self.play_history = list(snapshot.play_history)

    def undo(self, username: str) -> bool:
        """
        Roll back the most recent play or pass.

        Only the player who acted last may undo, and only while they have
        budget left. Undo does not consume a turn or re-arm the turn lock;
        rolling back a play releases the lock that play armed.

        Returns:
            True if the state was rolled back.
        """
        if self.phase != GamePhase.IN_PROGRESS:
            logger.info(f"undo_turn: rejected from {username}, game is {self.phase.value}")
            return False

        player = self.get_player(username)
        if player is None or player.undo_budget <= 0:
            logger.info(f"undo_turn: {username} has no undos left")
            return False

        if self.last_actor != username:
            logger.info(f"undo_turn: {username} is not the last actor ({self.last_actor})")
            return False

        snapshot = self.history.pop()
        if snapshot is None:
            logger.info(f"undo_turn: no previous state to restore for {username}")
            return False

        # The lock armed by a rolled-back play no longer guards anything
        undoing_play = len(snapshot.play_history) < len(self.play_history)
        self._restore(snapshot)
        if undoing_play:
            self.turn_lock.cancel()
        player.undo_budget -= 1
        logger.info(f"{username} undid their last move, {player.undo_budget} undos left")
        return True

    def undo_budgets(self) -> dict[str, int]:
        return {p.username: p.undo_budget for p in self.players}

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def combo_options(self, username: str) -> Optional[dict[str, list[list[int]]]]:
        """5-card combos in a player's hand that could be played right now."""
        player = self.get_player(username)
        if player is None:
            return None
        return find_combo_options(player.hand, self.active_combo_type, self.active_combo_value)

    def get_public_state(self) -> dict:
        """
        Game state visible to every seat.

        Returns:
            Dict with turn, table, round, active combo, play log, per-player
            card counts, undo budgets and the lock flag.
        """
        return {
            "phase": self.phase.value,
            "turn_index": self.turn_index,
            "table_cards": [card.to_dict() for card in self.table_cards],
            "round_start_index": self.round_start_index,
            "play_history": [record.to_dict() for record in self.play_history],
            "active_combo_type": self.active_combo_type.value if self.active_combo_type else None,
            "active_combo_value": self.active_combo_value,
            "players": [
                {"username": p.username, "card_count": p.card_count()}
                for p in self.players
            ],
            "undo_budgets": self.undo_budgets(),
            "turn_locked": self.turn_lock.locked,
            "winner": self.winner,
        }

    def get_state(self, for_username: str) -> dict:
        """
        Public state plus the private hand of one player.

        Args:
            for_username: The player who will receive this state.
        """
        state = self.get_public_state()
        player = self.get_player(for_username)
        state["hand"] = player.hand_to_dict() if player else []
        return state
