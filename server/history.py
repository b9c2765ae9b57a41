"""
Undo support: immutable game snapshots and a bounded snapshot stack.

A snapshot is taken before every accepted play or pass. Cards are frozen
dataclasses, so a snapshot only copies the containers (tuples) and shares
the card objects with the live state.
"""

from collections import deque
from dataclasses import dataclass
from typing import Optional

from cards import Card
from combos import ComboType
from constants import MAX_HISTORY


@dataclass(frozen=True)
class PlayRecord:
    """One executed play: who played and how many cards."""

    player: str
    card_count: int

    def to_dict(self) -> dict:
        return {"player": self.player, "card_count": self.card_count}


@dataclass(frozen=True)
class GameSnapshot:
    """
    Full mutable game state at a point in time.

    Attributes:
        table_cards: Every card played this game, in order.
        hands: (username, hand) pairs in seat order.
        turn_index: Seat whose turn it is.
        active_combo_type: Combo type owning the current round, if any.
        active_combo_value: Value of that combo (0 when the round is empty).
        round_start_index: Offset into table_cards where the round began.
        last_player_to_play: Username of the last player who played cards.
        last_actor: Username of the last player who played or passed.
        play_history: Play log at the time of the snapshot.
    """

    table_cards: tuple[Card, ...]
    hands: tuple[tuple[str, tuple[Card, ...]], ...]
    turn_index: int
    active_combo_type: Optional[ComboType]
    active_combo_value: int
    round_start_index: int
    last_player_to_play: Optional[str]
    last_actor: Optional[str]
    play_history: tuple[PlayRecord, ...]

    def hands_dict(self) -> dict[str, list[Card]]:
        """Rebuild mutable hands from the snapshot."""
        return {username: list(hand) for username, hand in self.hands}


class SnapshotHistory:
    """
    Bounded LIFO stack of snapshots.

    Pushing past the limit silently drops the oldest snapshot.
    """

    def __init__(self, max_size: int = MAX_HISTORY) -> None:
        self._snapshots: deque[GameSnapshot] = deque(maxlen=max_size)

    def push(self, snapshot: GameSnapshot) -> None:
        self._snapshots.append(snapshot)

    def pop(self) -> Optional[GameSnapshot]:
        """Remove and return the most recent snapshot, or None if empty."""
        if not self._snapshots:
            return None
        return self._snapshots.pop()

    def clear(self) -> None:
        self._snapshots.clear()

    def __len__(self) -> int:
        return len(self._snapshots)
