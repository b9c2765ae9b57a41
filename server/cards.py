"""
Cards, the 51-card deck, and dealing for three-player Big Two.

The deck is a standard 52-card deck with the 3 of diamonds removed, so it
splits evenly into three 17-card hands. Whoever is dealt the 3 of clubs
opens the game.
"""

import random
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from constants import (
    DECK_SIZE,
    HAND_SIZE,
    NUM_PLAYERS,
    OPENING_CARD,
    RANK_INDEX,
    REMOVED_CARD,
    SUIT_INDEX,
)


class Suit(Enum):
    """Card suits, declared weakest to strongest."""

    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    HEARTS = "hearts"
    SPADES = "spades"


class Rank(Enum):
    """
    Card ranks, declared weakest to strongest.

    Big Two ordering puts the 2 above the Ace; the 3 is the lowest rank.
    """

    THREE = "3"
    FOUR = "4"
    FIVE = "5"
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"
    ACE = "A"
    TWO = "2"

    @property
    def index(self) -> int:
        """1-based strength of the rank (3 -> 1, 2 -> 13)."""
        return RANK_INDEX[self.value]


@dataclass(frozen=True)
class Card:
    """
    An immutable playing card.

    Attributes:
        rank: The card's rank (3-10, J, Q, K, A, 2).
        suit: The card's suit.
    """

    rank: Rank
    suit: Suit

    def value(self) -> int:
        """Comparison value: rank index * 10 + suit index."""
        return self.rank.index * 10 + SUIT_INDEX[self.suit.value]

    def is_opening_card(self) -> bool:
        """True for the 3 of clubs."""
        return (self.rank.value, self.suit.value) == OPENING_CARD

    def to_dict(self) -> dict:
        """Convert card to dictionary for JSON serialization."""
        return {"rank": self.rank.value, "suit": self.suit.value}

    @classmethod
    def from_dict(cls, data: dict) -> "Card":
        """Build a card from its serialized form."""
        return cls(Rank(data["rank"]), Suit(data["suit"]))

    def __str__(self) -> str:
        return f"{self.rank.value} of {self.suit.value}"


OPENING = Card(Rank(OPENING_CARD[0]), Suit(OPENING_CARD[1]))


def generate_deck() -> list[Card]:
    """Build the 51-card universe: every rank/suit pair except the 3 of diamonds."""
    return [
        Card(rank, suit)
        for suit in Suit
        for rank in Rank
        if (rank.value, suit.value) != REMOVED_CARD
    ]


def shuffle_deck(cards: list[Card], seed: Optional[int] = None) -> list[Card]:
    """
    Return a uniformly shuffled copy of the cards.

    The input list is left untouched.

    Args:
        cards: Cards to shuffle.
        seed: Optional seed for a reproducible ordering.
    """
    shuffled = list(cards)
    random.Random(seed).shuffle(shuffled)
    return shuffled


def deal_hands(cards: list[Card]) -> list[list[Card]]:
    """
    Split a 51-card deck into three 17-card hands by contiguous thirds.

    Raises:
        ValueError: If the deck does not hold exactly 51 cards.
    """
    if len(cards) != DECK_SIZE:
        raise ValueError(f"Expected {DECK_SIZE} cards to deal, got {len(cards)}")
    return [list(cards[i * HAND_SIZE:(i + 1) * HAND_SIZE]) for i in range(NUM_PLAYERS)]


class Deck:
    """
    A shuffled 51-card deck ready to be dealt.

    The seed is kept so a deal can be reproduced.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed: int = seed if seed is not None else random.randint(0, 2**31 - 1)
        self.cards: list[Card] = shuffle_deck(generate_deck(), self.seed)

    def deal(self) -> list[list[Card]]:
        """Deal three hands from the deck."""
        return deal_hands(self.cards)
