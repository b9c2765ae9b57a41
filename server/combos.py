"""
Combo identification for Big Two.

A play is either a single card or one of three 5-card shapes. Shapes are
checked in priority order, first match wins:

    quads    - four of one rank plus a kicker     value = rank index of the four
    triplet  - full house, three plus a pair       value = rank index of the three
    straight - five consecutive ranks, 3 .. A     value = card value of the top card

Twos are singles-only: any multi-card set holding a 2 is never a combo.

Within a round only the same combo type may follow, and only with a
strictly higher value.
"""

from collections import Counter, defaultdict
from dataclasses import dataclass
from enum import Enum
from itertools import combinations, product
from typing import Iterable, Iterator, Optional

from cards import Card, Rank
from constants import COMBO_SIZE, MAX_COMBO_OPTIONS, RANK_ORDER, SINGLES_ONLY_RANK, STRAIGHT_MAX_RANK


class ComboType(str, Enum):
    """Playable combo types."""

    SINGLE = "single"
    STRAIGHT = "straight"
    TRIPLET = "triplet"
    QUADS = "quads"


@dataclass(frozen=True)
class Combo:
    """
    An identified play.

    Attributes:
        type: The combo type.
        value: Strength used to compare combos of the same type.
        cards: The cards making up the combo.
    """

    type: ComboType
    value: int
    cards: tuple[Card, ...] = ()

    def beats(self, active_type: Optional[ComboType], active_value: int) -> bool:
        """
        Check whether this combo may be played onto the active round.

        An empty round (no active type) accepts anything. Otherwise the type
        must match exactly and the value must be strictly higher.
        """
        if active_type is None:
            return True
        return self.type == active_type and self.value > active_value


def identify_combo(cards: Iterable[Card]) -> Optional[Combo]:
    """
    Classify a set of cards.

    Args:
        cards: The proposed play, in any order.

    Returns:
        The identified Combo, or None if the cards are not a legal play.
    """
    cards = tuple(cards)

    if len(cards) == 1:
        return Combo(ComboType.SINGLE, cards[0].value(), cards)

    if any(c.rank.value == SINGLES_ONLY_RANK for c in cards):
        return None

    if len(cards) != COMBO_SIZE:
        return None

    quad_rank = _check_quads(cards)
    if quad_rank is not None:
        return Combo(ComboType.QUADS, quad_rank.index, cards)

    triplet_rank = _check_full_house(cards)
    if triplet_rank is not None:
        return Combo(ComboType.TRIPLET, triplet_rank.index, cards)

    top_card = _check_straight(cards)
    if top_card is not None:
        return Combo(ComboType.STRAIGHT, top_card.value(), cards)

    return None


def _check_quads(cards: tuple[Card, ...]) -> Optional[Rank]:
    counts = Counter(c.rank for c in cards)
    for rank, count in counts.items():
        if count == 4:
            return rank
    return None


def _check_full_house(cards: tuple[Card, ...]) -> Optional[Rank]:
    counts = Counter(c.rank for c in cards)
    if sorted(counts.values()) != [2, 3]:
        return None
    return next(rank for rank, count in counts.items() if count == 3)


def _check_straight(cards: tuple[Card, ...]) -> Optional[Card]:
    ordered = sorted(cards, key=lambda c: c.value())
    first = ordered[0].rank.index
    for offset, card in enumerate(ordered):
        if card.rank.index != first + offset:
            return None
    return ordered[-1]


# =============================================================================
# Combo finder
# =============================================================================

def _indices_by_rank(hand: list[Card]) -> dict[Rank, list[int]]:
    by_rank: dict[Rank, list[int]] = defaultdict(list)
    for i, card in enumerate(hand):
        if card.rank.value != SINGLES_ONLY_RANK:
            by_rank[card.rank].append(i)
    return by_rank


def _iter_straights(hand: list[Card]) -> Iterator[tuple[int, ...]]:
    by_rank = _indices_by_rank(hand)
    last_start = RANK_ORDER.index(STRAIGHT_MAX_RANK) - (COMBO_SIZE - 1)
    for start in range(last_start + 1):
        span = [by_rank.get(Rank(r), []) for r in RANK_ORDER[start:start + COMBO_SIZE]]
        if all(span):
            yield from product(*span)


def _iter_triplets(hand: list[Card]) -> Iterator[tuple[int, ...]]:
    by_rank = _indices_by_rank(hand)
    for three_rank, three_idx in by_rank.items():
        if len(three_idx) < 3:
            continue
        for pair_rank, pair_idx in by_rank.items():
            if pair_rank == three_rank or len(pair_idx) < 2:
                continue
            for three in combinations(three_idx, 3):
                for pair in combinations(pair_idx, 2):
                    yield three + pair


def _iter_quads(hand: list[Card]) -> Iterator[tuple[int, ...]]:
    by_rank = _indices_by_rank(hand)
    for four_rank, four_idx in by_rank.items():
        if len(four_idx) != 4:
            continue
        for kicker_rank, kicker_idx in by_rank.items():
            if kicker_rank == four_rank:
                continue
            for kicker in kicker_idx:
                yield tuple(four_idx) + (kicker,)


def _collect(
    groups: Iterator[tuple[int, ...]],
    hand: list[Card],
    active_type: Optional[ComboType],
    active_value: int,
    limit: int,
) -> list[list[int]]:
    found: list[list[int]] = []
    for group in groups:
        if len(found) >= limit:
            break
        combo = identify_combo(hand[i] for i in group)
        if combo and combo.beats(active_type, active_value):
            found.append(sorted(group))
    return found


def find_combo_options(
    hand: list[Card],
    active_type: Optional[ComboType] = None,
    active_value: int = 0,
    limit: int = MAX_COMBO_OPTIONS,
) -> dict[str, list[list[int]]]:
    """
    List the 5-card combos a hand can form, as index groups into the hand.

    When an active combo is given, only groups that would beat it are kept,
    so a round opened by a straight only ever offers straights.

    Args:
        hand: The player's hand.
        active_type: Type of the combo currently on the table, if any.
        active_value: Value of the combo currently on the table.
        limit: Maximum number of groups returned per type.

    Returns:
        Dict with "straights", "triplets" and "quads" lists of index lists.
    """
    return {
        "straights": _collect(_iter_straights(hand), hand, active_type, active_value, limit),
        "triplets": _collect(_iter_triplets(hand), hand, active_type, active_value, limit),
        "quads": _collect(_iter_quads(hand), hand, active_type, active_value, limit),
    }
