"""
Card ordering and table constants for three-player Big Two.

This module is the single source of truth for rank and suit strength.
Rule values that can be tuned per deployment (undo budget, history depth,
turn lock window) are read from config.py.

Strength ordering:
    - Ranks: 3 (lowest) ... K, A, 2 (highest)
    - Suits: diamonds < clubs < hearts < spades
    - Card value = rank index * 10 + suit index (3 of clubs = 12, 2 of spades = 134)
"""

from typing import Optional

from config import config


# =============================================================================
# Card Ordering - Single Source of Truth
# =============================================================================

RANK_ORDER: list[str] = ['3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K', 'A', '2']

# 1-based so that the lowest card on the table (3 of clubs) is worth 12
RANK_INDEX: dict[str, int] = {rank: i + 1 for i, rank in enumerate(RANK_ORDER)}

SUIT_INDEX: dict[str, int] = {
    'diamonds': 1,
    'clubs': 2,
    'hearts': 3,
    'spades': 4,
}

# Twos may only ever be played as singles
SINGLES_ONLY_RANK = '2'

# Highest rank a straight may end on (no wraparound, twos excluded)
STRAIGHT_MAX_RANK = 'A'


# =============================================================================
# Table Constants
# =============================================================================

NUM_PLAYERS = 3
HAND_SIZE = 17
DECK_SIZE = NUM_PLAYERS * HAND_SIZE  # 51: the full deck minus the removed card

# The removed card and the mandatory opening card
REMOVED_CARD = ('3', 'diamonds')
OPENING_CARD = ('3', 'clubs')

COMBO_SIZE = 5

MAX_UNDO = config.game_rules.max_undo
MAX_HISTORY = config.game_rules.max_history
TURN_LOCK_SECONDS = config.game_rules.turn_lock_seconds
TURN_LOCK_ENFORCED = config.game_rules.turn_lock_enforced
MAX_COMBO_OPTIONS = config.game_rules.max_combo_options


# =============================================================================
# Helper Functions
# =============================================================================

def get_card_value_for(rank_str: str, suit_str: str) -> Optional[int]:
    """
    Get the comparison value for a card given as strings.

    This is the single source of truth for card value calculations.
    Use this for string-based lookups (e.g., from JSON/logs).

    Args:
        rank_str: Card rank as string ('3', ..., 'A', '2')
        suit_str: Card suit as string ('diamonds', 'clubs', 'hearts', 'spades')

    Returns:
        rank index * 10 + suit index, or None for an unknown rank/suit.
    """
    rank_idx = RANK_INDEX.get(rank_str)
    suit_idx = SUIT_INDEX.get(suit_str)
    if rank_idx is None or suit_idx is None:
        return None
    return rank_idx * 10 + suit_idx
