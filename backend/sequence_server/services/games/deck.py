import random
from typing import List, Optional, Tuple

SUITS = ['hearts', 'diamonds', 'clubs', 'spades']
RANKS = ['ace', 'king', 'queen', 'jack', '10', '9', '8', '7', '6', '5', '4', '3', '2']


def build_deck() -> List[dict]:
    """Two copies of the standard 52-card set, unshuffled."""
    single = [{'rank': rank, 'suit': suit} for suit in SUITS for rank in RANKS]
    return single + [dict(card) for card in single]


def draw_card(deck: List[dict], rng=None) -> Tuple[Optional[dict], List[dict]]:
    """Remove one uniformly random card; returns (None, deck) when the deck is empty."""
    if not deck:
        return None, list(deck)
    rng = rng or random
    remaining = list(deck)
    card = remaining.pop(rng.randrange(len(remaining)))
    return card, remaining


def deal_hand(deck: List[dict], hand_size: int = 7, rng=None) -> Tuple[List[dict], List[dict]]:
    """Draw up to hand_size cards without replacement.

    The hand comes back short if the deck runs out; callers size the deal so
    that it does not.
    """
    hand = []
    remaining = list(deck)
    while len(hand) < hand_size and remaining:
        card, remaining = draw_card(remaining, rng)
        hand.append(card)
    return hand, remaining
