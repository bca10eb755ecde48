"""The fixed 10x10 Sequence board.

Each regular position shows one of the 48 non-jack cards; every card appears
exactly twice. The four corners are free spaces.
"""

from typing import Dict, List, Optional

BOARD_SIZE = 10
CORNER_IMAGE = 'back'

RANK_CODES = {
    'A': 'ace', 'K': 'king', 'Q': 'queen', 'J': 'jack', 'T': '10',
    '9': '9', '8': '8', '7': '7', '6': '6', '5': '5', '4': '4', '3': '3', '2': '2',
}
SUIT_CODES = {'S': 'spades', 'H': 'hearts', 'D': 'diamonds', 'C': 'clubs'}

# 'XX' marks a corner
BOARD_LAYOUT = (
    'XX 2S 3S 4S 5S 6S 7S 8S 9S XX',
    '6C 5C 4C 3C 2C AH KH QH TH TS',
    '7C AS 2D 3D 4D 5D 6D 7D 9H QS',
    '8C KS 6C 5C 4C 3C 2C 8D 8H KS',
    '9C QS 7C 6H 5H 4H AH 9D 7H AS',
    'TC TS 8C 7H 2H 3H KH TD 6H 2D',
    'QC 9S 9C 8H 9H TH QH QD 5H 3D',
    'KC 8S TC QC KC AC AD KD 4H 4D',
    'AC 7S 6S 5S 4S 3S 2S 2H 3H 5D',
    'XX AD KD QD TD 9D 8D 7D 6D XX',
)


def card_key(card: Dict[str, str]) -> str:
    return f"{card['rank']}-{card['suit']}"


def _layout_cell(row: int, col: int) -> Optional[Dict[str, str]]:
    code = BOARD_LAYOUT[row].split()[col]
    if code == 'XX':
        return None
    return {'rank': RANK_CODES[code[0]], 'suit': SUIT_CODES[code[1]]}


def slot_id(row: int, col: int) -> str:
    return f"{row}-{col}"


def build_board() -> List[dict]:
    """Build all 100 slots in row-major order, every slot unoccupied."""
    slots = []
    for row in range(BOARD_SIZE):
        for col in range(BOARD_SIZE):
            cell = _layout_cell(row, col)
            slots.append({
                'id': slot_id(row, col),
                'row': row,
                'col': col,
                'cardType': 'corner' if cell is None else 'regular',
                'cardImage': CORNER_IMAGE if cell is None else card_key(cell),
                'isOccupied': False,
            })
    return slots


def find_slot(board: List[dict], wanted_id: str) -> Optional[dict]:
    for slot in board:
        if slot['id'] == wanted_id:
            return slot
    return None
