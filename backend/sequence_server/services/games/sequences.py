"""Win detection over the board's chip pattern.

A sequence is five chips of one colour in a straight line (row, column or
diagonal). Corners count for every colour. Two sequences on the same line may
share one chip, so an unbroken run of ``L`` chips holds ``(L - 1) // 4``
sequences once ``L >= 5``.
"""

from typing import Iterable, List, Optional

from .board import BOARD_SIZE

SEQUENCE_LENGTH = 5
DIRECTIONS = ((0, 1), (1, 0), (1, 1), (1, -1))


def _ownership_grid(board: List[dict], color: str) -> List[List[bool]]:
    grid = [[False] * BOARD_SIZE for _ in range(BOARD_SIZE)]
    for slot in board:
        owned = slot.get('cardType') == 'corner' or (
            slot.get('isOccupied') and slot.get('chipColor') == color
        )
        grid[slot['row']][slot['col']] = bool(owned)
    return grid


def _line_starts(dr: int, dc: int):
    for row in range(BOARD_SIZE):
        for col in range(BOARD_SIZE):
            prev_r, prev_c = row - dr, col - dc
            if not (0 <= prev_r < BOARD_SIZE and 0 <= prev_c < BOARD_SIZE):
                yield row, col


def _run_lengths(grid: List[List[bool]], row: int, col: int, dr: int, dc: int) -> Iterable[int]:
    run = 0
    while 0 <= row < BOARD_SIZE and 0 <= col < BOARD_SIZE:
        if grid[row][col]:
            run += 1
        else:
            if run:
                yield run
            run = 0
        row += dr
        col += dc
    if run:
        yield run


def count_sequences(board: List[dict], color: str) -> int:
    grid = _ownership_grid(board, color)
    total = 0
    for dr, dc in DIRECTIONS:
        for row, col in _line_starts(dr, dc):
            for run in _run_lengths(grid, row, col, dr, dc):
                if run >= SEQUENCE_LENGTH:
                    total += (run - 1) // (SEQUENCE_LENGTH - 1)
    return total


def sequences_to_win(team_count: int) -> int:
    """Three teams race for one sequence; two teams (or fewer) need two."""
    return 1 if team_count >= 3 else 2


def find_winner(board: List[dict], teams: Iterable[str]) -> Optional[str]:
    teams = [t for t in dict.fromkeys(teams) if t]
    if not teams:
        return None
    needed = sequences_to_win(len(teams))
    for team in teams:
        if count_sequences(board, team) >= needed:
            return team
    return None
