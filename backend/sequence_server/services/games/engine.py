"""Turn engine: waiting -> in-progress -> completed.

Each transition is applied to the loaded records and committed in a single
transaction, so a failed write never leaves a hand saved without the turn
pointer that goes with it.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from flask import current_app

from sequence_server.errors import (
    GameStateError,
    InvalidMove,
    PlayerNotFound,
    SessionNotFound,
    SlotNotFound,
)
from sequence_server.models import Game, Player
from . import registry
from .board import build_board, card_key, find_slot
from .deck import build_deck, deal_hand, draw_card
from .sequences import count_sequences, find_winner
from .teams import arrange_rgb


@dataclass
class MoveResult:
    game: Game
    player: Player
    slot: dict
    card_played: Optional[dict] = None
    card_drawn: Optional[dict] = None
    winner: Optional[str] = None
    sequences: dict = field(default_factory=dict)

    def to_payload(self) -> dict:
        return {
            'gameId': self.game.id,
            'playerId': self.player.id,
            'slot': self.slot,
            'cardPlayed': self.card_played,
            'currentTurn': self.game.current_turn,
            'status': self.game.status,
            'winner': self.winner,
            'sequences': self.sequences,
            'game': self.game.to_dict(include_cards=False),
        }


def advance_turn(roster_ids: Sequence[str], current: str) -> str:
    """Next player after ``current``, wrapping from the last back to the first."""
    if not roster_ids:
        raise GameStateError('Roster is empty', code='NOT_ENOUGH_PLAYERS')
    try:
        idx = list(roster_ids).index(current)
    except ValueError:
        raise PlayerNotFound(current)
    return roster_ids[(idx + 1) % len(roster_ids)]


def _teams_in_play(players: List[Player]) -> List[str]:
    return list(dict.fromkeys(p.team for p in players if p.team))


def start_game(game_id: Any, rng=None) -> Optional[Game]:
    """Deal hands, lay out the board and hand the first turn to the head of the roster.

    Returns None (and does nothing) when the session does not exist.
    """
    try:
        game = registry.get_session(game_id)
    except SessionNotFound:
        current_app.logger.warning(f"[start-missing] game={game_id} not found")
        return None

    if game.status != 'waiting':
        raise GameStateError('Game has already started or is finished', code='GAME_ALREADY_STARTED')

    min_players = int(current_app.config.get('MIN_PLAYERS', 2))
    players = arrange_rgb(game.players_in_join_order())
    if len(players) < min_players:
        raise GameStateError(f'At least {min_players} players are required to start', code='NOT_ENOUGH_PLAYERS',
                             details={'players': len(players), 'minPlayers': min_players})

    hand_size = int(current_app.config.get('HAND_SIZE', 7))
    deck = build_deck()
    for player in players:
        hand, deck = deal_hand(deck, hand_size, rng)
        player.cards = hand

    game.roster_ids = [p.id for p in players]
    game.board = build_board()
    game.deck = deck
    game.current_turn = players[0].id
    game.score = {team: 0 for team in _teams_in_play(players)}
    game.winner = None
    game.status = 'in-progress'
    registry.commit('start game')
    current_app.logger.info(
        f"[start] game={game.id} players={len(players)} deck={len(deck)} first_turn={game.current_turn}"
    )
    return game


def apply_move(game_id: Any, player_id: Any, slot_id: Any, rng=None) -> MoveResult:
    game = registry.get_session(game_id)
    if game.status != 'in-progress':
        raise GameStateError('Game is not in progress', code='GAME_NOT_IN_PROGRESS', details={'status': game.status})

    player = registry.get_player(game, player_id)
    if game.current_turn != player.id:
        raise InvalidMove('It is not your turn', code='NOT_YOUR_TURN',
                          details={'currentTurn': game.current_turn})

    board = game.board
    slot = find_slot(board, str(slot_id))
    if slot is None:
        raise SlotNotFound(slot_id)
    if slot['cardType'] == 'corner':
        raise InvalidMove('Corner spaces cannot be played on', code='SLOT_NOT_PLAYABLE', details={'slotId': slot['id']})
    if slot['isOccupied']:
        raise InvalidMove('Slot is already occupied', code='SLOT_OCCUPIED', details={'slotId': slot['id']})

    slot['isOccupied'] = True
    slot['chipColor'] = player.team

    # Card ownership is checked by the client; a missing card is not an error here
    hand = player.cards
    card_played = None
    for idx, card in enumerate(hand):
        if card_key(card) == slot['cardImage']:
            card_played = hand.pop(idx)
            break

    card_drawn, deck = draw_card(game.deck, rng)
    if card_drawn is not None:
        hand.append(card_drawn)

    roster = game.roster_ids or [p.id for p in game.ordered_players()]
    player.cards = hand
    game.board = board
    game.deck = deck
    game.current_turn = advance_turn(roster, player.id)

    teams = _teams_in_play(game.ordered_players())
    sequences = {team: count_sequences(board, team) for team in teams}
    winner = find_winner(board, teams)
    if winner:
        game.status = 'completed'
        game.winner = winner
        score = game.score
        score[winner] = sequences[winner]
        game.score = score

    registry.commit('apply move')
    current_app.logger.info(
        f"[move] game={game.id} player={player.id} slot={slot['id']} color={player.team} "
        f"matched={card_played is not None} next={game.current_turn} deck={len(deck)}"
    )
    if winner:
        current_app.logger.info(f"[finish] game={game.id} winner={winner} sequences={sequences[winner]}")
    return MoveResult(game=game, player=player, slot=slot, card_played=card_played,
                      card_drawn=card_drawn, winner=winner, sequences=sequences)
