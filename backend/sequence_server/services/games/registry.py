"""Session registry: the only place Game and Player records are created.

All reads and read-modify-write cycles against the store go through here.
Callers that mutate a session hold its lock (see ``locks.locked_session``).
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from sequence_server import db
from sequence_server.errors import (
    GameStateError,
    MalformedInput,
    PersistenceFailure,
    PlayerNotFound,
    SessionFull,
    SessionNotFound,
)
from sequence_server.models import Game, Player, TEAMS, new_id
from .teams import arrange_rgb

DEFAULT_SETTINGS = {'difficulty': 'medium', 'timeLimit': 300}
MAX_NAME_LENGTH = 50


def commit(action: str) -> None:
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[db-error] failed to {action}: {exc}")
        raise PersistenceFailure(f'Failed to {action}') from exc


def clean_name(raw: Any) -> str:
    name = raw.strip() if isinstance(raw, str) else ''
    if not name or len(name) > MAX_NAME_LENGTH:
        raise MalformedInput(f'Player name must be 1-{MAX_NAME_LENGTH} characters', details={'name': raw})
    return name


def clean_team(raw: Any) -> Optional[str]:
    if raw is None:
        return None
    team = raw.strip().lower() if isinstance(raw, str) else None
    if team not in TEAMS:
        raise MalformedInput('Team must be one of red, green, blue', code='INVALID_TEAM', details={'team': raw})
    return team


def clamp_max_players(value: Any) -> int:
    cfg = current_app.config
    try:
        wanted = int(value) if value is not None else int(cfg.get('DEFAULT_MAX_PLAYERS', 4))
    except (TypeError, ValueError, OverflowError):
        wanted = int(cfg.get('DEFAULT_MAX_PLAYERS', 4))
    return min(max(wanted, int(cfg.get('MIN_MAX_PLAYERS', 2))), int(cfg.get('MAX_MAX_PLAYERS', 6)))


def coerce_settings(value: Any) -> Dict[str, Any]:
    """Accept only string keys mapped to str, int, float, bool or a nested map of the same."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise MalformedInput('Game settings must be an object', code='INVALID_SETTINGS')
    clean = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise MalformedInput('Setting keys must be strings', code='INVALID_SETTINGS', details={'key': repr(key)})
        if isinstance(item, dict):
            clean[key] = coerce_settings(item)
        elif isinstance(item, (str, int, float, bool)):
            clean[key] = item
        else:
            raise MalformedInput(f"Unsupported value for setting '{key}'", code='INVALID_SETTINGS', details={'key': key})
    return clean


@dataclass
class GamePatch:
    """Fields of a session that may be changed from outside the turn engine."""
    max_players: Optional[int] = None
    settings: Optional[Dict[str, Any]] = None

    _FIELDS = {'maxPlayers': 'max_players', 'gameSettings': 'settings'}

    @classmethod
    def from_payload(cls, payload: Any) -> 'GamePatch':
        if not isinstance(payload, dict):
            raise MalformedInput('Update body must be an object', code='INVALID_PATCH')
        unknown = sorted(set(payload) - set(cls._FIELDS))
        if unknown:
            raise MalformedInput('Fields cannot be updated', code='INVALID_PATCH', details={'fields': unknown})
        settings = payload.get('gameSettings')
        return cls(
            max_players=payload.get('maxPlayers'),
            settings=coerce_settings(settings) if settings is not None else None,
        )


def get_session(game_id: Any) -> Game:
    game = db.session.get(Game, str(game_id)) if game_id else None
    if game is None:
        raise SessionNotFound(game_id)
    return game


def find_session(ref: str) -> Game:
    """Look a session up by id, falling back to the trailing id of its join link."""
    game = db.session.get(Game, ref) if ref else None
    if game is None and ref:
        game = Game.query.filter(Game.link.endswith(f'/{ref}', autoescape=True)).first()
    if game is None:
        raise SessionNotFound(ref)
    return game


def get_player(game: Game, player_id: Any) -> Player:
    player = db.session.get(Player, str(player_id)) if player_id else None
    if player is None or player.game_id != game.id:
        raise PlayerNotFound(player_id)
    return player


def arrange_roster(game: Game) -> None:
    game.roster_ids = [p.id for p in arrange_rgb(game.players_in_join_order())]


def create_session(host_name: Any, max_players: Any = None, settings: Any = None) -> Game:
    name = clean_name(host_name)
    game_settings = dict(DEFAULT_SETTINGS)
    game_settings.update(coerce_settings(settings))

    game_id = new_id()
    base = current_app.config.get('LOBBY_URL_BASE', '').rstrip('/')
    game = Game(id=game_id, link=f'{base}/lobby/{game_id}', status='waiting', max_players=clamp_max_players(max_players))
    game.settings = game_settings
    host = Player(id=new_id(), name=name, role='host', team=None, seat=0)
    host.cards = []
    host.game = game
    try:
        db.session.add(game)
        db.session.add(host)
        # Host row must exist before the game can point at it
        db.session.flush()
        game.host_id = host.id
        game.roster_ids = [host.id]
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error(f"[db-error] failed to create game: {exc}")
        raise PersistenceFailure('Failed to create game') from exc
    commit('create game')
    current_app.logger.info(f"[create] game={game.id} host={host.id} max_players={game.max_players}")
    return game


def join_session(game_id: Any, player_name: Any) -> Player:
    game = get_session(game_id)
    name = clean_name(player_name)
    if game.status != 'waiting':
        raise GameStateError('Players can only join before the game starts', code='GAME_ALREADY_STARTED',
                             details={'status': game.status})
    if len(game.players) >= game.max_players:
        current_app.logger.info(f"[join-full] game={game.id} players={len(game.players)}/{game.max_players}")
        raise SessionFull(game.id, game.max_players)

    seat = max((p.seat or 0 for p in game.players), default=-1) + 1
    player = Player(id=new_id(), name=name, role='player', team=None, seat=seat)
    player.cards = []
    player.game = game
    db.session.add(player)
    arrange_roster(game)
    commit('add player to game')
    current_app.logger.info(f"[join] game={game.id} player={player.id} name={player.name!r}")
    return player


def set_team(game_id: Any, player_id: Any, team: Any) -> Player:
    team = clean_team(team)
    game = get_session(game_id)
    player = get_player(game, player_id)
    player.team = team
    arrange_roster(game)
    commit('join team' if team else 'leave team')
    current_app.logger.info(f"[team] game={game.id} player={player.id} team={team}")
    return player


def update_session(game_id: Any, patch: GamePatch) -> Game:
    game = get_session(game_id)
    if patch.max_players is not None:
        if game.status != 'waiting':
            raise GameStateError('Max players can only change before the game starts', code='GAME_ALREADY_STARTED')
        new_max = clamp_max_players(patch.max_players)
        if new_max < len(game.players):
            raise MalformedInput('Max players is below the current roster size', code='INVALID_PATCH',
                                 details={'maxPlayers': new_max, 'players': len(game.players)})
        game.max_players = new_max
    if patch.settings is not None:
        merged = game.settings
        merged.update(patch.settings)
        game.settings = merged
    commit('update game')
    current_app.logger.info(f"[update] game={game.id} max_players={game.max_players}")
    return game
