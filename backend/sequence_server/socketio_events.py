from flask import current_app, request
from sqlalchemy.exc import SQLAlchemyError
from typing import Any, Callable, Dict

from sequence_server import db, socketio
from sequence_server.broadcast import EVENT_NAME, coordinator
from sequence_server.errors import GameError, MalformedInput, SessionNotFound
from sequence_server.protocol import MessageType, build_error, build_message, parse_envelope, require
from sequence_server.services.games import engine, registry
from sequence_server.services.games.locks import locked_session


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _subscribe(game_id: str, player_id: str = None) -> None:
    coordinator.subscribe(game_id, player_id=player_id)


def _session_id(game_id: Any) -> str:
    """Resolve a client supplied id to a stored session before any lock is taken."""
    return registry.get_session(game_id).id


def _send_hands(game) -> None:
    for player in game.ordered_players():
        coordinator.notify_player(game.id, player.id, build_message(MessageType.HAND_UPDATED, {
            'gameId': game.id,
            'playerId': player.id,
            'cards': player.cards,
        }))


def _players_payload(game) -> Dict[str, Any]:
    return {
        'gameId': game.id,
        'players': [p.to_dict(include_cards=False) for p in game.ordered_players()],
    }


def handle_connect():
    current_app.logger.info(f"[connect] sid={_get_sid()}")


def handle_disconnect(*args):
    # The player stays in the roster; only the connection goes away
    sid = _get_sid()
    ctx = coordinator.unsubscribe(sid)
    current_app.logger.info(f"[disconnect] sid={sid} ctx={ctx}")
    if not ctx or not ctx.get('player_id'):
        return
    try:
        game = registry.get_session(ctx['game_id'])
    except GameError:
        return
    payload = _players_payload(game)
    payload['playerId'] = ctx['player_id']
    coordinator.notify(game.id, build_message(MessageType.PLAYER_LEFT, payload), skip_sid=sid)


def handle_join_game(data: Dict[str, Any]) -> None:
    game_id, = require(data, 'gameId')
    player_name = data.get('playerName') or data.get('name')
    if not player_name:
        raise MalformedInput('Missing required fields', details={'missing': ['playerName']})
    game_id = _session_id(game_id)
    with locked_session(game_id):
        player = registry.join_session(game_id, player_name)
        game = registry.get_session(game_id)
        _subscribe(game.id, player.id)
        coordinator.reply(build_message(MessageType.JOIN_GAME_SUCCESS, {
            'gameId': game.id,
            'player': player.to_dict(),
        }))
        payload = _players_payload(game)
        payload['newPlayer'] = player.to_dict(include_cards=False)
        coordinator.notify(game.id, build_message(MessageType.PLAYER_JOINED, payload))


def handle_join_team(data: Dict[str, Any]) -> None:
    game_id, player_id, team = require(data, 'gameId', 'playerId', 'team')
    game_id = _session_id(game_id)
    with locked_session(game_id):
        player = registry.set_team(game_id, player_id, team)
        game = registry.get_session(game_id)
        _subscribe(game.id, player.id)
        coordinator.reply(build_message(MessageType.JOIN_TEAM_SUCCESS, {
            'gameId': game.id,
            'playerId': player.id,
            'team': player.team,
        }))
        coordinator.notify(game.id, build_message(MessageType.TEAM_UPDATED, _players_payload(game)))


def handle_leave_team(data: Dict[str, Any]) -> None:
    game_id, player_id = require(data, 'gameId', 'playerId')
    game_id = _session_id(game_id)
    with locked_session(game_id):
        player = registry.set_team(game_id, player_id, None)
        game = registry.get_session(game_id)
        _subscribe(game.id, player.id)
        coordinator.reply(build_message(MessageType.LEAVE_TEAM_SUCCESS, {
            'gameId': game.id,
            'playerId': player.id,
        }))
        coordinator.notify(game.id, build_message(MessageType.TEAM_UPDATED, _players_payload(game)))


def handle_team_update(data: Dict[str, Any]) -> None:
    game_id, = require(data, 'gameId')
    game = registry.get_session(game_id)
    _subscribe(game.id)
    coordinator.notify(game.id, build_message(MessageType.TEAM_UPDATED, _players_payload(game)))


def handle_start_game(data: Dict[str, Any]) -> None:
    game_id, = require(data, 'gameId')
    try:
        game_id = _session_id(game_id)
    except SessionNotFound:
        current_app.logger.warning(f"[start-missing] game={game_id} not found")
        return
    with locked_session(game_id):
        game = engine.start_game(game_id)
        if game is None:
            return
        _subscribe(game.id)
        coordinator.notify(game.id, build_message(MessageType.GAME_STARTED, {
            'gameId': game.id,
            'game': game.to_dict(include_cards=False),
        }))
        _send_hands(game)


def handle_game_move(data: Dict[str, Any]) -> None:
    game_id, player_id, slot_id = require(data, 'gameId', 'playerId', 'slotId')
    game_id = _session_id(game_id)
    with locked_session(game_id):
        result = engine.apply_move(game_id, player_id, slot_id)
        _subscribe(result.game.id, result.player.id)
        coordinator.notify(result.game.id, build_message(MessageType.GAME_MOVE, result.to_payload()))
        coordinator.notify_player(result.game.id, result.player.id, build_message(MessageType.HAND_UPDATED, {
            'gameId': result.game.id,
            'playerId': result.player.id,
            'cards': result.player.cards,
        }))


def handle_ping(data: Dict[str, Any]) -> None:
    coordinator.reply(build_message(MessageType.PONG, data))


HANDLERS: Dict[MessageType, Callable[[Dict[str, Any]], None]] = {
    MessageType.JOIN_GAME: handle_join_game,
    MessageType.JOIN_TEAM: handle_join_team,
    MessageType.LEAVE_TEAM: handle_leave_team,
    MessageType.TEAM_UPDATE: handle_team_update,
    MessageType.START_GAME: handle_start_game,
    MessageType.GAME_MOVE: handle_game_move,
    MessageType.PING: handle_ping,
}

# Failures of these requests are reported with a dedicated message type
ERROR_TYPES = {
    MessageType.JOIN_GAME: MessageType.JOIN_GAME_ERROR,
}


def handle_message(raw: Any) -> None:
    """Parse one inbound envelope, route it, and turn any failure into an error reply."""
    sid = _get_sid()
    try:
        msg_type, data = parse_envelope(raw)
    except MalformedInput as exc:
        current_app.logger.warning(f"[bad-message] sid={sid} code={exc.code}: {exc.message}")
        coordinator.reply(build_error(exc))
        return

    current_app.logger.info(f"[message] sid={sid} type={msg_type.value} data={data}")
    error_type = ERROR_TYPES.get(msg_type, MessageType.ERROR)
    try:
        HANDLERS[msg_type](data)
    except GameError as exc:
        db.session.rollback()
        current_app.logger.info(f"[rejected] sid={sid} type={msg_type.value} code={exc.code}: {exc.message}")
        coordinator.reply(build_error(exc, error_type))
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception(f"[db-error] sid={sid} type={msg_type.value}")
        coordinator.reply(build_message(error_type, {
            'code': 'DATABASE_ERROR',
            'message': 'Database operation failed',
            'details': {'error': exc.__class__.__name__},
        }))
    except Exception as exc:
        db.session.rollback()
        current_app.logger.exception(f"[handler-error] sid={sid} type={msg_type.value}")
        coordinator.reply(build_message(error_type, {
            'code': 'INTERNAL_ERROR',
            'message': 'Failed to handle message',
            'details': {'error': exc.__class__.__name__},
        }))


def register_socketio_handlers(namespace: str = '/ws', testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on the configured namespace. When testing is True, also
    mirror handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [namespace]
    if testing and namespace != '/':
        namespaces.append('/')
    for ns in namespaces:
        socketio.on_event('connect', handle_connect, namespace=ns)
        socketio.on_event('disconnect', handle_disconnect, namespace=ns)
        socketio.on_event(EVENT_NAME, handle_message, namespace=ns)
