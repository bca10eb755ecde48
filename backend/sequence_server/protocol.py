"""Socket message protocol.

Inbound messages are ``{type, data}`` envelopes; outbound messages are
``{type, payload, timestamp}``.
"""

from enum import Enum
import json
import time
from typing import Any, Dict, Tuple

from sequence_server.errors import GameError, MalformedInput


class MessageType(str, Enum):
    # Client to server
    JOIN_GAME = 'JOIN_GAME'
    JOIN_TEAM = 'JOIN_TEAM'
    LEAVE_TEAM = 'LEAVE_TEAM'
    TEAM_UPDATE = 'TEAM_UPDATE'
    START_GAME = 'START_GAME'
    GAME_MOVE = 'GAME_MOVE'  # also sent back to the session once applied
    PING = 'PING'

    # Server to client
    JOIN_GAME_SUCCESS = 'JOIN_GAME_SUCCESS'
    JOIN_GAME_ERROR = 'JOIN_GAME_ERROR'
    PLAYER_JOINED = 'PLAYER_JOINED'
    PLAYER_LEFT = 'PLAYER_LEFT'
    HAND_UPDATED = 'HAND_UPDATED'  # sent only to the player holding the hand
    GAME_STARTED = 'GAME_STARTED'
    TEAM_UPDATED = 'TEAM_UPDATED'
    JOIN_TEAM_SUCCESS = 'JOIN_TEAM_SUCCESS'
    LEAVE_TEAM_SUCCESS = 'LEAVE_TEAM_SUCCESS'
    ERROR = 'ERROR'
    PONG = 'PONG'


INBOUND_TYPES = frozenset({
    MessageType.JOIN_GAME,
    MessageType.JOIN_TEAM,
    MessageType.LEAVE_TEAM,
    MessageType.TEAM_UPDATE,
    MessageType.START_GAME,
    MessageType.GAME_MOVE,
    MessageType.PING,
})


def build_message(msg_type: MessageType, payload: Any) -> Dict[str, Any]:
    return {
        'type': MessageType(msg_type).value,
        'payload': payload,
        'timestamp': int(time.time() * 1000),
    }


def build_error(error: GameError, msg_type: MessageType = MessageType.ERROR) -> Dict[str, Any]:
    return build_message(msg_type, error.to_payload())


def parse_envelope(raw: Any) -> Tuple[MessageType, Dict[str, Any]]:
    """Decode an inbound envelope into its type and data.

    Accepts a JSON string/bytes or an already decoded object.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError:
            raise MalformedInput('Invalid message format', code='INVALID_JSON')
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise MalformedInput('Invalid message format', code='INVALID_JSON')
    if not isinstance(raw, dict):
        raise MalformedInput('Message must be an object with type and data')

    type_name = raw.get('type')
    try:
        msg_type = MessageType(type_name)
    except ValueError:
        raise MalformedInput('Unknown message type', code='UNKNOWN_MESSAGE_TYPE', details={'type': type_name})
    if msg_type not in INBOUND_TYPES:
        raise MalformedInput('Message type is not accepted from clients', code='UNKNOWN_MESSAGE_TYPE',
                             details={'type': type_name})

    data = raw.get('data')
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise MalformedInput('Message data must be an object')
    return msg_type, data


def require(data: Dict[str, Any], *fields: str) -> Tuple[Any, ...]:
    missing = [name for name in fields if data.get(name) in (None, '')]
    if missing:
        raise MalformedInput('Missing required fields', details={'missing': missing})
    return tuple(data[name] for name in fields)
