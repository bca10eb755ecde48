"""Error taxonomy shared by the game services, the socket dispatcher and the HTTP API.

Every error carries a stable ``code`` that is sent to clients unchanged.
"""

from typing import Any, Dict, Optional


class GameError(Exception):
    code = 'GAME_ERROR'
    http_status = 400

    def __init__(self, message: str, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        payload = {'code': self.code, 'message': self.message}
        if self.details is not None:
            payload['details'] = self.details
        return payload


class NotFound(GameError):
    code = 'NOT_FOUND'
    http_status = 404


class SessionNotFound(NotFound):
    code = 'GAME_NOT_FOUND'

    def __init__(self, game_id: Any):
        super().__init__('Game not found', details={'gameId': game_id})


class PlayerNotFound(NotFound):
    code = 'PLAYER_NOT_FOUND'

    def __init__(self, player_id: Any):
        super().__init__('Player not found', details={'playerId': player_id})


class SlotNotFound(NotFound):
    code = 'SLOT_NOT_FOUND'

    def __init__(self, slot_id: Any):
        super().__init__('Board slot not found', details={'slotId': slot_id})


class CapacityExceeded(GameError):
    code = 'CAPACITY_EXCEEDED'
    http_status = 409


class SessionFull(CapacityExceeded):
    code = 'GAME_FULL'

    def __init__(self, game_id: Any, max_players: int):
        super().__init__('Game is full', details={'gameId': game_id, 'maxPlayers': max_players})


class MalformedInput(GameError):
    code = 'INVALID_MESSAGE'
    http_status = 400


class GameStateError(GameError):
    """The session is not in a state that allows the requested transition."""
    code = 'INVALID_GAME_STATE'
    http_status = 409


class InvalidMove(GameError):
    code = 'INVALID_MOVE'
    http_status = 409


class PersistenceFailure(GameError):
    code = 'DATABASE_ERROR'
    http_status = 500
