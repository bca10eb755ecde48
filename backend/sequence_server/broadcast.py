"""Fan-out of protocol messages to the connections of one session."""

from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from flask import current_app, request
from flask_socketio import emit, join_room

from sequence_server import socketio

EVENT_NAME = 'message'

Connection = Tuple[str, str]  # (sid, namespace)


def room_for(game_id: str) -> str:
    return f"game:{game_id}"


class BroadcastCoordinator:
    """Puts connections into their session's Socket.IO room and sends to it.

    The room membership lives in the Socket.IO server; only the sid to
    (game_id, player_id) context is kept here, for disconnects and for
    messages addressed to one player. Leaving the room never touches the
    session roster.
    """

    def __init__(self):
        self._sid_to_ctx: Dict[str, Dict[str, Any]] = {}

    def subscribe(self, game_id: str, player_id: Optional[str] = None) -> None:
        """Join the connection handling the current event to the session room."""
        sid = request.sid  # type: ignore
        join_room(room_for(game_id))
        ctx = self._sid_to_ctx.setdefault(sid, {'game_id': game_id, 'player_id': None})
        if ctx['game_id'] != game_id:
            ctx['player_id'] = None
        ctx['game_id'] = game_id
        if player_id:
            ctx['player_id'] = player_id

    def unsubscribe(self, sid: str) -> Optional[Dict[str, Any]]:
        # Socket.IO drops the sid from its rooms once the disconnect handler returns
        return self._sid_to_ctx.pop(sid, None)

    def connections(self, game_id: str) -> Set[Connection]:
        """Connections currently in the session room, across namespaces."""
        manager = socketio.server.manager
        room = room_for(game_id)
        found = set()
        for namespace in list(manager.get_namespaces()):
            if room not in manager.rooms.get(namespace, {}):
                continue
            for participant in manager.get_participants(namespace, room):
                sid = participant[0] if isinstance(participant, tuple) else participant
                found.add((sid, namespace))
        return found

    def player_connections(self, game_id: str, player_id: str) -> List[Connection]:
        return [
            (sid, namespace) for sid, namespace in self.connections(game_id)
            if (self._sid_to_ctx.get(sid) or {}).get('player_id') == player_id
        ]

    def _send(self, game_id: str, targets: Iterable[Connection], message: Dict[str, Any]) -> int:
        delivered = 0
        for sid, namespace in targets:
            try:
                socketio.emit(EVENT_NAME, message, to=sid, namespace=namespace)
                delivered += 1
            except Exception as exc:
                current_app.logger.warning(f"[broadcast-fail] game={game_id} sid={sid} type={message.get('type')}: {exc}")
        return delivered

    def notify(self, game_id: str, message: Dict[str, Any], skip_sid: Optional[str] = None) -> int:
        """Send to every connection in the session room; returns how many sends succeeded."""
        targets = [conn for conn in self.connections(game_id) if conn[0] != skip_sid]
        delivered = self._send(game_id, targets, message)
        current_app.logger.info(f"[broadcast] game={game_id} type={message.get('type')} delivered={delivered}")
        return delivered

    def notify_player(self, game_id: str, player_id: str, message: Dict[str, Any]) -> int:
        """Send only to the connections bound to one player of the session."""
        return self._send(game_id, self.player_connections(game_id, player_id), message)

    def reply(self, message: Dict[str, Any]) -> None:
        """Send to the connection whose event is being handled."""
        emit(EVENT_NAME, message)

    def reset(self) -> None:
        self._sid_to_ctx.clear()


coordinator = BroadcastCoordinator()
