from flask import Blueprint, jsonify, request, current_app
from sequence_server.errors import GameError, MalformedInput
from sequence_server.services.games import registry
from sequence_server.services.games.locks import locked_session


games = Blueprint('games', __name__)


@games.errorhandler(GameError)
def handle_game_error(exc):
    current_app.logger.info(f"[http-error] {request.method} {request.path} code={exc.code}: {exc.message}")
    body = {'success': False}
    body.update(exc.to_payload())
    return jsonify(body), exc.http_status


@games.route('/create', methods=['POST'])
def create_game():
    """
    Creates a new game in the waiting state with the caller as host.
    """
    data = request.get_json(silent=True) or {}
    host_name = data.get('hostName')
    if not host_name:
        raise MalformedInput('Host name is required', details={'missing': ['hostName']})

    game = registry.create_session(host_name, data.get('maxPlayers'), data.get('gameSettings'))
    return jsonify({
        'success': True,
        'message': 'Game created successfully',
        'game': game.to_dict(),
    }), 201


@games.route('/<string:game_ref>', methods=['GET'])
def get_game(game_ref):
    game = registry.find_session(game_ref)
    return jsonify({'success': True, 'game': game.to_dict(include_cards=False)})


@games.route('/<string:game_ref>', methods=['PUT'])
def update_game(game_ref):
    """
    Updates the externally editable fields of a game (max players, settings).
    """
    patch = registry.GamePatch.from_payload(request.get_json(silent=True))
    game = registry.find_session(game_ref)
    with locked_session(game.id):
        game = registry.update_session(game.id, patch)
    return jsonify({
        'success': True,
        'message': 'Game updated successfully',
        'game': game.to_dict(include_cards=False),
    })
