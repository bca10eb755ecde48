import threading

import pytest

from sequence_server.errors import (
    GameStateError,
    MalformedInput,
    PersistenceFailure,
    PlayerNotFound,
    SessionFull,
    SessionNotFound,
)
from sequence_server import db
from sequence_server.models import Game, Player
from sequence_server.services.games import registry
from sequence_server.services.games.locks import locked_session


def names(game):
    return [p.name for p in game.ordered_players()]


def test_create_session_makes_host(flask_app):
    game = registry.create_session('Alice', 4)
    assert game.status == 'waiting'
    assert game.link == f'http://lobby.test/lobby/{game.id}'
    assert names(game) == ['Alice']
    assert game.host.name == 'Alice'
    assert game.host.role == 'host'
    assert game.host.team is None
    assert game.to_dict()['gameData'] is None
    assert game.settings == {'difficulty': 'medium', 'timeLimit': 300}


@pytest.mark.parametrize('requested, expected', [(1, 2), (2, 2), (5, 5), (12, 6), ('abc', 4), (None, 4)])
def test_max_players_is_clamped(flask_app, requested, expected):
    assert registry.create_session('Host', requested).max_players == expected


def test_join_until_full(flask_app):
    game = registry.create_session('Alice', 4)
    for name in ('Bob', 'Carl', 'Dan'):
        registry.join_session(game.id, name)
    assert names(game) == ['Alice', 'Bob', 'Carl', 'Dan']

    with pytest.raises(SessionFull) as exc:
        registry.join_session(game.id, 'Eve')
    assert exc.value.code == 'GAME_FULL'
    assert len(registry.get_session(game.id).players) == 4


def test_join_unknown_session(flask_app):
    with pytest.raises(SessionNotFound) as exc:
        registry.join_session('missing', 'Bob')
    assert exc.value.code == 'GAME_NOT_FOUND'


@pytest.mark.parametrize('bad_name', ['', '   ', None, 'x' * 51, 42])
def test_join_rejects_bad_names(flask_app, bad_name):
    game = registry.create_session('Alice')
    with pytest.raises(MalformedInput):
        registry.join_session(game.id, bad_name)


def test_team_changes_rearrange_roster(flask_app):
    game = registry.create_session('Alice', 4)
    bob = registry.join_session(game.id, 'Bob')
    carl = registry.join_session(game.id, 'Carl')

    registry.set_team(game.id, game.host_id, 'red')
    registry.set_team(game.id, bob.id, 'green')
    registry.set_team(game.id, carl.id, 'RED')
    assert names(game) == ['Alice', 'Bob', 'Carl']
    assert carl.team == 'red'

    registry.set_team(game.id, bob.id, None)
    assert names(game) == ['Alice', 'Carl', 'Bob']

    registry.set_team(game.id, bob.id, 'blue')
    registry.set_team(game.id, game.host_id, 'green')
    assert names(game) == ['Carl', 'Alice', 'Bob']


def test_roster_order_is_persisted(flask_app):
    game = registry.create_session('Alice', 4)
    bob = registry.join_session(game.id, 'Bob')
    registry.set_team(game.id, bob.id, 'red')
    stored = db.session.get(Game, game.id)
    assert stored.roster_ids == [bob.id, game.host_id]


def test_set_team_errors(flask_app):
    game = registry.create_session('Alice')
    other = registry.create_session('Zed')
    with pytest.raises(SessionNotFound):
        registry.set_team('nope', game.host_id, 'red')
    with pytest.raises(PlayerNotFound):
        registry.set_team(game.id, 'nobody', 'red')
    with pytest.raises(PlayerNotFound):
        registry.set_team(game.id, other.host_id, 'red')
    with pytest.raises(MalformedInput) as exc:
        registry.set_team(game.id, game.host_id, 'purple')
    assert exc.value.code == 'INVALID_TEAM'


def test_settings_accept_only_closed_variant(flask_app):
    game = registry.create_session('Alice', settings={'timeLimit': 60, 'rules': {'oneEyedJacks': True}})
    assert game.settings['timeLimit'] == 60
    assert game.settings['rules'] == {'oneEyedJacks': True}
    with pytest.raises(MalformedInput) as exc:
        registry.create_session('Bob', settings={'seats': [1, 2]})
    assert exc.value.code == 'INVALID_SETTINGS'


def test_patch_only_allows_known_fields(flask_app):
    game = registry.create_session('Alice', 4)
    with pytest.raises(MalformedInput) as exc:
        registry.GamePatch.from_payload({'status': 'completed'})
    assert exc.value.details == {'fields': ['status']}

    patch = registry.GamePatch.from_payload({'maxPlayers': 3, 'gameSettings': {'difficulty': 'hard'}})
    updated = registry.update_session(game.id, patch)
    assert updated.max_players == 3
    assert updated.settings == {'difficulty': 'hard', 'timeLimit': 300}


def test_patch_cannot_shrink_below_roster(flask_app):
    game = registry.create_session('Alice', 4)
    registry.join_session(game.id, 'Bob')
    registry.join_session(game.id, 'Carl')
    with pytest.raises(MalformedInput):
        registry.update_session(game.id, registry.GamePatch(max_players=2))


def test_patch_max_players_after_start_is_rejected(flask_app):
    game = registry.create_session('Alice', 4)
    game.status = 'in-progress'
    registry.commit('test setup')
    with pytest.raises(GameStateError):
        registry.update_session(game.id, registry.GamePatch(max_players=5))


def test_commit_failure_becomes_persistence_failure(flask_app, monkeypatch):
    from sqlalchemy.exc import OperationalError

    game = registry.create_session('Alice')

    def broken_commit():
        raise OperationalError('UPDATE', {}, Exception('disk full'))

    monkeypatch.setattr(db.session(), 'commit', broken_commit)
    with pytest.raises(PersistenceFailure) as exc:
        registry.join_session(game.id, 'Bob')
    assert exc.value.code == 'DATABASE_ERROR'


def test_link_lookup_treats_wildcards_literally(flask_app):
    game = registry.create_session('Alice')
    assert registry.find_session(game.id) is game
    for ref in ('%', '_', f'%{game.id[-4:]}'):
        with pytest.raises(SessionNotFound):
            registry.find_session(ref)


def test_join_after_start_is_rejected(flask_app):
    game = registry.create_session('Alice', 4)
    registry.join_session(game.id, 'Bob')
    game.status = 'in-progress'
    registry.commit('test setup')
    with pytest.raises(GameStateError) as exc:
        registry.join_session(game.id, 'Carl')
    assert exc.value.code == 'GAME_ALREADY_STARTED'
    assert len(game.players) == 2


def test_max_players_infinity_falls_back_to_default(flask_app):
    assert registry.clamp_max_players(float('inf')) == 4
    assert registry.create_session('Host', float('-inf')).max_players == 4


def test_concurrent_joins_never_overfill(flask_app):
    game = registry.create_session('Alice', 2)
    game_id = game.id
    barrier = threading.Barrier(2)
    outcomes = []

    def join(name):
        with flask_app.app_context():
            barrier.wait()
            try:
                with locked_session(game_id):
                    registry.join_session(game_id, name)
                outcomes.append('joined')
            except SessionFull:
                outcomes.append('full')

    threads = [threading.Thread(target=join, args=(n,)) for n in ('Bob', 'Carl')]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ['full', 'joined']
    db.session.expire_all()
    assert Player.query.filter_by(game_id=game_id).count() == 2
