def test_index_and_health(client):
    assert client.get('/').status_code == 200
    res = client.get('/health')
    assert res.status_code == 200
    assert res.get_json()['status'] == 'healthy'


def test_create_game(client):
    res = client.post('/api/games/create', json={'hostName': 'Alice', 'maxPlayers': 4})
    assert res.status_code == 201
    data = res.get_json()
    assert data['success'] is True
    game = data['game']
    assert game['status'] == 'waiting'
    assert game['maxPlayers'] == 4
    assert game['link'].endswith(f"/lobby/{game['id']}")
    assert game['host']['name'] == 'Alice'
    assert [p['name'] for p in game['players']] == ['Alice']
    assert game['gameData'] is None


def test_create_game_requires_host_name(client):
    res = client.post('/api/games/create', json={})
    assert res.status_code == 400
    assert res.get_json()['success'] is False


def test_create_clamps_max_players(client):
    game = client.post('/api/games/create', json={'hostName': 'A', 'maxPlayers': 20}).get_json()['game']
    assert game['maxPlayers'] == 6


def test_get_game_by_id_and_link(client):
    game = client.post('/api/games/create', json={'hostName': 'Alice'}).get_json()['game']
    res = client.get(f"/api/games/{game['id']}")
    assert res.status_code == 200
    assert res.get_json()['game']['id'] == game['id']

    res = client.get('/api/games/unknown')
    assert res.status_code == 404
    assert res.get_json()['code'] == 'GAME_NOT_FOUND'

    for ref in ('%25', '_'):
        assert client.get(f'/api/games/{ref}').status_code == 404
        assert client.put(f'/api/games/{ref}', json={'maxPlayers': 3}).status_code == 404
    assert client.get(f"/api/games/{game['id']}").get_json()['game']['maxPlayers'] == 4


def test_update_game(client):
    game = client.post('/api/games/create', json={'hostName': 'Alice'}).get_json()['game']
    res = client.put(f"/api/games/{game['id']}", json={'maxPlayers': 3, 'gameSettings': {'timeLimit': 120}})
    assert res.status_code == 200
    updated = res.get_json()['game']
    assert updated['maxPlayers'] == 3
    assert updated['gameSettings']['timeLimit'] == 120

    res = client.put(f"/api/games/{game['id']}", json={'status': 'completed'})
    assert res.status_code == 400
    assert res.get_json()['code'] == 'INVALID_PATCH'

    res = client.put(f"/api/games/{game['id']}", json={'gameSettings': {'tags': ['a']}})
    assert res.status_code == 400
    assert res.get_json()['code'] == 'INVALID_SETTINGS'
