import json
from itertools import count

import pytest
from matchday.app import create_app, db

_user_seq = count(1)


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def auth(token):
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def register(client):
    """Register a user; returns ``(token, user_id)``."""
    def _register(name=None, email=None, region='Europe', password='password123'):
        seq = next(_user_seq)
        res = client.post('/api/auth/register', json={
            'email': email or f'player{seq}@example.com',
            'password': password,
            'name': name or f'Player {seq}',
            'region': region,
        })
        assert res.status_code == 201, res.data
        data = json.loads(res.data)['data']
        return data['token'], data['user']['id']
    return _register


@pytest.fixture
def create_team(client):
    """Create a team owned by ``token``; returns the team dict."""
    def _create_team(token, name='Riverside FC', sport='Football', region='Europe', **extra):
        payload = {
            'name': name,
            'sport': sport,
            'region': region,
            'description': extra.pop('description', f'{name} plays on Sundays'),
            'maxPlayers': extra.pop('maxPlayers', 15),
            'contactEmail': extra.pop('contactEmail', 'captain@example.com'),
            'contactPhone': extra.pop('contactPhone', '+15551234567'),
        }
        payload.update(extra)
        res = client.post('/api/teams', json=payload, headers=auth(token))
        assert res.status_code == 201, res.data
        return json.loads(res.data)['data']
    return _create_team


@pytest.fixture
def send_challenge(client):
    def _send_challenge(token, to_team_id, proposed_date='2030-06-01T00:00:00Z',
                        proposed_time='18:30', **extra):
        payload = {
            'toTeamId': to_team_id,
            'proposedDate': proposed_date,
            'proposedTime': proposed_time,
        }
        payload.update(extra)
        return client.post('/api/challenges', json=payload, headers=auth(token))
    return _send_challenge


@pytest.fixture
def accepted_challenge(register, create_team, send_challenge, client):
    """Two owners, two Football teams and an ACCEPTED challenge A -> B."""
    token_a, user_a = register(name='Alice Owner')
    token_b, user_b = register(name='Bob Owner')
    team_a = create_team(token_a, name='Alpha United')
    team_b = create_team(token_b, name='Bravo Rovers')
    res = send_challenge(token_a, team_b['id'], venue='Central Park')
    assert res.status_code == 201, res.data
    challenge_id = json.loads(res.data)['data']['id']
    res = client.patch(
        f'/api/challenges/{challenge_id}/respond',
        json={'response': 'accepted'}, headers=auth(token_b),
    )
    assert res.status_code == 200, res.data
    return {
        'challenge_id': challenge_id,
        'token_a': token_a, 'user_a': user_a, 'team_a': team_a,
        'token_b': token_b, 'user_b': user_b, 'team_b': team_b,
    }
