"""Tests for the challenge lifecycle: send, respond, cancel and listings."""
import json

from matchday.app import db
from matchday.models import Challenge, Match, Notification


def _auth(token):
    return {'Authorization': f'Bearer {token}'}


def _respond(client, token, challenge_id, response):
    return client.patch(
        f'/api/challenges/{challenge_id}/respond',
        json={'response': response}, headers=_auth(token),
    )


def _two_teams(register, create_team, sport='Football'):
    token_a, user_a = register()
    token_b, user_b = register()
    team_a = create_team(token_a, name='Alpha United', sport=sport)
    team_b = create_team(token_b, name='Bravo Rovers', sport=sport)
    return token_a, user_a, team_a, token_b, user_b, team_b


def test_send_challenge_creates_pending_and_notifies_target_owner(
    client, register, create_team, send_challenge,
):
    token_a, user_a, team_a, _, user_b, team_b = _two_teams(register, create_team)

    res = send_challenge(token_a, team_b['id'], venue='Central Park', message='Good luck')
    assert res.status_code == 201
    body = json.loads(res.data)
    assert body['message'] == 'Challenge sent successfully'
    challenge = body['data']
    assert challenge['status'] == 'PENDING'
    assert challenge['fromTeamId'] == team_a['id']
    assert challenge['toTeamId'] == team_b['id']
    assert challenge['fromUserId'] == user_a
    assert challenge['sport'] == 'Football'
    assert challenge['proposedTime'] == '18:30'

    notes = Notification.query.filter_by(user_id=user_b).all()
    assert len(notes) == 1
    assert notes[0].type == 'CHALLENGE_RECEIVED'
    assert json.loads(notes[0].data_json)['challengeId'] == challenge['id']


def test_send_challenge_requires_same_sport_team(client, register, create_team, send_challenge):
    token_a, _ = register()
    token_b, _ = register()
    create_team(token_a, name='Hoopers', sport='Basketball')
    team_b = create_team(token_b, name='Kickers', sport='Football')

    res = send_challenge(token_a, team_b['id'])
    assert res.status_code == 400
    assert 'Football team' in json.loads(res.data)['message']
    assert Challenge.query.count() == 0


def test_send_challenge_to_unknown_team(client, register, create_team, send_challenge):
    token_a, _ = register()
    create_team(token_a)
    res = send_challenge(token_a, 4242)
    assert res.status_code == 404


def test_send_challenge_to_inactive_team(client, register, create_team, send_challenge):
    token_a, _, _, token_b, _, team_b = _two_teams(register, create_team)
    client.delete(f'/api/teams/{team_b["id"]}', headers=_auth(token_b))
    res = send_challenge(token_a, team_b['id'])
    assert res.status_code == 400
    assert json.loads(res.data)['message'] == 'Target team is not active'


def test_duplicate_pending_challenge_is_rejected(client, register, create_team, send_challenge):
    token_a, _, _, _, _, team_b = _two_teams(register, create_team)
    assert send_challenge(token_a, team_b['id']).status_code == 201
    res = send_challenge(token_a, team_b['id'])
    assert res.status_code == 400
    assert 'already have a pending challenge' in json.loads(res.data)['message']
    assert Challenge.query.count() == 1


def test_send_challenge_validates_payload(client, register, create_team):
    token_a, _ = register()
    create_team(token_a)
    res = client.post('/api/challenges', json={
        'toTeamId': 'abc', 'proposedDate': 'tomorrow', 'proposedTime': '25:00',
        'venue': 'x' * 201,
    }, headers=_auth(token_a))
    assert res.status_code == 400
    assert len(json.loads(res.data)['errors']) == 4


def test_send_challenge_rejects_out_of_range_team_id(client, register, create_team, send_challenge):
    token_a, _ = register()
    create_team(token_a)
    res = send_challenge(token_a, 10 ** 30)
    assert res.status_code == 400
    assert json.loads(res.data)['errors'] == ['Please provide a valid team ID']
    assert Challenge.query.count() == 0


def test_accept_creates_scheduled_match(client, register, create_team, send_challenge):
    token_a, user_a, team_a, token_b, _, team_b = _two_teams(register, create_team)
    challenge_id = json.loads(send_challenge(token_a, team_b['id'], venue='Pitch 3').data)['data']['id']

    res = _respond(client, token_b, challenge_id, 'accepted')
    assert res.status_code == 200
    body = json.loads(res.data)
    assert body['message'] == 'Challenge accepted successfully'
    assert body['data']['status'] == 'ACCEPTED'

    match = Match.query.filter_by(challenge_id=challenge_id).one()
    assert match.status == 'SCHEDULED'
    assert match.home_team_id == team_a['id']
    assert match.away_team_id == team_b['id']
    assert match.venue == 'Pitch 3'
    assert body['data']['matchId'] == match.id

    types = [n.type for n in Notification.query.filter_by(user_id=user_a).all()]
    assert sorted(types) == ['CHALLENGE_ACCEPTED', 'MATCH_SCHEDULED']


def test_decline_notifies_challenger(client, register, create_team, send_challenge):
    token_a, user_a, _, token_b, _, team_b = _two_teams(register, create_team)
    challenge_id = json.loads(send_challenge(token_a, team_b['id']).data)['data']['id']

    res = _respond(client, token_b, challenge_id, 'declined')
    assert res.status_code == 200
    assert json.loads(res.data)['data']['status'] == 'DECLINED'
    assert Match.query.count() == 0
    assert Notification.query.filter_by(user_id=user_a, type='CHALLENGE_DECLINED').count() == 1


def test_only_target_owner_can_respond(client, register, create_team, send_challenge):
    token_a, _, _, _, _, team_b = _two_teams(register, create_team)
    challenge_id = json.loads(send_challenge(token_a, team_b['id']).data)['data']['id']

    res = _respond(client, token_a, challenge_id, 'accepted')
    assert res.status_code == 403
    assert db.session.get(Challenge, challenge_id).status == 'PENDING'


def test_respond_rejects_unknown_response(client, register, create_team, send_challenge):
    token_a, _, _, token_b, _, team_b = _two_teams(register, create_team)
    challenge_id = json.loads(send_challenge(token_a, team_b['id']).data)['data']['id']
    res = _respond(client, token_b, challenge_id, 'maybe')
    assert res.status_code == 400


def test_second_response_is_rejected(client, register, create_team, send_challenge):
    token_a, _, _, token_b, _, team_b = _two_teams(register, create_team)
    challenge_id = json.loads(send_challenge(token_a, team_b['id']).data)['data']['id']
    assert _respond(client, token_b, challenge_id, 'declined').status_code == 200

    res = _respond(client, token_b, challenge_id, 'accepted')
    assert res.status_code == 400
    assert json.loads(res.data)['message'] == 'This challenge has already been responded to'
    assert db.session.get(Challenge, challenge_id).status == 'DECLINED'
    assert Match.query.count() == 0


def test_respond_to_missing_challenge(client, register):
    token, _ = register()
    assert _respond(client, token, 999, 'accepted').status_code == 404


def test_challenger_can_cancel_pending(client, register, create_team, send_challenge):
    token_a, _, _, token_b, user_b, team_b = _two_teams(register, create_team)
    challenge_id = json.loads(send_challenge(token_a, team_b['id']).data)['data']['id']

    res = client.patch(f'/api/challenges/{challenge_id}/cancel', headers=_auth(token_b))
    assert res.status_code == 403

    res = client.patch(f'/api/challenges/{challenge_id}/cancel', headers=_auth(token_a))
    assert res.status_code == 200
    assert json.loads(res.data)['data']['status'] == 'CANCELLED'
    assert Notification.query.filter_by(user_id=user_b, type='CHALLENGE_CANCELLED').count() == 1

    assert _respond(client, token_b, challenge_id, 'accepted').status_code == 400


def test_cancel_accepted_challenge_cancels_scheduled_match(client, accepted_challenge):
    ctx = accepted_challenge
    res = client.patch(
        f'/api/challenges/{ctx["challenge_id"]}/cancel', headers=_auth(ctx['token_b']),
    )
    assert res.status_code == 200
    match = Match.query.filter_by(challenge_id=ctx['challenge_id']).one()
    assert match.status == 'CANCELLED'

    again = client.patch(
        f'/api/challenges/{ctx["challenge_id"]}/cancel', headers=_auth(ctx['token_a']),
    )
    assert again.status_code == 400


def test_declined_challenge_cannot_be_cancelled(client, register, create_team, send_challenge):
    token_a, _, _, token_b, _, team_b = _two_teams(register, create_team)
    challenge_id = json.loads(send_challenge(token_a, team_b['id']).data)['data']['id']
    assert _respond(client, token_b, challenge_id, 'declined').status_code == 200

    res = client.patch(f'/api/challenges/{challenge_id}/cancel', headers=_auth(token_a))
    assert res.status_code == 400
    assert json.loads(res.data)['message'] == 'A declined challenge cannot be cancelled'
    assert db.session.get(Challenge, challenge_id).status == 'DECLINED'


def test_challenge_listings(client, register, create_team, send_challenge):
    token_a, _, _, token_b, _, team_b = _two_teams(register, create_team)
    outsider, _ = register()
    challenge_id = json.loads(send_challenge(token_a, team_b['id']).data)['data']['id']

    mine = json.loads(client.get('/api/challenges/my', headers=_auth(token_a)).data)['data']
    assert [c['id'] for c in mine] == [challenge_id]

    pending_a = json.loads(client.get('/api/challenges/pending', headers=_auth(token_a)).data)['data']
    pending_b = json.loads(client.get('/api/challenges/pending', headers=_auth(token_b)).data)['data']
    assert pending_a == []
    assert [c['id'] for c in pending_b] == [challenge_id]

    filtered = client.get('/api/challenges/my?status=accepted', headers=_auth(token_b))
    assert json.loads(filtered.data)['data'] == []

    assert client.get(f'/api/challenges/{challenge_id}', headers=_auth(token_b)).status_code == 200
    assert client.get(f'/api/challenges/{challenge_id}', headers=_auth(outsider)).status_code == 403


def test_challenge_creation_survives_notification_failure(
    client, register, create_team, send_challenge, monkeypatch, caplog,
):
    from matchday.services import notifications

    token_a, _, _, _, _, team_b = _two_teams(register, create_team)

    def _boom(*args, **kwargs):
        raise RuntimeError('notification store unavailable')

    monkeypatch.setattr(notifications, 'create_notification', _boom)
    with caplog.at_level('ERROR', logger='matchday.services.notifications'):
        res = send_challenge(token_a, team_b['id'])

    assert res.status_code == 201
    assert Challenge.query.count() == 1
    assert Notification.query.count() == 0
    assert 'Failed to create CHALLENGE_RECEIVED notification' in caplog.text


def test_transition_table():
    from matchday.services.challenges import can_transition, is_terminal

    assert can_transition('PENDING', 'ACCEPTED')
    assert can_transition('ACCEPTED', 'COMPLETED')
    assert not can_transition('DECLINED', 'ACCEPTED')
    assert not can_transition('PENDING', 'COMPLETED')
    for status in ('DECLINED', 'COMPLETED', 'CANCELLED'):
        assert is_terminal(status)
    assert not is_terminal('PENDING')
