"""Tests for match result recording, rating updates and match queries."""
import json

import pytest

from matchday.app import db
from matchday.models import Challenge, Match, Notification, Team


def _auth(token):
    return {'Authorization': f'Bearer {token}'}


def _record(client, token, challenge_id, home_score, away_score, **extra):
    payload = {
        'challengeId': challenge_id,
        'homeScore': home_score,
        'awayScore': away_score,
        'matchDate': '2030-06-01T18:30:00Z',
    }
    payload.update(extra)
    return client.post('/api/matches', json=payload, headers=_auth(token))


def _team(team_id):
    team = db.session.get(Team, team_id)
    db.session.refresh(team)
    return team


def _assert_counters_consistent(team):
    assert team.wins + team.losses + team.draws == team.matches_played


def test_home_win_moves_ratings_and_counters(client, accepted_challenge):
    ctx = accepted_challenge
    res = _record(client, ctx['token_a'], ctx['challenge_id'], 3, 1, venue='Central Park')
    assert res.status_code == 201
    body = json.loads(res.data)
    assert body['message'] == 'Match result recorded successfully'
    match = body['data']
    assert match['status'] == 'COMPLETED'
    assert match['homeTeamId'] == ctx['team_a']['id']
    assert match['awayTeamId'] == ctx['team_b']['id']
    assert match['winnerId'] == ctx['team_a']['id']
    assert match['homeRatingChange'] == 25
    assert match['awayRatingChange'] == -25

    home, away = _team(ctx['team_a']['id']), _team(ctx['team_b']['id'])
    assert (home.rating, home.wins, home.losses, home.matches_played) == (1025, 1, 0, 1)
    assert (away.rating, away.wins, away.losses, away.matches_played) == (975, 0, 1, 1)
    _assert_counters_consistent(home)
    _assert_counters_consistent(away)

    assert db.session.get(Challenge, ctx['challenge_id']).status == 'COMPLETED'


def test_away_win(client, accepted_challenge):
    ctx = accepted_challenge
    res = _record(client, ctx['token_b'], ctx['challenge_id'], 0, 2)
    assert res.status_code == 201
    assert json.loads(res.data)['data']['winnerId'] == ctx['team_b']['id']
    assert _team(ctx['team_a']['id']).rating == 975
    assert _team(ctx['team_b']['id']).rating == 1025


def test_draw_gives_both_teams_five(client, accepted_challenge):
    ctx = accepted_challenge
    res = _record(client, ctx['token_a'], ctx['challenge_id'], 2, 2)
    assert res.status_code == 201
    match = json.loads(res.data)['data']
    assert match['winnerId'] is None
    assert (match['homeRatingChange'], match['awayRatingChange']) == (5, 5)

    for team_id in (ctx['team_a']['id'], ctx['team_b']['id']):
        team = _team(team_id)
        assert (team.rating, team.draws, team.matches_played) == (1005, 1, 1)
        _assert_counters_consistent(team)


def test_recording_finalizes_the_scheduled_match(client, accepted_challenge):
    ctx = accepted_challenge
    scheduled = Match.query.filter_by(challenge_id=ctx['challenge_id']).one()
    scheduled_id = scheduled.id

    res = _record(client, ctx['token_a'], ctx['challenge_id'], 1, 0)
    assert json.loads(res.data)['data']['id'] == scheduled_id
    assert Match.query.filter_by(challenge_id=ctx['challenge_id']).count() == 1


def test_venue_defaults_to_challenge_venue(client, accepted_challenge):
    ctx = accepted_challenge
    res = _record(client, ctx['token_a'], ctx['challenge_id'], 1, 0)
    assert json.loads(res.data)['data']['venue'] == 'Central Park'


def test_second_recording_is_rejected_without_touching_counters(client, accepted_challenge):
    ctx = accepted_challenge
    assert _record(client, ctx['token_a'], ctx['challenge_id'], 3, 1).status_code == 201

    res = _record(client, ctx['token_b'], ctx['challenge_id'], 0, 5)
    assert res.status_code == 400
    assert json.loads(res.data)['message'] == 'Match result already recorded for this challenge'

    home, away = _team(ctx['team_a']['id']), _team(ctx['team_b']['id'])
    assert (home.rating, home.matches_played) == (1025, 1)
    assert (away.rating, away.matches_played) == (975, 1)


def test_non_owner_cannot_record(client, accepted_challenge, register):
    ctx = accepted_challenge
    outsider, _ = register()
    res = _record(client, outsider, ctx['challenge_id'], 1, 0)
    assert res.status_code == 403
    assert _team(ctx['team_a']['id']).matches_played == 0


def test_pending_challenge_cannot_be_recorded(client, register, create_team, send_challenge):
    token_a, _ = register()
    token_b, _ = register()
    create_team(token_a, name='Alpha United')
    team_b = create_team(token_b, name='Bravo Rovers')
    challenge_id = json.loads(send_challenge(token_a, team_b['id']).data)['data']['id']

    res = _record(client, token_a, challenge_id, 1, 0)
    assert res.status_code == 400
    assert json.loads(res.data)['message'] == 'Can only record results for accepted challenges'
    assert Match.query.count() == 0


def test_missing_challenge_is_404(client, register):
    token, _ = register()
    assert _record(client, token, 777, 1, 0).status_code == 404


@pytest.mark.parametrize('payload', [
    {'homeScore': -1, 'awayScore': 0},
    {'homeScore': 1.5, 'awayScore': 0},
    {'homeScore': 'two', 'awayScore': 0},
    {'homeScore': 1, 'awayScore': 0, 'matchDate': 'not-a-date'},
    {'homeScore': 1, 'awayScore': 0, 'venue': ''},
    {'homeScore': 10 ** 30, 'awayScore': 0},
    {'homeScore': 1, 'awayScore': 0, 'challengeId': 10 ** 30},
])
def test_invalid_payloads_are_rejected(client, accepted_challenge, payload):
    ctx = accepted_challenge
    body = {'challengeId': ctx['challenge_id'], 'matchDate': '2030-06-01T18:30:00Z'}
    body.update(payload)
    res = client.post('/api/matches', json=body, headers=_auth(ctx['token_a']))
    assert res.status_code == 400
    assert db.session.get(Challenge, ctx['challenge_id']).status == 'ACCEPTED'


def test_failure_mid_transaction_rolls_everything_back(client, accepted_challenge, monkeypatch):
    from matchday.services import matches as recording

    ctx = accepted_challenge
    real_apply = recording._apply_team_deltas
    calls = []

    def _fail_on_away(team_id, deltas):
        calls.append(team_id)
        if team_id == ctx['team_b']['id']:
            raise RuntimeError('database went away')
        real_apply(team_id, deltas)

    monkeypatch.setattr(recording, '_apply_team_deltas', _fail_on_away)
    res = _record(client, ctx['token_a'], ctx['challenge_id'], 3, 1)
    assert res.status_code == 500
    assert calls == [ctx['team_a']['id'], ctx['team_b']['id']]

    db.session.expire_all()
    home = db.session.get(Team, ctx['team_a']['id'])
    assert (home.rating, home.wins, home.matches_played) == (1000, 0, 0)
    assert db.session.get(Challenge, ctx['challenge_id']).status == 'ACCEPTED'
    assert Match.query.filter_by(challenge_id=ctx['challenge_id']).one().status == 'SCHEDULED'


def test_completion_notifies_both_owners(client, accepted_challenge):
    ctx = accepted_challenge
    _record(client, ctx['token_a'], ctx['challenge_id'], 3, 1)
    for user_id in (ctx['user_a'], ctx['user_b']):
        assert Notification.query.filter_by(user_id=user_id, type='MATCH_COMPLETED').count() == 1


def test_match_survives_notification_failure(client, accepted_challenge, monkeypatch):
    from matchday.services import notifications

    def _boom(*args, **kwargs):
        raise RuntimeError('notification store unavailable')

    monkeypatch.setattr(notifications, 'create_notification', _boom)
    ctx = accepted_challenge
    res = _record(client, ctx['token_a'], ctx['challenge_id'], 3, 1)
    assert res.status_code == 201
    assert _team(ctx['team_a']['id']).rating == 1025


def test_team_stats_after_matches(client, accepted_challenge):
    ctx = accepted_challenge
    _record(client, ctx['token_a'], ctx['challenge_id'], 3, 1)

    res = client.get(f'/api/teams/{ctx["team_a"]["id"]}/stats')
    stats = json.loads(res.data)['data']
    assert stats['wins'] == 1
    assert stats['matchesPlayed'] == 1
    assert stats['winPercentage'] == 100
    assert len(stats['recentMatches']) == 1


def test_match_queries(client, accepted_challenge):
    ctx = accepted_challenge
    match_id = json.loads(_record(client, ctx['token_a'], ctx['challenge_id'], 3, 1).data)['data']['id']

    detail = client.get(f'/api/matches/{match_id}', headers=_auth(ctx['token_b']))
    assert detail.status_code == 200
    assert json.loads(detail.data)['data']['challenge']['id'] == ctx['challenge_id']

    team_matches = client.get(
        f'/api/matches/team/{ctx["team_b"]["id"]}', headers=_auth(ctx['token_b']),
    )
    body = json.loads(team_matches.data)
    assert [m['id'] for m in body['data']] == [match_id]
    assert body['pagination']['total'] == 1

    recent = json.loads(client.get('/api/matches?sport=Football&region=Europe').data)['data']
    assert [m['id'] for m in recent] == [match_id]
    assert json.loads(client.get('/api/matches?region=Asia').data)['data'] == []

    assert client.get('/api/matches/9999', headers=_auth(ctx['token_a'])).status_code == 404
    assert client.get('/api/matches/team/9999', headers=_auth(ctx['token_a'])).status_code == 404


def test_out_of_range_ids_in_path_are_404(client, register):
    token, _ = register()
    huge = 10 ** 30
    res = client.get(f'/api/matches/{huge}', headers=_auth(token))
    assert res.status_code == 404
    assert json.loads(res.data)['success'] is False
    assert client.get(f'/api/teams/{huge}').status_code == 404
    assert client.patch(f'/api/challenges/{huge}/cancel', headers=_auth(token)).status_code == 404
