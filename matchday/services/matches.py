"""Match result recording and match queries."""
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import aliased

from matchday.app import db
from matchday.constants import (
    CHALLENGE_ACCEPTED, CHALLENGE_COMPLETED, MATCH_COMPLETED,
)
from matchday.errors import (
    ApiError, ConflictError, InvalidStateError, NotFoundError, PermissionDeniedError,
)
from matchday.models import Challenge, Match, Team
from matchday.services.notifications import notify_best_effort
from matchday.services.ratings import (
    RESULT_WIN, RESULT_LOSS, determine_result, rating_changes, stat_deltas,
)
from matchday.time_utils import utcnow_naive

logger = logging.getLogger(__name__)


def _apply_team_deltas(team_id, deltas):
    """Server-side relative update, never a read-modify-write in Python."""
    Team.query.filter(Team.id == team_id).update({
        Team.wins: Team.wins + deltas['wins'],
        Team.losses: Team.losses + deltas['losses'],
        Team.draws: Team.draws + deltas['draws'],
        Team.matches_played: Team.matches_played + deltas['matches_played'],
        Team.rating: Team.rating + deltas['rating'],
    }, synchronize_session=False)


def _winner_id(result, home_team_id, away_team_id):
    if result == RESULT_WIN:
        return home_team_id
    if result == RESULT_LOSS:
        return away_team_id
    return None


def record_match_result(actor, challenge_id, home_score, away_score, match_date, venue=None):
    """Record the final score of an accepted challenge.

    The home side is always the challenge's ``from_team``. The match row,
    both teams' counters/ratings and the challenge status are written in one
    transaction: either all of them land or none do.
    """
    challenge = db.session.get(Challenge, challenge_id)
    if not challenge:
        raise NotFoundError('Challenge not found')

    home_team, away_team = challenge.from_team, challenge.to_team
    if actor.id not in (home_team.owner_id, away_team.owner_id):
        raise PermissionDeniedError('Only team owners can record match results')

    match = Match.query.filter_by(challenge_id=challenge.id).first()
    if match and match.status == MATCH_COMPLETED:
        raise ConflictError('Match result already recorded for this challenge')
    if challenge.status != CHALLENGE_ACCEPTED:
        raise InvalidStateError('Can only record results for accepted challenges')

    result = determine_result(home_score, away_score)
    home_change, away_change = rating_changes(result)
    home_deltas, away_deltas = stat_deltas(result)

    try:
        closed = Challenge.query.filter_by(
            id=challenge.id, status=CHALLENGE_ACCEPTED,
        ).update({'status': CHALLENGE_COMPLETED}, synchronize_session=False)
        if closed != 1:
            raise ConflictError('Match result already recorded for this challenge')

        if match is None:
            match = Match(challenge_id=challenge.id)
            db.session.add(match)
        match.home_team_id = home_team.id
        match.away_team_id = away_team.id
        match.sport = challenge.sport
        match.home_score = home_score
        match.away_score = away_score
        match.date = match_date
        match.venue = venue if venue is not None else (match.venue or challenge.venue)
        match.status = MATCH_COMPLETED
        match.winner_id = _winner_id(result, home_team.id, away_team.id)
        match.home_rating_change = home_change
        match.away_rating_change = away_change
        match.completed_at = utcnow_naive()

        _apply_team_deltas(home_team.id, home_deltas)
        _apply_team_deltas(away_team.id, away_deltas)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.warning('Concurrent result recording rejected for challenge %s', challenge_id)
        raise ConflictError('Match result already recorded for this challenge')
    except ApiError:
        db.session.rollback()
        raise
    except Exception:
        db.session.rollback()
        logger.exception('Match recording transaction aborted for challenge %s', challenge_id)
        raise

    logger.info(
        'Match %s recorded for challenge %s: %s-%s (%s)',
        match.id, challenge.id, home_score, away_score, result,
    )

    for team, opponent, change, own_score, other_score in (
        (home_team, away_team, home_change, home_score, away_score),
        (away_team, home_team, away_change, away_score, home_score),
    ):
        sign = '+' if change >= 0 else ''
        notify_best_effort(
            team.owner_id,
            'MATCH_COMPLETED',
            'Match Result Recorded',
            f'{team.name} {own_score}-{other_score} {opponent.name}. '
            f'Rating {sign}{change} → {team.rating}',
            data={'matchId': match.id, 'teamId': team.id, 'ratingChange': change},
        )
    return match


def get_match(match_id):
    match = db.session.get(Match, match_id)
    if not match:
        raise NotFoundError('Match not found')
    return match


def list_team_matches(team_id, page, limit):
    team = db.session.get(Team, team_id)
    if not team:
        raise NotFoundError('Team not found')
    query = Match.query.filter(or_(
        Match.home_team_id == team_id,
        Match.away_team_id == team_id,
    ))
    total = query.count()
    matches = query.order_by(Match.created_at.desc(), Match.id.desc()).offset(
        (page - 1) * limit
    ).limit(limit).all()
    return matches, total


def list_recent_matches(sport=None, region=None, limit=20):
    query = Match.query
    if sport:
        query = query.filter(Match.sport == sport)
    if region:
        home = aliased(Team)
        away = aliased(Team)
        query = query.join(home, Match.home_team_id == home.id).join(
            away, Match.away_team_id == away.id,
        ).filter(or_(home.region == region, away.region == region))
    return query.order_by(Match.created_at.desc(), Match.id.desc()).limit(limit).all()


def list_recent_completed_for_team(team_id, limit=10):
    return Match.query.filter(
        or_(Match.home_team_id == team_id, Match.away_team_id == team_id),
        Match.status == MATCH_COMPLETED,
    ).order_by(Match.completed_at.desc(), Match.id.desc()).limit(limit).all()
