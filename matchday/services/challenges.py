"""Challenge lifecycle: creation, response and cancellation.

States: PENDING → ACCEPTED | DECLINED | CANCELLED
        ACCEPTED → COMPLETED | CANCELLED
DECLINED, COMPLETED and CANCELLED are terminal.

Status changes are written as conditional updates (``WHERE status = <expected>``)
so two concurrent requests cannot both move a challenge out of the same state.
"""
import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from matchday.app import db
from matchday.constants import (
    CHALLENGE_PENDING, CHALLENGE_ACCEPTED, CHALLENGE_DECLINED,
    CHALLENGE_COMPLETED, CHALLENGE_CANCELLED,
    MATCH_SCHEDULED, MATCH_CANCELLED,
)
from matchday.errors import (
    ConflictError, InvalidStateError, NotFoundError, PermissionDeniedError,
    ValidationError,
)
from matchday.models import Challenge, Match, Team
from matchday.services.notifications import notify_best_effort

logger = logging.getLogger(__name__)

VALID_TRANSITIONS = {
    CHALLENGE_PENDING: (CHALLENGE_ACCEPTED, CHALLENGE_DECLINED, CHALLENGE_CANCELLED),
    CHALLENGE_ACCEPTED: (CHALLENGE_COMPLETED, CHALLENGE_CANCELLED),
    CHALLENGE_DECLINED: (),
    CHALLENGE_COMPLETED: (),
    CHALLENGE_CANCELLED: (),
}

RESPONSE_STATUSES = {
    'accepted': CHALLENGE_ACCEPTED,
    'declined': CHALLENGE_DECLINED,
}


def can_transition(current, target):
    return target in VALID_TRANSITIONS.get(current, ())


def is_terminal(status):
    return not VALID_TRANSITIONS.get(status)


def _transition(challenge, expected, target):
    """Move ``challenge`` from ``expected`` to ``target`` inside the open transaction."""
    if not can_transition(expected, target):
        raise InvalidStateError(f'Cannot move a challenge from {expected} to {target}')
    updated = Challenge.query.filter_by(id=challenge.id, status=expected).update(
        {'status': target}, synchronize_session=False,
    )
    if updated != 1:
        raise InvalidStateError('Challenge status changed by another request')


def _get_challenge_or_404(challenge_id):
    challenge = db.session.get(Challenge, challenge_id)
    if not challenge:
        raise NotFoundError('Challenge not found')
    return challenge


def _active_team_ids_for(user_id):
    return [
        team_id for (team_id,) in db.session.query(Team.id).filter(
            Team.owner_id == user_id,
            Team.is_active.is_(True),
        ).all()
    ]


def find_challenger_team(user_id, target_team):
    """First active team owned by ``user_id`` that plays the target's sport."""
    return Team.query.filter(
        Team.owner_id == user_id,
        Team.sport == target_team.sport,
        Team.is_active.is_(True),
        Team.id != target_team.id,
    ).order_by(Team.created_at.asc(), Team.id.asc()).first()


def create_challenge(actor, to_team_id, proposed_date, proposed_time, venue=None, message=None):
    to_team = db.session.get(Team, to_team_id)
    if not to_team:
        raise NotFoundError('Target team not found')
    if not to_team.is_active:
        raise InvalidStateError('Target team is not active')

    from_team = find_challenger_team(actor.id, to_team)
    if not from_team:
        raise ValidationError(f'You must have an active {to_team.sport} team to send challenges')

    duplicate = Challenge.query.filter_by(
        from_team_id=from_team.id,
        to_team_id=to_team.id,
        status=CHALLENGE_PENDING,
        proposed_date=proposed_date,
        proposed_time=proposed_time,
    ).first()
    if duplicate:
        raise ConflictError(
            'You already have a pending challenge with this team for the same date and time'
        )

    challenge = Challenge(
        from_team_id=from_team.id,
        to_team_id=to_team.id,
        from_user_id=actor.id,
        sport=from_team.sport,
        proposed_date=proposed_date,
        proposed_time=proposed_time,
        venue=venue,
        message=message,
        status=CHALLENGE_PENDING,
    )
    db.session.add(challenge)
    db.session.commit()
    logger.info(
        'Challenge %s created: team %s -> team %s (%s)',
        challenge.id, from_team.id, to_team.id, from_team.sport,
    )

    notify_best_effort(
        to_team.owner_id,
        'CHALLENGE_RECEIVED',
        'New Challenge Received',
        f'{from_team.name} has challenged your team {to_team.name} to a {from_team.sport} match',
        data={'challengeId': challenge.id, 'fromTeamId': from_team.id, 'toTeamId': to_team.id},
    )
    return challenge


def respond_to_challenge(actor, challenge_id, response):
    target_status = RESPONSE_STATUSES.get(response)
    if target_status is None:
        raise ValidationError(
            'Validation failed',
            errors=['Response must be either "accepted" or "declined"'],
        )

    challenge = _get_challenge_or_404(challenge_id)
    if challenge.to_team.owner_id != actor.id:
        raise PermissionDeniedError('You can only respond to challenges for teams you own')
    if challenge.status != CHALLENGE_PENDING:
        raise InvalidStateError('This challenge has already been responded to')

    try:
        _transition(challenge, CHALLENGE_PENDING, target_status)
        if target_status == CHALLENGE_ACCEPTED:
            db.session.add(Match(
                challenge_id=challenge.id,
                home_team_id=challenge.from_team_id,
                away_team_id=challenge.to_team_id,
                sport=challenge.sport,
                date=challenge.proposed_date,
                venue=challenge.venue,
                status=MATCH_SCHEDULED,
            ))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        logger.warning('Duplicate match row while accepting challenge %s', challenge_id)
        raise ConflictError('A match already exists for this challenge')
    except Exception:
        db.session.rollback()
        raise

    logger.info('Challenge %s %s by user %s', challenge.id, target_status, actor.id)

    from_team, to_team = challenge.from_team, challenge.to_team
    if target_status == CHALLENGE_ACCEPTED:
        notify_best_effort(
            from_team.owner_id,
            'CHALLENGE_ACCEPTED',
            'Challenge Accepted',
            f'{to_team.name} accepted your challenge. The match is scheduled for '
            f'{challenge.proposed_date.date().isoformat()} at {challenge.proposed_time}.',
            data={'challengeId': challenge.id, 'matchId': challenge.match.id if challenge.match else None},
        )
        notify_best_effort(
            from_team.owner_id,
            'MATCH_SCHEDULED',
            'Match Scheduled',
            f'{from_team.name} vs {to_team.name} on {challenge.proposed_date.date().isoformat()} '
            f'at {challenge.proposed_time}' + (f', {challenge.venue}' if challenge.venue else ''),
            data={'challengeId': challenge.id, 'matchId': challenge.match.id if challenge.match else None},
        )
    else:
        notify_best_effort(
            from_team.owner_id,
            'CHALLENGE_DECLINED',
            'Challenge Declined',
            f'{to_team.name} declined your challenge.',
            data={'challengeId': challenge.id},
        )
    return challenge


def cancel_challenge(actor, challenge_id):
    challenge = _get_challenge_or_404(challenge_id)
    from_owner = challenge.from_team.owner_id
    to_owner = challenge.to_team.owner_id
    if actor.id not in (from_owner, to_owner):
        raise PermissionDeniedError('You can only cancel challenges involving teams you own')

    current = challenge.status
    if current == CHALLENGE_PENDING and actor.id != from_owner:
        raise PermissionDeniedError('Decline the challenge instead of cancelling it')
    if is_terminal(current):
        raise InvalidStateError(f'A {current.lower()} challenge cannot be cancelled')

    try:
        _transition(challenge, current, CHALLENGE_CANCELLED)
        Match.query.filter(
            Match.challenge_id == challenge.id,
            Match.status == MATCH_SCHEDULED,
        ).update({'status': MATCH_CANCELLED}, synchronize_session=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info('Challenge %s cancelled by user %s', challenge.id, actor.id)

    other_owner = to_owner if actor.id == from_owner else from_owner
    if other_owner != actor.id:
        notify_best_effort(
            other_owner,
            'CHALLENGE_CANCELLED',
            'Challenge Cancelled',
            f'The {challenge.sport} challenge between {challenge.from_team.name} and '
            f'{challenge.to_team.name} was cancelled.',
            data={'challengeId': challenge.id},
        )
    return challenge


def get_challenge(actor, challenge_id):
    challenge = _get_challenge_or_404(challenge_id)
    if actor.id not in (challenge.from_team.owner_id, challenge.to_team.owner_id):
        raise PermissionDeniedError('You can only view challenges involving teams you own')
    return challenge


def list_my_challenges(actor, status=None):
    team_ids = _active_team_ids_for(actor.id)
    if not team_ids:
        return []
    query = Challenge.query.filter(or_(
        Challenge.from_team_id.in_(team_ids),
        Challenge.to_team_id.in_(team_ids),
    ))
    if status:
        query = query.filter(Challenge.status == status)
    return query.order_by(Challenge.created_at.desc(), Challenge.id.desc()).all()


def list_pending_challenges(actor):
    team_ids = _active_team_ids_for(actor.id)
    if not team_ids:
        return []
    return Challenge.query.filter(
        Challenge.to_team_id.in_(team_ids),
        Challenge.status == CHALLENGE_PENDING,
    ).order_by(Challenge.created_at.desc(), Challenge.id.desc()).all()
