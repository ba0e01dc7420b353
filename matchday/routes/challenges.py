"""Challenge routes: propose, respond, cancel and list."""
from flask import Blueprint, request
from matchday.auth_utils import login_required
from matchday.responses import success_response
from matchday.services import challenges as lifecycle
from matchday.validators import (
    require_json_object, raise_if_errors,
    parse_positive_int, parse_iso_datetime, parse_time_of_day, parse_optional_text,
)

challenges_bp = Blueprint('challenges', __name__)


@challenges_bp.route('', methods=['POST'])
@login_required
def create_challenge():
    data = require_json_object(request.get_json(silent=True))
    errors = []

    to_team_id, error = parse_positive_int(data.get('toTeamId'), 'Please provide a valid team ID')
    if error:
        errors.append(error)
    proposed_date, error = parse_iso_datetime(
        data.get('proposedDate'), 'Please provide a valid date in ISO format',
    )
    if error:
        errors.append(error)
    proposed_time, error = parse_time_of_day(
        data.get('proposedTime'), 'Please provide a valid time in HH:MM format',
    )
    if error:
        errors.append(error)
    venue, error = parse_optional_text(data.get('venue'), 200, 'Venue must not exceed 200 characters')
    if error:
        errors.append(error)
    message, error = parse_optional_text(data.get('message'), 500, 'Message must not exceed 500 characters')
    if error:
        errors.append(error)
    raise_if_errors(errors)

    challenge = lifecycle.create_challenge(
        request.current_user,
        to_team_id=to_team_id,
        proposed_date=proposed_date,
        proposed_time=proposed_time,
        venue=venue or None,
        message=message or None,
    )
    return success_response(challenge.to_dict(), message='Challenge sent successfully', status=201)


@challenges_bp.route('/my', methods=['GET'])
@login_required
def get_my_challenges():
    """Challenges sent or received by any of the caller's active teams."""
    status = (request.args.get('status') or '').strip().upper() or None
    challenges = lifecycle.list_my_challenges(request.current_user, status=status)
    return success_response([c.to_dict() for c in challenges])


@challenges_bp.route('/pending', methods=['GET'])
@login_required
def get_pending_challenges():
    challenges = lifecycle.list_pending_challenges(request.current_user)
    return success_response([c.to_dict() for c in challenges])


@challenges_bp.route('/<int:challenge_id>', methods=['GET'])
@login_required
def get_challenge(challenge_id):
    challenge = lifecycle.get_challenge(request.current_user, challenge_id)
    return success_response(challenge.to_dict())


@challenges_bp.route('/<int:challenge_id>/respond', methods=['PATCH'])
@login_required
def respond_to_challenge(challenge_id):
    data = require_json_object(request.get_json(silent=True))
    response = str(data.get('response') or '').strip().lower()
    challenge = lifecycle.respond_to_challenge(request.current_user, challenge_id, response)
    return success_response(challenge.to_dict(), message=f'Challenge {response} successfully')


@challenges_bp.route('/<int:challenge_id>/cancel', methods=['PATCH'])
@login_required
def cancel_challenge(challenge_id):
    challenge = lifecycle.cancel_challenge(request.current_user, challenge_id)
    return success_response(challenge.to_dict(), message='Challenge cancelled successfully')
