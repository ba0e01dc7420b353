"""Match result recording and match history routes."""
from flask import Blueprint, request, current_app
from matchday.auth_utils import login_required
from matchday.constants import SPORTS, REGIONS
from matchday.responses import success_response, paginated_response
from matchday.services import matches as recording
from matchday.validators import (
    require_json_object, raise_if_errors, parse_pagination,
    parse_positive_int, parse_non_negative_int, parse_iso_datetime,
    parse_optional_text, parse_int_in_range,
)

matches_bp = Blueprint('matches', __name__)

_RECENT_DEFAULT_LIMIT = 20


@matches_bp.route('', methods=['POST'])
@login_required
def record_match():
    data = require_json_object(request.get_json(silent=True))
    errors = []

    challenge_id, error = parse_positive_int(data.get('challengeId'), 'Valid challenge ID is required')
    if error:
        errors.append(error)
    home_score, error = parse_non_negative_int(
        data.get('homeScore'), 'Home score must be a non-negative integer',
    )
    if error:
        errors.append(error)
    away_score, error = parse_non_negative_int(
        data.get('awayScore'), 'Away score must be a non-negative integer',
    )
    if error:
        errors.append(error)
    match_date, error = parse_iso_datetime(data.get('matchDate'), 'Valid match date is required')
    if error:
        errors.append(error)
    venue, error = parse_optional_text(
        data.get('venue'), 200, 'Venue must be 1-200 characters', min_len=1,
    )
    if error:
        errors.append(error)
    raise_if_errors(errors)

    match = recording.record_match_result(
        request.current_user,
        challenge_id=challenge_id,
        home_score=home_score,
        away_score=away_score,
        match_date=match_date,
        venue=venue,
    )
    return success_response(match.to_dict(), message='Match result recorded successfully', status=201)


@matches_bp.route('', methods=['GET'])
def get_recent_matches():
    """Public feed of recent matches, optionally narrowed by sport/region."""
    sport = request.args.get('sport') or None
    region = request.args.get('region') or None
    errors = []
    if sport and sport not in SPORTS:
        errors.append('Invalid sport filter')
    if region and region not in REGIONS:
        errors.append('Invalid region filter')
    limit = _RECENT_DEFAULT_LIMIT
    if request.args.get('limit'):
        max_limit = current_app.config.get('MAX_PAGE_SIZE', 100)
        limit, error = parse_int_in_range(
            request.args.get('limit'), 1, max_limit, f'Limit must be between 1 and {max_limit}',
        )
        if error:
            errors.append(error)
    raise_if_errors(errors)

    matches = recording.list_recent_matches(sport=sport, region=region, limit=limit)
    return success_response([m.to_dict() for m in matches])


@matches_bp.route('/team/<int:team_id>', methods=['GET'])
@login_required
def get_team_matches(team_id):
    page, limit = parse_pagination(
        request.args, 10, current_app.config.get('MAX_PAGE_SIZE', 100),
    )
    matches, total = recording.list_team_matches(team_id, page, limit)
    return paginated_response([m.to_dict() for m in matches], page, limit, total)


@matches_bp.route('/<int:match_id>', methods=['GET'])
@login_required
def get_match(match_id):
    match = recording.get_match(match_id)
    data = match.to_dict()
    challenge = match.challenge
    data['challenge'] = {
        'id': challenge.id,
        'sport': challenge.sport,
        'proposedDate': challenge.proposed_date.isoformat() if challenge.proposed_date else None,
        'message': challenge.message,
    } if challenge else None
    return success_response(data)
