from flask import Blueprint, request, current_app
from matchday.app import db
from matchday.auth_utils import login_required
from matchday.constants import SPORTS, REGIONS, CHALLENGE_PENDING
from matchday.errors import ConflictError, PermissionDeniedError, ValidationError
from matchday.models import Challenge, Team, TeamMember
from matchday.responses import success_response, paginated_response
from matchday.services.matches import list_recent_completed_for_team
from matchday.services.teams import search_teams, get_team_or_404, win_percentage
from matchday.validators import (
    require_json_object, raise_if_errors, parse_pagination,
    parse_required_text, parse_optional_text, parse_choice,
    parse_int_in_range, parse_email, parse_phone,
)

teams_bp = Blueprint('teams', __name__)

_NAME_ERROR = 'Team name must be between 3 and 50 characters'
_DESCRIPTION_ERROR = 'Description must not exceed 500 characters'
_MAX_PLAYERS_ERROR = 'Maximum players must be between 5 and 50'
_EMAIL_ERROR = 'Please provide a valid contact email'
_PHONE_ERROR = 'Please provide a valid contact phone number'

# Profile fields an owner may edit; stats are written only by match recording.
_EDITABLE_FIELDS = {
    'name': ('name', lambda v: parse_required_text(v, 3, 50, _NAME_ERROR)),
    'description': ('description', lambda v: parse_optional_text(v, 500, _DESCRIPTION_ERROR)),
    'maxPlayers': ('max_players', lambda v: parse_int_in_range(v, 5, 50, _MAX_PLAYERS_ERROR)),
    'contactEmail': ('contact_email', lambda v: parse_email(v, _EMAIL_ERROR)),
    'contactPhone': ('contact_phone', lambda v: parse_phone(v, _PHONE_ERROR)),
    'avatar': ('avatar', lambda v: parse_optional_text(v, 500, 'Avatar URL is too long')),
}


def _require_owner(team, action):
    if team.owner_id != request.current_user.id:
        raise PermissionDeniedError(f'You can only {action} teams you own')


@teams_bp.route('', methods=['GET'])
def list_teams():
    """Discover active teams with optional sport/region/text filters."""
    sport = request.args.get('sport') or None
    region = request.args.get('region') or None
    search = (request.args.get('search') or '').strip() or None

    errors = []
    if sport and sport != 'all' and sport not in SPORTS:
        errors.append('Invalid sport filter')
    if region and region != 'all' and region not in REGIONS:
        errors.append('Invalid region filter')
    raise_if_errors(errors)
    page, limit = parse_pagination(
        request.args,
        current_app.config.get('DEFAULT_PAGE_SIZE', 20),
        current_app.config.get('MAX_PAGE_SIZE', 100),
    )

    teams, total = search_teams(sport=sport, region=region, search=search, page=page, limit=limit)
    return paginated_response([t.to_dict() for t in teams], page, limit, total)


@teams_bp.route('/<int:team_id>', methods=['GET'])
def get_team(team_id):
    team = get_team_or_404(team_id)
    data = team.to_dict(include_members=True)
    data['counts'] = {
        'sentChallenges': len(team.sent_challenges),
        'receivedChallenges': len(team.received_challenges),
        'homeMatches': len(team.home_matches),
        'awayMatches': len(team.away_matches),
    }
    return success_response(data)


@teams_bp.route('/<int:team_id>/stats', methods=['GET'])
def get_team_stats(team_id):
    team = get_team_or_404(team_id)
    recent = list_recent_completed_for_team(team.id, limit=10)
    return success_response({
        'id': team.id, 'name': team.name,
        'wins': team.wins, 'losses': team.losses, 'draws': team.draws,
        'rating': team.rating, 'matchesPlayed': team.matches_played,
        'winPercentage': win_percentage(team),
        'recentMatches': [m.to_dict() for m in recent],
    })


@teams_bp.route('', methods=['POST'])
@login_required
def create_team():
    data = require_json_object(request.get_json(silent=True))
    errors = []

    name, error = parse_required_text(data.get('name'), 3, 50, _NAME_ERROR)
    if error:
        errors.append(error)
    sport, error = parse_choice(data.get('sport'), SPORTS, 'Please select a valid sport')
    if error:
        errors.append(error)
    region, error = parse_choice(data.get('region'), REGIONS, 'Please select a valid region')
    if error:
        errors.append(error)
    description, error = parse_optional_text(data.get('description'), 500, _DESCRIPTION_ERROR)
    if error:
        errors.append(error)
    max_players, error = parse_int_in_range(data.get('maxPlayers'), 5, 50, _MAX_PLAYERS_ERROR)
    if error:
        errors.append(error)
    contact_email, error = parse_email(data.get('contactEmail'), _EMAIL_ERROR)
    if error:
        errors.append(error)
    contact_phone, error = parse_phone(data.get('contactPhone'), _PHONE_ERROR)
    if error:
        errors.append(error)
    raise_if_errors(errors)

    user = request.current_user
    if Team.query.filter_by(name=name, owner_id=user.id).first():
        raise ConflictError('You already have a team with this name')

    team = Team(
        name=name, sport=sport, region=region,
        description=description or '',
        max_players=max_players,
        contact_email=contact_email, contact_phone=contact_phone,
        owner_id=user.id,
    )
    db.session.add(team)
    db.session.flush()

    # Creator joins as captain
    db.session.add(TeamMember(team_id=team.id, user_id=user.id, role='captain'))
    db.session.commit()
    return success_response(team.to_dict(), message='Team created successfully', status=201)


@teams_bp.route('/my/teams', methods=['GET'])
@login_required
def get_my_teams():
    teams = Team.query.filter_by(
        owner_id=request.current_user.id, is_active=True,
    ).order_by(Team.created_at.desc(), Team.id.desc()).all()

    results = []
    for team in teams:
        team_dict = team.to_dict()
        team_dict['pendingChallenges'] = Challenge.query.filter_by(
            to_team_id=team.id, status=CHALLENGE_PENDING,
        ).count()
        results.append(team_dict)
    return success_response(results)


@teams_bp.route('/<int:team_id>', methods=['PUT'])
@login_required
def update_team(team_id):
    data = require_json_object(request.get_json(silent=True))
    team = get_team_or_404(team_id)
    _require_owner(team, 'update')

    updates = {}
    errors = []
    for key, (attr, parser) in _EDITABLE_FIELDS.items():
        if key not in data:
            continue
        value, error = parser(data.get(key))
        if error:
            errors.append(error)
            continue
        updates[attr] = value if value is not None else ''
    raise_if_errors(errors)
    if not updates:
        raise ValidationError('No updatable fields provided')

    new_name = updates.get('name')
    if new_name and new_name != team.name and Team.query.filter(
        Team.owner_id == team.owner_id,
        Team.name == new_name,
        Team.id != team.id,
    ).first():
        raise ConflictError('You already have a team with this name')

    for attr, value in updates.items():
        setattr(team, attr, value)
    db.session.commit()
    return success_response(team.to_dict(), message='Team updated successfully')


@teams_bp.route('/<int:team_id>', methods=['DELETE'])
@login_required
def delete_team(team_id):
    team = get_team_or_404(team_id)
    _require_owner(team, 'delete')

    # Soft delete keeps match history and ratings intact
    team.is_active = False
    db.session.commit()
    return success_response(message='Team deleted successfully')
