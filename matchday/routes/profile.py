"""Player profile routes: personal details, preferences, privacy and awards."""
from flask import Blueprint, request, current_app
from matchday.app import db
from matchday.auth_utils import login_required, get_user_from_token
from matchday.constants import SPORTS, SKILL_LEVELS, PROFILE_VISIBILITY_OPTIONS
from matchday.errors import NotFoundError
from matchday.models import User, Achievement, Trophy
from matchday.responses import success_response
from matchday.validators import (
    require_json_object, raise_if_errors,
    parse_required_text, parse_optional_text, parse_phone, parse_iso_datetime,
    parse_choice, parse_bool, parse_string_list,
)

profile_bp = Blueprint('profile', __name__)

_URL_ERROR = '{} must not exceed 500 characters'
_WEEKDAYS = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')

_SOCIAL_FIELDS = {
    'instagramUrl': 'instagram_url',
    'twitterUrl': 'twitter_url',
    'facebookUrl': 'facebook_url',
    'linkedinUrl': 'linkedin_url',
}

_TEXT_FIELDS = {
    # key: (attr, max length)
    'avatar': ('avatar', 500),
    'bio': ('bio', 1000),
    'city': ('city', 100),
    'country': ('country', 100),
    'gender': ('gender', 30),
}


def _apply_social_links(user, data, errors):
    for key, attr in _SOCIAL_FIELDS.items():
        if key not in data:
            continue
        value, error = parse_optional_text(data.get(key), 500, _URL_ERROR.format(key))
        if error:
            errors.append(error)
        else:
            setattr(user, attr, value or '')


def _parse_availability(raw_value):
    """Map of weekday -> list of 'HH:MM-HH:MM' style slot labels."""
    if not isinstance(raw_value, dict):
        return None, 'Weekly availability must be an object keyed by weekday'
    cleaned = {}
    for day, slots in raw_value.items():
        if str(day).lower() not in _WEEKDAYS:
            return None, f'Unknown weekday: {day}'
        parsed, error = parse_string_list(slots, f'Availability for {day} must be a list of strings')
        if error:
            return None, error
        cleaned[str(day).lower()] = parsed
    return cleaned, None


def _profile_payload(user):
    return {'user': user.to_dict()}


@profile_bp.route('/me', methods=['GET'])
@login_required
def get_my_profile():
    return success_response(request.current_user.to_dict())


@profile_bp.route('/basic-info', methods=['PUT'])
@login_required
def update_basic_info():
    data = require_json_object(request.get_json(silent=True))
    user = request.current_user
    errors = []

    if 'name' in data:
        name, error = parse_required_text(data.get('name'), 2, 50, 'Name must be between 2 and 50 characters')
        if error:
            errors.append(error)
        else:
            user.name = name
    if data.get('phone'):
        phone, error = parse_phone(data.get('phone'), 'Please provide a valid phone number')
        if error:
            errors.append(error)
        else:
            user.phone = phone
    for key, (attr, max_len) in _TEXT_FIELDS.items():
        if key not in data:
            continue
        value, error = parse_optional_text(data.get(key), max_len, f'{key} must not exceed {max_len} characters')
        if error:
            errors.append(error)
        else:
            setattr(user, attr, value or '')
    if 'dateOfBirth' in data:
        if data.get('dateOfBirth') in (None, ''):
            user.date_of_birth = None
        else:
            born, error = parse_iso_datetime(data.get('dateOfBirth'), 'Date of birth must be an ISO date')
            if error:
                errors.append(error)
            else:
                user.date_of_birth = born.date()
    _apply_social_links(user, data, errors)

    if errors:
        db.session.rollback()
    raise_if_errors(errors)
    db.session.commit()
    return success_response(_profile_payload(user), message='Profile updated successfully')


@profile_bp.route('/<int:user_id>', methods=['GET'])
def get_public_profile(user_id):
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        raise NotFoundError('User not found')

    viewer = get_user_from_token(request.headers.get('Authorization', ''))
    if viewer and viewer.id == user.id:
        return success_response(user.to_dict())
    # No friend graph exists, so FRIENDS behaves like PRIVATE for other viewers
    if user.profile_visibility != 'PUBLIC':
        return success_response(user.to_summary_dict())
    return success_response(user.to_public_dict())


@profile_bp.route('/social-links', methods=['PUT'])
@login_required
def update_social_links():
    data = require_json_object(request.get_json(silent=True))
    user = request.current_user
    errors = []
    _apply_social_links(user, data, errors)
    if errors:
        db.session.rollback()
    raise_if_errors(errors)
    db.session.commit()
    return success_response(_profile_payload(user), message='Social links updated successfully')


@profile_bp.route('/sports-preferences', methods=['PUT'])
@login_required
def update_sports_preferences():
    data = require_json_object(request.get_json(silent=True))
    user = request.current_user
    errors = []

    favorite_sports, error = parse_string_list(data.get('favoriteSports'), 'Favorite sports must be a list')
    if error:
        errors.append(error)
    elif any(sport not in SPORTS for sport in favorite_sports):
        errors.append('Favorite sports must come from the supported sports list')
    positions, error = parse_string_list(data.get('preferredPositions'), 'Preferred positions must be a list')
    if error:
        errors.append(error)
    favorite_teams, error = parse_string_list(data.get('favoriteTeams'), 'Favorite teams must be a list')
    if error:
        errors.append(error)
    favorite_players, error = parse_string_list(data.get('favoritePlayers'), 'Favorite players must be a list')
    if error:
        errors.append(error)
    skill_level = None
    if data.get('skillLevel') is not None:
        skill_level, error = parse_choice(data.get('skillLevel'), SKILL_LEVELS, 'Invalid skill level')
        if error:
            errors.append(error)
    raise_if_errors(errors)

    user.favorite_sports = favorite_sports
    user.preferred_positions = positions
    user.favorite_teams = favorite_teams
    user.favorite_players = favorite_players
    user.skill_level = skill_level
    db.session.commit()
    return success_response(_profile_payload(user), message='Sports preferences updated successfully')


@profile_bp.route('/availability', methods=['PUT'])
@login_required
def update_availability():
    data = require_json_object(request.get_json(silent=True))
    user = request.current_user
    errors = []

    availability = None
    if 'weeklyAvailability' in data:
        availability, error = _parse_availability(data.get('weeklyAvailability'))
        if error:
            errors.append(error)
    willing = None
    if 'willingToJoinTeams' in data:
        willing, error = parse_bool(data.get('willingToJoinTeams'), 'willingToJoinTeams must be a boolean')
        if error:
            errors.append(error)
    raise_if_errors(errors)

    if availability is not None:
        user.weekly_availability = availability
    if willing is not None:
        user.willing_to_join_teams = willing
    db.session.commit()
    return success_response(_profile_payload(user), message='Availability updated successfully')


@profile_bp.route('/privacy-settings', methods=['PUT'])
@login_required
def update_privacy_settings():
    data = require_json_object(request.get_json(silent=True))
    user = request.current_user
    errors = []
    updates = {}

    if 'profileVisibility' in data:
        value, error = parse_choice(
            data.get('profileVisibility'), PROFILE_VISIBILITY_OPTIONS, 'Invalid profile visibility',
        )
        if error:
            errors.append(error)
        else:
            updates['profile_visibility'] = value
    for key, attr in (
        ('emailVisibility', 'email_visibility'),
        ('emailNotifications', 'email_notifications'),
        ('pushNotifications', 'push_notifications'),
    ):
        if key not in data:
            continue
        value, error = parse_bool(data.get(key), f'{key} must be a boolean')
        if error:
            errors.append(error)
        else:
            updates[attr] = value
    raise_if_errors(errors)

    for attr, value in updates.items():
        setattr(user, attr, value)
    db.session.commit()
    return success_response(_profile_payload(user), message='Privacy settings updated successfully')


@profile_bp.route('/generate-qr', methods=['POST'])
@login_required
def generate_qr_code():
    """Store the shareable profile link encoded by the client-side QR widget."""
    user = request.current_user
    base_url = current_app.config.get('PUBLIC_APP_URL', '').rstrip('/')
    user.qr_code = f'{base_url}/profile/{user.id}'
    db.session.commit()
    return success_response({'id': user.id, 'qrCode': user.qr_code}, message='QR code generated')


def _parse_award(data):
    errors = []
    fields = {}
    for key, max_len in (('type', 50), ('title', 200)):
        value, error = parse_required_text(data.get(key), 1, max_len, f'{key.capitalize()} is required')
        if error:
            errors.append(error)
        fields[key] = value
    description, error = parse_required_text(data.get('description'), 1, 2000, 'Description is required')
    if error:
        errors.append(error)
    fields['description'] = description
    icon, error = parse_optional_text(data.get('icon'), 200, 'Icon must not exceed 200 characters')
    if error:
        errors.append(error)
    fields['icon'] = icon or ''
    return fields, errors


@profile_bp.route('/achievements', methods=['POST'])
@login_required
def add_achievement():
    data = require_json_object(request.get_json(silent=True))
    fields, errors = _parse_award(data)
    raise_if_errors(errors)

    achievement = Achievement(user_id=request.current_user.id, **fields)
    db.session.add(achievement)
    db.session.commit()
    return success_response(achievement.to_dict(), message='Achievement added', status=201)


@profile_bp.route('/trophies', methods=['POST'])
@login_required
def add_trophy():
    data = require_json_object(request.get_json(silent=True))
    fields, errors = _parse_award(data)
    event, error = parse_optional_text(data.get('event'), 200, 'Event must not exceed 200 characters')
    if error:
        errors.append(error)
    position, error = parse_optional_text(data.get('position'), 50, 'Position must not exceed 50 characters')
    if error:
        errors.append(error)
    raise_if_errors(errors)

    trophy = Trophy(
        user_id=request.current_user.id,
        event=event or '', position=position or '',
        **fields,
    )
    db.session.add(trophy)
    db.session.commit()
    return success_response(trophy.to_dict(), message='Trophy added', status=201)
