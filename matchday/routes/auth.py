from flask import Blueprint, request
from werkzeug.security import generate_password_hash, check_password_hash
from matchday.app import db
from matchday.auth_utils import generate_token, login_required
from matchday.constants import REGIONS
from matchday.errors import AuthenticationError, ConflictError
from matchday.models import User, Team
from matchday.responses import success_response
from matchday.validators import (
    require_json_object, raise_if_errors,
    parse_email, parse_required_text, parse_choice, parse_phone,
)

auth_bp = Blueprint('auth', __name__)

_MIN_PASSWORD_LENGTH = 6


def _account_dict(user):
    return {
        'id': user.id, 'email': user.email, 'name': user.name,
        'region': user.region, 'phone': user.phone, 'avatar': user.avatar,
        'createdAt': user.created_at.isoformat() if user.created_at else None,
    }


@auth_bp.route('/register', methods=['POST'])
def register():
    data = require_json_object(request.get_json(silent=True))
    errors = []

    email, error = parse_email(data.get('email'), 'Please provide a valid email')
    if error:
        errors.append(error)
    password = data.get('password')
    if not isinstance(password, str) or len(password) < _MIN_PASSWORD_LENGTH:
        errors.append(f'Password must be at least {_MIN_PASSWORD_LENGTH} characters long')
    name, error = parse_required_text(data.get('name'), 2, 50, 'Name must be between 2 and 50 characters')
    if error:
        errors.append(error)
    region, error = parse_choice(data.get('region'), REGIONS, 'Please select a valid region')
    if error:
        errors.append(error)
    phone = ''
    if data.get('phone'):
        phone, error = parse_phone(data.get('phone'), 'Please provide a valid phone number')
        if error:
            errors.append(error)
    raise_if_errors(errors)

    if User.query.filter_by(email=email).first():
        raise ConflictError('User with this email already exists')

    user = User(
        email=email,
        password_hash=generate_password_hash(password),
        name=name,
        region=region,
        phone=phone,
    )
    db.session.add(user)
    db.session.commit()
    return success_response(
        {'user': _account_dict(user), 'token': generate_token(user)},
        message='User registered successfully',
        status=201,
    )


@auth_bp.route('/login', methods=['POST'])
def login():
    data = require_json_object(request.get_json(silent=True))
    email, error = parse_email(data.get('email'), 'Please provide a valid email')
    errors = [error] if error else []
    if not data.get('password'):
        errors.append('Password is required')
    raise_if_errors(errors)

    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, str(data['password'])):
        raise AuthenticationError('Invalid email or password')
    if not user.is_active:
        raise AuthenticationError('Account is deactivated')

    return success_response(
        {'user': _account_dict(user), 'token': generate_token(user)},
        message='Login successful',
    )


@auth_bp.route('/profile', methods=['GET'])
@login_required
def get_account():
    user = request.current_user
    account = _account_dict(user)
    account['ownedTeams'] = Team.query.filter_by(owner_id=user.id, is_active=True).count()
    return success_response(account)


@auth_bp.route('/profile', methods=['PUT'])
@login_required
def update_account():
    data = require_json_object(request.get_json(silent=True))
    user = request.current_user
    errors = []

    if 'name' in data:
        name, error = parse_required_text(data.get('name'), 2, 50, 'Name must be between 2 and 50 characters')
        if error:
            errors.append(error)
        else:
            user.name = name
    if 'region' in data:
        region, error = parse_choice(data.get('region'), REGIONS, 'Please select a valid region')
        if error:
            errors.append(error)
        else:
            user.region = region
    if 'phone' in data:
        phone, error = parse_phone(data.get('phone'), 'Please provide a valid phone number')
        if error:
            errors.append(error)
        else:
            user.phone = phone

    if errors:
        db.session.rollback()
    raise_if_errors(errors)
    db.session.commit()
    return success_response(_account_dict(user), message='Profile updated successfully')
