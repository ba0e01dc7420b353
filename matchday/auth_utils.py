from datetime import datetime, timedelta, timezone
from functools import wraps
from flask import request, current_app
import jwt
from matchday.app import db
from matchday.errors import AuthenticationError
from matchday.models import User


def generate_token(user):
    """Generate a JWT token carrying the caller identity (id, email, name)."""
    payload = {
        'user_id': user.id,
        'email': user.email,
        'name': user.name,
        'exp': datetime.now(timezone.utc) + timedelta(
            hours=current_app.config.get('JWT_EXPIRATION_HOURS', 24 * 7)
        ),
    }
    return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm='HS256')


def _normalize_bearer_token(raw_token):
    token = str(raw_token or '').strip()
    if token.startswith('Bearer '):
        token = token.split(' ', 1)[1].strip()
    return token


def _decode_user_from_token(token):
    normalized = _normalize_bearer_token(token)
    if not normalized:
        return None, 'Access denied. No valid token provided.'
    try:
        payload = jwt.decode(
            normalized, current_app.config['SECRET_KEY'], algorithms=['HS256']
        )
    except jwt.ExpiredSignatureError:
        return None, 'Token expired'
    except jwt.InvalidTokenError:
        return None, 'Invalid token.'
    user = db.session.get(User, payload.get('user_id'))
    if not user or not user.is_active:
        return None, 'User not found'
    return user, None


def get_user_from_token(token):
    """Resolve a user from a raw JWT/bearer token value."""
    user, _ = _decode_user_from_token(token)
    return user


def login_required(f):
    """Decorator to require authentication on a route."""
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization', '')
        user, error = _decode_user_from_token(auth_header)
        if error:
            raise AuthenticationError(error)
        request.current_user = user
        return f(*args, **kwargs)
    return decorated
