"""Request payload checks shared by the route modules.

Each ``parse_*`` helper returns ``(value, error)`` where ``error`` is a
human-readable message or ``None``. Routes collect the messages and raise a
single ``ValidationError`` before touching the database.
"""
import re
from datetime import datetime

from matchday.errors import ValidationError
from matchday.time_utils import to_naive_utc

_TIME_RE = re.compile(r'^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$')
_EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
_PHONE_RE = re.compile(r'^\+?[0-9][0-9\s\-()]{6,19}$')

# Largest value an Integer column holds on SQLite and Postgres.
MAX_DB_INT = 2 ** 31 - 1


def require_json_object(raw):
    if not isinstance(raw, dict):
        raise ValidationError('Invalid JSON payload')
    return raw


def raise_if_errors(errors):
    if errors:
        raise ValidationError('Validation failed', errors=errors)


def parse_positive_int(raw_value, message):
    if isinstance(raw_value, bool):
        return None, message
    try:
        value = int(raw_value)
    except (TypeError, ValueError, OverflowError):
        return None, message
    if value <= 0 or value > MAX_DB_INT:
        return None, message
    if isinstance(raw_value, float) and not raw_value.is_integer():
        return None, message
    return value, None


def parse_non_negative_int(raw_value, message):
    if isinstance(raw_value, bool) or isinstance(raw_value, float):
        return None, message
    try:
        value = int(str(raw_value).strip())
    except (TypeError, ValueError):
        return None, message
    if value < 0 or value > MAX_DB_INT:
        return None, message
    return value, None


def parse_int_in_range(raw_value, minimum, maximum, message):
    value, error = parse_non_negative_int(raw_value, message)
    if error:
        return None, error
    if value < minimum or value > maximum:
        return None, message
    return value, None


def parse_iso_datetime(raw_value, message):
    raw = str(raw_value or '').strip()
    if not raw:
        return None, message
    try:
        parsed = datetime.fromisoformat(raw.replace('Z', '+00:00'))
    except ValueError:
        return None, message
    return to_naive_utc(parsed), None


def parse_time_of_day(raw_value, message):
    raw = str(raw_value or '').strip()
    if not _TIME_RE.match(raw):
        return None, message
    hours, minutes = raw.split(':')
    return f'{int(hours):02d}:{minutes}', None


def parse_optional_text(raw_value, max_len, message, min_len=0):
    if raw_value is None:
        return None, None
    if not isinstance(raw_value, str):
        return None, message
    cleaned = raw_value.strip()
    if len(cleaned) < min_len or len(cleaned) > max_len:
        return None, message
    return cleaned, None


def parse_required_text(raw_value, min_len, max_len, message):
    if not isinstance(raw_value, str):
        return None, message
    cleaned = raw_value.strip()
    if len(cleaned) < min_len or len(cleaned) > max_len:
        return None, message
    return cleaned, None


def parse_choice(raw_value, choices, message):
    if raw_value not in choices:
        return None, message
    return raw_value, None


def parse_email(raw_value, message):
    raw = str(raw_value or '').strip().lower()
    if not _EMAIL_RE.match(raw):
        return None, message
    return raw, None


def parse_phone(raw_value, message):
    raw = str(raw_value or '').strip()
    if not _PHONE_RE.match(raw):
        return None, message
    return raw, None


def parse_bool(raw_value, message):
    if isinstance(raw_value, bool):
        return raw_value, None
    return None, message


def coerce_bool(raw_value):
    if isinstance(raw_value, bool):
        return raw_value
    if raw_value is None:
        return False
    return str(raw_value).strip().lower() in {'1', 'true', 'yes', 'on'}


def parse_string_list(raw_value, message, max_items=20, max_len=100):
    if raw_value is None:
        return [], None
    if not isinstance(raw_value, list):
        return None, message
    cleaned = []
    for item in raw_value:
        if not isinstance(item, str):
            return None, message
        text = item.strip()
        if not text:
            continue
        if len(text) > max_len:
            return None, message
        cleaned.append(text)
    if len(cleaned) > max_items:
        return None, message
    return cleaned, None


def parse_pagination(args, default_limit, max_limit):
    """Read ``page``/``limit`` query params, raising ValidationError on bad values."""
    errors = []
    page, limit = 1, default_limit
    if args.get('page') not in (None, ''):
        page, error = parse_int_in_range(args.get('page'), 1, 10 ** 6, 'Page must be a positive integer')
        if error:
            errors.append(error)
    if args.get('limit') not in (None, ''):
        limit, error = parse_int_in_range(
            args.get('limit'), 1, max_limit, f'Limit must be between 1 and {max_limit}',
        )
        if error:
            errors.append(error)
    raise_if_errors(errors)
    return page, limit
