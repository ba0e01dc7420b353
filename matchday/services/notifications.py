"""In-app notifications raised as side effects of challenge/match transitions."""
import json
import logging

from matchday.app import db, socketio
from matchday.constants import NOTIFICATION_TYPES
from matchday.models import Notification
from matchday.time_utils import utcnow_naive

logger = logging.getLogger(__name__)


def _emit_notification_update(user_id, reason=''):
    socketio.emit('notification_update', {
        'user_id': user_id,
        'reason': reason,
        'updated_at': utcnow_naive().isoformat(),
    })


def create_notification(user_id, notif_type, title, message, data=None):
    """Persist a notification row.

    The row is flushed, not committed; the caller owns the transaction and
    pushes the ``notification_update`` event once it has committed.
    """
    if not user_id:
        raise ValueError('user_id is required')
    if notif_type not in NOTIFICATION_TYPES:
        raise ValueError(f'Unknown notification type: {notif_type}')
    if not title or not message:
        raise ValueError('title and message are required')

    notification = Notification(
        user_id=user_id,
        type=notif_type,
        title=title,
        message=message,
        data_json=json.dumps(data) if data is not None else None,
    )
    db.session.add(notification)
    db.session.flush()
    return notification


def notify_best_effort(user_id, notif_type, title, message, data=None):
    """Create and commit a notification; failures are logged and swallowed.

    Runs after the triggering write has been committed, so a failure here can
    never undo it. Clients are only told about rows that were committed.
    """
    try:
        notification = create_notification(user_id, notif_type, title, message, data=data)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception(
            'Failed to create %s notification for user %s', notif_type, user_id,
        )
        return None

    try:
        _emit_notification_update(user_id, reason=notif_type.lower())
    except Exception:
        logger.warning('notification_update push failed for user %s', user_id, exc_info=True)
    return notification


def unread_count(user_id):
    return Notification.query.filter_by(user_id=user_id, is_read=False).count()
