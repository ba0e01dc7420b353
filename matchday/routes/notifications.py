from flask import Blueprint, request, current_app
from matchday.app import db
from matchday.auth_utils import login_required
from matchday.errors import NotFoundError
from matchday.models import Notification
from matchday.responses import success_response, paginated_response
from matchday.services.notifications import unread_count
from matchday.validators import parse_pagination, coerce_bool

notifications_bp = Blueprint('notifications', __name__)


def _get_own_notification(notification_id):
    """Only the recipient can see a notification; anyone else gets a 404."""
    notification = Notification.query.filter_by(
        id=notification_id, user_id=request.current_user.id,
    ).first()
    if not notification:
        raise NotFoundError('Notification not found')
    return notification


@notifications_bp.route('', methods=['GET'])
@login_required
def get_notifications():
    user = request.current_user
    page, limit = parse_pagination(
        request.args,
        current_app.config.get('DEFAULT_PAGE_SIZE', 20),
        current_app.config.get('MAX_PAGE_SIZE', 100),
    )

    query = Notification.query.filter_by(user_id=user.id)
    if coerce_bool(request.args.get('unreadOnly')):
        query = query.filter_by(is_read=False)
    total = query.count()
    notifications = query.order_by(
        Notification.created_at.desc(), Notification.id.desc(),
    ).offset((page - 1) * limit).limit(limit).all()

    return paginated_response({
        'notifications': [n.to_dict() for n in notifications],
        'unreadCount': unread_count(user.id),
    }, page, limit, total)


@notifications_bp.route('/<int:notification_id>/read', methods=['PATCH'])
@login_required
def mark_read(notification_id):
    notification = _get_own_notification(notification_id)
    notification.is_read = True
    db.session.commit()
    return success_response(notification.to_dict(), message='Notification marked as read')


@notifications_bp.route('/mark-all-read', methods=['PATCH'])
@login_required
def mark_all_read():
    updated = Notification.query.filter_by(
        user_id=request.current_user.id, is_read=False,
    ).update({'is_read': True}, synchronize_session=False)
    db.session.commit()
    return success_response({'updated': updated}, message='All notifications marked as read')


@notifications_bp.route('/<int:notification_id>', methods=['DELETE'])
@login_required
def delete_notification(notification_id):
    notification = _get_own_notification(notification_id)
    db.session.delete(notification)
    db.session.commit()
    return success_response(message='Notification deleted successfully')
