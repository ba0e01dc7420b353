from flask import Blueprint, request
from sqlalchemy.exc import IntegrityError
from matchday.app import db
from matchday.auth_utils import login_required
from matchday.constants import POST_TYPES
from matchday.errors import NotFoundError, PermissionDeniedError, ConflictError
from matchday.models import Post, PostLike, PostComment, User
from matchday.responses import success_response
from matchday.validators import (
    require_json_object, raise_if_errors,
    parse_required_text, parse_optional_text, parse_choice,
)

posts_bp = Blueprint('posts', __name__)


def _get_post_or_404(post_id):
    post = db.session.get(Post, post_id)
    if not post:
        raise NotFoundError('Post not found')
    return post


@posts_bp.route('/user/<int:user_id>', methods=['GET'])
def get_user_posts(user_id):
    """A player's media gallery, newest first; unknown ``type`` values are ignored."""
    if not db.session.get(User, user_id):
        raise NotFoundError('User not found')
    query = Post.query.filter_by(author_id=user_id)
    post_type = (request.args.get('type') or '').upper()
    if post_type in POST_TYPES:
        query = query.filter_by(type=post_type)
    posts = query.order_by(Post.created_at.desc(), Post.id.desc()).all()
    return success_response([p.to_dict() for p in posts])


@posts_bp.route('', methods=['POST'])
@posts_bp.route('/', methods=['POST'])
@login_required
def create_post():
    data = require_json_object(request.get_json(silent=True))
    errors = []
    media_url, error = parse_required_text(data.get('mediaUrl'), 1, 1000, 'Media URL and type are required')
    if error:
        errors.append(error)
    post_type, error = parse_choice(data.get('type'), POST_TYPES, 'Type must be one of PHOTO, VIDEO, TEXT')
    if error:
        errors.append(error)
    caption, error = parse_optional_text(data.get('caption'), 2000, 'Caption must not exceed 2000 characters')
    if error:
        errors.append(error)
    raise_if_errors(errors)

    post = Post(
        author_id=request.current_user.id,
        media_url=media_url,
        type=post_type,
        caption=caption or None,
    )
    db.session.add(post)
    db.session.commit()
    return success_response(post.to_dict(), message='Post created successfully', status=201)


@posts_bp.route('/<int:post_id>/like', methods=['POST'])
@login_required
def toggle_like(post_id):
    post = _get_post_or_404(post_id)
    user = request.current_user

    existing = PostLike.query.filter_by(post_id=post.id, user_id=user.id).first()
    if existing:
        db.session.delete(existing)
    else:
        db.session.add(PostLike(post_id=post.id, user_id=user.id))
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError('Like was changed by another request')

    like_count = PostLike.query.filter_by(post_id=post.id).count()
    return success_response({'liked': existing is None, 'likeCount': like_count})


@posts_bp.route('/<int:post_id>/comments', methods=['POST'])
@login_required
def add_comment(post_id):
    data = require_json_object(request.get_json(silent=True))
    post = _get_post_or_404(post_id)
    content, error = parse_required_text(data.get('content'), 1, 2000, 'Comment content is required')
    raise_if_errors([error] if error else [])

    comment = PostComment(post_id=post.id, user_id=request.current_user.id, content=content)
    db.session.add(comment)
    db.session.commit()
    return success_response(comment.to_dict(), message='Comment added', status=201)


@posts_bp.route('/comments/<int:comment_id>', methods=['DELETE'])
@login_required
def delete_comment(comment_id):
    comment = db.session.get(PostComment, comment_id)
    if not comment:
        raise NotFoundError('Comment not found')
    if comment.user_id != request.current_user.id:
        raise PermissionDeniedError('Not authorized to delete this comment')
    db.session.delete(comment)
    db.session.commit()
    return success_response(message='Comment deleted successfully')


@posts_bp.route('/<int:post_id>', methods=['DELETE'])
@login_required
def delete_post(post_id):
    post = _get_post_or_404(post_id)
    if post.author_id != request.current_user.id:
        raise PermissionDeniedError('Not authorized to delete this post')
    db.session.delete(post)
    db.session.commit()
    return success_response(message='Post deleted successfully')
