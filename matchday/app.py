import logging

from flask import Flask, jsonify, request, current_app
from flask_sqlalchemy import SQLAlchemy
from flask_socketio import SocketIO
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from werkzeug.routing import IntegerConverter
from matchday.config import config, DEFAULT_SECRET_KEY
from matchday.validators import MAX_DB_INT

db = SQLAlchemy()
socketio = SocketIO()

logger = logging.getLogger(__name__)


class DatabaseIdConverter(IntegerConverter):
    """``int`` URL converter capped at the primary key range, so huge IDs 404."""

    def __init__(self, map, *args, **kwargs):
        kwargs.setdefault('max', MAX_DB_INT)
        super().__init__(map, *args, **kwargs)


def _parse_allowed_origins(raw_origins):
    if not raw_origins:
        return '*'

    if isinstance(raw_origins, (list, tuple, set)):
        cleaned = [origin for origin in raw_origins if origin]
        return cleaned or '*'

    raw_text = str(raw_origins).strip()
    if not raw_text or raw_text == '*':
        return '*'

    origins = [origin.strip() for origin in raw_text.split(',') if origin.strip()]
    return origins or '*'


def _configure_logging(app):
    level_name = str(app.config.get('LOG_LEVEL') or 'INFO').strip().upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
        )
    root.setLevel(level)
    app.logger.setLevel(level)


def _register_error_handlers(app):
    from matchday.errors import ApiError, InternalError

    @app.errorhandler(ApiError)
    def _handle_api_error(error):
        if error.status_code >= 500:
            logger.error('%s %s failed: %s', request.method, request.path, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def _handle_http_error(error):
        if error.code == 404:
            message = f'Route {request.path} not found'
        else:
            message = error.description or error.name
        return jsonify({'success': False, 'message': message}), error.code

    @app.errorhandler(Exception)
    def _handle_unexpected_error(error):
        logger.exception('Unhandled error on %s %s', request.method, request.path)
        db.session.rollback()
        message = 'Internal server error'
        if current_app.config.get('EXPOSE_INTERNAL_ERRORS'):
            message = str(error) or message
        return jsonify(InternalError(message).to_dict()), 500


def create_app(config_name='development'):
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    app.config['ENV_NAME'] = config_name
    _configure_logging(app)

    allowed_origins = _parse_allowed_origins(app.config.get('CORS_ALLOWED_ORIGINS', '*'))
    if str(config_name).strip().lower() == 'production':
        secret_key = str(app.config.get('SECRET_KEY') or '').strip()
        if not secret_key or secret_key == DEFAULT_SECRET_KEY:
            raise RuntimeError('SECRET_KEY must be set to a non-default value in production')
        if allowed_origins == '*':
            raise RuntimeError('CORS_ALLOWED_ORIGINS must be explicitly set in production')
        if not app.config.get('SQLALCHEMY_DATABASE_URI'):
            raise RuntimeError('DATABASE_URL must be set in production')

    db.init_app(app)
    socketio.init_app(
        app,
        cors_allowed_origins=allowed_origins,
        async_mode=app.config.get('SOCKETIO_ASYNC_MODE', 'threading'),
    )
    CORS(app, resources={r'/api/*': {'origins': allowed_origins}})
    _register_error_handlers(app)
    app.url_map.converters['int'] = DatabaseIdConverter

    from matchday.routes.auth import auth_bp
    from matchday.routes.teams import teams_bp
    from matchday.routes.challenges import challenges_bp
    from matchday.routes.matches import matches_bp
    from matchday.routes.notifications import notifications_bp
    from matchday.routes.profile import profile_bp
    from matchday.routes.posts import posts_bp
    from matchday.routes.meta import meta_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(teams_bp, url_prefix='/api/teams')
    app.register_blueprint(challenges_bp, url_prefix='/api/challenges')
    app.register_blueprint(matches_bp, url_prefix='/api/matches')
    app.register_blueprint(notifications_bp, url_prefix='/api/notifications')
    app.register_blueprint(profile_bp, url_prefix='/api/profile')
    app.register_blueprint(posts_bp, url_prefix='/api/posts')
    app.register_blueprint(meta_bp)

    with app.app_context():
        from matchday import models  # noqa: F401
        db.create_all()

    logger.debug('Application created with %s config', config_name)
    return app
