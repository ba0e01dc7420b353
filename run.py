#!/usr/bin/env python3
"""Entry point for the Matchday API server."""
import logging
import os
from matchday.app import create_app, socketio

config_name = os.environ.get('FLASK_ENV', 'development')
app = create_app(config_name)

logger = logging.getLogger('matchday.run')

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5001))
    logger.info('Matchday API starting on http://localhost:%s', port)
    socketio.run(
        app, host='0.0.0.0', port=port,
        debug=(config_name == 'development'),
        allow_unsafe_werkzeug=True,
    )
