"""Video Club Rental Desk - Flask Application.

JSON API for the shop's staff terminals. Fat models and a rental service,
skinny blueprints.
"""
import logging
import sqlite3
from typing import Any, Dict, Optional

from flask import Flask, jsonify, session
from werkzeug.exceptions import HTTPException

from config.config import Config
from extensions import socketio
from models.database import close_db, init_db, translate_db_error
from routes import admin_bp, auth_bp, catalog_bp, members_bp, rentals_bp
from services.errors import RentalError

logger = logging.getLogger(__name__)


def create_app(test_config: Optional[Dict[str, Any]] = None) -> Flask:
    """Build the Flask app.

    Args:
        test_config: Settings applied on top of ``Config``.
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(level=app.config['LOG_LEVEL'])

    socketio.init_app(app)
    app.teardown_appcontext(close_db)

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(members_bp, url_prefix='/api/members')
    app.register_blueprint(catalog_bp, url_prefix='/api')
    app.register_blueprint(rentals_bp, url_prefix='/api')
    app.register_blueprint(admin_bp, url_prefix='/api')

    register_error_handlers(app)

    # Initialize database
    with app.app_context():
        init_db(seed=app.config['SEED_SAMPLE_DATA'])

    logger.info(f"Video club app ready (database: {app.config['DATABASE_PATH']})")
    return app


# --- Error Handlers ---

def register_error_handlers(app: Flask):
    @app.errorhandler(RentalError)
    def rental_error(error: RentalError):
        if error.status_code >= 500:
            logger.error(f"{error.code}: {error.message}")
        else:
            logger.info(f"{error.code}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(sqlite3.DatabaseError)
    def database_error(error: sqlite3.DatabaseError):
        return rental_error(translate_db_error(error))

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return jsonify({
            'success': False,
            'error': (error.name or 'error').lower().replace(' ', '_'),
            'message': error.description,
        }), error.code

    @app.errorhandler(500)
    def internal_error(error):
        logger.error(f"Unhandled error: {error}")
        return jsonify({
            'success': False,
            'error': 'internal_error',
            'message': 'Unexpected server error',
        }), 500


# --- SocketIO Events ---

@socketio.on('connect')
def handle_connect():
    """Only logged-in staff terminals receive desk events."""
    if 'user_id' not in session:
        return False
    logger.info(f"Terminal connected for user {session['user_id']}")


if __name__ == '__main__':
    socketio.run(create_app(), debug=True, host='0.0.0.0', port=5000,
                 allow_unsafe_werkzeug=True)
