"""Flask extensions initialization module.

This module initializes all Flask extensions to prevent circular imports.
Extensions are created here and bound to the app in create_app().
"""
import logging

from flask_socketio import SocketIO

logger = logging.getLogger(__name__)

# Initialize SocketIO without app binding
socketio: SocketIO = SocketIO(
    cors_allowed_origins="*",
    async_mode='threading'
)


def broadcast(event: str, payload: dict):
    """Push a desk event to every connected staff terminal."""
    try:
        socketio.emit(event, payload)
    except Exception as e:
        logger.error(f"Error broadcasting {event}: {e}")
