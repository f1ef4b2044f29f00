"""Authentication and authorization decorators.

This module contains decorators for protecting API routes and checking
staff roles. Failures answer with a JSON error body.
"""
from functools import wraps
from typing import Callable

from flask import jsonify, session

from models.user import User


def _error(status: int, code: str, message: str):
    return jsonify({'success': False, 'error': code, 'message': message}), status


def login_required(f: Callable) -> Callable:
    """Decorator to require a logged-in staff user for a route.

    Example:
        @rentals_bp.route('', methods=['POST'])
        @login_required
        def create_rental():
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            return _error(401, 'login_required', 'Please login to access this resource')
        return f(*args, **kwargs)
    return decorated_function


def role_required(*roles: str) -> Callable:
    """Decorator to require specific staff roles for a route.

    Admin users always have access. Other users must have one of the
    specified roles.

    Example:
        @settings_bp.route('/config', methods=['PUT'])
        @login_required
        @role_required('admin')
        def update_config():
            ...
    """
    def decorator(f: Callable) -> Callable:
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if 'user_id' not in session:
                return _error(401, 'login_required', 'Please login to access this resource')

            user = User.get_by_id(session['user_id'])
            if not user:
                session.clear()
                return _error(401, 'login_required', 'User not found. Please login again.')

            # Admin users have access to all routes
            if user.is_admin() or user.role in roles:
                return f(*args, **kwargs)

            return _error(403, 'forbidden', 'You do not have permission to perform this action')

        return decorated_function
    return decorator
