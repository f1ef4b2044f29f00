"""Authentication routes for the video club system.

Staff sign in with their email address; the user id is kept in the Flask
session. There are no passwords.
"""
from typing import Optional

from flask import Blueprint, jsonify, session

from models.user import User
from services.errors import NotFoundError, ValidationError
from utils.decorators import login_required
from utils.http import json_body

# Create authentication blueprint
auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/login', methods=['POST'])
def login():
    """Start a staff session.

    JSON body:
        email: Staff email address.
        remember: Keep the session across browser restarts.

    Returns:
        JSON with the logged-in user.
    """
    data = json_body()
    email: str = (data.get('email') or '').strip()
    if not email:
        raise ValidationError('email is required')

    user: Optional[User] = User.get_by_email(email)
    if not user:
        raise NotFoundError('No staff account with that email', email=email)

    # Create user session
    session['user_id'] = user.id
    session['user_role'] = user.role
    session.permanent = bool(data.get('remember'))

    return jsonify({'success': True, 'user': user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    """Clear the staff session."""
    session.clear()
    return jsonify({'success': True})


@auth_bp.route('/me', methods=['GET'])
@login_required
def me():
    """Return the logged-in staff user."""
    user = User.get_by_id(session['user_id'])
    if not user:
        session.clear()
        raise NotFoundError('User not found. Please login again.')
    return jsonify({'success': True, 'user': user.to_dict()})
