"""Routes package initialization.

This module exports all blueprints for registration in the main app.
Every blueprint is mounted under ``/api``.

Blueprint organization:
    - auth_bp: Staff login by email, logout, current user
    - members_bp: Member list, registration and counter lookup
    - catalog_bp: Categories, genres, movies and copies
    - rentals_bp: Cart, rentals, returns and fines
    - admin_bp: Settings, dashboard, reports and audit log
"""
from routes.admin_routes import admin_bp
from routes.auth_routes import auth_bp
from routes.catalog_routes import catalog_bp
from routes.member_routes import members_bp
from routes.rental_routes import rentals_bp

__all__ = [
    'auth_bp',
    'members_bp',
    'catalog_bp',
    'rentals_bp',
    'admin_bp',
]
