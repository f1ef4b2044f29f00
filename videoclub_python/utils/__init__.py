"""Utilities package for the video club system.

This package contains helper functions, decorators, and utilities
used across the application.
"""
from utils.decorators import login_required, role_required
from utils.money import money_str, to_money

__all__ = [
    'login_required',
    'role_required',
    'money_str',
    'to_money',
]
