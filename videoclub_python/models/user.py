"""User model module.

Staff accounts. The shop identifies staff by email only; there are no
passwords.
"""
from typing import Any, Dict, List, Optional

from models.database import get_db


class User:
    ROLES = ('admin', 'employee')

    def __init__(self, id, name, email, role='employee'):
        self.id = id
        self.name = name
        self.email = email
        self.role = role

    @staticmethod
    def get_by_id(user_id: int) -> Optional['User']:
        db = get_db()
        row = db.execute('SELECT * FROM users WHERE id = ?', (user_id,)).fetchone()
        if not row:
            return None
        return User(**dict(row))

    @staticmethod
    def get_by_email(email: str) -> Optional['User']:
        """Look up a staff user by email (case-insensitive)."""
        db = get_db()
        row = db.execute(
            'SELECT * FROM users WHERE lower(email) = lower(?)',
            ((email or '').strip(),)
        ).fetchone()
        if not row:
            return None
        return User(**dict(row))

    @staticmethod
    def get_all() -> List['User']:
        db = get_db()
        rows = db.execute('SELECT * FROM users ORDER BY name').fetchall()
        return [User(**dict(row)) for row in rows]

    def is_admin(self) -> bool:
        return self.role == 'admin'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'role': self.role,
        }
