"""Member model.

Club members who rent copies. Membership numbers are generated as
``S001``, ``S002``... when a member is registered.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from models.database import db_errors, format_timestamp, get_db
from services.errors import NotFoundError, ValidationError

EDITABLE_FIELDS = ('first_name', 'last_name', 'dni', 'email', 'phone', 'active', 'notes')
REQUIRED_FIELDS = ('first_name', 'last_name', 'dni')

TRUE_VALUES = ('1', 'true', 'yes', 'on')
FALSE_VALUES = ('0', 'false', 'no', 'off', '')


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip()


def _flag(value: Any) -> bool:
    """Read a JSON boolean, number or ``"true"``/``"false"`` string."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str) and value.strip().lower() in TRUE_VALUES + FALSE_VALUES:
        return value.strip().lower() in TRUE_VALUES
    raise ValidationError(f'Invalid value for active: {value!r}')


def _clean(data: Dict[str, Any]) -> Dict[str, Any]:
    """Editable fields present in ``data``, as stored."""
    fields = {}
    for key in EDITABLE_FIELDS:
        if key not in data:
            continue
        fields[key] = _flag(data[key]) if key == 'active' else _text(data[key])
    for key in REQUIRED_FIELDS:
        if key in fields and not fields[key]:
            raise ValidationError(f'{key} is required')
    return fields


class Member:
    def __init__(self, id, member_number, first_name, last_name, dni, joined_at,
                 email=None, phone=None, active=True, notes=None):
        self.id = id
        self.member_number = member_number
        self.first_name = first_name
        self.last_name = last_name
        self.dni = dni
        self.email = email
        self.phone = phone
        self.active = bool(active)
        self.joined_at = joined_at
        self.notes = notes

    @property
    def full_name(self) -> str:
        return f'{self.first_name} {self.last_name}'

    @staticmethod
    def get_by_id(member_id: int) -> Optional['Member']:
        db = get_db()
        row = db.execute('SELECT * FROM members WHERE id = ?', (member_id,)).fetchone()
        if row:
            return Member(**dict(row))
        return None

    @staticmethod
    def find_by_code(code: str) -> Optional['Member']:
        """Find a member by membership number or DNI, as typed at the counter."""
        code = (code or '').strip()
        if not code:
            return None
        db = get_db()
        row = db.execute(
            'SELECT * FROM members WHERE member_number = ? OR dni = ?', (code, code)
        ).fetchone()
        if row:
            return Member(**dict(row))
        return None

    @staticmethod
    def get_all(search: Optional[str] = None) -> List['Member']:
        """Get members ordered by last name.

        Args:
            search: Optional case-insensitive filter over first name, last
                name, DNI and membership number.
        """
        db = get_db()
        if search:
            pattern = f'%{search.strip().lower()}%'
            rows = db.execute('''
                SELECT * FROM members
                WHERE lower(first_name) LIKE ? OR lower(last_name) LIKE ?
                   OR lower(dni) LIKE ? OR lower(member_number) LIKE ?
                ORDER BY last_name, first_name
            ''', (pattern, pattern, pattern, pattern)).fetchall()
        else:
            rows = db.execute(
                'SELECT * FROM members ORDER BY last_name, first_name'
            ).fetchall()
        return [Member(**dict(row)) for row in rows]

    @staticmethod
    def count() -> int:
        db = get_db()
        return db.execute('SELECT COUNT(*) AS count FROM members').fetchone()['count']

    @staticmethod
    def _next_member_number(db) -> str:
        sequence = db.execute('SELECT COUNT(*) FROM members').fetchone()[0] + 1
        while db.execute('SELECT 1 FROM members WHERE member_number = ?',
                         (f'S{sequence:03d}',)).fetchone():
            sequence += 1
        return f'S{sequence:03d}'

    @staticmethod
    def create(data: Dict[str, Any]) -> 'Member':
        """Register a new member.

        Raises:
            ValidationError: A required field is blank.
            ConstraintViolation: The DNI is already registered.
        """
        fields = _clean(data)
        for field in REQUIRED_FIELDS:
            if not fields.get(field):
                raise ValidationError(f'{field} is required')

        db = get_db()
        try:
            with db_errors():
                member_number = Member._next_member_number(db)
                cursor = db.execute('''
                    INSERT INTO members (member_number, first_name, last_name, dni,
                                         email, phone, active, joined_at, notes)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ''', (member_number, fields['first_name'], fields['last_name'],
                      fields['dni'], fields.get('email'), fields.get('phone'),
                      1 if fields.get('active', True) else 0,
                      format_timestamp(datetime.now()), fields.get('notes')))
                db.commit()
        except Exception:
            db.rollback()
            raise
        return Member.get_by_id(cursor.lastrowid)

    @staticmethod
    def update(member_id: int, data: Dict[str, Any]) -> 'Member':
        """Update the editable fields present in ``data``."""
        if not Member.get_by_id(member_id):
            raise NotFoundError(f'Member not found: {member_id}')

        fields = _clean(data)
        if 'active' in fields:
            fields['active'] = 1 if fields['active'] else 0
        if not fields:
            return Member.get_by_id(member_id)

        db = get_db()
        try:
            with db_errors():
                assignments = ', '.join(f'{k} = ?' for k in fields)
                db.execute(f'UPDATE members SET {assignments} WHERE id = ?',
                           tuple(fields.values()) + (member_id,))
                db.commit()
        except Exception:
            db.rollback()
            raise
        return Member.get_by_id(member_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'member_number': self.member_number,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'dni': self.dni,
            'email': self.email,
            'phone': self.phone,
            'active': self.active,
            'joined_at': self.joined_at,
            'notes': self.notes,
        }
