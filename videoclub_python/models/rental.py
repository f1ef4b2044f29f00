"""Rental model.

One member holding one copy. A rental is created ``active`` by the rental
service, becomes ``returned`` exactly once, and is never edited after that.
The daily rate is captured from the category when the rental starts.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from models.database import format_timestamp, get_db, parse_timestamp
from utils.money import money_str, to_money

ACTIVE = 'active'
RETURNED = 'returned'


class Rental:
    def __init__(self, id, member_id, copy_id, status, rented_at, due_at,
                 daily_rate, returned_at=None, rented_by=None, returned_by=None):
        self.id = id
        self.member_id = member_id
        self.copy_id = copy_id
        self.status = status
        self.rented_at = parse_timestamp(rented_at) if isinstance(rented_at, str) else rented_at
        self.due_at = parse_timestamp(due_at) if isinstance(due_at, str) else due_at
        if isinstance(returned_at, str):
            returned_at = parse_timestamp(returned_at)
        self.returned_at = returned_at
        self.daily_rate = to_money(daily_rate)
        self.rented_by = rented_by
        self.returned_by = returned_by

    # ---------- Convenience properties ----------
    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE

    @property
    def is_returned(self) -> bool:
        return self.status == RETURNED

    # ---------- Queries ----------
    @staticmethod
    def get_by_id(rental_id: int) -> Optional['Rental']:
        db = get_db()
        row = db.execute('SELECT * FROM rentals WHERE id = ?', (rental_id,)).fetchone()
        if row:
            return Rental(**dict(row))
        return None

    @staticmethod
    def get_all(status: Optional[str] = None,
                member_id: Optional[int] = None) -> List['Rental']:
        """Get rentals, newest first, optionally filtered by status and member."""
        db = get_db()
        clauses, params = [], []
        if status:
            clauses.append('status = ?')
            params.append(status)
        if member_id is not None:
            clauses.append('member_id = ?')
            params.append(member_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ''
        rows = db.execute(
            f'SELECT * FROM rentals {where} ORDER BY rented_at DESC, id DESC',
            tuple(params)
        ).fetchall()
        return [Rental(**dict(row)) for row in rows]

    @staticmethod
    def get_active_by_member(member_id: int) -> List['Rental']:
        return Rental.get_all(status=ACTIVE, member_id=member_id)

    @staticmethod
    def count_active_by_member(member_id: int) -> int:
        db = get_db()
        row = db.execute(
            "SELECT COUNT(*) AS count FROM rentals WHERE member_id = ? AND status = 'active'",
            (member_id,)
        ).fetchone()
        return row['count']

    @staticmethod
    def get_active_by_copy(copy_id: int) -> Optional['Rental']:
        db = get_db()
        row = db.execute(
            "SELECT * FROM rentals WHERE copy_id = ? AND status = 'active'",
            (copy_id,)
        ).fetchone()
        if row:
            return Rental(**dict(row))
        return None

    @staticmethod
    def get_started_since(since: datetime) -> List['Rental']:
        """Get rentals started at or after ``since``, oldest first."""
        db = get_db()
        rows = db.execute(
            'SELECT * FROM rentals WHERE rented_at >= ? ORDER BY rented_at ASC',
            (format_timestamp(since),)
        ).fetchall()
        return [Rental(**dict(row)) for row in rows]

    # ---------- Writes (caller owns the transaction) ----------
    @staticmethod
    def insert(member_id: int, copy_id: int, rented_at: datetime, due_at: datetime,
               daily_rate: Decimal, rented_by: Optional[int]) -> int:
        db = get_db()
        cursor = db.execute('''
            INSERT INTO rentals (member_id, copy_id, status, rented_at, due_at,
                                 returned_at, daily_rate, rented_by, returned_by)
            VALUES (?, ?, 'active', ?, ?, NULL, ?, ?, NULL)
        ''', (member_id, copy_id, format_timestamp(rented_at), format_timestamp(due_at),
              money_str(daily_rate), rented_by))
        return cursor.lastrowid

    @staticmethod
    def mark_returned(rental_id: int, returned_at: datetime,
                      returned_by: Optional[int]) -> bool:
        """Move an active rental to returned.

        Returns:
            False if the rental does not exist or is no longer active.
        """
        db = get_db()
        cursor = db.execute('''
            UPDATE rentals SET status = 'returned', returned_at = ?, returned_by = ?
            WHERE id = ? AND status = 'active'
        ''', (format_timestamp(returned_at), returned_by, rental_id))
        return cursor.rowcount == 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'member_id': self.member_id,
            'copy_id': self.copy_id,
            'status': self.status,
            'rented_at': format_timestamp(self.rented_at),
            'due_at': format_timestamp(self.due_at),
            'returned_at': format_timestamp(self.returned_at) if self.returned_at else None,
            'daily_rate': money_str(self.daily_rate),
            'rented_by': self.rented_by,
            'returned_by': self.returned_by,
        }
