"""Fine model module.

A fine is raised when a copy comes back after its due date. There is at
most one fine per rental.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from models.database import format_timestamp, get_db, parse_timestamp
from utils.money import money_str, to_money


class Fine:
    def __init__(self, id, rental_id, member_id, late_days, amount, created_at,
                 paid=False, paid_at=None):
        self.id = id
        self.rental_id = rental_id
        self.member_id = member_id
        self.late_days = int(late_days)
        self.amount = to_money(amount)
        self.paid = bool(paid)
        self.paid_at = parse_timestamp(paid_at) if isinstance(paid_at, str) else paid_at
        self.created_at = parse_timestamp(created_at) if isinstance(created_at, str) else created_at

    @staticmethod
    def get_by_id(fine_id: int) -> Optional['Fine']:
        db = get_db()
        row = db.execute('SELECT * FROM fines WHERE id = ?', (fine_id,)).fetchone()
        if row:
            return Fine(**dict(row))
        return None

    @staticmethod
    def get_by_rental(rental_id: int) -> Optional['Fine']:
        db = get_db()
        row = db.execute('SELECT * FROM fines WHERE rental_id = ?', (rental_id,)).fetchone()
        if row:
            return Fine(**dict(row))
        return None

    @staticmethod
    def get_all(member_id: Optional[int] = None,
                unpaid_only: bool = False) -> List['Fine']:
        """Get fines, newest first.

        Args:
            member_id: Restrict to one member.
            unpaid_only: Only fines still pending payment.
        """
        db = get_db()
        clauses, params = [], []
        if member_id is not None:
            clauses.append('member_id = ?')
            params.append(member_id)
        if unpaid_only:
            clauses.append('paid = 0')
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ''
        rows = db.execute(
            f'SELECT * FROM fines {where} ORDER BY created_at DESC, id DESC',
            tuple(params)
        ).fetchall()
        return [Fine(**dict(row)) for row in rows]

    @staticmethod
    def count_unpaid_by_member(member_id: int) -> int:
        db = get_db()
        row = db.execute(
            'SELECT COUNT(*) AS count FROM fines WHERE member_id = ? AND paid = 0',
            (member_id,)
        ).fetchone()
        return row['count']

    # ---------- Writes (caller owns the transaction) ----------
    @staticmethod
    def insert(rental_id: int, member_id: int, late_days: int, amount: Decimal,
               created_at: datetime, paid: bool = False,
               paid_at: Optional[datetime] = None) -> int:
        """Insert the fine for a late rental.

        Raises:
            sqlite3.IntegrityError: The rental already has a fine.
        """
        db = get_db()
        cursor = db.execute('''
            INSERT INTO fines (rental_id, member_id, late_days, amount, paid,
                               paid_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        ''', (rental_id, member_id, late_days, money_str(amount), 1 if paid else 0,
              format_timestamp(paid_at) if paid_at else None,
              format_timestamp(created_at)))
        return cursor.lastrowid

    @staticmethod
    def mark_paid(fine_id: int, paid_at: datetime) -> bool:
        """Flag an unpaid fine as paid; False if missing or already paid."""
        db = get_db()
        cursor = db.execute(
            'UPDATE fines SET paid = 1, paid_at = ? WHERE id = ? AND paid = 0',
            (format_timestamp(paid_at), fine_id)
        )
        return cursor.rowcount == 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'rental_id': self.rental_id,
            'member_id': self.member_id,
            'late_days': self.late_days,
            'amount': money_str(self.amount),
            'paid': self.paid,
            'paid_at': format_timestamp(self.paid_at) if self.paid_at else None,
            'created_at': format_timestamp(self.created_at),
        }
