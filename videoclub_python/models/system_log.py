"""System log model for tracking staff activity.

Rentals, returns, fine payments and setting changes are written here as an
audit trail alongside the regular application log.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from models.database import format_timestamp, get_db


class SystemLog:
    """Audit log for rental desk events.

    This class provides static methods for adding and retrieving
    system log entries. No instances are created.
    """

    @staticmethod
    def add(action: str, details: str, log_type: str = 'info',
            user_id: Optional[int] = None, commit: bool = True) -> int:
        """Add a new system log entry.

        Args:
            action: The action being logged.
            details: Detailed description of the action.
            log_type: Log level ('info', 'warning', 'error', 'admin').
            user_id: ID of the staff user who performed the action (optional).
            commit: Commit right away; pass False to write the entry as part
                of the caller's transaction.

        Returns:
            The ID of the created log entry.
        """
        db = get_db()
        timestamp = format_timestamp(datetime.now())

        cursor = db.execute('''
            INSERT INTO system_logs (timestamp, action, details, log_type, user_id)
            VALUES (?, ?, ?, ?, ?)
        ''', (timestamp, action, details, log_type, user_id))
        if commit:
            db.commit()
        return cursor.lastrowid

    @staticmethod
    def get_recent(limit: int = 50) -> List[Dict[str, Any]]:
        """Get recent system logs, newest first."""
        db = get_db()
        logs = db.execute('''
            SELECT * FROM system_logs
            ORDER BY timestamp DESC, id DESC
            LIMIT ?
        ''', (limit,)).fetchall()

        return [dict(log) for log in logs]
