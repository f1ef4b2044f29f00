"""Copy model: one physical rentable unit of a movie.

A copy is ``rented`` exactly while it has an active rental. Only the rental
service moves copies into and out of that state; staff may flag copies as
damaged or lost, or put them back on the shelf.
"""
from typing import Any, Dict, List, Optional

from models.database import db_errors, get_db
from services.errors import ConflictDuringCommit, CopyNotFound, ValidationError

AVAILABLE = 'available'
RENTED = 'rented'
DAMAGED = 'damaged'
LOST = 'lost'

STATES = (AVAILABLE, RENTED, DAMAGED, LOST)
FORMATS = ('DVD', 'Blu-ray', '4K')

# States staff can set by hand
MANUAL_STATES = (AVAILABLE, DAMAGED, LOST)


class Copy:
    def __init__(self, id, movie_id, barcode, format='DVD', state=AVAILABLE, notes=None):
        self.id = id
        self.movie_id = movie_id
        self.barcode = barcode
        self.format = format
        self.state = state
        self.notes = notes

    @property
    def is_available(self) -> bool:
        return self.state == AVAILABLE

    @staticmethod
    def get_by_id(copy_id: int) -> Optional['Copy']:
        db = get_db()
        row = db.execute('SELECT * FROM copies WHERE id = ?', (copy_id,)).fetchone()
        if row:
            return Copy(**dict(row))
        return None

    @staticmethod
    def get_by_barcode(barcode: str) -> Optional['Copy']:
        db = get_db()
        row = db.execute(
            'SELECT * FROM copies WHERE barcode = ?', ((barcode or '').strip(),)
        ).fetchone()
        if row:
            return Copy(**dict(row))
        return None

    @staticmethod
    def get_all(movie_id: Optional[int] = None) -> List['Copy']:
        db = get_db()
        if movie_id is not None:
            rows = db.execute(
                'SELECT * FROM copies WHERE movie_id = ? ORDER BY barcode', (movie_id,)
            ).fetchall()
        else:
            rows = db.execute('SELECT * FROM copies ORDER BY barcode').fetchall()
        return [Copy(**dict(row)) for row in rows]

    @staticmethod
    def create(movie_id: int, barcode: str, format: str = 'DVD',
               notes: Optional[str] = None) -> 'Copy':
        """Add a new copy to the shelf.

        Raises:
            ValidationError: Unknown movie, blank barcode or unknown format.
            ConstraintViolation: The barcode is already in use.
        """
        barcode = (barcode or '').strip()
        if not barcode:
            raise ValidationError('Barcode is required')
        if format not in FORMATS:
            raise ValidationError(f'Unknown format {format!r}')

        db = get_db()
        if not db.execute('SELECT id FROM movies WHERE id = ?', (movie_id,)).fetchone():
            raise ValidationError(f'Unknown movie id {movie_id}')

        try:
            with db_errors():
                cursor = db.execute('''
                    INSERT INTO copies (movie_id, barcode, format, state, notes)
                    VALUES (?, ?, ?, ?, ?)
                ''', (movie_id, barcode, format, AVAILABLE, notes))
                db.commit()
        except Exception:
            db.rollback()
            raise
        return Copy.get_by_id(cursor.lastrowid)

    @staticmethod
    def set_state(copy_id: int, state: str, notes: Optional[str] = None) -> 'Copy':
        """Change a copy's shelf state by hand (available, damaged or lost)."""
        if state not in MANUAL_STATES:
            raise ValidationError(f'State {state!r} cannot be set manually')

        db = get_db()
        try:
            with db_errors():
                cursor = db.execute('''
                    UPDATE copies SET state = ?, notes = COALESCE(?, notes)
                    WHERE id = ? AND state != ?
                ''', (state, notes, copy_id, RENTED))
                if cursor.rowcount == 0:
                    if not Copy.get_by_id(copy_id):
                        raise CopyNotFound(copy_id=copy_id)
                    raise ConflictDuringCommit(
                        copy_id, f'Copy {copy_id} is rented; process its return first'
                    )
                db.commit()
        except Exception:
            db.rollback()
            raise
        return Copy.get_by_id(copy_id)

    @staticmethod
    def transition(copy_id: int, from_state: str, to_state: str) -> bool:
        """Compare-and-set the copy state inside the caller's transaction.

        Returns:
            True if the copy was in ``from_state`` and is now in ``to_state``.
        """
        db = get_db()
        cursor = db.execute(
            'UPDATE copies SET state = ? WHERE id = ? AND state = ?',
            (to_state, copy_id, from_state)
        )
        return cursor.rowcount == 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'movie_id': self.movie_id,
            'barcode': self.barcode,
            'format': self.format,
            'state': self.state,
            'notes': self.notes,
        }
