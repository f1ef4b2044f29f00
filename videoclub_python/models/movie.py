"""Movie model.

Catalog entries. A movie belongs to one pricing category and to any number
of genres; its physical units live in the copies table.
"""
from typing import Any, Dict, List, Optional

from models.database import db_errors, get_db
from services.errors import NotFoundError, ValidationError

EDITABLE_FIELDS = ('title', 'original_title', 'director', 'year',
                   'duration_minutes', 'synopsis', 'cover_url', 'category_id')


class Movie:
    def __init__(self, id, title, category_id, original_title=None, director=None,
                 year=None, duration_minutes=None, synopsis=None, cover_url=None,
                 genre_ids=None):
        self.id = id
        self.title = title
        self.category_id = category_id
        self.original_title = original_title
        self.director = director
        self.year = year
        self.duration_minutes = duration_minutes
        self.synopsis = synopsis
        self.cover_url = cover_url
        self.genre_ids = list(genre_ids or [])

    @staticmethod
    def _genre_map() -> Dict[int, List[int]]:
        db = get_db()
        genres: Dict[int, List[int]] = {}
        for row in db.execute('SELECT movie_id, genre_id FROM movie_genres ORDER BY genre_id'):
            genres.setdefault(row['movie_id'], []).append(row['genre_id'])
        return genres

    @staticmethod
    def get_by_id(movie_id: int) -> Optional['Movie']:
        db = get_db()
        row = db.execute('SELECT * FROM movies WHERE id = ?', (movie_id,)).fetchone()
        if not row:
            return None
        genre_ids = [r['genre_id'] for r in db.execute(
            'SELECT genre_id FROM movie_genres WHERE movie_id = ? ORDER BY genre_id',
            (movie_id,)
        )]
        return Movie(genre_ids=genre_ids, **dict(row))

    @staticmethod
    def get_all() -> List['Movie']:
        """Get all movies ordered by title, with their genre ids."""
        db = get_db()
        genres = Movie._genre_map()
        rows = db.execute('SELECT * FROM movies ORDER BY title').fetchall()
        return [Movie(genre_ids=genres.get(row['id'], []), **dict(row)) for row in rows]

    @staticmethod
    def count() -> int:
        db = get_db()
        return db.execute('SELECT COUNT(*) AS count FROM movies').fetchone()['count']

    @staticmethod
    def _validate(fields: Dict[str, Any]):
        if 'title' in fields and not str(fields['title'] or '').strip():
            raise ValidationError('Movie title is required')
        if 'category_id' in fields:
            db = get_db()
            row = db.execute('SELECT id FROM categories WHERE id = ?',
                             (fields['category_id'],)).fetchone()
            if not row:
                raise ValidationError(f'Unknown category id {fields["category_id"]}')

    @staticmethod
    def _genre_ids(value: Any) -> List[int]:
        """Read ``genre_ids`` as a list of integer ids."""
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            raise ValidationError('genre_ids must be a list')
        try:
            return sorted({int(genre_id) for genre_id in value})
        except (TypeError, ValueError):
            raise ValidationError(f'Invalid genre ids: {value!r}')

    @staticmethod
    def _replace_genres(db, movie_id: int, genre_ids: List[int]):
        db.execute('DELETE FROM movie_genres WHERE movie_id = ?', (movie_id,))
        db.executemany(
            'INSERT INTO movie_genres (movie_id, genre_id) VALUES (?, ?)',
            [(movie_id, genre_id) for genre_id in genre_ids]
        )

    @staticmethod
    def create(data: Dict[str, Any]) -> 'Movie':
        """Create a movie and link its genres."""
        fields = {k: data.get(k) for k in EDITABLE_FIELDS}
        if fields['category_id'] is None:
            raise ValidationError('Movie category is required')
        Movie._validate(fields)
        genre_ids = Movie._genre_ids(data.get('genre_ids'))

        db = get_db()
        try:
            with db_errors():
                cursor = db.execute(f'''
                    INSERT INTO movies ({', '.join(EDITABLE_FIELDS)})
                    VALUES ({', '.join('?' for _ in EDITABLE_FIELDS)})
                ''', tuple(fields.values()))
                movie_id = cursor.lastrowid
                Movie._replace_genres(db, movie_id, genre_ids)
                db.commit()
        except Exception:
            db.rollback()
            raise
        return Movie.get_by_id(movie_id)

    @staticmethod
    def update(movie_id: int, data: Dict[str, Any]) -> 'Movie':
        """Update movie fields; ``genre_ids``, when given, replaces the links."""
        if not Movie.get_by_id(movie_id):
            raise NotFoundError(f'Movie not found: {movie_id}')

        fields = {k: data[k] for k in EDITABLE_FIELDS if k in data}
        Movie._validate(fields)
        genre_ids = Movie._genre_ids(data.get('genre_ids'))

        db = get_db()
        try:
            with db_errors():
                if fields:
                    assignments = ', '.join(f'{k} = ?' for k in fields)
                    db.execute(f'UPDATE movies SET {assignments} WHERE id = ?',
                               tuple(fields.values()) + (movie_id,))
                if 'genre_ids' in data:
                    Movie._replace_genres(db, movie_id, genre_ids)
                db.commit()
        except Exception:
            db.rollback()
            raise
        return Movie.get_by_id(movie_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'original_title': self.original_title,
            'director': self.director,
            'year': self.year,
            'duration_minutes': self.duration_minutes,
            'synopsis': self.synopsis,
            'cover_url': self.cover_url,
            'category_id': self.category_id,
            'genre_ids': self.genre_ids,
        }
