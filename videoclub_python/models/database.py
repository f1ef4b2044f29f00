"""Database initialization and connection management.

This module provides database connection management, schema initialization,
and sample data loading for the video club system.
"""
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from flask import current_app, g

from services.errors import ConstraintViolation, RentalError, Unavailable

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def get_db() -> sqlite3.Connection:
    """Get database connection from Flask application context.

    Returns:
        SQLite database connection with Row factory enabled.
    """
    if 'db' not in g:
        path = current_app.config['DATABASE_PATH']
        os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
        g.db = sqlite3.connect(path, timeout=10)
        g.db.row_factory = sqlite3.Row
        g.db.execute('PRAGMA foreign_keys = ON')
    return g.db


def close_db(e=None):
    """Close database connection"""
    db = g.pop('db', None)
    if db is not None:
        db.close()


def translate_db_error(error: sqlite3.DatabaseError) -> RentalError:
    """Map a sqlite3 failure to ConstraintViolation or Unavailable."""
    if isinstance(error, sqlite3.IntegrityError):
        return ConstraintViolation(str(error))
    return Unavailable(str(error))


@contextmanager
def db_errors() -> Iterator[None]:
    """Translate sqlite3 failures into the persistence error types.

    Works as a ``with`` block or as a decorator (``@db_errors()``).
    """
    try:
        yield
    except sqlite3.DatabaseError as e:
        raise translate_db_error(e) from e


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    """Parse a stored timestamp, accepting date-only values too."""
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        return datetime.strptime(value, '%Y-%m-%d')


def init_db(seed: bool = False):
    """Initialize database with schema"""
    db = get_db()

    # Staff accounts (identity lookup by email only)
    db.execute('''
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            email TEXT UNIQUE NOT NULL,
            role TEXT NOT NULL DEFAULT 'employee'
        )
    ''')

    db.execute('''
        CREATE TABLE IF NOT EXISTS categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            daily_price TEXT NOT NULL,
            description TEXT DEFAULT ''
        )
    ''')

    db.execute('''
        CREATE TABLE IF NOT EXISTS genres (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT UNIQUE NOT NULL
        )
    ''')

    db.execute('''
        CREATE TABLE IF NOT EXISTS movies (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT NOT NULL,
            original_title TEXT,
            director TEXT,
            year INTEGER,
            duration_minutes INTEGER,
            synopsis TEXT,
            cover_url TEXT,
            category_id INTEGER NOT NULL,
            FOREIGN KEY (category_id) REFERENCES categories (id)
        )
    ''')

    db.execute('''
        CREATE TABLE IF NOT EXISTS movie_genres (
            movie_id INTEGER NOT NULL,
            genre_id INTEGER NOT NULL,
            PRIMARY KEY (movie_id, genre_id),
            FOREIGN KEY (movie_id) REFERENCES movies (id),
            FOREIGN KEY (genre_id) REFERENCES genres (id)
        )
    ''')

    db.execute('''
        CREATE TABLE IF NOT EXISTS copies (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            movie_id INTEGER NOT NULL,
            barcode TEXT UNIQUE NOT NULL,
            format TEXT NOT NULL DEFAULT 'DVD',
            state TEXT NOT NULL DEFAULT 'available',
            notes TEXT,
            FOREIGN KEY (movie_id) REFERENCES movies (id)
        )
    ''')

    db.execute('''
        CREATE TABLE IF NOT EXISTS members (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            member_number TEXT UNIQUE NOT NULL,
            first_name TEXT NOT NULL,
            last_name TEXT NOT NULL,
            dni TEXT UNIQUE NOT NULL,
            email TEXT,
            phone TEXT,
            active INTEGER NOT NULL DEFAULT 1,
            joined_at TEXT NOT NULL,
            notes TEXT
        )
    ''')

    db.execute('''
        CREATE TABLE IF NOT EXISTS rentals (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            member_id INTEGER NOT NULL,
            copy_id INTEGER NOT NULL,
            status TEXT NOT NULL DEFAULT 'active',
            rented_at TEXT NOT NULL,
            due_at TEXT NOT NULL,
            returned_at TEXT,
            daily_rate TEXT NOT NULL,
            rented_by INTEGER,
            returned_by INTEGER,
            FOREIGN KEY (member_id) REFERENCES members (id),
            FOREIGN KEY (copy_id) REFERENCES copies (id)
        )
    ''')

    # One active rental per copy
    db.execute('''
        CREATE UNIQUE INDEX IF NOT EXISTS idx_rentals_active_copy
        ON rentals (copy_id) WHERE status = 'active'
    ''')

    db.execute('''
        CREATE TABLE IF NOT EXISTS fines (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            rental_id INTEGER UNIQUE NOT NULL,
            member_id INTEGER NOT NULL,
            late_days INTEGER NOT NULL CHECK (late_days >= 1),
            amount TEXT NOT NULL,
            paid INTEGER NOT NULL DEFAULT 0,
            paid_at TEXT,
            created_at TEXT NOT NULL,
            FOREIGN KEY (rental_id) REFERENCES rentals (id),
            FOREIGN KEY (member_id) REFERENCES members (id)
        )
    ''')

    db.execute('''
        CREATE TABLE IF NOT EXISTS system_config (
            id INTEGER PRIMARY KEY,
            config_data TEXT NOT NULL
        )
    ''')

    db.execute('''
        CREATE TABLE IF NOT EXISTS system_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            timestamp TEXT NOT NULL,
            action TEXT NOT NULL,
            details TEXT,
            log_type TEXT DEFAULT 'info',
            user_id INTEGER
        )
    ''')

    db.commit()

    if seed:
        insert_mock_data(db)


def insert_mock_data(db):
    """Insert sample catalog, members and staff accounts"""
    # Check if data already exists
    cursor = db.execute('SELECT COUNT(*) FROM categories')
    if cursor.fetchone()[0] > 0:
        return

    categories = [
        ('New releases', '3.50', 'Recently released movies'),
        ('Classics', '1.50', 'Cult movies and classics'),
        ('Kids', '2.00', 'Movies for children'),
        ('General', '2.50', 'General catalog'),
    ]
    db.executemany(
        'INSERT INTO categories (name, daily_price, description) VALUES (?, ?, ?)',
        categories
    )

    genres = ['Action', 'Comedy', 'Drama', 'Horror', 'Science Fiction']
    db.executemany('INSERT INTO genres (name) VALUES (?)', [(name,) for name in genres])

    movies = [
        ('Inception', 'Inception', 'Christopher Nolan', 2010, 148,
         'Dom Cobb is a thief with the rare ability to enter people\'s dreams.',
         'https://picsum.photos/200/300?random=1'),
        ('The Godfather', 'The Godfather', 'Francis Ford Coppola', 1972, 175,
         'The aging patriarch of a crime dynasty hands control to his son.',
         'https://picsum.photos/200/300?random=2'),
    ]
    category_id = db.execute('SELECT id FROM categories ORDER BY id LIMIT 1').fetchone()[0]
    genre_ids = [row[0] for row in db.execute('SELECT id FROM genres ORDER BY id LIMIT 2')]

    for movie in movies:
        cursor = db.execute('''
            INSERT INTO movies (title, original_title, director, year,
                                duration_minutes, synopsis, cover_url, category_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        ''', movie + (category_id,))
        movie_id = cursor.lastrowid
        db.executemany(
            'INSERT INTO copies (movie_id, barcode, format, state) VALUES (?, ?, ?, ?)',
            [(movie_id, f'BC-{movie_id}-1', 'DVD', 'available'),
             (movie_id, f'BC-{movie_id}-2', 'Blu-ray', 'available')]
        )
        db.executemany(
            'INSERT INTO movie_genres (movie_id, genre_id) VALUES (?, ?)',
            [(movie_id, genre_id) for genre_id in genre_ids]
        )

    joined_at = format_timestamp(datetime.now())
    members = [
        ('S001', 'Juan', 'Perez Garcia', '12345678A', 'juan@example.com', '600123456'),
        ('S002', 'Maria', 'Lopez', '87654321B', 'maria@example.com', '600987654'),
    ]
    db.executemany('''
        INSERT INTO members (member_number, first_name, last_name, dni, email,
                             phone, active, joined_at)
        VALUES (?, ?, ?, ?, ?, ?, 1, ?)
    ''', [member + (joined_at,) for member in members])

    users = [
        ('Administrator', 'admin@videoclub.com', 'admin'),
        ('Counter Staff', 'staff@videoclub.com', 'employee'),
    ]
    db.executemany('INSERT INTO users (name, email, role) VALUES (?, ?, ?)', users)

    db.commit()
