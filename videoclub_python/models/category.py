"""Category and genre models.

A category carries the daily price charged for every movie in it. Rentals
copy that price when they are created, so editing a category never
changes existing rentals.
"""
from decimal import InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from models.database import db_errors, get_db
from services.errors import ValidationError
from utils.money import money_str, to_money


class Category:
    def __init__(self, id, name, daily_price, description=''):
        self.id = id
        self.name = name
        self.daily_price = to_money(daily_price)
        self.description = description or ''

    @staticmethod
    def get_by_id(category_id: int) -> Optional['Category']:
        db = get_db()
        row = db.execute('SELECT * FROM categories WHERE id = ?', (category_id,)).fetchone()
        if row:
            return Category(**dict(row))
        return None

    @staticmethod
    def get_all() -> List['Category']:
        db = get_db()
        rows = db.execute('SELECT * FROM categories ORDER BY name').fetchall()
        return [Category(**dict(row)) for row in rows]

    @staticmethod
    def get_for_movie(movie_id: int) -> Optional['Category']:
        """Get the category that currently prices a movie."""
        db = get_db()
        row = db.execute('''
            SELECT c.* FROM categories c
            JOIN movies m ON m.category_id = c.id
            WHERE m.id = ?
        ''', (movie_id,)).fetchone()
        if row:
            return Category(**dict(row))
        return None

    @staticmethod
    def upsert_many(items: Iterable[Dict[str, Any]]) -> List['Category']:
        """Create or update several categories in one transaction.

        Items with an ``id`` update that category; items without one are
        inserted.
        """
        db = get_db()
        try:
            with db_errors():
                for item in items:
                    name = (item.get('name') or '').strip()
                    if not name:
                        raise ValidationError('Category name is required')
                    try:
                        price = to_money(item.get('daily_price', 0))
                    except (InvalidOperation, TypeError) as e:
                        raise ValidationError('Invalid daily price') from e
                    if price < 0:
                        raise ValidationError('Daily price cannot be negative')

                    if item.get('id'):
                        cursor = db.execute('''
                            UPDATE categories SET name = ?, daily_price = ?, description = ?
                            WHERE id = ?
                        ''', (name, money_str(price), item.get('description', ''), item['id']))
                        if cursor.rowcount == 0:
                            raise ValidationError(f'Unknown category id {item["id"]}')
                    else:
                        db.execute('''
                            INSERT INTO categories (name, daily_price, description)
                            VALUES (?, ?, ?)
                        ''', (name, money_str(price), item.get('description', '')))
                db.commit()
        except Exception:
            db.rollback()
            raise
        return Category.get_all()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'daily_price': money_str(self.daily_price),
            'description': self.description,
        }


class Genre:
    def __init__(self, id, name):
        self.id = id
        self.name = name

    @staticmethod
    def get_all() -> List['Genre']:
        db = get_db()
        rows = db.execute('SELECT * FROM genres ORDER BY name').fetchall()
        return [Genre(**dict(row)) for row in rows]

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name}
