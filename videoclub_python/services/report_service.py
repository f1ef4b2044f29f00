"""Dashboard and report figures.

Lateness comes from ``RentalService.compute_lateness`` so the dashboard
and the return desk always agree on which rentals are overdue.
"""
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional

from models.database import db_errors, format_timestamp, get_db, parse_timestamp
from models.member import Member
from models.movie import Movie
from models.rental import Rental
from services.rental_service import RentalService
from utils.money import money_str, to_money


class ReportService:
    """Read-only aggregates for the dashboard and reports screens."""

    def __init__(self, rental_service: Optional[RentalService] = None):
        self.rental_service = rental_service or RentalService()

    @property
    def clock(self):
        return self.rental_service.clock

    @db_errors()
    def overdue_rentals(self, as_of: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Active rentals past their due date, most late first."""
        as_of = as_of or self.clock()
        db = get_db()
        rows = db.execute('''
            SELECT r.*, m.first_name, m.last_name, mv.title AS movie_title
            FROM rentals r
            JOIN members m ON m.id = r.member_id
            JOIN copies c ON c.id = r.copy_id
            JOIN movies mv ON mv.id = c.movie_id
            WHERE r.status = 'active'
            ORDER BY r.due_at ASC
        ''').fetchall()

        overdue = []
        for row in rows:
            data = dict(row)
            member_name = f"{data.pop('first_name')} {data.pop('last_name')}"
            movie_title = data.pop('movie_title')
            rental = Rental(**data)
            days_late = self.rental_service.compute_lateness(rental, as_of)
            if days_late > 0:
                overdue.append({
                    'rental_id': rental.id,
                    'member_name': member_name,
                    'movie_title': movie_title,
                    'due_at': data['due_at'],
                    'days_late': days_late,
                })
        return overdue

    @db_errors()
    def today_income(self, as_of: Optional[datetime] = None) -> Decimal:
        """Rentals started today at the default duration plus fines paid today.

        Rentals are counted at their category's current price times
        ``default_rental_days``, not at the stored ``daily_rate`` and real
        duration.
        """
        as_of = as_of or self.clock()
        start = as_of.replace(hour=0, minute=0, second=0, microsecond=0)
        config = self.rental_service.config_loader()
        db = get_db()

        income = Decimal('0')
        for row in db.execute('''
            SELECT r.rented_at, cat.daily_price
            FROM rentals r
            JOIN copies c ON c.id = r.copy_id
            JOIN movies mv ON mv.id = c.movie_id
            JOIN categories cat ON cat.id = mv.category_id
            WHERE r.rented_at >= ?
        ''', (format_timestamp(start),)):
            if parse_timestamp(row['rented_at']).date() == as_of.date():
                income += to_money(row['daily_price']) * config.default_rental_days

        for row in db.execute('SELECT amount, paid_at FROM fines WHERE paid = 1 AND paid_at >= ?',
                              (start.strftime('%Y-%m-%d'),)):
            if parse_timestamp(row['paid_at']).date() == as_of.date():
                income += to_money(row['amount'])
        return to_money(income)

    @db_errors()
    def rentals_per_day(self, days: int = 7,
                        as_of: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """Rental counts for the last ``days`` days, oldest first."""
        as_of = as_of or self.clock()
        first_day = (as_of - timedelta(days=days - 1)).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        counts: Dict[str, int] = {}
        for rental in Rental.get_started_since(first_day):
            key = rental.rented_at.strftime('%Y-%m-%d')
            counts[key] = counts.get(key, 0) + 1

        series = []
        for offset in range(days):
            day = first_day + timedelta(days=offset)
            key = day.strftime('%Y-%m-%d')
            series.append({'date': key, 'name': day.strftime('%a'),
                           'rentals': counts.get(key, 0)})
        return series

    @db_errors()
    def dashboard(self, as_of: Optional[datetime] = None) -> Dict[str, Any]:
        as_of = as_of or self.clock()
        overdue = self.overdue_rentals(as_of)
        return {
            'active_rentals': len(Rental.get_all(status='active')),
            'overdue_rentals': len(overdue),
            'today_income': money_str(self.today_income(as_of)),
            'total_members': Member.count(),
            'total_movies': Movie.count(),
            'overdue': overdue,
            'rentals_per_day': self.rentals_per_day(7, as_of),
        }

    @staticmethod
    @db_errors()
    def top_movies(limit: int = 5) -> List[Dict[str, Any]]:
        """Movies with the most rentals."""
        db = get_db()
        rows = db.execute('''
            SELECT mv.id, mv.title, COUNT(r.id) AS rentals
            FROM rentals r
            JOIN copies c ON c.id = r.copy_id
            JOIN movies mv ON mv.id = c.movie_id
            GROUP BY mv.id, mv.title
            ORDER BY rentals DESC, mv.title ASC
            LIMIT ?
        ''', (limit,)).fetchall()
        return [dict(row) for row in rows]

    @staticmethod
    @db_errors()
    def fine_totals() -> Dict[str, str]:
        """Fines generated, collected and still pending."""
        db = get_db()
        generated = collected = Decimal('0')
        for row in db.execute('SELECT amount, paid FROM fines'):
            amount = to_money(row['amount'])
            generated += amount
            if row['paid']:
                collected += amount
        return {
            'generated': money_str(generated),
            'collected': money_str(collected),
            'pending': money_str(generated - collected),
        }

    @db_errors()
    def report(self) -> Dict[str, Any]:
        return {
            'top_movies': self.top_movies(5),
            'fines': self.fine_totals(),
        }
