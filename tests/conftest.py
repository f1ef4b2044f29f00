"""Shared fixtures: a throwaway database, a fixed clock and a small catalog."""
from datetime import datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app import create_app
from models.category import Category
from models.database import get_db
from models.member import Member
from models.movie import Movie
from models.movie_copy import Copy
from models.system_config import RentalConfig
from services.rental_service import RentalService

START = datetime(2024, 3, 1, 10, 30, 0)


class FrozenClock:
    """Callable clock the tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class ConfigHolder:
    """Mutable stand-in for the settings row."""

    def __init__(self, config: RentalConfig):
        self.config = config

    def __call__(self) -> RentalConfig:
        return self.config


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'DATABASE_PATH': str(tmp_path / 'videoclub-test.db'),
        'SEED_SAMPLE_DATA': False,
        'DEFAULT_RENTAL_DAYS': 3,
        'FINE_PER_DAY': '2.50',
        'MAX_ACTIVE_RENTALS_PER_MEMBER': 5,
    })
    yield app


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield


@pytest.fixture
def clock():
    return FrozenClock(START)


@pytest.fixture
def settings():
    return ConfigHolder(RentalConfig(
        default_rental_days=3,
        fine_per_day=Decimal('2.50'),
        max_active_rentals_per_member=5,
    ))


@pytest.fixture
def service(app_ctx, settings, clock):
    return RentalService(config_loader=settings, clock=clock)


@pytest.fixture
def catalog(app_ctx):
    """One category at 2.50/day, one movie, copies BC-1..BC-7, three members, two staff."""
    general, premiere = Category.upsert_many([
        {'name': 'General', 'daily_price': '2.50', 'description': 'General catalog'},
        {'name': 'Premiere', 'daily_price': '3.50', 'description': 'New releases'},
    ])
    movie = Movie.create({'title': 'Inception', 'director': 'Christopher Nolan',
                          'year': 2010, 'category_id': general.id})
    new_movie = Movie.create({'title': 'Dune', 'category_id': premiere.id})
    copies = {}
    for n in range(1, 8):
        copy = Copy.create(movie.id, f'BC-{n}', 'DVD')
        copies[copy.barcode] = copy
    copies['NEW-1'] = Copy.create(new_movie.id, 'NEW-1', 'Blu-ray')

    ana = Member.create({'first_name': 'Ana', 'last_name': 'Garcia', 'dni': '11111111A'})
    bob = Member.create({'first_name': 'Bob', 'last_name': 'Lopez', 'dni': '22222222B'})
    ivan = Member.create({'first_name': 'Ivan', 'last_name': 'Ruiz', 'dni': '33333333C',
                          'active': False})

    db = get_db()
    db.execute("INSERT INTO users (name, email, role) VALUES ('Admin', 'admin@videoclub.com', 'admin')")
    db.execute("INSERT INTO users (name, email, role) VALUES ('Clerk', 'clerk@videoclub.com', 'employee')")
    db.commit()
    admin_id = db.execute("SELECT id FROM users WHERE role = 'admin'").fetchone()['id']
    clerk_id = db.execute("SELECT id FROM users WHERE role = 'employee'").fetchone()['id']

    return SimpleNamespace(
        general=general, premiere=premiere, movie=movie, new_movie=new_movie,
        copies=copies, ana=ana, bob=bob, ivan=ivan,
        admin_id=admin_id, clerk_id=clerk_id,
    )
