"""
Models package

    Catalog:   Category, Genre (category.py), Movie (movie.py), Copy (movie_copy.py)
    Counter:   Member (member.py), Rental (rental.py), Fine (fine.py)
    Settings:  SystemConfig, RentalConfig (system_config.py)
    Staff:     User (user.py), SystemLog (system_log.py)
"""
from models.database import init_db, get_db, close_db
from models.category import Category, Genre
from models.movie import Movie
from models.movie_copy import Copy
from models.member import Member
from models.rental import Rental
from models.fine import Fine
from models.system_config import RentalConfig, SystemConfig
from models.system_log import SystemLog
from models.user import User

__all__ = [
    'Category', 'Genre', 'Movie', 'Copy',
    'Member', 'Rental', 'Fine',
    'RentalConfig', 'SystemConfig', 'SystemLog', 'User',
    'init_db', 'get_db', 'close_db'
]
