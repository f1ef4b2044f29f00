"""Configuration file for Flask application.

This module contains all configuration settings for the video club system,
including database paths, logging and the default business rules.
"""
import os
from datetime import timedelta


class Config:
    """Base configuration class for Flask application.

    Contains all application settings including:
    - Session management configuration
    - Database connection settings
    - Logging
    - Default rental business rules (seeded into the system_config row)

    Attributes:
        SECRET_KEY (str): Secret key for session encryption.
        SESSION_PERMANENT (bool): Whether sessions should be permanent.
        PERMANENT_SESSION_LIFETIME (timedelta): Duration of permanent sessions.
        DATABASE_PATH (str): Absolute path to SQLite database file.
        LOG_LEVEL (str): Root logging level name.
        SEED_SAMPLE_DATA (bool): Load the sample catalog on first start.
        DEFAULT_RENTAL_DAYS (int): Default rental period in days.
        FINE_PER_DAY (str): Fine amount per late day, as a decimal string.
        MAX_ACTIVE_RENTALS_PER_MEMBER (int): Maximum simultaneous rentals.
    """

    # Secret key for session management and security
    SECRET_KEY: str = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Session configuration
    SESSION_PERMANENT: bool = False
    PERMANENT_SESSION_LIFETIME: timedelta = timedelta(hours=12)

    # Database configuration
    DATABASE_PATH: str = os.environ.get('DATABASE_PATH') or os.path.join(
        os.path.dirname(os.path.dirname(__file__)), 'data', 'videoclub.db'
    )

    LOG_LEVEL: str = os.environ.get('LOG_LEVEL', 'INFO')
    SEED_SAMPLE_DATA: bool = True

    # Rental business rules (initial values, editable from settings)
    DEFAULT_RENTAL_DAYS: int = 3
    FINE_PER_DAY: str = '1.00'
    MAX_ACTIVE_RENTALS_PER_MEMBER: int = 3
