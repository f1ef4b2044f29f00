"""System configuration model for managing rental settings.

This module provides functionality for storing and retrieving the
business parameters (rental period, fine rate, rental limit) from the
database. The service reads them as an immutable ``RentalConfig`` snapshot.
"""
import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict

from flask import current_app

from models.database import get_db
from services.errors import ValidationError
from utils.money import money_str, to_money


@dataclass(frozen=True)
class RentalConfig:
    """Read-only snapshot of the rental business parameters."""

    default_rental_days: int
    fine_per_day: Decimal
    max_active_rentals_per_member: int

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RentalConfig':
        """Build and validate a snapshot from a settings dictionary.

        Raises:
            ValidationError: If a value is missing, malformed or out of range.
        """
        try:
            config = cls(
                default_rental_days=int(data['default_rental_days']),
                fine_per_day=to_money(data['fine_per_day']),
                max_active_rentals_per_member=int(data['max_active_rentals_per_member']),
            )
        except KeyError as e:
            raise ValidationError(f'Missing setting: {e.args[0]}') from e
        except (TypeError, ValueError, InvalidOperation) as e:
            raise ValidationError(f'Invalid setting value: {e}') from e

        if config.default_rental_days < 1:
            raise ValidationError('default_rental_days must be at least 1')
        if config.max_active_rentals_per_member < 1:
            raise ValidationError('max_active_rentals_per_member must be at least 1')
        if config.fine_per_day < 0:
            raise ValidationError('fine_per_day cannot be negative')
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            'default_rental_days': self.default_rental_days,
            'fine_per_day': money_str(self.fine_per_day),
            'max_active_rentals_per_member': self.max_active_rentals_per_member,
        }


class SystemConfig:
    """System configuration settings manager.

    This class provides static methods for getting and updating
    system configuration. No instances are created.
    """

    @staticmethod
    def defaults() -> Dict[str, Any]:
        """Initial values taken from the Flask configuration."""
        return {
            'default_rental_days': current_app.config['DEFAULT_RENTAL_DAYS'],
            'fine_per_day': current_app.config['FINE_PER_DAY'],
            'max_active_rentals_per_member': current_app.config['MAX_ACTIVE_RENTALS_PER_MEMBER'],
        }

    @staticmethod
    def get() -> RentalConfig:
        """Get current system configuration.

        Returns:
            RentalConfig snapshot; defaults when no row is stored yet.
        """
        db = get_db()
        result = db.execute('SELECT config_data FROM system_config WHERE id = 1').fetchone()

        data = SystemConfig.defaults()
        if result:
            data.update(json.loads(result['config_data']))
        return RentalConfig.from_dict(data)

    @staticmethod
    def update(config_data: Dict[str, Any]) -> RentalConfig:
        """Update system configuration.

        Keys not present in ``config_data`` keep their current value.

        Args:
            config_data: Dictionary containing configuration settings.

        Returns:
            The stored configuration.
        """
        merged = SystemConfig.get().to_dict()
        merged.update({k: v for k, v in config_data.items() if k in merged})
        config = RentalConfig.from_dict(merged)

        db = get_db()
        config_json = json.dumps(config.to_dict())

        # Check if config exists
        result = db.execute('SELECT id FROM system_config WHERE id = 1').fetchone()

        if result:
            db.execute('UPDATE system_config SET config_data = ? WHERE id = 1', (config_json,))
        else:
            db.execute('INSERT INTO system_config (id, config_data) VALUES (1, ?)', (config_json,))

        db.commit()
        return config
