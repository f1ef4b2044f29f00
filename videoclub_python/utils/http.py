"""Request parsing helpers shared by the API blueprints."""
from typing import Any, Dict, List, Optional

from flask import request, session

from services.errors import ValidationError


def json_body() -> Dict[str, Any]:
    """Return the JSON object sent with the request, or an empty dict."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def require_int(data: Dict[str, Any], key: str) -> int:
    if data.get(key) in (None, ''):
        raise ValidationError(f'{key} is required')
    try:
        return int(data[key])
    except (TypeError, ValueError) as e:
        raise ValidationError(f'{key} must be an integer') from e


def int_list(data: Dict[str, Any], key: str) -> List[int]:
    values = data.get(key)
    if not isinstance(values, list):
        raise ValidationError(f'{key} must be a list')
    try:
        return [int(value) for value in values]
    except (TypeError, ValueError) as e:
        raise ValidationError(f'{key} must contain integers') from e


def arg_int(name: str) -> Optional[int]:
    """Optional integer query-string argument."""
    value = request.args.get(name)
    if value in (None, ''):
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValidationError(f'{name} must be an integer') from e


def current_user_id() -> Optional[int]:
    return session.get('user_id')
