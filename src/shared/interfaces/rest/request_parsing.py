from datetime import datetime
from typing import Optional


def parse_iso_datetime(value, field_name: str = 'timestamp') -> Optional[datetime]:
    """
    Parse an ISO-8601 string from a request

    Accepts a trailing "Z". Aware values are converted to naive local
    time, the form every stored timestamp uses.

    Raises:
        ValueError: If value is not a valid ISO-8601 string
    """
    if value is None or value == '':
        return None

    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except (ValueError, TypeError) as e:
        raise ValueError(f"Invalid {field_name} format: {e}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)

    return parsed


def parse_int_arg(args, name: str, default: int) -> int:
    """
    Read an integer query parameter

    Raises:
        ValueError: If the parameter is present but not an integer
    """
    raw = args.get(name)
    if raw is None or raw == '':
        return default

    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
