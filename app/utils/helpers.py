"""
Utility helper functions for safe handling of upstream JSON.
"""
from typing import Any, List, Optional


def safe_str(value: Any, default: str = "") -> str:
    """
    Safely convert value to string, handling None.

    Args:
        value: Any value to convert
        default: Default string if value is None

    Returns:
        String representation or default
    """
    if value is None:
        return default
    return str(value)


def optional_str(value: Any) -> Optional[str]:
    """Like safe_str, but keeps None and turns empty strings into None."""
    if value is None or value == "":
        return None
    return str(value)


def safe_int(value: Any, default: int = 0) -> int:
    """
    Safely convert value to int, handling None and invalid values.

    Args:
        value: Any value to convert
        default: Default int if conversion fails

    Returns:
        Integer or default
    """
    if value is None:
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def safe_bool(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    return bool(value)


def safe_list(value: Any) -> List[Any]:
    """Return value if it is a list, otherwise an empty list."""
    if isinstance(value, list):
        return value
    return []
