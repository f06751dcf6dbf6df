from typing import Any, Optional


def dig(data: Any, *path: Any) -> Any:
    """
    Walk nested dicts/lists, returning None as soon as a step is missing.

    String steps index dicts, int steps index lists:
        dig(body, "output", "completeTrackResults", 0, "trackResults", 0)
    """
    current = data
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or not -len(current) <= step < len(current):
                return None
            current = current[step]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(step)
        if current is None:
            return None
    return current


def safe_int(value: Any, default: int = 0) -> int:
    """Safely convert value to int, returning default if conversion fails"""
    if value is None:
        return default
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def as_str(value: Any) -> Optional[str]:
    """Stripped string, None for blanks and for anything that is not a string"""
    if not isinstance(value, str):
        return None
    return value.strip() or None


def join_location(*parts: Any) -> Any:
    """'City, ST' from the non-empty parts, None when nothing is left"""
    cleaned = [p for p in (as_str(part) for part in parts) if p]
    if not cleaned:
        return None
    return ", ".join(cleaned)
