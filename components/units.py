"""
Parsing of human-readable durations and sizes ("20 seconds", "1024 MB").
"""

from components.error import ValidationError

_SECONDS = {
    "second": 1,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
}

_MEGABYTES = {
    "MB": 1,
    "GB": 1024,
    "TB": 1024 * 1024,
}


def _split(value: str, kind: str) -> tuple[str, str]:
    parts = value.split()
    if len(parts) != 2:
        raise ValidationError(f'Invalid {kind} "{value}".')
    return parts[0], parts[1]


def to_seconds(duration: str) -> int:
    """
    Convert "<count> <unit>" into seconds.

    Units are matched by prefix, so both "1 minute" and "5 minutes" work.
    """
    count, unit = _split(duration, "duration")
    for prefix, factor in _SECONDS.items():
        if unit.lower().startswith(prefix):
            try:
                return int(count) * factor
            except ValueError:
                break
    raise ValidationError(f'Invalid duration "{duration}".')


def to_mbs(size: str) -> float:
    """Convert "<count> MB|GB|TB" into megabytes."""
    count, unit = _split(size, "size")
    if unit not in _MEGABYTES:
        raise ValidationError(f'Invalid size "{size}".')
    try:
        return float(count) * _MEGABYTES[unit]
    except ValueError as e:
        raise ValidationError(f'Invalid size "{size}".') from e
