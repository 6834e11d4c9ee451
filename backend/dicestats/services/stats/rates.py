def ratio(part, whole) -> float:
    """part / whole as a 0..1 fraction; 0 when nothing was recorded."""
    if not whole or whole <= 0:
        return 0
    return part / whole


def percentage(part, whole) -> float:
    """part / whole scaled to 0..100; 0 when nothing was recorded."""
    if not whole or whole <= 0:
        return 0
    return (part / whole) * 100


def as_count(raw) -> int:
    """Read a stored counter; anything missing or malformed counts as 0."""
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return 0
    return raw
