from typing import Optional

from .rates import as_count

CITY_COUNTS_KEY = 'stats:cityCounts'


def normalize_city(value) -> Optional[str]:
    if not value or not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def city_leaderboard(store) -> dict:
    """Cities with at least one visit, ordered by name."""
    stored = store.hgetall(CITY_COUNTS_KEY) or {}
    counts = {}
    for name, raw in stored.items():
        city = normalize_city(name)
        count = as_count(raw)
        if city is None or count <= 0:
            continue
        # "Austin" and "Austin " are the same city
        counts[city] = counts.get(city, 0) + count
    cities = [{'city': city, 'count': counts[city]} for city in sorted(counts)]
    return {
        'cities': cities,
        'totalCities': len(cities),
        'totalVisits': sum(entry['count'] for entry in cities),
    }


def record_city_visit(store, city) -> dict:
    city = normalize_city(city)
    if city is None:
        return {'ok': False, 'reason': 'no-geo'}
    store.hincrby(CITY_COUNTS_KEY, city)
    return {'ok': True, 'city': city}
