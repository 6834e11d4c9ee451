from dicestats.errors import ValidationError
from .rates import as_count, percentage, ratio

TRUTHFUL_CLAIMS_KEY = 'stats:player:truthfulClaims'
BLUFF_CLAIMS_KEY = 'stats:player:bluffClaims'


def aggressive_key(who: str) -> str:
    return f'stats:{who}:aggressiveEvents'


def decisions_key(who: str) -> str:
    return f'stats:{who}:totalDecisionEvents'


# Counters clients may bump through /api/increment-kv. Claim-risk counters
# (stats:claims:{code}:{wins|losses}) were retired; older clients still send
# them and get a 400.
COUNTER_KEYS = frozenset([
    TRUTHFUL_CLAIMS_KEY,
    BLUFF_CLAIMS_KEY,
    aggressive_key('player'),
    decisions_key('player'),
    aggressive_key('rival'),
    decisions_key('rival'),
])


def _aggression(store, who: str) -> dict:
    aggressive = as_count(store.get(aggressive_key(who)))
    total = as_count(store.get(decisions_key(who)))
    return {
        'aggressiveEvents': aggressive,
        'totalEvents': total,
        'index': percentage(aggressive, total),
    }


def meta_stats(store) -> dict:
    """Honesty rate (0..1 fraction) and aggression index (0..100) per side."""
    truthful = as_count(store.get(TRUTHFUL_CLAIMS_KEY))
    bluffs = as_count(store.get(BLUFF_CLAIMS_KEY))
    return {
        'honesty': {
            'truthful': truthful,
            'bluffs': bluffs,
            'honestyRate': ratio(truthful, truthful + bluffs),
        },
        'aggression': {
            'player': _aggression(store, 'player'),
            'rival': _aggression(store, 'rival'),
        },
    }


def increment_counter(store, body) -> dict:
    key = body.get('key') if isinstance(body, dict) else None
    if not key or not isinstance(key, str):
        raise ValidationError('key is required and must be a string')
    if key not in COUNTER_KEYS:
        raise ValidationError(f'key {key!r} is not a tracked counter')
    value = store.incr(key)
    return {'key': key, 'value': value}
