import json
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Union

from dicestats.errors import ValidationError
from dicestats.store import KeyValueStore
from .rates import as_count, percentage

SURVIVAL_DEVICES_SET = 'survival:devices'
SURVIVAL_OVER10_SET = 'survival:over10'
STREAK_TOTAL_KEY = 'survival:streak:total'
STREAK_COUNT_KEY = 'survival:streak:count'
# Kept outside survival:best:* so a device named "global" cannot collide.
GLOBAL_BEST_KEY = 'survival:globalBest'
GLOBAL_BEST_UPDATED_KEY = 'survival:globalBest:updatedAt'
DEFAULT_THRESHOLD = 10


def best_key(device_id: str) -> str:
    return f'survival:best:{device_id}'


def _decode_body(body: Any) -> dict:
    if isinstance(body, (str, bytes)):
        try:
            body = json.loads(body or '{}')
        except ValueError:
            body = None
    return body if isinstance(body, dict) else {}


def parse_streak(value: Any) -> Union[int, float]:
    """Validate a reported streak: a finite number >= 0 that fits in a float."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError('streak must be a non-negative number')
    try:
        as_float = float(value)
    except OverflowError:
        raise ValidationError('streak must be a non-negative number')
    if not math.isfinite(as_float) or value < 0:
        raise ValidationError('streak must be a non-negative number')
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


@dataclass(frozen=True)
class SurvivalRun:
    device_id: str
    streak: Union[int, float]

    @classmethod
    def from_json(cls, body: Any) -> 'SurvivalRun':
        """Parse a request body into a run, raising ValidationError on bad input.

        Accepts a decoded dict or a raw JSON string. Booleans are not numbers
        here, and neither are NaN, infinities or integers too big for a float.
        """
        body = _decode_body(body)

        device_id = body.get('deviceId')
        if not device_id or not isinstance(device_id, str):
            raise ValidationError('deviceId is required and must be a string')

        return cls(device_id=device_id, streak=parse_streak(body.get('streak')))


def record_survival_run(store: KeyValueStore, run: SurvivalRun,
                        threshold: int = DEFAULT_THRESHOLD) -> Dict[str, Any]:
    """Ingest one finished survival run.

    1. add the device to the all-time device set
    2. raise the device's best if this run beat it
    3. re-read the stored best and recompute over-threshold membership,
       adding or removing the device, whether or not this run set a record
    4. add the run to the sum/count used for the average streak

    No step is rolled back if a later one fails.
    """
    store.sadd(SURVIVAL_DEVICES_SET, run.device_id)

    key = best_key(run.device_id)
    current_best = as_count(store.get(key))
    updated = False
    if run.streak > current_best:
        store.set(key, run.streak)
        updated = True

    # Membership follows the best as stored now, not the value read above,
    # so a concurrent run for the same device cannot leave it stale.
    best_after = as_count(store.get(key))
    if best_after > threshold:
        store.sadd(SURVIVAL_OVER10_SET, run.device_id)
    else:
        store.srem(SURVIVAL_OVER10_SET, run.device_id)

    store.incr_float(STREAK_TOTAL_KEY, run.streak)
    store.incr(STREAK_COUNT_KEY)

    return {'deviceId': run.device_id, 'streak': run.streak, 'updated': updated}


def device_best(store: KeyValueStore, device_id: str):
    return as_count(store.get(best_key(device_id)))


def global_best(store: KeyValueStore) -> Dict[str, Any]:
    updated_at = store.get(GLOBAL_BEST_UPDATED_KEY)
    return {
        'streak': as_count(store.get(GLOBAL_BEST_KEY)),
        'updatedAt': updated_at if isinstance(updated_at, str) else None,
    }


def submit_global_best(store: KeyValueStore, body: Any) -> Dict[str, Any]:
    """Raise the all-devices best streak if ``body['streak']`` beats it."""
    streak = parse_streak(_decode_body(body).get('streak'))
    current = global_best(store)
    if streak <= current['streak']:
        return dict(current, updated=False)
    updated_at = datetime.now(timezone.utc).isoformat()
    store.set(GLOBAL_BEST_KEY, streak)
    store.set(GLOBAL_BEST_UPDATED_KEY, updated_at)
    return {'streak': streak, 'updatedAt': updated_at, 'updated': True}


def survival_over_threshold(store: KeyValueStore) -> Dict[str, Any]:
    total = store.scard(SURVIVAL_DEVICES_SET) or 0
    over = store.scard(SURVIVAL_OVER10_SET) or 0
    return {
        'totalSurvivalUsers': total,
        'survivalOver10Users': over,
        'survivalOver10Rate': percentage(over, total),
    }


def survival_average_streak(store: KeyValueStore) -> Dict[str, Any]:
    total = as_count(store.get(STREAK_TOTAL_KEY))
    count = as_count(store.get(STREAK_COUNT_KEY))
    average = 0
    if count > 0:
        # Half-up on the float quotient, so 1/8 shows as 0.13
        average = float(Decimal(total / count).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))
    return {'averageSurvivalStreak': average, 'sampleSize': count}


def reindex_over_threshold(store: KeyValueStore,
                           threshold: int = DEFAULT_THRESHOLD) -> Dict[str, int]:
    """Rebuild over-threshold membership from every device's stored best.

    Repairs membership left stale by interleaved ingestions. Members of the
    over-threshold set that never made it into the device set are checked too.
    Devices already in the right state are not written.
    """
    devices = store.smembers(SURVIVAL_DEVICES_SET)
    candidates = devices | store.smembers(SURVIVAL_OVER10_SET)
    added = removed = 0
    for device_id in sorted(candidates):
        should_be_member = device_best(store, device_id) > threshold
        if should_be_member == store.sismember(SURVIVAL_OVER10_SET, device_id):
            continue
        if should_be_member:
            added += store.sadd(SURVIVAL_OVER10_SET, device_id)
        else:
            removed += store.srem(SURVIVAL_OVER10_SET, device_id)
    return {'devices': len(devices), 'added': added, 'removed': removed}
