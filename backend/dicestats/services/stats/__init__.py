"""Stats domain services: survival streaks and aggregate readers.

Every function takes the key-value store as its first argument so HTTP
routes, socket handlers and CLI commands share the same logic and tests can
pass an in-memory store.
"""

from .survival import (
    SurvivalRun,
    record_survival_run,
    survival_over_threshold,
    survival_average_streak,
    reindex_over_threshold,
    global_best,
    submit_global_best,
)
from .meta import meta_stats, increment_counter, COUNTER_KEYS
from .wins import win_stats, record_win
from .cities import city_leaderboard, record_city_visit
