import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # redis:// or rediss:// for Redis, memory:// for the in-process store
    STORE_URL = (
        os.environ.get('STORE_URL')
        or os.environ.get('REDIS_URL')
        or os.environ.get('KV_URL')
        or 'memory://'
    )
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    # Survival devices whose best streak exceeds this are "over threshold"
    SURVIVAL_THRESHOLD = int(os.environ.get('SURVIVAL_THRESHOLD', '10'))
    # Emit Socket.IO stats_update events after writes. 0 disables.
    STATS_PUSH_ENABLED = os.environ.get('STATS_PUSH_ENABLED', '1') not in ('0', 'false', 'False')
