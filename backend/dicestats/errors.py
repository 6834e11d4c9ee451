"""Error taxonomy for the stats API.

Each error carries the HTTP status it maps to; the app factory registers a
handler that renders them as ``{"error": message}``.
"""

GENERIC_MESSAGE = 'Internal Server Error'


class StatsError(Exception):
    status_code = 500
    message = GENERIC_MESSAGE

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self):
        return {'error': self.message}


class ValidationError(StatsError):
    status_code = 400
    message = 'Invalid request'


class MethodNotAllowedError(StatsError):
    status_code = 405
    message = 'Method not allowed'


class StoreError(StatsError):
    """The key-value backend failed. Details are logged, never returned."""
    status_code = 500

    def to_dict(self):
        return {'error': GENERIC_MESSAGE}


class AuthError(StatsError):
    status_code = 410
    message = 'Admin endpoints removed'
