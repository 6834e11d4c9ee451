from flask import Blueprint
from dicestats.errors import AuthError

admin = Blueprint('admin', __name__)

ALL_METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE']


@admin.route('/reset-stats', methods=ALL_METHODS)
def reset_stats():
    # Bulk reset was removed; the route stays so old clients get a clear answer.
    raise AuthError()
