from flask_socketio import join_room, leave_room, emit
from flask import current_app
from dicestats import socketio

STATS_ROOM = 'stats'


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_subscribe_stats(data=None):
    join_room(STATS_ROOM)
    emit('subscribed', {'room': STATS_ROOM})


def handle_unsubscribe_stats(data=None):
    leave_room(STATS_ROOM)
    emit('unsubscribed', {'room': STATS_ROOM})


def handle_ping(data):
    emit('pong', data or {})


def notify_stats_update(source: str) -> None:
    """Tell subscribed stats screens that something changed so they refetch."""
    if not current_app.config.get('STATS_PUSH_ENABLED', True):
        return
    try:
        socketio.emit('stats_update', {'source': source}, to=STATS_ROOM, namespace='/ws')
    except Exception as exc:
        # The write already happened; a failed push only delays the refresh.
        current_app.logger.warning(f"[stats_update] push failed source={source}: {exc}")


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('subscribe_stats', handle_subscribe_stats, namespace=namespace)
        socketio.on_event('unsubscribe_stats', handle_unsubscribe_stats, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
