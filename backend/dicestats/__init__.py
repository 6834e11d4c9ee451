from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.exceptions import HTTPException
import click
import json
from config import Config
from dicestats.errors import StatsError, MethodNotAllowedError, GENERIC_MESSAGE
from dicestats.store import KVStore, get_store

kv = KVStore()
socketio = SocketIO(cors_allowed_origins='*', async_mode=None)


def create_app(config_class=Config, store=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    kv.init_app(flask_app, store=store)
    origins = flask_app.config.get('CORS_ORIGINS', '*')
    if isinstance(origins, str) and origins != '*':
        origins = [o.strip() for o in origins.split(',') if o.strip()]
    CORS(
        flask_app,
        resources={r'/api/*': {'origins': origins}},
        methods=['GET', 'POST', 'OPTIONS'],
        allow_headers=['Content-Type'],
        send_wildcard=True,
    )

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    from dicestats.api.stats import stats
    flask_app.register_blueprint(stats, url_prefix='/api')

    from dicestats.api.admin import admin
    flask_app.register_blueprint(admin, url_prefix='/api/admin')

    from dicestats.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    register_error_handlers(flask_app)

    @click.command('survival-reindex')
    def survival_reindex_command():
        """Re-derives over-threshold membership from stored bests."""
        from dicestats.services.stats import reindex_over_threshold
        with flask_app.app_context():
            result = reindex_over_threshold(
                get_store(flask_app),
                threshold=flask_app.config.get('SURVIVAL_THRESHOLD', 10),
            )
        click.echo(
            f"Checked {result['devices']} devices: "
            f"{result['added']} added, {result['removed']} removed."
        )

    @click.command('stats-summary')
    def stats_summary_command():
        """Prints the survival and meta aggregates as JSON."""
        from dicestats.services.stats import (
            meta_stats, survival_average_streak, survival_over_threshold, win_stats,
        )
        store = get_store(flask_app)
        summary = {
            'survivalOver10': survival_over_threshold(store),
            'survivalAverage': survival_average_streak(store),
            'meta': meta_stats(store),
            'wins': win_stats(store),
        }
        click.echo(json.dumps(summary, indent=2, sort_keys=True))

    flask_app.cli.add_command(survival_reindex_command)
    flask_app.cli.add_command(stats_summary_command)

    return flask_app


def register_error_handlers(flask_app):
    @flask_app.errorhandler(StatsError)
    def handle_stats_error(exc):
        if exc.status_code >= 500:
            flask_app.logger.error(f"[error] {type(exc).__name__}: {exc}", exc_info=exc)
        else:
            flask_app.logger.info(f"[error] {exc.status_code} {exc.message}")
        return jsonify(exc.to_dict()), exc.status_code

    @flask_app.errorhandler(HTTPException)
    def handle_http_error(exc):
        if exc.code == 405:
            return jsonify(MethodNotAllowedError().to_dict()), 405
        if exc.code == 404:
            return jsonify({'error': 'Not found'}), 404
        return jsonify({'error': exc.name}), exc.code

    @flask_app.errorhandler(Exception)
    def handle_unexpected(exc):
        flask_app.logger.error(f"[error] unhandled {type(exc).__name__}: {exc}", exc_info=exc)
        return jsonify({'error': GENERIC_MESSAGE}), 500
