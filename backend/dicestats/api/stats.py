from flask import Blueprint, jsonify, request, current_app
from dicestats.errors import StoreError
from dicestats.store import get_store
from dicestats.socketio_events import notify_stats_update
from dicestats.services.stats import (
    SurvivalRun,
    record_survival_run,
    global_best,
    submit_global_best,
    survival_over_threshold,
    survival_average_streak,
    meta_stats,
    increment_counter,
    win_stats,
    record_win,
    city_leaderboard,
    record_city_visit,
)


stats = Blueprint('stats', __name__)


def _store():
    return get_store(current_app)


def _request_body():
    """JSON body, falling back to the raw text for clients that skip the content type."""
    data = request.get_json(silent=True)
    if data is None and request.data:
        return request.get_data(as_text=True)
    return data


@stats.route('/survival-run', methods=['POST'])
def survival_run():
    run = SurvivalRun.from_json(_request_body())
    threshold = int(current_app.config.get('SURVIVAL_THRESHOLD', 10))
    result = record_survival_run(_store(), run, threshold=threshold)
    current_app.logger.info(
        f"[survival-run] device={run.device_id} streak={run.streak} updated={result['updated']}"
    )
    notify_stats_update('survival-run')
    return jsonify(result), 200


@stats.route('/survival-best', methods=['GET', 'POST'])
def survival_best():
    if request.method == 'POST':
        result = submit_global_best(_store(), _request_body())
        current_app.logger.info(
            f"[survival-best] streak={result['streak']} updated={result['updated']}"
        )
        if result['updated']:
            notify_stats_update('survival-best')
        return jsonify(result), 200
    return jsonify(global_best(_store()))


@stats.route('/survival-over10', methods=['GET'])
def survival_over10():
    return jsonify(survival_over_threshold(_store()))


@stats.route('/survival-average-streak', methods=['GET'])
def survival_average():
    return jsonify(survival_average_streak(_store()))


@stats.route('/meta-stats', methods=['GET'])
def get_meta_stats():
    return jsonify(meta_stats(_store()))


@stats.route('/increment-kv', methods=['POST'])
def increment_kv():
    result = increment_counter(_store(), request.get_json(silent=True))
    notify_stats_update('increment-kv')
    return jsonify(result), 200


@stats.route('/win-stats', methods=['GET', 'POST'])
def wins():
    if request.method == 'POST':
        result = record_win(_store(), request.get_json(silent=True))
        current_app.logger.info(f"[win-stats] winner={result['winner']} total={result['wins']}")
        notify_stats_update('win-stats')
        return jsonify(result), 200
    return jsonify(win_stats(_store()))


@stats.route('/secret-stats/cities-played', methods=['GET', 'POST'])
def cities_played():
    if request.method == 'POST':
        data = request.get_json(silent=True) or {}
        city = data.get('city') if isinstance(data, dict) else None
        if not city:
            city = request.headers.get('X-Vercel-IP-City')
        result = record_city_visit(_store(), city)
        current_app.logger.info(f"[cities-played] resolved city={result.get('city')}")
        if result['ok']:
            notify_stats_update('cities-played')
        return jsonify(result), 200
    return jsonify(city_leaderboard(_store()))


@stats.route('/health', methods=['GET'])
def health():
    if not _store().ping():
        raise StoreError('store ping returned false')
    return jsonify({'status': 'ok', 'store': 'ok'})
