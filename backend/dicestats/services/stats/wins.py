from dicestats.errors import ValidationError
from .rates import as_count, percentage

WINNERS = ('player', 'cpu')


def win_key(winner: str) -> str:
    return f'stats:wins:{winner}'


def record_win(store, body) -> dict:
    winner = body.get('winner') if isinstance(body, dict) else None
    if winner not in WINNERS:
        raise ValidationError("winner must be 'player' or 'cpu'")
    wins = store.incr(win_key(winner))
    return {'winner': winner, 'wins': wins}


def win_stats(store) -> dict:
    player = as_count(store.get(win_key('player')))
    cpu = as_count(store.get(win_key('cpu')))
    total = player + cpu
    return {
        'playerWins': player,
        'cpuWins': cpu,
        'totalGames': total,
        'playerWinRate': percentage(player, total),
    }
