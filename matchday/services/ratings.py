"""
Team rating rules for recorded match results.

Ratings are integers that move by fixed deltas, independent of the
pre-match ratings of either side:

- Start: 1000 for every new team.
- Win/loss: the winner gains 25 and the loser drops 25.
- Draw: both teams gain 5.

Results are always expressed from the home ("from" / challenging) team's
perspective: WIN means the home team won.
"""

DEFAULT_RATING = 1000
WIN_RATING_DELTA = 25
DRAW_RATING_DELTA = 5

RESULT_WIN = 'WIN'
RESULT_LOSS = 'LOSS'
RESULT_DRAW = 'DRAW'


def determine_result(home_score, away_score):
    """Classify a final score from the home team's perspective."""
    if home_score > away_score:
        return RESULT_WIN
    if home_score < away_score:
        return RESULT_LOSS
    return RESULT_DRAW


def rating_changes(result):
    """Return (home_change, away_change) for a result."""
    if result == RESULT_WIN:
        return WIN_RATING_DELTA, -WIN_RATING_DELTA
    if result == RESULT_LOSS:
        return -WIN_RATING_DELTA, WIN_RATING_DELTA
    if result == RESULT_DRAW:
        return DRAW_RATING_DELTA, DRAW_RATING_DELTA
    raise ValueError(f'Unknown match result: {result!r}')


def _side_deltas(outcome, rating_change):
    return {
        'wins': 1 if outcome == 'win' else 0,
        'losses': 1 if outcome == 'loss' else 0,
        'draws': 1 if outcome == 'draw' else 0,
        'matches_played': 1,
        'rating': rating_change,
    }


def stat_deltas(result):
    """Counter increments for (home_team, away_team).

    Each side gets exactly one of wins/losses/draws incremented together with
    matches_played, which keeps ``wins + losses + draws == matches_played``.
    """
    home_change, away_change = rating_changes(result)
    if result == RESULT_WIN:
        outcomes = ('win', 'loss')
    elif result == RESULT_LOSS:
        outcomes = ('loss', 'win')
    else:
        outcomes = ('draw', 'draw')
    return (
        _side_deltas(outcomes[0], home_change),
        _side_deltas(outcomes[1], away_change),
    )
