"""
Match scoring state machine.

A match moves scheduled -> in_progress -> completed | walkover | cancelled.
``apply_score_update`` applies one action to a copy of a match and returns
the copy; game and match winners are decided from the match's scoring format.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from engine.errors import (
    AlreadyCompleted, IllegalStateTransition, InvalidConfiguration, InvalidScore, StaleMatchVersion,
)
from engine.models import (
    CANCELLED, COMPLETED, COMPLETION_TYPES, IN_PROGRESS, SCHEDULED, TEAMS, WALKOVER,
    Game, Match, ScoringFormat,
)

logger = logging.getLogger(__name__)

SCORING_PRESETS = {
    'badminton_21': {'points_per_game': 21, 'games_per_match': 3, 'win_by_margin': 2, 'max_points': 30},
    'badminton_15': {'points_per_game': 15, 'games_per_match': 3, 'win_by_margin': 2, 'max_points': 21},
    'single_game_21': {'points_per_game': 21, 'games_per_match': 1, 'win_by_margin': 2, 'max_points': 30},
    'rally_11': {'points_per_game': 11, 'games_per_match': 3, 'win_by_margin': 2, 'max_points': 15},
}
DEFAULT_SCORING_PRESET = 'badminton_21'

ACTIONS = ('start', 'update_score', 'award_point', 'end_match', 'walkover', 'cancel')
WALKOVER_REASONS = tuple(t for t in COMPLETION_TYPES if t != 'normal')


def get_scoring_format(value=None) -> ScoringFormat:
    """Resolve a preset name, a stored mapping or a ScoringFormat into a ScoringFormat."""
    if value is None:
        value = DEFAULT_SCORING_PRESET
    if isinstance(value, ScoringFormat):
        return value
    if isinstance(value, str):
        if value not in SCORING_PRESETS:
            raise InvalidConfiguration(f"Unknown scoring format: {value}")
        return ScoringFormat(**SCORING_PRESETS[value])
    if isinstance(value, dict):
        return ScoringFormat.from_dict(value)
    raise InvalidConfiguration(f"Unsupported scoring format: {value!r}")


def determine_game_winner(team1_score: int, team2_score: int, scoring_format: ScoringFormat) -> Optional[str]:
    """
    Decide a single game.

    A side reaching maxPoints wins outright (sudden death). Otherwise the
    leader wins once it has at least pointsPerGame and leads by winByMargin.
    """
    if team1_score == team2_score:
        return None
    leader = 'team1' if team1_score > team2_score else 'team2'
    leader_score = max(team1_score, team2_score)

    if scoring_format.max_points is not None and leader_score >= scoring_format.max_points:
        return leader
    if (leader_score >= scoring_format.points_per_game
            and abs(team1_score - team2_score) >= scoring_format.win_by_margin):
        return leader
    return None


def determine_match_winner(games: List[Game], scoring_format: ScoringFormat) -> Optional[str]:
    """Return the first side to win the majority of gamesPerMatch, if any."""
    games_to_win = scoring_format.games_to_win
    for team in TEAMS:
        if sum(1 for game in games if game.winner == team) >= games_to_win:
            return team
    return None


def is_deuce(team1_score: int, team2_score: int, scoring_format: ScoringFormat) -> bool:
    """True when both sides are at game point territory and nobody has won yet."""
    if scoring_format.win_by_margin < 2:
        return False
    if determine_game_winner(team1_score, team2_score, scoring_format):
        return False
    return min(team1_score, team2_score) >= scoring_format.points_per_game - 1


def game_display_text(game: Game, scoring_format: ScoringFormat) -> str:
    score = f"{game.team1_score}-{game.team2_score}"
    if game.winner:
        return f"{score} ({'Team 1' if game.winner == 'team1' else 'Team 2'} wins)"
    if is_deuce(game.team1_score, game.team2_score, scoring_format):
        return f"{score} (Deuce)"
    return score


def match_display_text(match: Match) -> str:
    score = f"{match.games_won('team1')}-{match.games_won('team2')}"
    if match.winner_side is not None:
        return f"{score} ({match.winner_side.name} wins match)"
    return score


def _duration_minutes(match: Match, now: datetime) -> int:
    if not match.start_time:
        return 0
    return max(0, int(round((now - match.start_time).total_seconds() / 60)))


def _build_result(match: Match, now: datetime) -> Dict:
    return {
        'team1GamesWon': match.games_won('team1'),
        'team2GamesWon': match.games_won('team2'),
        'totalDuration': _duration_minutes(match, now),
        'completedAt': now,
    }


def _set_winner(match: Match, team: str, now: datetime):
    match.winner_team = team
    match.winner_player_ids = match.lineup.winner_player_ids(team)
    match.end_time = now
    match.match_result = _build_result(match, now)


def _complete(match: Match, team: str, now: datetime):
    match.status = COMPLETED
    match.completion_type = 'normal'
    _set_winner(match, team, now)


def _require_in_progress(match: Match, action: str):
    if match.status != IN_PROGRESS:
        raise IllegalStateTransition(f"Cannot {action} a match that is {match.status}")


def _parse_score(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        try:
            value = int(str(value).strip())
        except (TypeError, ValueError):
            raise InvalidScore(f"{field} must be a whole number")
    if value < 0:
        raise InvalidScore(f"{field} cannot be negative")
    return value


def _check_cap(match: Match, *scores):
    cap = match.scoring_format.max_points
    if cap is not None and max(scores) > cap:
        raise InvalidScore(f"Scores cannot exceed {cap} points")


def _evaluate(match: Match, game: Game, now: datetime) -> bool:
    """Settle the game just written, then the match. Returns True when the match ends."""
    winner = determine_game_winner(game.team1_score, game.team2_score, match.scoring_format)
    if winner:
        if game.winner != winner:
            game.winner = winner
            game.completed_at = now
    else:
        game.winner = None
        game.completed_at = None

    match_winner = determine_match_winner(match.games, match.scoring_format)
    if match_winner:
        _complete(match, match_winner, now)
        return True
    return False


def _start(match: Match, payload: Dict, now: datetime) -> bool:
    if match.status != SCHEDULED:
        raise IllegalStateTransition(f"Cannot start a match that is {match.status}")
    if not match.lineup.is_complete:
        raise IllegalStateTransition("Both sides must be known before the match starts")
    match.status = IN_PROGRESS
    match.start_time = now
    if not match.games:
        match.games.append(Game(1))
    return False


def _update_score(match: Match, payload: Dict, now: datetime) -> bool:
    _require_in_progress(match, 'score')
    game_number = _parse_score(payload.get('gameNumber', 1), 'gameNumber')
    team1_score = _parse_score(payload.get('team1Score'), 'team1Score')
    team2_score = _parse_score(payload.get('team2Score'), 'team2Score')

    if game_number < 1 or game_number > len(match.games) + 1:
        raise InvalidScore(f"Game {game_number} is out of sequence")
    if game_number > match.scoring_format.games_per_match:
        raise InvalidScore(f"A match has at most {match.scoring_format.games_per_match} games")
    _check_cap(match, team1_score, team2_score)

    if game_number > len(match.games):
        match.games.append(Game(game_number))
    game = match.games[game_number - 1]
    game.team1_score = team1_score
    game.team2_score = team2_score
    return _evaluate(match, game, now)


def _award_point(match: Match, payload: Dict, now: datetime) -> bool:
    _require_in_progress(match, 'score')
    team = payload.get('team')
    if team not in TEAMS:
        raise InvalidScore(f"team must be one of {', '.join(TEAMS)}")

    if not match.games or match.games[-1].winner:
        if len(match.games) >= match.scoring_format.games_per_match:
            raise InvalidScore("No game left to play")
        match.games.append(Game(len(match.games) + 1))
    game = match.games[-1]
    if team == 'team1':
        game.team1_score += 1
    else:
        game.team2_score += 1
    return _evaluate(match, game, now)


def _end_match(match: Match, payload: Dict, now: datetime) -> bool:
    _require_in_progress(match, 'end')
    team1_games = match.games_won('team1')
    team2_games = match.games_won('team2')
    if team1_games == team2_games:
        raise IllegalStateTransition("Cannot end a match without a leader in games won")
    _complete(match, 'team1' if team1_games > team2_games else 'team2', now)
    return True


def _walkover(match: Match, payload: Dict, now: datetime) -> bool:
    winner = payload.get('winner')
    if winner not in TEAMS:
        raise InvalidConfiguration(f"winner must be one of {', '.join(TEAMS)}")
    reason = payload.get('reason') or 'walkover'
    if reason not in WALKOVER_REASONS:
        raise InvalidConfiguration(f"Unknown walkover reason: {reason}")
    if match.lineup.side(winner).is_tbd:
        raise IllegalStateTransition("A walkover needs a known winning side")

    match.status = WALKOVER
    match.completion_type = reason
    match.walkover_reason = reason
    _set_winner(match, winner, now)
    return True


def _cancel(match: Match, payload: Dict, now: datetime) -> bool:
    match.status = CANCELLED
    match.end_time = now
    return False


_HANDLERS = {
    'start': _start,
    'update_score': _update_score,
    'award_point': _award_point,
    'end_match': _end_match,
    'walkover': _walkover,
    'cancel': _cancel,
}


def apply_score_update(match: Match, action: str, payload: Optional[Dict] = None,
                       now: Optional[datetime] = None, expected_version: Optional[int] = None,
                       on_complete: Optional[Callable[[Match], None]] = None) -> Match:
    """
    Apply one scoring action and return the updated match.

    Args:
        match: Current match snapshot; not modified
        action: One of start, update_score, award_point, end_match, walkover, cancel
        payload: Action arguments (gameNumber/team1Score/team2Score, team, winner/reason)
        now: Clock reading for timestamps and durations
        expected_version: Version the caller read; a mismatch raises StaleMatchVersion
        on_complete: Called once with the updated match when it gets a winner

    Raises:
        AlreadyCompleted: the match already has a result
        IllegalStateTransition: the action is not allowed in the current status
        InvalidScore: the payload carries impossible scores
    """
    if action not in _HANDLERS:
        raise InvalidConfiguration(f"Invalid action: {action}")
    if match.status in (COMPLETED, WALKOVER):
        raise AlreadyCompleted(f"Match {match.match_number} is already {match.status}")
    if match.status == CANCELLED:
        raise IllegalStateTransition(f"Match {match.match_number} was cancelled")
    if expected_version is not None and expected_version != match.version:
        raise StaleMatchVersion(expected_version, match.version)

    now = now or datetime.now()
    updated = match.copy()
    finished = _HANDLERS[action](updated, payload or {}, now)
    updated.version += 1

    if finished and on_complete is not None:
        try:
            on_complete(updated)
        except Exception:
            # The result stands even if derived stats could not be written
            logger.exception("Completion hook failed for match %s", updated.match_number)
    return updated
