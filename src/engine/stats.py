"""
Player statistics rolled up from completed matches.
"""
import logging
from typing import Collection, Dict, List, Optional

from engine.errors import IllegalStateTransition
from engine.models import CATEGORIES, COMPLETED, TEAMS, WALKOVER, Match, PlayerStats, other_team

logger = logging.getLogger(__name__)

RECENT_FORM_LENGTH = 10
GUEST_PREFIX = 'guest'


def is_registered_player(player_id, registered_ids: Optional[Collection] = None) -> bool:
    """Guests and empty ids have no identity to attach stats to."""
    if not player_id:
        return False
    if str(player_id).startswith(GUEST_PREFIX):
        return False
    if registered_ids is not None:
        return player_id in registered_ids
    return True


def next_streak(current_streak: int, won: bool) -> int:
    """Extend a streak of the same sign, otherwise restart it at +1 / -1."""
    if won:
        return current_streak + 1 if current_streak > 0 else 1
    return current_streak - 1 if current_streak < 0 else -1


def record_result(stats: PlayerStats, won: bool, category: str, games_won: int = 0, games_lost: int = 0):
    """Apply one match result to a player's stats in place."""
    stats.total_matches += 1
    if won:
        stats.wins += 1
    else:
        stats.losses += 1
    stats.win_rate = stats.wins / stats.total_matches * 100

    stats.current_streak = next_streak(stats.current_streak, won)
    stats.longest_streak = max(stats.longest_streak, max(stats.current_streak, 0))

    stats.recent_form.append('W' if won else 'L')
    stats.recent_form = stats.recent_form[-RECENT_FORM_LENGTH:]

    record = stats.category_records.setdefault(category, {'played': 0, 'won': 0, 'lost': 0})
    record['played'] += 1
    record['won' if won else 'lost'] += 1

    stats.total_games_won += games_won
    stats.total_games_lost += games_lost
    stats.favorite_category = max(
        stats.category_records,
        key=lambda c: (stats.category_records[c]['played'],
                       -CATEGORIES.index(c) if c in CATEGORIES else -len(CATEGORIES)),
    )


def update_player_stats(match: Match, existing: Optional[Dict[str, PlayerStats]] = None,
                        registered_ids: Optional[Collection] = None) -> List[PlayerStats]:
    """
    Roll a finished match into the stats of every registered player in it.

    Args:
        match: A completed or walkover match with a winner
        existing: Current stats keyed by player id; missing players start fresh
        registered_ids: When given, only these player ids get stats

    Returns:
        Updated stats, one per player processed, in lineup order. The
        ``existing`` records are not modified. A player whose update fails is
        logged and left out; the others are still returned.
    """
    if match.status not in (COMPLETED, WALKOVER) or match.winner_team not in TEAMS:
        raise IllegalStateTransition(f"Match {match.match_number} has no result to record")

    existing = existing or {}
    result = match.match_result or {}
    updated = []
    for team in TEAMS:
        won = team == match.winner_team
        games_won = result.get(f'{team}GamesWon', 0)
        games_lost = result.get(f'{other_team(team)}GamesWon', 0)
        for player_id in match.lineup.side(team).player_ids:
            if not is_registered_player(player_id, registered_ids):
                continue
            try:
                current = existing.get(player_id)
                stats = current.copy() if current is not None else PlayerStats(player_id)
                record_result(stats, won, match.category, games_won, games_lost)
            except Exception:
                logger.exception("Failed to update stats for player %s after match %s",
                                 player_id, match.match_number)
                continue
            updated.append(stats)
    return updated
