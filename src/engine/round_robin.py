"""
Round robin (group stage) fixtures and group standings.
"""
import copy
from itertools import combinations
from typing import Dict, List, Optional

from engine.models import Match, Participant, ScoringFormat, make_lineup

GROUP_STAGE = "Group Stage"


def generate_round_robin(participants: List[Participant], category: str, age_group: Optional[str] = None,
                         start_number: int = 1, tournament_id: Optional[str] = None,
                         scoring_format: Optional[ScoringFormat] = None) -> List[Match]:
    """
    Generate one match for every unordered pair of participants.

    Pairs come in index order (0v1, 0v2, ..., 1v2, ...), all in round 1
    "Group Stage", numbered from ``start_number`` and left scheduled.
    """
    matches = []
    match_number = start_number
    for first, second in combinations(participants, 2):
        matches.append(Match(
            tournament_id=tournament_id,
            category=category,
            age_group=age_group,
            round_number=1,
            round_name=GROUP_STAGE,
            match_number=match_number,
            lineup=make_lineup(category, first.to_side(), second.to_side()),
            scoring_format=copy.deepcopy(scoring_format) if scoring_format else None,
        ))
        match_number += 1
    return matches


def calculate_group_standings(matches: List[Match]) -> List[Dict]:
    """
    Calculate standings for one round robin group.

    Returns: [{'team': name, 'player_ids': [...], 'wins': n, 'losses': n,
               'games_won': n, 'games_lost': n, 'game_diff': n,
               'points_for': n, 'points_against': n, 'point_diff': n,
               'matches_played': n}, ...]

    Ranking: wins -> game differential -> point differential -> name
    """
    team_stats = {}

    def entry(side):
        key = tuple(side.player_ids)
        if key not in team_stats:
            team_stats[key] = {
                'team': side.name,
                'player_ids': list(side.player_ids),
                'wins': 0,
                'losses': 0,
                'games_won': 0,
                'games_lost': 0,
                'points_for': 0,
                'points_against': 0,
                'matches_played': 0,
            }
        return team_stats[key]

    for match in matches:
        if match.team1.is_tbd or match.team2.is_tbd:
            continue
        stats1 = entry(match.team1)
        stats2 = entry(match.team2)
        if not match.winner_team:
            continue

        team1_games = match.games_won('team1')
        team2_games = match.games_won('team2')
        team1_points = sum(game.team1_score for game in match.games)
        team2_points = sum(game.team2_score for game in match.games)

        stats1['games_won'] += team1_games
        stats1['games_lost'] += team2_games
        stats1['points_for'] += team1_points
        stats1['points_against'] += team2_points
        stats1['matches_played'] += 1

        stats2['games_won'] += team2_games
        stats2['games_lost'] += team1_games
        stats2['points_for'] += team2_points
        stats2['points_against'] += team1_points
        stats2['matches_played'] += 1

        if match.winner_team == 'team1':
            stats1['wins'] += 1
            stats2['losses'] += 1
        else:
            stats2['wins'] += 1
            stats1['losses'] += 1

    for stats in team_stats.values():
        stats['game_diff'] = stats['games_won'] - stats['games_lost']
        stats['point_diff'] = stats['points_for'] - stats['points_against']

    return sorted(
        team_stats.values(),
        key=lambda x: (-x['wins'], -x['game_diff'], -x['point_diff'], x['team'])
    )
