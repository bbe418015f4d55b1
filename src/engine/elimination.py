"""
Single elimination bracket generation.

A bracket is built in two passes: ``build_skeleton`` lays out every round,
numbers the matches and resolves round one byes, then ``propagate_byes``
moves bye winners into their round two slot.
"""
import copy
import math
from typing import Dict, List, Optional

from engine.models import (
    COMPLETED, Match, Participant, ScoringFormat, make_lineup,
)

SIZE_ROUND_NAMES = (16, 32, 64, 128)


def get_round_name(round_number: int, total_rounds: int) -> str:
    """Get the name of a round from its number and the bracket's round count."""
    remaining = total_rounds - round_number
    if remaining == 0:
        return "Final"
    elif remaining == 1:
        return "Semi Final"
    elif remaining == 2:
        return "Quarter Final"
    sides_in_round = 2 ** (remaining + 1)
    if sides_in_round in SIZE_ROUND_NAMES:
        return f"Round of {sides_in_round}"
    return f"Round {round_number}"


def calculate_bracket_size(num_participants: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_participants <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_participants))


def calculate_byes(num_participants: int) -> int:
    """Calculate number of byes needed."""
    bracket_size = calculate_bracket_size(num_participants)
    return bracket_size - num_participants


def _apply_bye_rule(match: Match):
    """Resolve a round one match that has exactly one real side."""
    team1_missing = match.team1.is_tbd
    team2_missing = match.team2.is_tbd
    if team1_missing == team2_missing:
        return
    winner = 'team2' if team1_missing else 'team1'
    match.status = COMPLETED
    match.winner_team = winner
    match.winner_player_ids = match.lineup.winner_player_ids(winner)
    match.completion_type = 'walkover'
    match.walkover_reason = 'bye'


def build_skeleton(participants: List[Participant], category: str, age_group: Optional[str] = None,
                   start_number: int = 1, tournament_id: Optional[str] = None,
                   scoring_format: Optional[ScoringFormat] = None) -> List[List[Match]]:
    """
    Lay out every round of a knockout bracket.

    Participants must already be seeded. Round one pairs seed i with seed
    bracket_size - 1 - i; later rounds are TBD placeholders. Match numbers run
    from ``start_number`` across all rounds in round order.

    Returns a list of rounds, each a list of matches in bracket position order.
    """
    num_participants = len(participants)
    if num_participants == 0:
        return []

    # A lone participant still gets a one-match bracket
    bracket_size = max(calculate_bracket_size(num_participants), 2)
    total_rounds = int(math.log2(bracket_size))

    rounds = []
    match_number = start_number
    for round_number in range(1, total_rounds + 1):
        round_name = get_round_name(round_number, total_rounds)
        matches_in_round = bracket_size // (2 ** round_number)
        round_matches = []

        for position in range(matches_in_round):
            lineup = make_lineup(category)
            if round_number == 1:
                seed1 = position
                seed2 = bracket_size - 1 - position
                if seed1 < num_participants:
                    lineup.set_side('team1', participants[seed1].to_side())
                if seed2 < num_participants:
                    lineup.set_side('team2', participants[seed2].to_side())

            match = Match(
                tournament_id=tournament_id,
                category=category,
                age_group=age_group,
                round_number=round_number,
                round_name=round_name,
                match_number=match_number,
                lineup=lineup,
                scoring_format=copy.deepcopy(scoring_format) if scoring_format else None,
            )
            if round_number == 1:
                _apply_bye_rule(match)

            round_matches.append(match)
            match_number += 1

        rounds.append(round_matches)

    return rounds


def propagate_byes(rounds: List[List[Match]]) -> List[List[Match]]:
    """
    Copy every bye winner into its next round slot.

    The match at position p feeds position p // 2 of the next round, as team1
    when p is even and team2 when odd. Winners of played matches are left for
    an explicit advance. Returns new rounds; the input is not modified.
    """
    rounds = copy.deepcopy(rounds)
    for round_index in range(len(rounds) - 1):
        next_round = rounds[round_index + 1]
        for position, match in enumerate(rounds[round_index]):
            if not match.is_bye:
                continue
            target = next_round[position // 2]
            team = 'team1' if position % 2 == 0 else 'team2'
            target.lineup.set_side(team, copy.deepcopy(match.winner_side))
    return rounds


def generate_knockout_bracket(participants: List[Participant], category: str, age_group: Optional[str] = None,
                              start_number: int = 1, tournament_id: Optional[str] = None,
                              scoring_format: Optional[ScoringFormat] = None) -> List[Match]:
    """Build a full knockout bracket with byes resolved, flattened in match number order."""
    rounds = build_skeleton(participants, category, age_group, start_number, tournament_id, scoring_format)
    rounds = propagate_byes(rounds)
    return [match for round_matches in rounds for match in round_matches]


def group_matches_by_round(matches: List[Match]) -> Dict[int, List[Match]]:
    """Group matches by round number, each round sorted by match number."""
    rounds = {}
    for match in sorted(matches, key=lambda m: (m.round_number, m.match_number)):
        rounds.setdefault(match.round_number, []).append(match)
    return rounds


def get_bracket_summary(matches: List[Match]) -> Dict:
    """
    Summarise one knockout group for display.

    Returns dict with bracket_size, total_rounds, byes, matches_per_round
    (playable matches per round name) and champion (winner name of a decided
    final, else None).
    """
    rounds = group_matches_by_round(matches)
    if not rounds:
        return {
            'bracket_size': 0,
            'total_rounds': 0,
            'byes': 0,
            'matches_per_round': {},
            'rounds': {},
            'champion': None,
        }

    first_round = rounds[min(rounds)]
    final_round = rounds[max(rounds)]
    matches_per_round = {}
    for round_matches in rounds.values():
        round_name = round_matches[0].round_name
        matches_per_round[round_name] = len([m for m in round_matches if not m.is_bye])

    champion = None
    final = final_round[0]
    if len(final_round) == 1 and final.winner_side is not None:
        champion = final.winner_side.name

    return {
        'bracket_size': len(first_round) * 2,
        'total_rounds': len(rounds),
        'byes': sum(1 for m in first_round if m.is_bye),
        'matches_per_round': matches_per_round,
        'rounds': {round_matches[0].round_name: [m.to_dict() for m in round_matches]
                   for round_matches in rounds.values()},
        'champion': champion,
    }
