"""
Tournament-wide fixture generation.

Participants are split into groups (category, and optionally age group), each
group is seeded and turned into a knockout bracket or a round robin, and
match numbers run across all groups in group order.
"""
import logging
import random
import re
from typing import Dict, List, Optional, Tuple

from engine.elimination import generate_knockout_bracket
from engine.errors import InsufficientParticipants, InvalidConfiguration, InvalidIdentifier
from engine.models import CATEGORIES, Match, Participant, ScoringFormat
from engine.round_robin import generate_round_robin
from engine.seeding import SEEDING_POLICIES, seed_participants

logger = logging.getLogger(__name__)

KNOCKOUT = 'knockout'
ROUND_ROBIN = 'round_robin'
TOURNAMENT_FORMATS = (KNOCKOUT, ROUND_ROBIN)
OPEN_AGE_GROUP = 'open'

_ID_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$')


def validate_identifier(value, kind: str = 'tournament') -> str:
    """Return the identifier unchanged, or raise InvalidIdentifier."""
    if not isinstance(value, str) or not _ID_PATTERN.match(value):
        raise InvalidIdentifier(f"Invalid {kind} ID: {value!r}")
    return value


class FixtureConfig:
    def __init__(self, seeding_policy='random', group_by_age_group=True,
                 scoring_format: Optional[ScoringFormat] = None):
        if seeding_policy not in SEEDING_POLICIES:
            raise InvalidConfiguration(f"Unknown seeding policy: {seeding_policy}")
        if not isinstance(group_by_age_group, bool):
            raise InvalidConfiguration(f"group_by_age_group must be true or false, got {group_by_age_group!r}")
        self.seeding_policy = seeding_policy
        self.group_by_age_group = group_by_age_group
        self.scoring_format = scoring_format or ScoringFormat()

    def __repr__(self):
        return (f"FixtureConfig(seeding_policy={self.seeding_policy}, "
                f"group_by_age_group={self.group_by_age_group}, scoring_format={self.scoring_format})")


class MatchCounter:
    """Next free match number, handed from group to group."""

    def __init__(self, start: int = 1):
        self.value = start

    def take(self, count: int) -> int:
        """Reserve ``count`` numbers and return the first of them."""
        first = self.value
        self.value += count
        return first


def group_participants(participants: List[Participant],
                       group_by_age_group: bool = True) -> Dict[Tuple[str, str], List[Participant]]:
    """Partition participants by (category, age group or 'open'), keeping first-seen key order."""
    groups = {}
    for participant in participants:
        age_group = OPEN_AGE_GROUP
        if group_by_age_group and participant.age_group:
            age_group = participant.age_group
        groups.setdefault((participant.category, age_group), []).append(participant)
    return groups


def _category_priority(category: str) -> int:
    if category in CATEGORIES:
        return CATEGORIES.index(category)
    return len(CATEGORIES)


def order_groups(groups: Dict[Tuple[str, str], List[Participant]]) -> List[Tuple[Tuple[str, str], List[Participant]]]:
    """Singles, then doubles, then mixed; groups of equal priority keep their original order."""
    return sorted(groups.items(), key=lambda item: _category_priority(item[0][0]))


def generate_fixtures(tournament_id: str, tournament_format: str, participants: List[Participant],
                      config: Optional[FixtureConfig] = None,
                      rng: Optional[random.Random] = None) -> List[Match]:
    """
    Generate every match of a tournament.

    Args:
        tournament_id: Tournament the matches belong to
        tournament_format: 'knockout' or 'round_robin'
        participants: Approved participants, in any order
        config: Seeding policy, age grouping and scoring format
        rng: Random source for random seeding

    Returns:
        The complete match set, numbered from 1 in group order. Callers
        replace any previously generated matches with it.
    """
    validate_identifier(tournament_id)
    if tournament_format not in TOURNAMENT_FORMATS:
        raise InvalidConfiguration(f"Unknown tournament format: {tournament_format}")
    if len(participants) < 2:
        raise InsufficientParticipants("At least 2 approved participants required")

    config = config or FixtureConfig()
    rng = rng or random.Random()
    builder = generate_knockout_bracket if tournament_format == KNOCKOUT else generate_round_robin

    counter = MatchCounter()
    all_matches = []
    groups = group_participants(participants, config.group_by_age_group)
    for (category, age_group), group in order_groups(groups):
        if len(group) < 2:
            logger.warning("Group %s/%s has fewer than 2 participants (%d found). Skipping fixture generation.",
                           category, age_group, len(group))
            continue

        seeded = seed_participants(group, config.seeding_policy, rng)
        matches = builder(
            seeded,
            category,
            age_group=None if age_group == OPEN_AGE_GROUP else age_group,
            start_number=counter.value,
            tournament_id=tournament_id,
            scoring_format=config.scoring_format,
        )
        counter.take(len(matches))
        all_matches.extend(matches)

    if not all_matches:
        raise InsufficientParticipants("No category has at least 2 approved participants")
    return all_matches
