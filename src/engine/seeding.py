"""
Seeding policies that order participants before a bracket or group is built.
"""
import random
from typing import List, Optional

from engine.errors import InvalidConfiguration
from engine.models import Participant

SKILL_RANKS = {
    'professional': 4,
    'advanced': 3,
    'intermediate': 2,
    'beginner': 1,
}
DEFAULT_SKILL_TIER = 'intermediate'
SEEDING_POLICIES = ('random', 'skill')


def skill_rank(participant: Participant) -> int:
    """Rank of a participant's skill tier; unranked players count as intermediate."""
    tier = (participant.skill_tier or DEFAULT_SKILL_TIER).lower()
    return SKILL_RANKS.get(tier, SKILL_RANKS[DEFAULT_SKILL_TIER])


def shuffle_participants(participants: List[Participant], rng: Optional[random.Random] = None) -> List[Participant]:
    """Unbiased Fisher-Yates shuffle into a new list."""
    rng = rng or random.Random()
    shuffled = list(participants)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def seed_participants(participants: List[Participant], policy: str = 'random',
                      rng: Optional[random.Random] = None) -> List[Participant]:
    """
    Order participants by a seeding policy.

    Returns a permutation of the input (the input list is left untouched):
    - 'random': uniform random permutation
    - 'skill': strongest tier first, ties keep their original order
    """
    if policy not in SEEDING_POLICIES:
        raise InvalidConfiguration(f"Unknown seeding policy: {policy}")
    if len(participants) < 2:
        return list(participants)
    if policy == 'random':
        return shuffle_participants(participants, rng)
    return sorted(participants, key=skill_rank, reverse=True)
