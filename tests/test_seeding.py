"""
Unit tests for seeding policies.
"""
import pytest
import random
import sys
import os
from collections import Counter

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from engine.errors import InvalidConfiguration
from engine.seeding import seed_participants, shuffle_participants, skill_rank


class TestSkillSeeding:
    """Tests for the skill policy."""

    def test_orders_by_tier(self, sample_participants):
        seeded = seed_participants(sample_participants, 'skill')
        assert [p.id for p in seeded] == ["p2", "p4", "p5", "p3", "p1"]

    def test_ties_keep_original_order(self, sample_participants):
        seeded = seed_participants(list(reversed(sample_participants)), 'skill')
        advanced = [p.id for p in seeded if p.skill_tier == "advanced"]
        assert advanced == ["p5", "p4"]

    def test_unranked_counts_as_intermediate(self, sample_participants):
        unranked = sample_participants[2]
        assert unranked.skill_tier is None
        assert skill_rank(unranked) == 2

    def test_input_not_modified(self, sample_participants):
        original = list(sample_participants)
        seed_participants(sample_participants, 'skill')
        assert sample_participants == original


class TestRandomSeeding:
    """Tests for the random policy."""

    def test_is_permutation(self, sample_participants):
        seeded = seed_participants(sample_participants, 'random', random.Random(7))
        assert sorted(p.id for p in seeded) == sorted(p.id for p in sample_participants)

    def test_deterministic_with_rng(self, sample_participants):
        first = seed_participants(sample_participants, 'random', random.Random(42))
        second = seed_participants(sample_participants, 'random', random.Random(42))
        assert [p.id for p in first] == [p.id for p in second]

    def test_all_permutations_reachable(self):
        """Every ordering of three items shows up with roughly equal frequency."""
        rng = random.Random(1234)
        counts = Counter(tuple(shuffle_participants(['a', 'b', 'c'], rng)) for _ in range(6000))
        assert len(counts) == 6
        for count in counts.values():
            assert 800 < count < 1200


class TestEdgeCases:
    """Tests for trivial inputs and bad policies."""

    def test_empty_and_singleton(self, sample_participants):
        assert seed_participants([], 'random') == []
        assert seed_participants(sample_participants[:1], 'skill') == sample_participants[:1]

    def test_unknown_policy(self, sample_participants):
        with pytest.raises(InvalidConfiguration):
            seed_participants(sample_participants, 'elo')
