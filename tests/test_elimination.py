"""
Unit tests for single elimination bracket generation.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from engine.elimination import (
    get_round_name,
    calculate_bracket_size,
    calculate_byes,
    build_skeleton,
    propagate_byes,
    generate_knockout_bracket,
    get_bracket_summary,
)
from engine.models import Participant, SCHEDULED, COMPLETED


def make_players(count, category="singles"):
    return [Participant(id=f"p{i}", display_name=f"Player {i}", category=category) for i in range(count)]


class TestBracketHelpers:
    """Tests for bracket helper functions."""

    def test_get_round_name_final(self):
        assert get_round_name(3, 3) == "Final"

    def test_get_round_name_semifinal(self):
        assert get_round_name(2, 3) == "Semi Final"

    def test_get_round_name_quarterfinal(self):
        assert get_round_name(1, 3) == "Quarter Final"

    def test_get_round_name_round_of_16(self):
        """Test the size-based label for the round before the quarter finals."""
        assert get_round_name(1, 4) == "Round of 16"
        assert get_round_name(1, 5) == "Round of 32"

    def test_get_round_name_fallback(self):
        """Very large brackets fall back to a numbered round."""
        assert get_round_name(1, 8) == "Round 1"

    def test_calculate_bracket_size_exact_power(self):
        assert calculate_bracket_size(8) == 8
        assert calculate_bracket_size(16) == 16
        assert calculate_bracket_size(4) == 4

    def test_calculate_bracket_size_not_power(self):
        """Test bracket size rounds up to next power of 2."""
        assert calculate_bracket_size(5) == 8
        assert calculate_bracket_size(6) == 8
        assert calculate_bracket_size(9) == 16
        assert calculate_bracket_size(12) == 16

    def test_calculate_bracket_size_small(self):
        assert calculate_bracket_size(1) == 1
        assert calculate_bracket_size(2) == 2
        assert calculate_bracket_size(3) == 4

    def test_calculate_bracket_size_zero(self):
        assert calculate_bracket_size(0) == 0

    def test_calculate_byes(self):
        assert calculate_byes(8) == 0
        assert calculate_byes(5) == 3  # 8 - 5
        assert calculate_byes(12) == 4  # 16 - 12


class TestBuildSkeleton:
    """Tests for the first pass: rounds, numbering, round one slots and byes."""

    @pytest.mark.parametrize("count", [2, 3, 4, 5, 7, 8, 9, 16, 17, 33])
    def test_round_sizes(self, count):
        """Round one has bracket_size / 2 matches, halving down to a single final."""
        rounds = build_skeleton(make_players(count), "singles")
        bracket_size = calculate_bracket_size(count)
        assert len(rounds[0]) * 2 == bracket_size
        assert 2 ** len(rounds) == bracket_size
        assert [len(r) for r in rounds] == [bracket_size // 2 ** (i + 1) for i in range(len(rounds))]
        assert len(rounds[-1]) == 1

    def test_match_numbers_sequential_across_rounds(self):
        rounds = build_skeleton(make_players(6), "singles", start_number=10)
        numbers = [m.match_number for r in rounds for m in r]
        assert numbers == list(range(10, 17))
        # Every round's numbers come after the previous round's
        for earlier, later in zip(rounds, rounds[1:]):
            assert max(m.match_number for m in earlier) < min(m.match_number for m in later)

    def test_round_one_mirrored_pairing(self):
        """Slot i holds seed i against seed bracket_size - 1 - i."""
        players = make_players(8)
        rounds = build_skeleton(players, "singles")
        pairs = [(m.team1.player_ids[0], m.team2.player_ids[0]) for m in rounds[0]]
        assert pairs == [("p0", "p7"), ("p1", "p6"), ("p2", "p5"), ("p3", "p4")]

    def test_later_rounds_are_placeholders(self):
        rounds = build_skeleton(make_players(8), "singles")
        for round_matches in rounds[1:]:
            for match in round_matches:
                assert match.team1.is_tbd and match.team2.is_tbd
                assert match.status == SCHEDULED

    def test_bye_is_completed_walkover_without_games(self):
        rounds = build_skeleton(make_players(5), "singles")
        first_round = rounds[0]
        byes = [m for m in first_round if m.is_bye]
        assert len(byes) == 3
        for match in byes:
            assert match.status == COMPLETED
            assert match.completion_type == "walkover"
            assert match.winner_team == "team1"
            assert match.winner_player_ids == match.team1.player_ids
            assert match.games == []
        assert first_round[3].status == SCHEDULED
        assert first_round[3].winner_team is None

    def test_round_names_follow_total_rounds(self):
        rounds = build_skeleton(make_players(5), "singles")
        assert [r[0].round_name for r in rounds] == ["Quarter Final", "Semi Final", "Final"]

    def test_metadata_copied_to_every_match(self):
        rounds = build_skeleton(make_players(4), "singles", age_group="U-18", tournament_id="t1")
        for match in [m for r in rounds for m in r]:
            assert match.tournament_id == "t1"
            assert match.age_group == "U-18"
            assert match.category == "singles"

    def test_single_participant_is_degenerate_bye(self):
        rounds = build_skeleton(make_players(1), "singles")
        assert len(rounds) == 1
        final = rounds[0][0]
        assert final.round_name == "Final"
        assert final.status == COMPLETED
        assert final.winner_player_ids == ["p0"]
        assert final.team2.is_tbd

    def test_no_participants(self):
        assert build_skeleton([], "singles") == []


class TestPropagateByes:
    """Tests for the second pass that moves bye winners forward."""

    def test_bye_winners_land_in_correct_slot(self):
        rounds = propagate_byes(build_skeleton(make_players(5), "singles"))
        second_round = rounds[1]
        # Positions 0 and 1 feed round two match 0; position 2 feeds match 1 as team1
        assert second_round[0].team1.player_ids == ["p0"]
        assert second_round[0].team2.player_ids == ["p1"]
        assert second_round[1].team1.player_ids == ["p2"]
        assert second_round[1].team2.is_tbd

    def test_odd_position_bye_fills_team2(self):
        rounds = build_skeleton(make_players(7), "singles")
        # Only position 0 is a bye for 7 players
        assert [m.is_bye for m in rounds[0]] == [True, False, False, False]
        rounds = propagate_byes(rounds)
        assert rounds[1][0].team1.player_ids == ["p0"]
        assert rounds[1][0].team2.is_tbd

    def test_played_matches_not_advanced(self):
        rounds = build_skeleton(make_players(4), "singles")
        rounds[0][0].winner_team = "team1"
        rounds[0][0].status = COMPLETED
        rounds[0][0].completion_type = "normal"
        rounds = propagate_byes(rounds)
        assert rounds[1][0].team1.is_tbd

    def test_does_not_modify_input(self):
        rounds = build_skeleton(make_players(5), "singles")
        propagate_byes(rounds)
        assert rounds[1][0].team1.is_tbd

    def test_no_double_bye_cascade(self):
        """Round two matches fed only by byes stay scheduled."""
        rounds = propagate_byes(build_skeleton(make_players(5), "singles"))
        assert rounds[1][0].status == SCHEDULED
        assert rounds[2][0].team1.is_tbd


class TestGenerateKnockoutBracket:
    """Tests for the combined bracket build."""

    def test_five_participants_scenario(self):
        matches = generate_knockout_bracket(make_players(5), "singles")
        assert len(matches) == 7
        assert len([m for m in matches if m.round_number == 1]) == 4
        assert len([m for m in matches if m.is_bye]) == 3
        assert [m.match_number for m in matches] == list(range(1, 8))

    def test_doubles_bye_carries_both_players(self, doubles_participants):
        matches = generate_knockout_bracket(doubles_participants[:3], "doubles")
        bye = [m for m in matches if m.is_bye][0]
        assert bye.winner_player_ids == ["d1", "d1b"]
        final = [m for m in matches if m.round_name == "Final"][0]
        assert final.team1.player_ids == ["d1", "d1b"]
        assert final.team1.name == "Player 1 / Partner 1"


class TestBracketSummary:
    """Tests for the bracket summary."""

    def test_summary_counts(self):
        summary = get_bracket_summary(generate_knockout_bracket(make_players(5), "singles"))
        assert summary['bracket_size'] == 8
        assert summary['total_rounds'] == 3
        assert summary['byes'] == 3
        assert summary['matches_per_round'] == {"Quarter Final": 1, "Semi Final": 2, "Final": 1}
        assert summary['champion'] is None

    def test_summary_empty(self):
        summary = get_bracket_summary([])
        assert summary['bracket_size'] == 0
        assert summary['rounds'] == {}

    def test_summary_champion(self):
        matches = generate_knockout_bracket(make_players(1), "singles")
        assert get_bracket_summary(matches)['champion'] == "Player 0"
