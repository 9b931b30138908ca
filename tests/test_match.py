"""
Tests for MatchRecord scoring.

Run with: pytest tests/test_match.py -v
"""

import dataclasses
import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from glicko_ratings import (
    InvalidMatchError,
    MatchRecord,
    NotAParticipantError,
    RatingRecord,
)


@pytest.fixture
def players():
    return RatingRecord(name="winner"), RatingRecord(name="loser"), RatingRecord(name="bystander")


class TestConstruction:
    """Tests for creating matches."""

    def test_same_player_rejected(self, players):
        winner, _, _ = players
        with pytest.raises(InvalidMatchError):
            MatchRecord(winner, winner)

    def test_invalid_match_is_value_error(self, players):
        winner, _, _ = players
        with pytest.raises(ValueError):
            MatchRecord(winner, winner, is_draw=True)

    def test_equal_valued_players_are_distinct(self):
        """Only identity matters: identical numbers are two different players."""
        match = MatchRecord(RatingRecord(), RatingRecord())
        assert match.weight == 1.0

    @pytest.mark.parametrize("weight", [0.0, -0.5, 1.5])
    def test_weight_out_of_range_rejected(self, players, weight):
        winner, loser, _ = players
        with pytest.raises(InvalidMatchError):
            MatchRecord(winner, loser, weight=weight)

    def test_immutable(self, players):
        winner, loser, _ = players
        match = MatchRecord(winner, loser)
        with pytest.raises(dataclasses.FrozenInstanceError):
            match.is_draw = True


class TestGetScore:
    """Tests for per-player scores."""

    def test_winner_and_loser(self, players):
        winner, loser, _ = players
        match = MatchRecord(winner, loser)
        assert match.get_score(winner) == 1.0
        assert match.get_score(loser) == 0.0

    def test_draw_scores_half_for_both(self, players):
        winner, loser, _ = players
        match = MatchRecord(winner, loser, is_draw=True)
        assert match.get_score(winner) == 0.5
        assert match.get_score(loser) == 0.5

    def test_weight_does_not_change_score(self, players):
        winner, loser, _ = players
        match = MatchRecord(winner, loser, weight=0.25)
        assert match.get_score(winner) == 1.0
        assert match.get_weight() == 0.25

    def test_non_participant_raises(self, players):
        winner, loser, bystander = players
        match = MatchRecord(winner, loser)
        with pytest.raises(NotAParticipantError) as excinfo:
            match.get_score(bystander)
        assert excinfo.value.player is bystander

    def test_non_participant_on_draw_raises(self, players):
        winner, loser, bystander = players
        match = MatchRecord(winner, loser, is_draw=True)
        with pytest.raises(NotAParticipantError):
            match.get_score(bystander)


class TestGetOpponent:
    """Tests for opponent lookup."""

    def test_symmetric(self, players):
        winner, loser, _ = players
        match = MatchRecord(winner, loser)
        assert match.get_opponent(winner) is loser
        assert match.get_opponent(loser) is winner

    def test_non_participant_raises(self, players):
        winner, loser, bystander = players
        match = MatchRecord(winner, loser)
        with pytest.raises(NotAParticipantError):
            match.get_opponent(bystander)

    def test_participated(self, players):
        winner, loser, bystander = players
        match = MatchRecord(winner, loser)
        assert match.participated(winner)
        assert match.participated(loser)
        assert not match.participated(bystander)
