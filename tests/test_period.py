"""
Tests for PeriodAccumulator.

Tests verify that:
1. Results and draws are recorded with their participants
2. Declared and active participants are reconciled
3. clear() keeps declared participants
4. Concurrent producers do not lose results

Run with: pytest tests/test_period.py -v
Run slow tests: pytest tests/test_period.py -v --run-slow
"""

import sys
import threading
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from glicko_ratings import InvalidMatchError, PeriodAccumulator, RatingRecord


@pytest.fixture
def players():
    return [RatingRecord(name=name) for name in ("alice", "bob", "carol", "dave")]


class TestRecording:
    """Tests for add_result / add_draw."""

    def test_add_result(self, players):
        alice, bob, _, _ = players
        period = PeriodAccumulator()
        match = period.add_result(alice, bob)
        assert period.get_result_count() == 1
        assert period.get_active_participant_count() == 2
        assert match.winner is alice
        assert match.loser is bob
        assert not match.is_draw

    def test_add_result_with_weight(self, players):
        alice, bob, _, _ = players
        period = PeriodAccumulator()
        match = period.add_result(alice, bob, weight=0.5)
        assert match.get_weight() == 0.5

    def test_add_draw(self, players):
        alice, bob, _, _ = players
        period = PeriodAccumulator()
        match = period.add_draw(alice, bob)
        assert match.is_draw
        assert match.weight == 1.0
        assert period.get_active_participant_count() == 2

    def test_invalid_match_not_recorded(self, players):
        alice = players[0]
        period = PeriodAccumulator()
        with pytest.raises(InvalidMatchError):
            period.add_result(alice, alice)
        assert period.get_result_count() == 0
        assert period.get_active_participant_count() == 0

    def test_get_results_in_insertion_order(self, players):
        alice, bob, carol, dave = players
        period = PeriodAccumulator()
        first = period.add_result(alice, bob)
        period.add_result(carol, dave)
        second = period.add_draw(carol, alice)
        third = period.add_result(dave, alice)

        assert period.get_results(alice) == [first, second, third]
        assert len(period.get_results(bob)) == 1
        assert period.get_results(RatingRecord()) == []


class TestParticipants:
    """Tests for declared and active participant tracking."""

    def test_declared_participant_is_not_active(self, players):
        alice = players[0]
        period = PeriodAccumulator()
        period.add_participant(alice)
        assert period.get_participants() == [alice]
        assert period.get_active_participant_count() == 0

    def test_constructor_participants(self, players):
        period = PeriodAccumulator(players[:2])
        assert period.get_participants() == players[:2]

    def test_participants_include_match_players(self, players):
        alice, bob, carol, dave = players
        period = PeriodAccumulator()
        period.add_participant(dave)
        period.add_result(alice, bob)
        period.add_draw(bob, carol)
        assert period.get_participants() == [dave, alice, bob, carol]

    def test_participant_added_once(self, players):
        alice, bob, _, _ = players
        period = PeriodAccumulator([alice])
        period.add_participant(alice)
        period.add_result(alice, bob)
        period.add_result(bob, alice)
        assert period.get_participants() == [alice, bob]
        assert period.get_active_participant_count() == 2

    def test_clear_keeps_declared_participants(self, players):
        alice, bob, carol, _ = players
        period = PeriodAccumulator()
        period.add_participant(carol)
        period.add_result(alice, bob)
        period.get_participants()  # reconcile
        period.clear()

        assert period.get_result_count() == 0
        assert period.get_active_participant_count() == 0
        assert period.get_participants() == [carol, alice, bob]


class TestSnapshot:
    """Tests for the stable view taken at period close."""

    def test_snapshot_contents(self, players):
        alice, bob, carol, _ = players
        period = PeriodAccumulator([carol])
        match = period.add_result(alice, bob)
        snapshot = period.snapshot()
        assert snapshot.participants == (carol, alice, bob)
        assert snapshot.results == (match,)
        assert snapshot.results_for(alice) == [match]
        assert snapshot.results_for(carol) == []

    def test_snapshot_unaffected_by_later_results(self, players):
        alice, bob, carol, dave = players
        period = PeriodAccumulator()
        period.add_result(alice, bob)
        snapshot = period.snapshot()
        period.add_result(carol, dave)
        period.clear()
        assert len(snapshot.results) == 1
        assert snapshot.participants == (alice, bob)


class TestMarkRated:
    """Tests for excluding already-rated players from later snapshots."""

    def test_rated_players_left_out_until_clear(self, players):
        alice, bob, carol, _ = players
        period = PeriodAccumulator([carol])
        match = period.add_result(alice, bob)
        period.mark_rated([carol, alice])

        snapshot = period.snapshot()
        assert snapshot.participants == (bob,)
        assert snapshot.results == (match,)
        # Declared participants are unaffected
        assert period.get_participants() == [carol, alice, bob]

        period.clear()
        assert period.snapshot().participants == (carol, alice, bob)


class TestConcurrency:
    """Tests for recording from several threads."""

    def _record_concurrently(self, threads: int, per_thread: int):
        pool = [RatingRecord() for _ in range(threads * 2)]
        period = PeriodAccumulator()
        start = threading.Barrier(threads)

        def producer(i):
            start.wait()
            a, b = pool[2 * i], pool[2 * i + 1]
            for n in range(per_thread):
                if n % 3 == 0:
                    period.add_draw(a, b)
                else:
                    period.add_result(a, b)

        workers = [threading.Thread(target=producer, args=(i,)) for i in range(threads)]
        for w in workers:
            w.start()
        for w in workers:
            w.join()
        return pool, period

    def test_no_results_lost(self):
        pool, period = self._record_concurrently(threads=4, per_thread=200)
        assert period.get_result_count() == 800
        assert period.get_active_participant_count() == 8
        assert len(period.get_results(pool[0])) == 200

    @pytest.mark.slow
    def test_no_results_lost_under_load(self):
        pool, period = self._record_concurrently(threads=32, per_thread=5000)
        assert period.get_result_count() == 160000
        assert set(period.get_participants()) == set(pool)
