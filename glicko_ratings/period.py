"""
Results accumulated over one rating period.

Producers record outcomes into a PeriodAccumulator while the period is open;
every operation takes the same lock, so recording from several threads is
safe. When the period closes the engine takes a snapshot() and works from
that.

Participants are kept in insertion-ordered dicts (used as ordered sets) so
that iteration order, and therefore floating-point summation order, is
reproducible.
"""

import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .match import MatchRecord
from .rating import RatingRecord


@dataclass(frozen=True)
class PeriodSnapshot:
    """Immutable view of a period at close."""
    participants: Tuple[RatingRecord, ...]
    results: Tuple[MatchRecord, ...]

    def results_for(self, player: RatingRecord) -> List[MatchRecord]:
        """Matches involving a player, in the order they were recorded."""
        return [r for r in self.results if r.participated(player)]


class PeriodAccumulator:
    """Collects match results and participants for one rating period."""

    def __init__(self, participants: Optional[Iterable[RatingRecord]] = None):
        """
        Args:
            participants: Players to rate even if they do not compete
        """
        self._lock = threading.Lock()
        self._results: List[MatchRecord] = []
        self._participants: Dict[RatingRecord, None] = dict.fromkeys(participants or ())
        self._active: Dict[RatingRecord, None] = {}
        # Participants already finalised by a pass that failed for others
        self._rated: Dict[RatingRecord, None] = {}

    def _record(self, result: MatchRecord) -> None:
        with self._lock:
            self._active[result.winner] = None
            self._active[result.loser] = None
            self._results.append(result)

    def add_result(self, winner: RatingRecord, loser: RatingRecord, weight: float = 1.0) -> MatchRecord:
        """Record a win for `winner` over `loser`."""
        result = MatchRecord(winner, loser, is_draw=False, weight=weight)
        self._record(result)
        return result

    def add_draw(self, player1: RatingRecord, player2: RatingRecord) -> MatchRecord:
        """Record a draw between two players."""
        result = MatchRecord(player1, player2, is_draw=True)
        self._record(result)
        return result

    def add_participant(self, rating: RatingRecord) -> None:
        """
        Add a participant to the rating period, so that their rating is
        still calculated (and their RD decays) even if they do not compete.
        """
        with self._lock:
            self._participants[rating] = None

    def get_results(self, player: RatingRecord) -> List[MatchRecord]:
        """Get the results for a given player, in recording order."""
        with self._lock:
            return [r for r in self._results if r.participated(player)]

    def _reconcile(self) -> None:
        # Caller holds the lock.
        for result in self._results:
            self._participants.setdefault(result.winner)
            self._participants.setdefault(result.loser)

    def get_participants(self) -> List[RatingRecord]:
        """All participants: declared players plus everyone with a recorded result."""
        with self._lock:
            self._reconcile()
            return list(self._participants)

    def get_result_count(self) -> int:
        with self._lock:
            return len(self._results)

    def get_active_participant_count(self) -> int:
        """Number of participants who played at least once this period."""
        with self._lock:
            return len(self._active)

    def mark_rated(self, players: Iterable[RatingRecord]) -> None:
        """
        Exclude players from later snapshots until clear().

        Used after a partly failed update so that re-running the period only
        rates the participants that failed.
        """
        with self._lock:
            for player in players:
                self._rated[player] = None

    def snapshot(self) -> PeriodSnapshot:
        """Reconcile participants and return a stable copy of the period."""
        with self._lock:
            self._reconcile()
            return PeriodSnapshot(
                participants=tuple(p for p in self._participants if p not in self._rated),
                results=tuple(self._results),
            )

    def clear(self) -> None:
        """Clear results and active players. Declared participants are kept."""
        with self._lock:
            self._results.clear()
            self._active.clear()
            self._rated.clear()
