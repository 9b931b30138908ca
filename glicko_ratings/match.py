"""Match outcomes between two rated competitors."""

from dataclasses import dataclass

from .exceptions import InvalidMatchError, NotAParticipantError
from .rating import RatingRecord


POINTS_FOR_WIN = 1.0
POINTS_FOR_LOSS = 0.0
POINTS_FOR_DRAW = 0.5


@dataclass(frozen=True, eq=False)
class MatchRecord:
    """
    Result of a match between two players.

    Attributes:
        winner: Winning player (either player for a draw)
        loser: Losing player (the other player for a draw)
        is_draw: True if the match was drawn
        weight: How much the match counts, in (0, 1]
    """
    winner: RatingRecord
    loser: RatingRecord
    is_draw: bool = False
    weight: float = 1.0

    def __post_init__(self):
        if self.winner is self.loser:
            raise InvalidMatchError("Players winner and loser are the same player")
        if not 0.0 < self.weight <= 1.0:
            raise InvalidMatchError(f"Match weight must be in (0, 1], got {self.weight}")

    def participated(self, player: RatingRecord) -> bool:
        """Test whether a player took part in this match."""
        return player is self.winner or player is self.loser

    def get_score(self, player: RatingRecord) -> float:
        """
        Return the score for a player: 1.0 for a win, 0.0 for a loss, 0.5 for a draw.

        Raises:
            NotAParticipantError if the player did not play this match
        """
        if player is self.winner:
            score = POINTS_FOR_WIN
        elif player is self.loser:
            score = POINTS_FOR_LOSS
        else:
            raise NotAParticipantError(player)

        if self.is_draw:
            score = POINTS_FOR_DRAW
        return score

    def get_opponent(self, player: RatingRecord) -> RatingRecord:
        """Given one player, return the other."""
        if player is self.winner:
            return self.loser
        if player is self.loser:
            return self.winner
        raise NotAParticipantError(player)

    def get_weight(self) -> float:
        return self.weight
