"""
Competitor ratings with staged updates.

A RatingRecord holds the committed (public) rating, RD and volatility of one
competitor, a staged shadow of each, and scratch ("working") values in the
Glicko-2 internal scale. The engine writes scratch values for every
participant while still reading everybody's committed state, then publishes
them with finalise_rating(). Staging with temporary=True previews an update
without touching the committed values.
"""

from dataclasses import dataclass
from typing import Generic, Optional, Tuple, TypeVar

from scipy import stats

from .config import DEFAULT_CONFIG, Glicko2Config


T = TypeVar("T")


@dataclass
class StagedValue(Generic[T]):
    """A committed value with an optional staged shadow."""
    committed: T
    staged: Optional[T] = None

    def get(self, temporary: bool = False) -> T:
        if temporary and self.staged is not None:
            return self.staged
        return self.committed

    def stage(self, value: T) -> None:
        self.staged = value

    def commit(self, value: T) -> None:
        self.committed = value
        self.staged = value

    def set(self, value: T, temporary: bool) -> None:
        if temporary:
            self.stage(value)
        else:
            self.commit(value)

    def discard(self) -> None:
        self.staged = None


@dataclass(frozen=True)
class WorkingValues:
    """Scratch values in Glicko-2 scale: μ, φ, σ."""
    mu: float = 0.0
    phi: float = 0.0
    sigma: float = 0.0


class RatingRecord:
    """
    Holds an individual's Glicko-2 rating.

    Values are stored and returned on the public (Glicko) scale, e.g. a
    rating of 1500 with an RD of 350. The get_glicko2_* / set_glicko2_*
    accessors work on the internal μ/φ scale used by the algorithm.

    Records compare and hash by identity: two competitors with identical
    numbers are still two competitors.
    """

    def __init__(
        self,
        config: Optional[Glicko2Config] = None,
        rating: Optional[float] = None,
        deviation: Optional[float] = None,
        volatility: Optional[float] = None,
        name: Optional[str] = None,
    ):
        """
        Args:
            config: Rating pool settings (defaults and scale constants)
            rating: Initial rating, or the config default
            deviation: Initial RD, or the config default
            volatility: Initial σ, or the config default
            name: Optional label, only used for display and reports
        """
        self.config = config or DEFAULT_CONFIG
        self.name = name

        if rating is None:
            rating = self.config.default_rating
        if deviation is None:
            deviation = self.config.default_rd
        if volatility is None:
            volatility = self.config.default_volatility

        if deviation < 0:
            raise ValueError(f"deviation must not be negative, got {deviation}")
        if volatility <= 0:
            raise ValueError(f"volatility must be positive, got {volatility}")

        self._rating = StagedValue(float(rating), float(rating))
        self._deviation = StagedValue(float(deviation), float(deviation))
        self._volatility = StagedValue(float(volatility), float(volatility))
        self._result_count = StagedValue(0, 0)
        self._working = WorkingValues()

    # =========================================================================
    # Public scale
    # =========================================================================

    def get_rating(self, temporary: bool = False) -> float:
        return self._rating.get(temporary)

    def set_rating(self, rating: float, temporary: bool) -> None:
        self._rating.set(rating, temporary)

    def get_deviation(self, temporary: bool = False) -> float:
        return self._deviation.get(temporary)

    def set_deviation(self, deviation: float, temporary: bool) -> None:
        if deviation < 0:
            raise ValueError(f"deviation must not be negative, got {deviation}")
        self._deviation.set(deviation, temporary)

    def get_volatility(self, temporary: bool = False) -> float:
        return self._volatility.get(temporary)

    def set_volatility(self, volatility: float, temporary: bool) -> None:
        if volatility <= 0:
            raise ValueError(f"volatility must be positive, got {volatility}")
        self._volatility.set(volatility, temporary)

    @property
    def rating(self) -> float:
        return self._rating.committed

    @property
    def deviation(self) -> float:
        return self._deviation.committed

    @property
    def volatility(self) -> float:
        return self._volatility.committed

    # =========================================================================
    # Glicko-2 internal scale
    # =========================================================================

    def get_glicko2_rating(self, temporary: bool = False) -> float:
        """Return μ, the rating scaled down to the algorithm's internal scale."""
        return self.config.rating_to_glicko2(self.get_rating(temporary))

    def set_glicko2_rating(self, mu: float, temporary: bool) -> None:
        self.set_rating(self.config.rating_from_glicko2(mu), temporary)

    def get_glicko2_deviation(self, temporary: bool = False) -> float:
        """Return φ, the RD scaled down to the algorithm's internal scale."""
        return self.config.deviation_to_glicko2(self.get_deviation(temporary))

    def set_glicko2_deviation(self, phi: float, temporary: bool) -> None:
        self.set_deviation(self.config.deviation_from_glicko2(phi), temporary)

    # =========================================================================
    # Result counter
    # =========================================================================

    def get_result_count(self, temporary: bool = False) -> int:
        """Number of results the rating has been calculated from."""
        return self._result_count.get(temporary)

    def increment_result_count(self, increment: int, temporary: bool) -> None:
        # Staged count always builds on the committed count, so repeated
        # previews do not accumulate.
        self._result_count.set(self._result_count.committed + increment, temporary)

    # =========================================================================
    # Staging
    # =========================================================================

    @property
    def working(self) -> WorkingValues:
        return self._working

    def set_working(self, mu: float, phi: float, sigma: float) -> None:
        """Store the engine's interim μ, φ, σ for this period."""
        self._working = WorkingValues(mu, phi, sigma)

    def clear_working(self) -> None:
        self._working = WorkingValues()

    def finalise_rating(self, temporary: bool) -> None:
        """
        Move the working values into their proper places.

        Converts the scratch μ/φ/σ to the public scale and writes them through
        the setters, then zeros the scratch values. With temporary=True only
        the staged shadows change.

        Raises:
            ValueError if the working values are invalid (φ < 0 or σ <= 0);
            nothing is written in that case
        """
        working = self._working
        if working.phi < 0:
            raise ValueError(f"working deviation must not be negative, got {working.phi}")
        if working.sigma <= 0:
            raise ValueError(f"working volatility must be positive, got {working.sigma}")

        rating = self.config.rating_from_glicko2(working.mu)
        deviation = self.config.deviation_from_glicko2(working.phi)
        self.set_rating(rating, temporary)
        self.set_deviation(deviation, temporary)
        self.set_volatility(working.sigma, temporary)
        self.clear_working()

    def discard_staged(self) -> None:
        """Drop any staged values so temporary reads match the committed state again."""
        for value in (self._rating, self._deviation, self._volatility, self._result_count):
            value.discard()

    # =========================================================================
    # Summaries
    # =========================================================================

    def confidence_interval(self, level: float = 0.95, temporary: bool = False) -> Tuple[float, float]:
        """
        Calculate confidence interval for the rating.

        Args:
            level: Two-sided confidence level, e.g. 0.95 or 0.99
            temporary: Use the staged values instead of the committed ones

        Returns:
            Tuple of (lower_bound, upper_bound)
        """
        if not 0 < level < 1:
            raise ValueError(f"level must be between 0 and 1, got {level}")
        z = stats.norm.ppf(0.5 + level / 2)
        rating = self.get_rating(temporary)
        margin = z * self.get_deviation(temporary)
        return (rating - margin, rating + margin)

    def conservative_rating(self, k: float = 2.0, temporary: bool = False) -> float:
        """Rating minus k RDs: a lower bound on skill used for leaderboards."""
        return self.get_rating(temporary) - k * self.get_deviation(temporary)

    def __repr__(self) -> str:
        label = f"{self.name!r}, " if self.name is not None else ""
        return (f"RatingRecord({label}rating={self.rating:.2f}, "
                f"rd={self.deviation:.2f}, volatility={self.volatility:.6f})")

    def __str__(self) -> str:
        ci_low, ci_high = self.confidence_interval()
        return (f"Rating: {self.rating:.0f} ± {self.deviation:.0f} "
                f"(95% CI: {ci_low:.0f}-{ci_high:.0f}), σ={self.volatility:.4f}")
