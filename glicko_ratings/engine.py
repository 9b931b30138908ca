"""
Glicko-2 Rating System Implementation

Based on Professor Mark Glickman's paper:
"Example of the Glicko-2 system" (2013)
http://www.glicko.net/glicko/glicko2.pdf

This module provides:
- The Glicko-2 step functions (g, E, v, Δ, volatility solver)
- Single-player rating calculation for one period
- RatingEngine, which rates every participant of a PeriodAccumulator
- Per-period reports as pandas DataFrames

Match weights scale each opponent's contribution to both v⁻¹ and the
improvement sum, so a match of weight w counts as w of a full game.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .config import (
    CONVERGENCE_TOLERANCE,
    DEFAULT_CONFIG,
    DEFAULT_TAU,
    MAX_ITERATIONS,
    Glicko2Config,
)
from .exceptions import NonConvergenceError
from .match import POINTS_FOR_DRAW, POINTS_FOR_LOSS, POINTS_FOR_WIN, MatchRecord
from .period import PeriodAccumulator, PeriodSnapshot
from .rating import RatingRecord


logger = logging.getLogger(__name__)

# (mu_j, phi_j, score, weight) on the Glicko-2 scale
Opponent = Tuple[float, float, float, float]


# =============================================================================
# Glicko-2 step functions
# =============================================================================

def g(phi: float) -> float:
    """
    The g function from Glicko-2.
    Reduces the impact of an opponent's rating based on their uncertainty.

    g(φ) = 1 / √(1 + 3φ²/π²)
    """
    return 1.0 / math.sqrt(1.0 + 3.0 * phi * phi / (math.pi * math.pi))


def expected_score(mu: float, mu_j: float, phi_j: float) -> float:
    """
    Calculate expected score against an opponent.

    E(μ, μⱼ, φⱼ) = 1 / (1 + exp(-g(φⱼ)(μ - μⱼ)))
    """
    return 1.0 / (1.0 + math.exp(-g(phi_j) * (mu - mu_j)))


def compute_variance(mu: float, opponents: Sequence[Opponent]) -> float:
    """
    Compute the variance v (Step 3 of Glicko-2 algorithm).

    v = [Σ wⱼ × g(φⱼ)² × E × (1 - E)]⁻¹

    Args:
        mu: Player's rating on Glicko-2 scale
        opponents: List of (mu_j, phi_j, score, weight) tuples

    Returns:
        Variance v, or infinity if the games carry no information
    """
    variance_sum = 0.0
    for mu_j, phi_j, _, weight in opponents:
        g_phi = g(phi_j)
        e = expected_score(mu, mu_j, phi_j)
        variance_sum += weight * g_phi * g_phi * e * (1.0 - e)

    if variance_sum == 0:
        return float('inf')
    return 1.0 / variance_sum


def improvement_sum(mu: float, opponents: Sequence[Opponent]) -> float:
    """Σ wⱼ × g(φⱼ) × (sⱼ - E), shared by Step 4 and Step 7."""
    total = 0.0
    for mu_j, phi_j, score, weight in opponents:
        total += weight * g(phi_j) * (score - expected_score(mu, mu_j, phi_j))
    return total


def compute_delta(mu: float, opponents: Sequence[Opponent], v: float) -> float:
    """
    Compute the estimated improvement delta (Step 4 of Glicko-2 algorithm).

    Δ = v × Σ wⱼ × g(φⱼ) × (sⱼ - E)
    """
    return v * improvement_sum(mu, opponents)


def compute_new_volatility(
    sigma: float,
    phi: float,
    v: float,
    delta: float,
    tau: float = DEFAULT_TAU,
    epsilon: float = CONVERGENCE_TOLERANCE,
    max_iterations: int = MAX_ITERATIONS,
) -> float:
    """
    Compute new volatility using Illinois algorithm (Step 5 of Glicko-2).

    This finds x = ln(σ'²) such that f(x) = 0. The lower end of the bracket
    is searched at a - kτ with k doubling each step.

    Raises:
        NonConvergenceError if either the bracket search or the Illinois
        iteration exceeds max_iterations
    """
    a = math.log(sigma * sigma)
    phi_sq = phi * phi
    delta_sq = delta * delta

    def f(x: float) -> float:
        ex = math.exp(x)
        num = ex * (delta_sq - phi_sq - v - ex)
        denom = 2.0 * (phi_sq + v + ex) ** 2
        return num / denom - (x - a) / (tau * tau)

    # Find initial bounds
    A = a
    if delta_sq > phi_sq + v:
        B = math.log(delta_sq - phi_sq - v)
    else:
        k = 1
        steps = 0
        while f(a - k * tau) < 0:
            steps += 1
            if steps >= max_iterations:
                raise NonConvergenceError(
                    f"Could not bracket volatility root after {steps} steps", steps)
            k *= 2
        B = a - k * tau

    # Illinois algorithm iteration
    f_A = f(A)
    f_B = f(B)
    iterations = 0

    while abs(B - A) > epsilon:
        iterations += 1
        if iterations > max_iterations:
            raise NonConvergenceError(
                f"Volatility did not converge within {max_iterations} iterations "
                f"(|B - A| = {abs(B - A):.3g}, epsilon = {epsilon})",
                max_iterations,
            )

        C = A + (A - B) * f_A / (f_B - f_A)
        f_C = f(C)

        if f_C * f_B <= 0:
            A = B
            f_A = f_B
        else:
            f_A = f_A / 2.0

        B = C
        f_B = f_C

    logger.debug("Volatility converged in %d iterations", iterations)
    return math.exp(A / 2.0)


def decay_deviation(phi: float, sigma: float, elapsed_periods: float = 1) -> float:
    """
    RD growth for a player who did not compete (Step 6 special case).

    φ' = √(φ² + n × σ²) for n elapsed rating periods.
    """
    if elapsed_periods < 0:
        raise ValueError(f"elapsed_periods must not be negative, got {elapsed_periods}")
    return math.sqrt(phi * phi + elapsed_periods * sigma * sigma)


def calculate_glicko2_period(
    mu: float,
    phi: float,
    sigma: float,
    opponents: Sequence[Opponent],
    tau: float = DEFAULT_TAU,
    epsilon: float = CONVERGENCE_TOLERANCE,
    max_iterations: int = MAX_ITERATIONS,
    elapsed_periods: float = 1,
) -> Tuple[float, float, float]:
    """
    Apply Glicko-2 algorithm for a single rating period on the internal scale.

    Args:
        mu, phi, sigma: Player's pre-period state (Glicko-2 scale)
        opponents: List of (mu_j, phi_j, score, weight) tuples
        tau: System constant
        epsilon: Volatility solver tolerance
        max_iterations: Volatility solver iteration cap
        elapsed_periods: Periods of decay for a player with no games

    Returns:
        (new_mu, new_phi, new_sigma)
    """
    # Step 3: Compute variance v
    v = compute_variance(mu, opponents) if opponents else float('inf')

    if math.isinf(v):
        # No games played (or none carrying information) - only RD increases
        return mu, decay_deviation(phi, sigma, elapsed_periods), sigma

    assert v > 0, "variance must be positive"

    # Step 4: Compute delta
    delta = compute_delta(mu, opponents, v)

    # Step 5: Compute new volatility
    sigma_new = compute_new_volatility(sigma, phi, v, delta, tau, epsilon, max_iterations)

    # Step 6: Update RD (phi* then phi')
    phi_star = math.sqrt(phi * phi + sigma_new * sigma_new)
    assert phi_star > 0, "phi* must be positive"
    phi_new = 1.0 / math.sqrt(1.0 / (phi_star * phi_star) + 1.0 / v)

    # Step 7: Update rating (mu')
    mu_new = mu + phi_new * phi_new * improvement_sum(mu, opponents)

    return mu_new, phi_new, sigma_new


def calculate_rating_period(
    rating: float,
    rd: float,
    volatility: float,
    opponents: Sequence[Tuple[float, ...]],
    config: Optional[Glicko2Config] = None,
) -> Tuple[float, float, float]:
    """
    Main Glicko-2 rating update function on the public scale.

    Args:
        rating: Current rating (Glicko scale)
        rd: Current rating deviation (Glicko scale)
        volatility: Current volatility
        opponents: List of (opponent_rating, opponent_rd, score) or
                   (opponent_rating, opponent_rd, score, weight) tuples,
                   where score is 1.0 (win), 0.5 (draw), or 0.0 (loss)
        config: Scale constants and solver settings

    Returns:
        (new_rating, new_rd, new_volatility)

    Raises:
        ValueError if a deviation is negative, the volatility is not
        positive, or a weight is outside (0, 1]
    """
    config = config or DEFAULT_CONFIG

    if rd < 0:
        raise ValueError(f"rd must not be negative, got {rd}")
    if volatility <= 0:
        raise ValueError(f"volatility must be positive, got {volatility}")

    # Step 1-2: Convert to Glicko-2 scale
    mu = config.rating_to_glicko2(rating)
    phi = config.deviation_to_glicko2(rd)

    opponents_g2 = []
    for opponent in opponents:
        opp_rating, opp_rd, score = opponent[:3]
        weight = opponent[3] if len(opponent) > 3 else 1.0
        if opp_rd < 0:
            raise ValueError(f"opponent rd must not be negative, got {opp_rd}")
        if not 0.0 < weight <= 1.0:
            raise ValueError(f"weight must be in (0, 1], got {weight}")
        opponents_g2.append((
            config.rating_to_glicko2(opp_rating),
            config.deviation_to_glicko2(opp_rd),
            score,
            weight,
        ))

    mu_new, phi_new, sigma_new = calculate_glicko2_period(
        mu, phi, volatility, opponents_g2,
        config.tau, config.epsilon, config.max_iterations,
    )

    # Step 8: Convert back to Glicko scale
    return (
        config.rating_from_glicko2(mu_new),
        config.deviation_from_glicko2(phi_new),
        sigma_new,
    )


# =============================================================================
# Period reports
# =============================================================================

@dataclass
class ParticipantUpdate:
    """Outcome of one participant's update in a rating period."""
    player: RatingRecord
    rating_before: float
    rd_before: float
    volatility_before: float
    rating_after: float
    rd_after: float
    volatility_after: float
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    draws: int = 0

    @property
    def rating_change(self) -> float:
        return self.rating_after - self.rating_before

    @property
    def win_rate(self) -> float:
        """Calculate win rate for the period."""
        if self.games_played == 0:
            return 0.0
        return self.wins / self.games_played


@dataclass
class PeriodUpdate:
    """Result of rating every participant of a period."""
    temporary: bool
    updates: List[ParticipantUpdate] = field(default_factory=list)
    failures: List[NonConvergenceError] = field(default_factory=list)

    def for_player(self, player: RatingRecord) -> Optional[ParticipantUpdate]:
        for update in self.updates:
            if update.player is player:
                return update
        return None

    def to_dataframe(self) -> pd.DataFrame:
        """Convert the period's updates to a DataFrame for analysis."""
        if not self.updates:
            return pd.DataFrame()

        records = []
        for u in self.updates:
            records.append({
                'player': u.player.name,
                'rating_before': u.rating_before,
                'rd_before': u.rd_before,
                'volatility_before': u.volatility_before,
                'rating': u.rating_after,
                'rd': u.rd_after,
                'volatility': u.volatility_after,
                'rating_change': u.rating_change,
                'games_played': u.games_played,
                'wins': u.wins,
                'losses': u.losses,
                'draws': u.draws,
                'win_rate': u.win_rate,
            })

        return pd.DataFrame(records)


# =============================================================================
# Rating engine
# =============================================================================

class RatingEngine:
    """
    Rates every participant of a rating period.

    Each participant is computed from the committed, pre-period state of
    themselves and their opponents, captured before anything is written, so
    the order in which participants are processed never changes the result.
    """

    def __init__(self, config: Optional[Glicko2Config] = None):
        self.config = config or DEFAULT_CONFIG

    @property
    def tau(self) -> float:
        return self.config.tau

    @property
    def epsilon(self) -> float:
        return self.config.epsilon

    @property
    def max_iterations(self) -> int:
        return self.config.max_iterations

    def new_rating(
        self,
        rating: Optional[float] = None,
        deviation: Optional[float] = None,
        volatility: Optional[float] = None,
        name: Optional[str] = None,
    ) -> RatingRecord:
        """Create a RatingRecord using this engine's defaults and scale."""
        return RatingRecord(self.config, rating, deviation, volatility, name=name)

    def _check_config(self, players) -> None:
        # Records must share this engine's scale, or μ/φ mean different things
        for player in players:
            config = player.config
            if config is self.config:
                continue
            if config.scale != self.config.scale or config.offset != self.config.offset:
                raise ValueError(
                    f"{player!r} uses scale {config.scale}/offset {config.offset}, "
                    f"engine uses {self.config.scale}/{self.config.offset}")

    def rate(
        self,
        player: RatingRecord,
        opponents: Sequence[Tuple[RatingRecord, float]],
    ) -> Tuple[float, float, float]:
        """
        Compute a player's post-period rating without changing any record.

        Args:
            player: Player to rate
            opponents: List of (opponent, score) or (opponent, score, weight)

        Returns:
            (new_rating, new_rd, new_volatility) on the public scale
        """
        self._check_config([player] + [entry[0] for entry in opponents])
        opponents_public = []
        for entry in opponents:
            opponent, score = entry[:2]
            weight = entry[2] if len(entry) > 2 else 1.0
            opponents_public.append((opponent.rating, opponent.deviation, score, weight))
        return calculate_rating_period(
            player.rating, player.deviation, player.volatility,
            opponents_public, self.config,
        )

    def _compute(
        self,
        player: RatingRecord,
        snapshot: PeriodSnapshot,
        state: Dict[RatingRecord, Tuple[float, float, float]],
        elapsed_periods: float,
    ) -> Tuple[List[MatchRecord], Optional[NonConvergenceError]]:
        results = snapshot.results_for(player)
        mu, phi, sigma = state[player]

        opponents = []
        for result in results:
            opp_mu, opp_phi, _ = state[result.get_opponent(player)]
            opponents.append((opp_mu, opp_phi, result.get_score(player), result.get_weight()))

        try:
            mu_new, phi_new, sigma_new = calculate_glicko2_period(
                mu, phi, sigma, opponents,
                self.tau, self.epsilon, self.max_iterations, elapsed_periods,
            )
        except NonConvergenceError as exc:
            exc.participant = player
            logger.warning("Rating update failed for %r: %s", player, exc)
            return results, exc

        player.set_working(mu_new, phi_new, sigma_new)
        logger.debug("Rated %r over %d games", player, len(results))
        return results, None

    def update_ratings(
        self,
        period: PeriodAccumulator,
        temporary: bool = False,
        elapsed_periods: float = 1,
        max_workers: Optional[int] = None,
    ) -> PeriodUpdate:
        """
        Run the Glicko-2 update for every participant of a closed period.

        The period must be closed to new results while this runs.

        Args:
            period: Results of the rating period
            temporary: Only stage the new values (preview); committed ratings
                       and the accumulator are left untouched
            elapsed_periods: Rating periods of RD decay for players without games
            max_workers: Compute participants on a thread pool of this size

        Returns:
            PeriodUpdate describing every successful update

        Raises:
            ValueError if a participant uses a different rating scale
            NonConvergenceError for the first participant whose volatility
            did not converge. All other participants are still finalised and
            the accumulator is kept, with the finalised participants marked
            so that running the period again only rates those that failed.
        """
        snapshot = period.snapshot()
        participants = snapshot.participants

        players = list(participants)
        for result in snapshot.results:
            players.extend((result.winner, result.loser))
        self._check_config(players)

        state = {
            p: (p.get_glicko2_rating(), p.get_glicko2_deviation(), p.get_volatility())
            for p in players
        }

        def compute(player):
            return self._compute(player, snapshot, state, elapsed_periods)

        if max_workers is not None and max_workers > 1 and len(participants) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                computed = list(executor.map(compute, participants))
        else:
            computed = [compute(p) for p in participants]

        report = PeriodUpdate(temporary=temporary)
        for player, (results, error) in zip(participants, computed):
            if error is not None:
                player.clear_working()
                report.failures.append(error)
                continue

            rating_before = player.get_rating()
            rd_before = player.get_deviation()
            volatility_before = player.get_volatility()

            player.finalise_rating(temporary)
            player.increment_result_count(len(results), temporary)

            scores = [r.get_score(player) for r in results]
            report.updates.append(ParticipantUpdate(
                player=player,
                rating_before=rating_before,
                rd_before=rd_before,
                volatility_before=volatility_before,
                rating_after=player.get_rating(temporary),
                rd_after=player.get_deviation(temporary),
                volatility_after=player.get_volatility(temporary),
                games_played=len(results),
                wins=scores.count(POINTS_FOR_WIN),
                losses=scores.count(POINTS_FOR_LOSS),
                draws=scores.count(POINTS_FOR_DRAW),
            ))

        logger.info(
            "Rated %d participants over %d results%s",
            len(report.updates), len(snapshot.results),
            " (preview)" if temporary else "",
        )

        if report.failures:
            if not temporary:
                period.mark_rated(u.player for u in report.updates)
            error = report.failures[0]
            error.report = report
            raise error

        if not temporary:
            period.clear()
        return report

    def preview(self, period: PeriodAccumulator, elapsed_periods: float = 1) -> PeriodUpdate:
        """Stage the period's updates without committing them."""
        return self.update_ratings(period, temporary=True, elapsed_periods=elapsed_periods)
