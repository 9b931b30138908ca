"""
Batch Glicko-2 rating updates.

Record outcomes into a PeriodAccumulator while a rating period is open, then
hand it to a RatingEngine at period close:

    engine = RatingEngine()
    alice, bob = engine.new_rating(name="alice"), engine.new_rating(name="bob")
    period = PeriodAccumulator()
    period.add_result(alice, bob)
    engine.update_ratings(period)
"""

from .config import (
    CONVERGENCE_TOLERANCE,
    DEFAULT_RATING,
    DEFAULT_RD,
    DEFAULT_TAU,
    DEFAULT_VOLATILITY,
    GLICKO2_SCALE,
    MAX_ITERATIONS,
    Glicko2Config,
)
from .engine import (
    ParticipantUpdate,
    PeriodUpdate,
    RatingEngine,
    calculate_rating_period,
)
from .exceptions import (
    Glicko2Error,
    InvalidMatchError,
    NonConvergenceError,
    NotAParticipantError,
)
from .match import MatchRecord
from .period import PeriodAccumulator, PeriodSnapshot
from .rating import RatingRecord, StagedValue


__all__ = [
    'Glicko2Config',
    'RatingRecord',
    'StagedValue',
    'MatchRecord',
    'PeriodAccumulator',
    'PeriodSnapshot',
    'RatingEngine',
    'PeriodUpdate',
    'ParticipantUpdate',
    'calculate_rating_period',
    'Glicko2Error',
    'InvalidMatchError',
    'NotAParticipantError',
    'NonConvergenceError',
    'GLICKO2_SCALE',
    'DEFAULT_RATING',
    'DEFAULT_RD',
    'DEFAULT_VOLATILITY',
    'DEFAULT_TAU',
    'CONVERGENCE_TOLERANCE',
    'MAX_ITERATIONS',
]
