"""
Glicko-2 tuning constants and scale conversions.

Based on Professor Mark Glickman's paper:
"Example of the Glicko-2 system" (2013)
http://www.glicko.net/glicko/glicko2.pdf

This module provides:
- Default rating, RD and volatility for new competitors
- The system constant τ and the volatility solver's tolerance/iteration cap
- Conversion between the public (Glicko) scale and the Glicko-2 internal scale
- Loading overrides from the environment / a .env file
"""

import os
from dataclasses import dataclass, fields, replace as dataclass_replace
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv


# Constants from Glickman paper
GLICKO2_SCALE = 173.7178  # Conversion factor between Glicko and Glicko-2 scales
DEFAULT_OFFSET = 1500.0
DEFAULT_RATING = 1500.0
DEFAULT_RD = 350.0
DEFAULT_VOLATILITY = 0.06
DEFAULT_TAU = 0.5  # System constant - constrains volatility change
CONVERGENCE_TOLERANCE = 0.000001
MAX_ITERATIONS = 1000  # Upper bound on volatility solver iterations

ENV_PREFIX = "GLICKO2_"


@dataclass(frozen=True)
class Glicko2Config:
    """
    Engine-wide settings for a Glicko-2 rating pool.

    Attributes:
        default_rating: Rating given to new competitors (public scale)
        default_rd: Rating deviation given to new competitors (public scale)
        default_volatility: σ given to new competitors
        tau: System constant bounding how fast volatility may change (0.3-1.2)
        epsilon: Convergence tolerance for the volatility solver
        max_iterations: Iteration cap for the volatility solver
        scale: Divisor between public and internal scale (173.7178)
        offset: Public rating that maps to μ = 0 (1500)
    """
    default_rating: float = DEFAULT_RATING
    default_rd: float = DEFAULT_RD
    default_volatility: float = DEFAULT_VOLATILITY
    tau: float = DEFAULT_TAU
    epsilon: float = CONVERGENCE_TOLERANCE
    max_iterations: int = MAX_ITERATIONS
    scale: float = GLICKO2_SCALE
    offset: float = DEFAULT_OFFSET

    def __post_init__(self):
        if self.scale <= 0:
            raise ValueError(f"scale must be positive, got {self.scale}")
        if self.default_rd < 0:
            raise ValueError(f"default_rd must not be negative, got {self.default_rd}")
        if self.default_volatility <= 0:
            raise ValueError(f"default_volatility must be positive, got {self.default_volatility}")
        if self.tau <= 0:
            raise ValueError(f"tau must be positive, got {self.tau}")
        if self.epsilon <= 0:
            raise ValueError(f"epsilon must be positive, got {self.epsilon}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {self.max_iterations}")

    # -------------------------------------------------------------------------
    # Scale conversions
    # -------------------------------------------------------------------------

    def rating_to_glicko2(self, rating: float) -> float:
        """Convert a public rating to μ on the Glicko-2 scale."""
        return (rating - self.offset) / self.scale

    def rating_from_glicko2(self, mu: float) -> float:
        """Convert μ back to a public rating."""
        return mu * self.scale + self.offset

    def deviation_to_glicko2(self, rd: float) -> float:
        """Convert a public RD to φ on the Glicko-2 scale."""
        return rd / self.scale

    def deviation_from_glicko2(self, phi: float) -> float:
        """Convert φ back to a public RD."""
        return phi * self.scale

    def replace(self, **changes) -> 'Glicko2Config':
        """Return a copy with the given fields changed (re-validated)."""
        return dataclass_replace(self, **changes)

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Union[str, Path]] = None,
        prefix: str = ENV_PREFIX,
    ) -> 'Glicko2Config':
        """
        Build a config from environment variables.

        Reads ``<prefix><FIELD>`` for every field, e.g. ``GLICKO2_TAU`` or
        ``GLICKO2_DEFAULT_RD``. A .env file is loaded first if present;
        variables already set in the process environment win.

        Args:
            env_file: Optional path to a .env file (default: search upwards)
            prefix: Variable name prefix

        Returns:
            Glicko2Config with overrides applied

        Raises:
            ValueError if a variable is set but cannot be parsed
        """
        if env_file is not None:
            load_dotenv(env_file)
        else:
            load_dotenv()

        overrides = {}
        for f in fields(cls):
            key = prefix + f.name.upper()
            raw = os.getenv(key)
            if raw is None or raw.strip() == "":
                continue
            try:
                overrides[f.name] = int(raw) if f.name == "max_iterations" else float(raw)
            except ValueError:
                raise ValueError(f"Invalid value for {key}: {raw!r}") from None

        return cls(**overrides)


DEFAULT_CONFIG = Glicko2Config()
