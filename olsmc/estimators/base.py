"""Base classes, simulation parameters and per-trial results.

This module defines the abstract base estimator, the immutable parameter
bundle shared by every component, and the :class:`TrialResult` record that
estimators return once per trial.
"""

# olsmc/estimators/base.py
from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

import numpy as np

from olsmc.core.design import N_PARAMS

if TYPE_CHECKING:  # import-only typing
    from collections.abc import Sequence

    from numpy.typing import NDArray

    from olsmc.core.noise import NoiseSource

__all__ = [
    "BaseEstimator",
    "Parameters",
    "TrialResult",
]


# ---------------------------------------------------------------------
# Simulation parameters (immutable, shared read-only)
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class Parameters:
    """True regression line, noise scale and fixed predictor sequence.

    Notes
    -----
    - ``predictors`` is stored as a read-only float64 array so that every
      estimator and factorization built from the same value sees the same
      design.
    - Only scalar inputs are validated here. Whether the predictors support
      a full-rank design is decided by ``DesignFactorization``, which raises
      ``DegenerateDesignError``.

    """

    slope_true: float
    intercept_true: float
    sigma: float
    predictors: NDArray[np.float64] = field(repr=False)

    def __post_init__(self) -> None:
        for name in ("slope_true", "intercept_true", "sigma"):
            value = float(getattr(self, name))
            if not math.isfinite(value):
                msg = f"{name} must be finite; got {value!r}"
                raise ValueError(msg)
            object.__setattr__(self, name, value)
        if self.sigma <= 0.0:
            msg = f"sigma must be > 0; got {self.sigma!r}"
            raise ValueError(msg)
        x = np.array(self.predictors, dtype=np.float64, copy=True).reshape(-1)
        x.setflags(write=False)
        object.__setattr__(self, "predictors", x)

    @classmethod
    def from_range(
        cls, slope_true: float, intercept_true: float, sigma: float, n: int,
    ) -> Parameters:
        """Parameters with predictors ``0, 1, ..., n - 1``."""
        return cls(slope_true, intercept_true, sigma, np.arange(int(n), dtype=np.float64))

    @property
    def n(self) -> int:
        return int(self.predictors.shape[0])

    def mean_response(self) -> NDArray[np.float64]:
        """Deterministic mean ``slope_true * x + intercept_true`` (new array)."""
        return self.slope_true * self.predictors + self.intercept_true

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Parameters):
            return NotImplemented
        return (
            self.slope_true == other.slope_true
            and self.intercept_true == other.intercept_true
            and self.sigma == other.sigma
            and np.array_equal(self.predictors, other.predictors)
        )

    def __hash__(self) -> int:
        return hash(
            (self.slope_true, self.intercept_true, self.sigma, self.predictors.tobytes()),
        )


# ---------------------------------------------------------------------
# Per-trial result record
# ---------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TrialResult:
    """Slope, intercept and residual variance of one simulated fit.

    Values are plain Python floats copied out of the estimator's working
    memory, so a result never changes after later trials run.
    """

    FIELDS: ClassVar[tuple[str, str, str]] = ("slope", "intercept", "residual_variance")

    slope: float
    intercept: float
    residual_variance: float

    def as_tuple(self) -> tuple[float, float, float]:
        """Fields in column order (slope, intercept, residual_variance)."""
        return (self.slope, self.intercept, self.residual_variance)

    @classmethod
    def from_fit(cls, coef: Sequence[float], rss: float, n_obs: int) -> TrialResult:
        """Build a result from ``coef = [intercept, slope]`` and the residual sum of squares."""
        return cls(
            slope=float(coef[1]),
            intercept=float(coef[0]),
            residual_variance=float(rss) / float(n_obs - N_PARAMS),
        )


# ---------------------------------------------------------------------
# Estimator interface
# ---------------------------------------------------------------------
class BaseEstimator(ABC):
    """Abstract base class for all `olsmc` estimators.

    Principles
    ----------
    1) All linear algebra goes through `core.linalg`.
    2) Every trial draws exactly ``n`` deviates from the supplied source, in
       index order, so estimators driven by identically seeded sources see
       identical noise.
    3) Residual variance uses the fixed divisor ``n - 2``.
    """

    name: ClassVar[str] = "base"

    def __init__(self, parameters: Parameters | None = None) -> None:
        self._parameters = parameters
        self.trials_run = 0

    @property
    def parameters(self) -> Parameters | None:
        return self._parameters

    @abstractmethod
    def step(self, rng: NoiseSource) -> TrialResult:
        """Run one trial against the estimator's own parameters."""

    def model_info(self) -> dict[str, Any]:
        """Small descriptive mapping used in logs and summaries."""
        p = self._parameters
        return {
            "Estimator": self.name,
            "n": None if p is None else p.n,
            "trials_run": self.trials_run,
        }
