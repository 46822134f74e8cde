"""Reference estimator that recomputes everything on every trial.

Each call builds the design, draws fresh noise, runs a full QR and solves
from scratch. It is slow on purpose and serves as the correctness oracle for
:class:`olsmc.estimators.fast.FastEstimator`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from olsmc.core import design as dz
from olsmc.core import linalg as la
from olsmc.core.noise import as_noise_source
from olsmc.estimators.base import BaseEstimator, Parameters, TrialResult

if TYPE_CHECKING:
    from olsmc.core.noise import NoiseSource, SeedLike

__all__ = ["NaiveEstimator"]


class NaiveEstimator(BaseEstimator):
    """Allocate-every-time OLS fit of a freshly simulated response."""

    name = "naive"

    def __init__(self, parameters: Parameters | None = None) -> None:
        super().__init__(parameters)

    def run_trial(self, parameters: Parameters, rng: NoiseSource | SeedLike) -> TrialResult:
        """Simulate one response for ``parameters`` and fit it from scratch.

        Raises
        ------
        DegenerateDesignError
            If the predictors do not support a full-rank ``[1, x]`` design.

        """
        src = as_noise_source(rng)
        x = dz.check_predictors(parameters.predictors)
        n = int(x.shape[0])
        X = dz.build_design(x)

        e = src.standard_normal(n)
        y = parameters.mean_response() + parameters.sigma * e

        Q, R = la.qr(X, mode="economic")
        rank = la.rank_from_diag(np.abs(np.diag(R)), dz.N_PARAMS, mode="stata")
        if rank < dz.N_PARAMS:
            msg = f"design [1, x] is numerically rank deficient (rank {rank} < {dz.N_PARAMS})"
            raise dz.DegenerateDesignError(msg)
        coef = la.triangular_solve(R, Q.T @ y, lower=False).reshape(-1)

        resid = y - X @ coef
        rss = float(resid @ resid)
        self.trials_run += 1
        return TrialResult.from_fit(coef, rss, n)

    def step(self, rng: NoiseSource) -> TrialResult:
        if self._parameters is None:
            msg = "NaiveEstimator.step requires parameters at construction; use run_trial instead"
            raise ValueError(msg)
        return self.run_trial(self._parameters, rng)
