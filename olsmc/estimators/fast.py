"""Amortized repeated-trial OLS estimator.

The design ``[1, x]`` is factored once at construction. Every trial then
works inside a single preallocated buffer:

1. fill with ``mean + sigma * e`` (``n`` fresh deviates, index order);
2. overwrite with ``Q' y`` using the stored Householder reflectors;
3. back-substitute the 2x2 triangular system into entries 0 (intercept)
   and 1 (slope);
4. read the residual sum of squares off entries ``2..n-1``.

No design matrix, decomposition or response vector is allocated per trial.
"""

# olsmc/estimators/fast.py
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from olsmc.core import linalg as la
from olsmc.core.design import INTERCEPT_COL, N_PARAMS, SLOPE_COL, DesignFactorization
from olsmc.core.noise import as_noise_source
from olsmc.estimators.base import BaseEstimator, Parameters, TrialResult

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from olsmc.core.noise import NoiseSource, SeedLike

LOGGER = logging.getLogger(__name__)

__all__ = ["FastEstimator"]


class FastEstimator(BaseEstimator):
    """OLS over repeated trials reusing one QR factorization and one buffer.

    Parameters
    ----------
    parameters : Parameters
        True line, noise scale and predictors.
    factorization : DesignFactorization, optional
        A factorization of ``parameters.predictors`` to share (read-only) with
        other estimators. Built here when omitted.

    Raises
    ------
    DegenerateDesignError
        From the factorization, when the predictors cannot support the fit.

    """

    name = "fast"

    def __init__(
        self,
        parameters: Parameters,
        factorization: DesignFactorization | None = None,
    ) -> None:
        super().__init__(parameters)
        if factorization is None:
            factorization = DesignFactorization(parameters.predictors)
        elif factorization.n != parameters.n or not np.array_equal(
            factorization.predictors, parameters.predictors,
        ):
            msg = "factorization was built for a different predictor sequence"
            raise ValueError(msg)
        self._fact = factorization
        self._sigma = float(parameters.sigma)
        self._mean = parameters.mean_response()
        self._mean.setflags(write=False)
        self._R = factorization.R
        self._df = float(factorization.n - N_PARAMS)
        # (n, 1) column in Fortran order so LAPACK updates it in place.
        self._buffer = np.empty((factorization.n, 1), dtype=np.float64, order="F")
        self._work = self._buffer[:, 0]
        self._resid = self._work[N_PARAMS:]
        LOGGER.debug("FastEstimator ready: n=%d sigma=%g", factorization.n, self._sigma)

    @property
    def factorization(self) -> DesignFactorization:
        return self._fact

    @property
    def buffer(self) -> NDArray[np.float64]:
        """Read-only view of the working buffer (valid only until the next trial)."""
        view = self._work.view()
        view.setflags(write=False)
        return view

    def _fill_response_inplace(self, src: NoiseSource) -> None:
        w = self._work
        src.fill_normal(w)
        np.multiply(w, self._sigma, out=w)
        np.add(self._mean, w, out=w)

    def run_trial(self, rng: NoiseSource | SeedLike) -> TrialResult:
        """Simulate and fit one trial; the returned result owns its values."""
        src = as_noise_source(rng)
        self._fill_response_inplace(src)
        self._fact.apply_qt_inplace(self._buffer)
        la.back_substitute_inplace(self._R, self._work)
        rss = float(np.dot(self._resid, self._resid))
        w = self._work
        self.trials_run += 1
        return TrialResult(
            slope=float(w[SLOPE_COL]),
            intercept=float(w[INTERCEPT_COL]),
            residual_variance=rss / self._df,
        )

    def step(self, rng: NoiseSource) -> TrialResult:
        return self.run_trial(rng)
