"""One-time QR factorization of the intercept + slope design.

The design matrix ``X = [1, x]`` is fixed across trials, so its Householder
QR is computed once here and reused: applying ``Q'`` to a response vector
leaves the coefficient right-hand side in the first two entries and the
residual vector (in rotated coordinates) in the remaining ``n - 2`` entries.
"""

# olsmc/core/design.py
from __future__ import annotations

import logging
import warnings
from typing import TYPE_CHECKING

import numpy as np

from olsmc.core import linalg as la

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

LOGGER = logging.getLogger(__name__)

# Column 0 is the intercept, column 1 the predictor.
INTERCEPT_COL = 0
SLOPE_COL = 1
N_PARAMS = 2
MIN_OBS = 3
ILL_CONDITIONED = 1e7

__all__ = [
    "DegenerateDesignError",
    "DesignFactorization",
    "build_design",
    "check_predictors",
]


class DegenerateDesignError(ValueError):
    """The predictor sequence does not support a full-rank two-column design."""


def build_design(predictors: Sequence[float] | NDArray[np.float64]) -> NDArray[np.float64]:
    """Return the (n x 2) design ``[1, x]`` as a new Fortran-ordered array."""
    x = np.asarray(predictors, dtype=np.float64).reshape(-1)
    X = np.empty((x.shape[0], N_PARAMS), dtype=np.float64, order="F")
    X[:, INTERCEPT_COL] = 1.0
    X[:, SLOPE_COL] = x
    return X


def check_predictors(predictors: Sequence[float] | NDArray[np.float64]) -> NDArray[np.float64]:
    """Validate a predictor sequence and return it as a float64 vector.

    Raises
    ------
    DegenerateDesignError
        If there are fewer than three observations, non-finite values, or the
        predictors have zero variance.

    """
    x = np.asarray(predictors, dtype=np.float64).reshape(-1)
    n = int(x.shape[0])
    if n < MIN_OBS:
        msg = (
            f"predictors must have at least {MIN_OBS} observations for an "
            f"intercept + slope fit with residual variance; got n={n}"
        )
        raise DegenerateDesignError(msg)
    try:
        la._check_array_finiteness(x)  # noqa: SLF001
    except ValueError as exc:
        raise DegenerateDesignError(str(exc)) from exc
    if np.all(x == x[0]):
        msg = f"predictors have zero variance (all values equal {x[0]!r}); design is rank deficient"
        raise DegenerateDesignError(msg)
    return x


class DesignFactorization:
    """Householder QR of ``[1, x]`` computed once and reused across trials.

    The orthogonal factor is kept in LAPACK compact form (reflectors + tau)
    and applied with DORMQR; it is never materialized as a dense matrix.
    Instances are immutable after construction and may be shared read-only
    between estimators running in different threads.

    Agreement with a freshly factored fit degrades as the condition number
    of ``[1, x]`` grows. Predictors far from zero compared with their spread
    (e.g. ``1e6 + arange(50)``, cond ~ 7e10) give relative differences near
    1e-6. A ``RuntimeWarning`` is issued when ``cond(R)`` exceeds
    ``ILL_CONDITIONED`` (1e7); centring the predictors restores full
    precision.

    Attributes
    ----------
    n : int
        Number of observations.
    p : int
        Number of design columns (always 2).
    R : ndarray
        (2 x 2) upper-triangular factor, read-only.
    decompositions : int
        Number of QR decompositions performed by this object (always 1).

    """

    p = N_PARAMS

    def __init__(self, predictors: Sequence[float] | NDArray[np.float64]) -> None:
        x = check_predictors(predictors)
        self.n = int(x.shape[0])
        self._predictors = x.copy()
        self._predictors.setflags(write=False)
        self._design = build_design(x)
        self._design.setflags(write=False)

        reflectors, tau, R = la.qr_raw(self._design)
        self.decompositions = 1

        diag_r = np.abs(np.diag(R))
        rank = la.rank_from_diag(diag_r, N_PARAMS, mode="stata")
        if rank < N_PARAMS:
            msg = (
                f"design [1, x] is numerically rank deficient (rank {rank} < {N_PARAMS}); "
                f"|diag(R)| = {diag_r.tolist()}"
            )
            raise DegenerateDesignError(msg)

        self._reflectors = reflectors
        self._tau = tau
        self._R = np.ascontiguousarray(R)
        self._R.setflags(write=False)
        # reflectors/tau stay writeable: f2py hands them straight to LAPACK.
        self._lwork = la.ormqr_workspace(reflectors, tau, 1)

        cond = self.condition_number
        if cond > ILL_CONDITIONED:
            warnings.warn(
                f"design [1, x] is ill-conditioned (cond(R)={cond:.3g}); "
                "estimates may lose precision",
                RuntimeWarning,
                stacklevel=2,
            )
        LOGGER.debug(
            "Factored design n=%d: diag(R)=%s cond=%.3g", self.n, self.diag_r.tolist(), cond,
        )

    def __repr__(self) -> str:  # pragma: no cover - convenience only
        return f"DesignFactorization(n={self.n}, p={self.p})"

    @property
    def predictors(self) -> NDArray[np.float64]:
        """Read-only copy of the predictor sequence."""
        return self._predictors

    @property
    def design(self) -> NDArray[np.float64]:
        """Read-only (n x 2) design matrix ``[1, x]``."""
        return self._design

    @property
    def R(self) -> NDArray[np.float64]:  # noqa: N802
        """Read-only (2 x 2) upper-triangular factor."""
        return self._R

    @property
    def diag_r(self) -> NDArray[np.float64]:
        return np.diag(self._R).copy()

    @property
    def condition_number(self) -> float:
        """2-norm condition number of ``R`` (equal to that of the design)."""
        s = np.linalg.svd(self._R, compute_uv=False)
        return float(s[0] / s[-1]) if s[-1] > 0 else float("inf")

    def apply_qt_inplace(self, buf: NDArray[np.float64]) -> NDArray[np.float64]:
        """Overwrite ``buf`` (Fortran-ordered, shape (n, k)) with ``Q' buf``."""
        return la.apply_qt_inplace(self._reflectors, self._tau, buf, lwork=self._lwork)

    def apply_qt(self, v: Sequence[float] | NDArray[np.float64]) -> NDArray[np.float64]:
        """Return ``Q' v`` as a new length-n vector; ``v`` is not modified."""
        vd = np.asarray(v, dtype=np.float64).reshape(-1)
        if vd.shape[0] != self.n:
            msg = f"vector has length {vd.shape[0]} but design has n={self.n}"
            raise ValueError(msg)
        la._check_array_finiteness(vd)  # noqa: SLF001
        work = np.array(vd.reshape(-1, 1), dtype=np.float64, order="F", copy=True)
        self.apply_qt_inplace(work)
        return work[:, 0].copy()

    def solve(self, v: Sequence[float] | NDArray[np.float64]) -> tuple[NDArray[np.float64], float]:
        """Least-squares fit of ``v`` on the design: ``(coef, rss)``, ``coef = [intercept, slope]``."""
        w = self.apply_qt(v)
        la.back_substitute_inplace(self._R, w)
        resid = w[N_PARAMS:]
        return w[:N_PARAMS].copy(), float(np.dot(resid, resid))
