"""Linear algebra routines for repeated least-squares fits.

This module wraps the QR machinery used by the estimators: a one-shot
decomposition for the naive path, the compact Householder form kept by the
amortized path, and in-place application of the stored orthogonal transform.
Explicit matrix inversion is avoided throughout.
"""

# olsmc/core/linalg.py
from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np
import scipy.linalg as sla
from scipy.linalg import lapack

if TYPE_CHECKING:
    from numpy.typing import NDArray
else:
    NDArray = np.ndarray  # type: ignore[misc,assignment]

# Matrix type alias
Matrix = Any

__all__ = [
    "Matrix",
    "apply_qt_inplace",
    "back_substitute_inplace",
    "ormqr_workspace",
    "qr",
    "qr_raw",
    "rank_from_diag",
    "to_dense",
    "triangular_solve",
]


def _check_array_finiteness(arr: NDArray[np.float64]) -> None:
    """Helper to validate array finiteness with clear error message."""
    if not np.all(np.isfinite(arr)):
        raise ValueError(
            "Input contains NA/NaN/Inf; please drop/clean non-finite values.",
        )


def to_dense(A: Matrix) -> NDArray[np.float64]:
    """Convert a matrix-like object to a dense float64 numpy array."""
    return np.asarray(A, dtype=np.float64)


def qr(A: Matrix, *, mode: str = "economic"):
    """Compute a fresh QR decomposition ``A = Q R``.

    Parameters
    ----------
    A : Matrix
        Dense (m x n) input with m >= n.
    mode : {"economic", "full"}
        Shape of the returned ``Q``.

    Returns
    -------
    (Q, R) : tuple of ndarray
        ``Q`` is (m x n) in economic mode, ``R`` is (n x n) upper triangular.

    """
    mode_norm = str(mode).lower().strip()
    if mode_norm not in {"economic", "full"}:
        msg = "mode must be either 'economic' or 'full'"
        raise ValueError(msg)
    Ad = to_dense(A)
    Q, R = sla.qr(Ad, mode=mode_norm, pivoting=False)
    rcols = min(Ad.shape[0], Ad.shape[1])
    return Q, R[:rcols, :]


def qr_raw(
    A: Matrix,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Householder QR in LAPACK compact form.

    Returns ``(reflectors, tau, R)`` where ``reflectors`` is the Fortran-ordered
    GEQRF output (Householder vectors below the diagonal), ``tau`` the scalar
    factors and ``R`` the (n x n) upper-triangular factor. ``Q`` is never
    materialized; use :func:`apply_qt_inplace` to apply ``Q'`` to a vector.
    """
    Ad = to_dense(A)
    (reflectors, tau), R = sla.qr(Ad, mode="raw")
    reflectors = np.asfortranarray(reflectors, dtype=np.float64)
    rcols = min(Ad.shape[0], Ad.shape[1])
    return reflectors, np.asarray(tau, dtype=np.float64), np.triu(R[:rcols, :rcols])


def ormqr_workspace(
    reflectors: NDArray[np.float64], tau: NDArray[np.float64], ncols: int = 1,
) -> int:
    """Query the optimal DORMQR workspace size for ``ncols`` right-hand sides."""
    query = np.zeros((reflectors.shape[0], max(1, int(ncols))), dtype=np.float64, order="F")
    _cq, work, info = lapack.dormqr("L", "T", reflectors, tau, query, -1)
    if info != 0:
        msg = f"dormqr workspace query failed (info={info})"
        raise RuntimeError(msg)
    return max(1, int(np.real(work[0])), int(ncols))


def apply_qt_inplace(
    reflectors: NDArray[np.float64],
    tau: NDArray[np.float64],
    buf: NDArray[np.float64],
    *,
    lwork: int | None = None,
) -> NDArray[np.float64]:
    """Overwrite ``buf`` with ``Q' buf`` using the stored Householder reflectors.

    ``buf`` must be a Fortran-contiguous float64 array of shape (m, k); LAPACK
    then works directly on its memory. Returns ``buf`` for convenience.
    """
    if buf.ndim != 2 or not buf.flags.f_contiguous or buf.dtype != np.float64:
        msg = "buf must be a Fortran-contiguous float64 array of shape (m, k)"
        raise ValueError(msg)
    if buf.shape[0] != reflectors.shape[0]:
        msg = "Incompatible dimensions"
        raise ValueError(msg)
    if lwork is None:
        lwork = ormqr_workspace(reflectors, tau, buf.shape[1])
    cq, _work, info = lapack.dormqr(
        "L", "T", reflectors, tau, buf, lwork, overwrite_c=1,
    )
    if info != 0:
        msg = f"dormqr failed (info={info})"
        raise RuntimeError(msg)
    if cq is not buf and not np.shares_memory(cq, buf):  # pragma: no cover - f2py copied
        buf[...] = cq
    return buf


def _rank_from_diag(diagR: NDArray[np.float64], ncols: int, mode: str = "stata") -> int:
    """Determine numerical rank from R diagonal entries using method-specific tolerance."""
    d = np.asarray(diagR, dtype=float).reshape(-1)
    if d.size == 0:
        return 0
    mode_lower = str(mode).lower()
    # Stata (Mata qrsolve) default tolerance: eta = 1e-13 * trace(|R|)/rows(R)
    if mode_lower == "stata":
        tol = 1e-13 * (float(np.sum(np.abs(d))) / float(d.size))
    elif mode_lower in ("r", "r_strict"):
        # R's lm.fit documented default: tol = 1e-7 * max(|diag(R)|)
        tol = 1e-7 * float(np.max(np.abs(d)))
    else:  # numpy-like rcond style
        tol = np.finfo(float).eps * max(1, int(ncols)) * float(np.max(np.abs(d)))
    return int(np.sum(np.abs(d) > tol))


def rank_from_diag(
    diagR: NDArray[np.float64], ncols: int, *, mode: str = "stata",
) -> int:
    """Public wrapper for :func:`_rank_from_diag` (preserves Stata/R conventions)."""
    return _rank_from_diag(diagR, ncols, mode=mode)


def triangular_solve(
    R: NDArray[np.float64], B: Matrix, *, lower: bool = False,
) -> NDArray[np.float64]:
    """Solve ``R X = B`` for triangular ``R`` (returns a new array)."""
    Bd = to_dense(B)
    if Bd.ndim == 1:
        Bd = Bd.reshape(-1, 1)
    X = sla.solve_triangular(R, Bd, lower=lower, check_finite=False)
    return np.asarray(X, dtype=np.float64)


def back_substitute_inplace(R: NDArray[np.float64], w: NDArray[np.float64]) -> None:
    """Solve ``R b = w[:p]`` for upper-triangular ``R`` and store ``b`` in ``w[:p]``.

    Rows are solved from the bottom up (last coefficient first). ``w`` may be
    longer than ``p``; entries past ``p`` are left untouched.
    """
    p = R.shape[0]
    for i in range(p - 1, -1, -1):
        acc = float(w[i])
        for j in range(i + 1, p):
            acc -= float(R[i, j]) * float(w[j])
        w[i] = acc / float(R[i, i])
