"""Monte Carlo driver for repeated-trial OLS.

Runs an estimator over ``count`` trials against one shared noise stream,
collects ordered :class:`TrialResult` records and turns them into columnar
views and summaries. Parallel batches follow a strict ownership rule: each
batch gets its own spawned :class:`NoiseSource` and its own
:class:`FastEstimator`; only the immutable factorization is shared.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd

from olsmc.core.design import DesignFactorization
from olsmc.core.noise import NoiseSource, as_noise_source
from olsmc.estimators.base import Parameters, TrialResult
from olsmc.estimators.fast import FastEstimator

if TYPE_CHECKING:
    from collections.abc import Sequence

    from numpy.typing import NDArray

    from olsmc.core.noise import SeedLike
    from olsmc.estimators.base import BaseEstimator

LOGGER = logging.getLogger(__name__)

COLUMNS = list(TrialResult.FIELDS)

__all__ = [
    "COLUMNS",
    "SimulationConfig",
    "SimulationRunner",
    "results_to_array",
    "results_to_frame",
    "run_batches",
    "simulate",
    "split_count",
    "summarize",
]


def _check_count(count: int) -> int:
    c = int(count)
    if c < 0:
        msg = f"count must be non-negative; got {count!r}"
        raise ValueError(msg)
    return c


class SimulationRunner:
    """Drive an estimator over ordered trials from one noise stream.

    Trial ``i`` consumes its deviates strictly before trial ``i + 1``; the
    runner is single-threaded and holds the only reference it uses to the
    stream.
    """

    def __init__(self, rng: NoiseSource | SeedLike = None) -> None:
        self.rng = as_noise_source(rng)

    def run(self, estimator: BaseEstimator, count: int) -> list[TrialResult]:
        """Return ``count`` results in draw order (empty list for ``count=0``)."""
        c = _check_count(count)
        LOGGER.debug("Running %d trials with %s", c, type(estimator).__name__)
        step = estimator.step
        rng = self.rng
        out = [step(rng) for _ in range(c)]
        LOGGER.debug("Finished %d trials with %s", c, type(estimator).__name__)
        return out

    def run_frame(self, estimator: BaseEstimator, count: int) -> pd.DataFrame:
        """Like :meth:`run`, returned as a DataFrame with one column per field."""
        return results_to_frame(self.run(estimator, count))


# ---------------------------------------------------------------------
# Columnar views and summaries
# ---------------------------------------------------------------------
def results_to_array(results: Sequence[TrialResult]) -> NDArray[np.float64]:
    """Stack results into an (N x 3) float64 array (slope, intercept, residual_variance)."""
    arr = np.empty((len(results), len(COLUMNS)), dtype=np.float64)
    for i, r in enumerate(results):
        arr[i] = r.as_tuple()
    return arr


def results_to_frame(results: Sequence[TrialResult]) -> pd.DataFrame:
    """Results as a DataFrame with columns ``slope, intercept, residual_variance``."""
    frame = pd.DataFrame(results_to_array(results), columns=COLUMNS)
    frame.index.name = "trial"
    return frame


def summarize(
    results: Sequence[TrialResult] | pd.DataFrame,
    parameters: Parameters | None = None,
) -> pd.DataFrame:
    """Per-field Monte Carlo summary.

    Columns are ``mean``, ``sd`` (ddof=1) and ``mcse`` (``sd / sqrt(N)``). When
    ``parameters`` is given, ``true`` (slope_true, intercept_true, sigma**2)
    and ``bias`` are added.
    """
    frame = results if isinstance(results, pd.DataFrame) else results_to_frame(results)
    frame = frame.loc[:, COLUMNS]
    n_trials = int(frame.shape[0])
    mean = frame.mean(axis=0)
    sd = frame.std(axis=0, ddof=1) if n_trials > 1 else pd.Series(np.nan, index=COLUMNS)
    mcse = sd / np.sqrt(n_trials) if n_trials > 0 else sd
    out = pd.DataFrame({"mean": mean, "sd": sd, "mcse": mcse})
    if parameters is not None:
        true = pd.Series(
            [parameters.slope_true, parameters.intercept_true, parameters.sigma**2],
            index=COLUMNS,
        )
        out["true"] = true
        out["bias"] = out["mean"] - true
    out.attrs["n_trials"] = n_trials
    return out


# ---------------------------------------------------------------------
# Configuration and batched execution
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class SimulationConfig:
    """Trial count, seed and optional batching for :func:`simulate`.

    Notes
    -----
    - ``batch_size=None`` runs every trial sequentially from one stream
      seeded by ``seed``.
    - With ``batch_size`` set, trials are split into batches that each draw
      from an independent child stream of ``seed``; results depend on the
      batch split but not on ``n_workers`` or thread scheduling.

    """

    count: int
    seed: int | None = None
    batch_size: int | None = None
    n_workers: int | None = None

    def __post_init__(self) -> None:
        _check_count(self.count)
        if self.batch_size is not None and int(self.batch_size) <= 0:
            msg = "batch_size must be a positive integer or None"
            raise ValueError(msg)
        if self.n_workers is not None and int(self.n_workers) <= 0:
            msg = "n_workers must be a positive integer or None"
            raise ValueError(msg)


def split_count(count: int, batch_size: int) -> list[int]:
    """Split ``count`` into consecutive batch sizes of at most ``batch_size``."""
    c = _check_count(count)
    b = int(batch_size)
    if b <= 0:
        msg = "batch_size must be a positive integer"
        raise ValueError(msg)
    sizes = [b] * (c // b)
    if c % b:
        sizes.append(c % b)
    return sizes


def _run_batch(
    parameters: Parameters,
    factorization: DesignFactorization,
    src: NoiseSource,
    count: int,
) -> list[TrialResult]:
    estimator = FastEstimator(parameters, factorization=factorization)
    return SimulationRunner(src).run(estimator, count)


def run_batches(
    parameters: Parameters,
    batch_sizes: Sequence[int],
    seed: int | np.random.SeedSequence | None = None,
    *,
    n_workers: int | None = None,
) -> list[TrialResult]:
    """Run independent batches of trials in parallel and concatenate them in batch order.

    The design is factored once and shared read-only. Batch ``k`` owns the
    ``k``-th child stream spawned from ``seed`` and a private estimator, so
    the output is the same for any ``n_workers``.
    """
    sizes = [_check_count(s) for s in batch_sizes]
    if not sizes:
        return []
    factorization = DesignFactorization(parameters.predictors)
    children = NoiseSource(seed).spawn(len(sizes))
    maxw = (os.cpu_count() or 1) if n_workers is None else int(n_workers)
    maxw = max(1, min(maxw, len(sizes)))
    LOGGER.debug("Scheduling %d batches (%d trials) on %d workers", len(sizes), sum(sizes), maxw)

    if maxw == 1:
        chunks = [
            _run_batch(parameters, factorization, src, size)
            for src, size in zip(children, sizes)
        ]
    else:
        with ThreadPoolExecutor(max_workers=maxw) as ex:
            # executor.map preserves input order
            chunks = list(
                ex.map(
                    lambda job: _run_batch(parameters, factorization, job[0], job[1]),
                    zip(children, sizes),
                ),
            )
    return [r for chunk in chunks for r in chunk]


def simulate(parameters: Parameters, config: SimulationConfig) -> pd.DataFrame:
    """Run ``config.count`` fast-estimator trials and return them as a DataFrame."""
    if config.batch_size is None:
        estimator = FastEstimator(parameters)
        return SimulationRunner(config.seed).run_frame(estimator, config.count)
    sizes = split_count(config.count, config.batch_size)
    results = run_batches(parameters, sizes, config.seed, n_workers=config.n_workers)
    return results_to_frame(results)
