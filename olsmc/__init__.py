"""olsmc: amortized Monte Carlo for simple linear regression.

This package simulates repeated trials of an intercept + slope regression
with a fixed design and Gaussian noise, factoring the design once and
reusing the factorization and working memory across trials. A naive
recompute-everything estimator is kept as a correctness oracle.
"""
from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "0.1.0"

__all__ = [
    "BaseEstimator",
    "DegenerateDesignError",
    "DesignFactorization",
    "FastEstimator",
    "NaiveEstimator",
    "NoiseSource",
    "Parameters",
    "SimulationConfig",
    "SimulationRunner",
    "TrialResult",
    "results_to_frame",
    "run_batches",
    "simulate",
    "summarize",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "BaseEstimator": ("olsmc.estimators.base", "BaseEstimator"),
    "Parameters": ("olsmc.estimators.base", "Parameters"),
    "TrialResult": ("olsmc.estimators.base", "TrialResult"),
    "FastEstimator": ("olsmc.estimators.fast", "FastEstimator"),
    "NaiveEstimator": ("olsmc.estimators.naive", "NaiveEstimator"),
    "DegenerateDesignError": ("olsmc.core.design", "DegenerateDesignError"),
    "DesignFactorization": ("olsmc.core.design", "DesignFactorization"),
    "NoiseSource": ("olsmc.core.noise", "NoiseSource"),
    "SimulationConfig": ("olsmc.sim.montecarlo", "SimulationConfig"),
    "SimulationRunner": ("olsmc.sim.montecarlo", "SimulationRunner"),
    "results_to_frame": ("olsmc.sim.montecarlo", "results_to_frame"),
    "run_batches": ("olsmc.sim.montecarlo", "run_batches"),
    "simulate": ("olsmc.sim.montecarlo", "simulate"),
    "summarize": ("olsmc.sim.montecarlo", "summarize"),
}


def __getattr__(name: str) -> Any:
    """Lazily import public estimators and utilities on first access."""
    if name in _LAZY_IMPORTS:
        module_name, attr_name = _LAZY_IMPORTS[name]
        module = import_module(module_name)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module 'olsmc' has no attribute '{name}'")


def __dir__() -> list[str]:
    """Ensure dir() exposes lazily imported names."""
    return sorted(set(globals()) | set(__all__))
