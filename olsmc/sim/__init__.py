"""Monte Carlo drivers for repeated-trial estimation."""
from .montecarlo import (
    SimulationConfig,
    SimulationRunner,
    results_to_array,
    results_to_frame,
    run_batches,
    simulate,
    summarize,
)

__all__ = [
    "SimulationConfig",
    "SimulationRunner",
    "results_to_array",
    "results_to_frame",
    "run_batches",
    "simulate",
    "summarize",
]
