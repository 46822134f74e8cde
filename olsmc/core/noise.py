"""Seedable standard-normal noise streams.

A :class:`NoiseSource` wraps a ``numpy.random.Generator``. Each draw advances
the generator, so a source is sequential state and must be owned by one
estimator at a time. Independent streams for parallel work come from
:meth:`NoiseSource.spawn`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Union

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import NDArray

SeedLike = Union[int, np.random.SeedSequence, np.random.Generator, None]

__all__ = ["NoiseSource", "SeedLike", "as_noise_source"]


class NoiseSource:
    """Deterministic stream of i.i.d. standard-normal deviates.

    Parameters
    ----------
    seed : int, SeedSequence, Generator or None
        An integer or ``SeedSequence`` seeds a fresh PCG64 generator. A
        ``Generator`` is adopted as-is (its state is shared, not copied).
        ``None`` draws entropy from the OS.

    """

    __slots__ = ("_rng", "_seed_seq")

    def __init__(self, seed: SeedLike = None) -> None:
        if isinstance(seed, np.random.Generator):
            self._rng = seed
            self._seed_seq = getattr(seed.bit_generator, "seed_seq", None)
            return
        if isinstance(seed, np.random.SeedSequence):
            seq = seed
        else:
            if seed is not None and int(seed) < 0:
                msg = "seed must be a non-negative integer"
                raise ValueError(msg)
            seq = np.random.SeedSequence(None if seed is None else int(seed))
        self._seed_seq = seq
        self._rng = np.random.default_rng(seq)

    def __repr__(self) -> str:  # pragma: no cover - trivial
        entropy = getattr(self._seed_seq, "entropy", None)
        return f"NoiseSource(entropy={entropy!r})"

    @property
    def generator(self) -> np.random.Generator:
        """Underlying ``numpy.random.Generator``."""
        return self._rng

    def next_normal(self) -> float:
        """Draw a single standard-normal deviate."""
        return float(self._rng.standard_normal())

    def fill_normal(self, out: NDArray[np.float64]) -> NDArray[np.float64]:
        """Overwrite ``out`` in place with ``len(out)`` deviates, in index order."""
        if out.ndim != 1 or out.dtype != np.float64:
            msg = "out must be a 1-D float64 array"
            raise ValueError(msg)
        self._rng.standard_normal(out=out)
        return out

    def standard_normal(self, n: int) -> NDArray[np.float64]:
        """Return a new array of ``n`` deviates (same stream order as ``fill_normal``)."""
        return self._rng.standard_normal(int(n))

    def spawn(self, k: int) -> list[NoiseSource]:
        """Derive ``k`` independent child sources via ``SeedSequence.spawn``."""
        if int(k) < 0:
            msg = "k must be non-negative"
            raise ValueError(msg)
        if self._seed_seq is None:
            msg = "cannot spawn from a generator without an attached SeedSequence"
            raise ValueError(msg)
        return [NoiseSource(child) for child in self._seed_seq.spawn(int(k))]


def as_noise_source(rng: NoiseSource | SeedLike) -> NoiseSource:
    """Coerce a seed, generator or existing source into a :class:`NoiseSource`."""
    if isinstance(rng, NoiseSource):
        return rng
    return NoiseSource(rng)
