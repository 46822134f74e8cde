
import pytest
import numpy as np
from olsmc.core.noise import NoiseSource, as_noise_source


def test_same_seed_same_stream():
    a = NoiseSource(123).standard_normal(50)
    b = NoiseSource(123).standard_normal(50)
    assert np.array_equal(a, b)

def test_different_seeds_differ():
    a = NoiseSource(1).standard_normal(20)
    b = NoiseSource(2).standard_normal(20)
    assert not np.array_equal(a, b)

def test_fill_normal_matches_standard_normal():
    buf = np.empty(30)
    out = NoiseSource(9).fill_normal(buf)
    assert out is buf
    assert np.array_equal(buf, NoiseSource(9).standard_normal(30))

def test_next_normal_follows_stream_order():
    src = NoiseSource(5)
    singles = np.array([src.next_normal() for _ in range(10)])
    assert np.array_equal(singles, NoiseSource(5).standard_normal(10))

def test_fill_normal_rejects_bad_buffers():
    src = NoiseSource(0)
    with pytest.raises(ValueError, match="1-D float64"):
        src.fill_normal(np.empty((3, 2)))
    with pytest.raises(ValueError, match="1-D float64"):
        src.fill_normal(np.empty(3, dtype=np.float32))

def test_negative_seed_rejected():
    with pytest.raises(ValueError, match="non-negative"):
        NoiseSource(-1)

def test_generator_is_adopted_not_copied():
    gen = np.random.default_rng(77)
    src = NoiseSource(gen)
    assert src.generator is gen
    first = src.next_normal()
    # The caller's generator advanced too
    ref = np.random.default_rng(77)
    assert first == ref.standard_normal()
    assert gen.standard_normal() == ref.standard_normal()

def test_seed_sequence_input():
    seq = np.random.SeedSequence(31)
    a = NoiseSource(seq).standard_normal(5)
    b = NoiseSource(31).standard_normal(5)
    assert np.array_equal(a, b)

def test_spawn_is_deterministic_and_independent():
    kids_a = NoiseSource(11).spawn(3)
    kids_b = NoiseSource(11).spawn(3)
    draws_a = [k.standard_normal(8) for k in kids_a]
    draws_b = [k.standard_normal(8) for k in kids_b]
    for x, y in zip(draws_a, draws_b):
        assert np.array_equal(x, y)
    assert not np.array_equal(draws_a[0], draws_a[1])
    assert not np.array_equal(draws_a[0], NoiseSource(11).standard_normal(8))

def test_spawn_rejects_negative():
    with pytest.raises(ValueError):
        NoiseSource(0).spawn(-1)

def test_as_noise_source_passthrough():
    src = NoiseSource(3)
    assert as_noise_source(src) is src
    assert isinstance(as_noise_source(3), NoiseSource)
