"""Random process generators.

Thin wrappers over a NumPy ``Generator`` so every stochastic element of the
engine draws from an injected stream and runs are reproducible.
"""

from typing import Dict, Sequence

import numpy as np

from clinicflow.core.entities import PatientPriority


def sample_exponential(rng: np.random.Generator, mean: float) -> float:
    """Sample from an exponential distribution with the given mean.

    Args:
        rng: NumPy random generator.
        mean: Distribution mean (must be positive).

    Returns:
        A sample in the same units as ``mean``.
    """
    if mean <= 0:
        raise ValueError(f"Exponential mean must be positive, got {mean}")
    return float(rng.exponential(mean))


def sample_uniform(rng: np.random.Generator, low: float, high: float) -> float:
    """Sample uniformly from [low, high)."""
    if high < low:
        raise ValueError(f"Uniform range is inverted: [{low}, {high})")
    return float(rng.uniform(low, high))


def sample_poisson(rng: np.random.Generator, lam: float) -> int:
    """Sample a count from a Poisson distribution with mean ``lam``.

    A mean of zero always yields zero.
    """
    if lam < 0:
        raise ValueError(f"Poisson mean must be non-negative, got {lam}")
    if lam == 0:
        return 0
    return int(rng.poisson(lam))


def weighted_coin_toss(rng: np.random.Generator, probability_true: float) -> bool:
    """Return True with the given probability."""
    if not 0.0 <= probability_true <= 1.0:
        raise ValueError(f"Probability must be within [0, 1], got {probability_true}")
    return bool(rng.random() < probability_true)


def random_integer(rng: np.random.Generator, low: int, high: int) -> int:
    """Random integer in [low, high], inclusive at both ends."""
    if high < low:
        raise ValueError(f"Integer range is inverted: [{low}, {high}]")
    return int(rng.integers(low, high + 1))


def expected_arrivals(arrival_rate: float, sim_elapsed: float) -> float:
    """Expected arrivals over ``sim_elapsed`` simulated seconds.

    Args:
        arrival_rate: Patients per hour.
        sim_elapsed: Simulated seconds elapsed (real elapsed x speed).
    """
    return (arrival_rate / 3600.0) * sim_elapsed


def sample_arrival_count(
    rng: np.random.Generator, arrival_rate: float, sim_elapsed: float
) -> int:
    """Number of patients arriving during one tick."""
    return sample_poisson(rng, expected_arrivals(arrival_rate, sim_elapsed))


def sample_priority(
    rng: np.random.Generator, mix: Dict[PatientPriority, float]
) -> PatientPriority:
    """Draw a priority from a categorical mix.

    Walks the cumulative distribution in priority order, so a mix of
    {CRITICAL: 0.1, URGENT: 0.3, STANDARD: 0.6} maps u < 0.1 to CRITICAL,
    u < 0.4 to URGENT and the rest to STANDARD.
    """
    u = rng.random()
    cumulative = 0.0
    ordered: Sequence[PatientPriority] = sorted(mix)
    for priority in ordered:
        cumulative += mix[priority]
        if u < cumulative:
            return priority
    return ordered[-1]
