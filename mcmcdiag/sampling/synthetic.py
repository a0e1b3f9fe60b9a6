"""
Synthetic chains with known autocorrelation structure.

These generators stand in for sampler output when exercising the
diagnostics: an AR(1) process reproduces the geometric autocorrelation
of a well-behaved Metropolis/Gibbs chain, and a sinusoidal drift
reproduces a chain that has not settled.

The AR(1) recursion
    x_t = μ + ρ(x_{t-1} - μ) + σ√(1 - ρ²) ε_t
keeps the stationary variance at σ² for any |ρ| < 1, so the chain's
lag-k autocorrelation is ρ^k.
"""

import numpy as np
from typing import Optional, Sequence

from ..diagnostics.chains import Chain, ChainSet


def ar1_chain(
    n_samples: int,
    rho: float = 0.5,
    mean: float = 0.0,
    std: float = 1.0,
    n_params: int = 1,
    seed: Optional[int] = None,
    names: Optional[Sequence[str]] = None
) -> Chain:
    """
    Stationary AR(1) chain.

    Args:
        n_samples: Chain length
        rho: Lag-1 autocorrelation, |rho| < 1
        mean: Stationary mean
        std: Stationary standard deviation
        n_params: Number of independent parameters
        seed: Seed for numpy's Generator
    """
    if not -1 < rho < 1:
        raise ValueError(f"rho must be in (-1, 1), got {rho}")

    rng = np.random.default_rng(seed)
    innovations = rng.standard_normal((n_samples, n_params))

    samples = np.empty((n_samples, n_params))
    samples[0] = innovations[0]
    scale = np.sqrt(1 - rho**2)
    for t in range(1, n_samples):
        samples[t] = rho * samples[t - 1] + scale * innovations[t]

    return Chain(mean + std * samples, names=tuple(names) if names else None)


def sinusoidal_chain(
    n_samples: int,
    period: float = 50.0,
    noise: float = 0.1,
    seed: Optional[int] = None
) -> Chain:
    """One-parameter chain sin(t / period) + N(0, noise²)."""
    rng = np.random.default_rng(seed)
    t = np.arange(n_samples)
    return Chain(np.sin(t / period) + noise * rng.standard_normal(n_samples))


def replicate_chains(
    n_chains: int,
    n_samples: int,
    rho: float = 0.5,
    means: Optional[Sequence[float]] = None,
    std: float = 1.0,
    n_params: int = 1,
    seed: Optional[int] = None
) -> ChainSet:
    """
    Independent AR(1) replicates.

    Passing distinct ``means`` produces replicates stuck in different
    regions, i.e. a set that has not converged.
    """
    if means is None:
        means = [0.0] * n_chains
    if len(means) != n_chains:
        raise ValueError(f"Got {len(means)} means for {n_chains} chains")

    seeds = np.random.SeedSequence(seed).spawn(n_chains)
    return ChainSet(tuple(
        ar1_chain(n_samples, rho=rho, mean=m, std=std, n_params=n_params,
                  seed=np.random.default_rng(s).integers(2**32))
        for m, s in zip(means, seeds)
    ))
