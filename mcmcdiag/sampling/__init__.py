"""
Synthetic chains with known correlation structure.

Used to exercise the diagnostics without running a sampler.
"""

from .synthetic import (
    ar1_chain,
    sinusoidal_chain,
    replicate_chains,
)

__all__ = [
    'ar1_chain',
    'sinusoidal_chain',
    'replicate_chains',
]
