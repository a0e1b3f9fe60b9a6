"""
Diagnostics for MCMC sampler output.

This module provides the checks needed before trusting a fitted model's
chains: autocorrelation, effective sample size, posterior summaries and
convergence across replicate runs.
"""

from .chains import Chain, ChainSet
from .convergence import (
    ConvergenceDiagnostics,
    ConvergenceResult,
    ConvergenceVerdict,
    GelmanRubinDiagnostic,
    EffectiveSampleSize,
    MCMCError,
    GewekeDiagnostic,
    HeidelbergerWelchTest,
    autocorrelation,
    effective_sample_size,
    gelman_rubin,
    convergence_check,
    quick_convergence_check,
)
from .posterior import (
    DiagnosticReport,
    ParameterSummary,
    posterior_mean,
    posterior_mode,
    highest_density_interval,
    posterior_p_value,
    derive_ratio,
    summarize,
)
from .errors import (
    DiagnosticsError,
    InsufficientDataError,
    InvalidProbabilityError,
    InsufficientChainsError,
    IndexOutOfRangeError,
    DimensionMismatchError,
    NonFiniteSampleError,
)

__all__ = [
    # Data
    'Chain',
    'ChainSet',
    # Convergence
    'ConvergenceDiagnostics',
    'ConvergenceResult',
    'ConvergenceVerdict',
    'GelmanRubinDiagnostic',
    'EffectiveSampleSize',
    'MCMCError',
    'GewekeDiagnostic',
    'HeidelbergerWelchTest',
    'autocorrelation',
    'effective_sample_size',
    'gelman_rubin',
    'convergence_check',
    'quick_convergence_check',
    # Posterior summaries
    'DiagnosticReport',
    'ParameterSummary',
    'posterior_mean',
    'posterior_mode',
    'highest_density_interval',
    'posterior_p_value',
    'derive_ratio',
    'summarize',
    # Errors
    'DiagnosticsError',
    'InsufficientDataError',
    'InvalidProbabilityError',
    'InsufficientChainsError',
    'IndexOutOfRangeError',
    'DimensionMismatchError',
    'NonFiniteSampleError',
]
