"""
Convergence diagnostics for MCMC chains.

This module provides the diagnostics used to decide whether the draws
returned by a sampler can be trusted before they are summarized.

Key diagnostics:
- Autocorrelation: Correlation of a chain with a lagged copy of itself
- Effective Sample Size (ESS): Number of independent-equivalent samples
- Gelman-Rubin statistic (R̂): Tests convergence across replicate chains
- Geweke diagnostic: Tests stationarity within a chain
- Heidelberger-Welch: Tests stationarity and half-width
- Monte Carlo standard error (MCSE)
"""

import numpy as np
from typing import List, Dict, Tuple, Optional, Union, Any
from dataclasses import dataclass
from enum import Enum
import warnings

from .chains import Chain, ChainSet
from .errors import InsufficientChainsError, InsufficientDataError


class ConvergenceVerdict(Enum):
    CONVERGED = "converged"
    NOT_CONVERGED = "not_converged"


def _lagged_correlation(x: np.ndarray, lag: int) -> float:
    """Pearson correlation between x[:n-lag] and x[lag:]."""
    n = len(x)
    if lag == 0:
        return 1.0
    if n - lag < 2:
        return 0.0

    head = x[:n - lag]
    tail = x[lag:]
    if np.ptp(head) == 0 or np.ptp(tail) == 0:
        # Zero variance in a segment: correlation undefined
        return 0.0

    head = head - np.mean(head)
    tail = tail - np.mean(tail)

    denom = np.sqrt(np.dot(head, head) * np.dot(tail, tail))
    if denom <= 0:
        return 0.0

    return float(np.clip(np.dot(head, tail) / denom, -1.0, 1.0))


def autocorrelation(chain: Chain, parameter_index: int, max_lag: int) -> np.ndarray:
    """
    Autocorrelation of one parameter at lags 0..max_lag.

    Args:
        chain: Sampled chain
        parameter_index: Column of the parameter
        max_lag: Largest lag to compute (must be < chain length)

    Returns:
        Array of length max_lag + 1, with 1.0 at lag 0
    """
    x = chain.column(parameter_index)

    if max_lag < 0:
        raise ValueError(f"max_lag must be non-negative, got {max_lag}")
    if max_lag >= chain.length:
        raise InsufficientDataError(
            f"max_lag={max_lag} requires more than {chain.length} samples"
        )

    acf = np.empty(max_lag + 1)
    for k in range(max_lag + 1):
        acf[k] = _lagged_correlation(x, k)

    return acf


def effective_sample_size(chain: Chain, parameter_index: int) -> float:
    """
    Effective sample size n / (1 + 2 Σρ_k).

    The sum runs from lag 1 and stops at the first non-positive
    autocorrelation. The result is clamped to [1, n].
    """
    return _ess_from_values(chain.column(parameter_index))


def _ess_from_values(x: np.ndarray) -> float:
    n = len(x)

    rho_sum = 0.0
    for k in range(1, n):
        rho = _lagged_correlation(x, k)
        if rho <= 0:
            break
        rho_sum += rho

    ess = n / (1.0 + 2.0 * rho_sum)
    return float(min(max(ess, 1.0), n))


def _spectral_variance(x: np.ndarray) -> float:
    """Variance inflated by the integrated autocorrelation time (≈ 2π·S(0))."""
    return float(np.var(x) * len(x) / _ess_from_values(x))


def gelman_rubin(chain_set: ChainSet, parameter_index: int) -> float:
    """
    Potential scale reduction factor for one parameter.

    Chains of unequal length are truncated to the shortest one.

    Reference:
        Gelman & Rubin (1992) "Inference from Iterative Simulation Using Multiple Sequences"
    """
    if len(chain_set) < 2:
        raise InsufficientChainsError(
            "Need at least 2 chains for Gelman-Rubin diagnostic"
        )
    index = chain_set.check_index(parameter_index)

    n_samples = chain_set.min_length
    if n_samples < 2:
        raise InsufficientDataError(
            "Gelman-Rubin diagnostic needs at least 2 samples per chain"
        )
    if n_samples < 100:
        warnings.warn(f"Only {n_samples} samples per chain - R̂ may be unreliable")

    param_chains = np.stack([c.column(index)[:n_samples] for c in chain_set])

    # Between-chain variance
    chain_means = np.mean(param_chains, axis=1)
    B = n_samples * np.var(chain_means, ddof=1)

    # Within-chain variance
    chain_vars = np.var(param_chains, axis=1, ddof=1)
    W = np.mean(chain_vars)

    # Posterior variance estimate
    var_plus = ((n_samples - 1) / n_samples) * W + B / n_samples

    if W > 0:
        return float(np.sqrt(var_plus / W))

    # Constant chains: agree only if they sit on the same value
    return float(np.sqrt((n_samples - 1) / n_samples)) if B == 0 else float('inf')


def convergence_check(
    chain_set: ChainSet,
    parameter_index: int,
    threshold: float = 1.1
) -> ConvergenceVerdict:
    """CONVERGED when R̂ is strictly below ``threshold``."""
    r_hat = gelman_rubin(chain_set, parameter_index)
    if r_hat < threshold:
        return ConvergenceVerdict.CONVERGED
    return ConvergenceVerdict.NOT_CONVERGED


@dataclass
class ConvergenceResult:
    """Results from convergence diagnostics."""
    converged: bool
    r_hat: Optional[float] = None  # Worst Gelman-Rubin statistic
    ess: Optional[float] = None  # Smallest effective sample size
    ess_per_second: Optional[float] = None
    geweke_z: Optional[float] = None  # Largest |z| across parameters
    heidelberger_passed: Optional[bool] = None
    autocorr_time: Optional[float] = None  # n / ESS
    mcse: Optional[float] = None  # MCSE of the least efficient parameter
    mcse_batch: Optional[float] = None  # Same parameter, batch means
    warnings: List[str] = None

    def __post_init__(self):
        if self.warnings is None:
            self.warnings = []

    def report(self) -> str:
        """Plain-text summary of the diagnostics that were run."""
        lines = ["=== Convergence Diagnostics ==="]
        if self.r_hat is not None:
            lines.append(f"Gelman-Rubin R̂ (max): {self.r_hat:.3f}")
        if self.ess is not None:
            lines.append(f"Effective sample size (min): {self.ess:.1f}")
        if self.mcse is not None:
            lines.append(f"MCSE (ESS-based): {self.mcse:.4g}")
        if self.mcse_batch is not None:
            lines.append(f"MCSE (batch means): {self.mcse_batch:.4g}")
        lines.append(
            "Geweke |z| (max): not run" if self.geweke_z is None
            else f"Geweke |z| (max): {self.geweke_z:.2f}"
        )
        if self.heidelberger_passed is not None:
            lines.append(f"Heidelberger-Welch passed: {self.heidelberger_passed}")

        lines.append("")
        lines.append(f"Converged: {self.converged}")
        if self.warnings:
            lines.append("Warnings:")
            lines.extend(f"  - {w}" for w in self.warnings)
        return "\n".join(lines)


class GelmanRubinDiagnostic:
    """
    Gelman-Rubin convergence diagnostic over every parameter of a chain set.

    R̂ < 1.1 indicates convergence (some use R̂ < 1.01 for stricter convergence).
    """

    def __init__(self, threshold: float = 1.1):
        self.threshold = threshold

    def compute(self, chain_set: ChainSet) -> Tuple[float, bool]:
        """
        Returns:
            r_hat: The largest potential scale reduction factor
            converged: Whether R̂ < threshold for all parameters
        """
        r_hats = [
            gelman_rubin(chain_set, p) for p in range(chain_set.dimensionality)
        ]
        max_r_hat = max(r_hats)
        return max_r_hat, max_r_hat < self.threshold


class EffectiveSampleSize:
    """
    Effective sample size across all parameters of a chain.

    Low ESS indicates high autocorrelation and poor mixing.
    """

    def __init__(self, min_ess: int = 100):
        self.min_ess = min_ess

    def per_parameter(self, chain: Chain) -> np.ndarray:
        return np.array([
            effective_sample_size(chain, p) for p in range(chain.dimensionality)
        ])

    def compute(self, chain: Chain) -> Tuple[float, bool]:
        """
        Returns:
            ess: Smallest ESS across parameters
            adequate: Whether ESS >= min_ess
        """
        min_ess_value = float(np.min(self.per_parameter(chain)))
        return min_ess_value, min_ess_value >= self.min_ess


class MCMCError:
    """
    Monte Carlo standard error of a posterior mean.

    Two estimators: one from the effective sample size, and one from the
    spread of non-overlapping batch means. Batch means need no
    autocorrelation model, so a large disagreement between the two
    points at an ESS estimate that is too optimistic.
    """

    def compute_batch_means(self, x: np.ndarray, batch_size: Optional[int] = None) -> float:
        """
        Args:
            x: Values of one parameter
            batch_size: Samples per batch (default: floor(sqrt(n)))

        Trailing samples that do not fill a batch are ignored. With fewer
        than two batches the i.i.d. standard error is returned.
        """
        x = np.asarray(x, dtype=float)
        n = len(x)

        if batch_size is None:
            batch_size = max(int(np.sqrt(n)), 1)
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        n_batches = n // batch_size
        if n_batches < 2:
            return float(np.std(x) / np.sqrt(n))

        batch_means = x[:n_batches * batch_size].reshape(n_batches, batch_size).mean(axis=1)

        return float(np.std(batch_means, ddof=1) / np.sqrt(n_batches))

    def compute_spectral(self, x: np.ndarray, ess: float) -> float:
        """sd(x) / sqrt(ESS)."""
        return float(np.std(x) / np.sqrt(ess))


class GewekeDiagnostic:
    """
    Geweke convergence diagnostic.

    Tests whether the mean of the first portion of the chain
    equals the mean of the last portion.

    Reference:
        Geweke (1992) "Evaluating the accuracy of sampling-based approaches"
    """

    def __init__(self, first_frac: float = 0.1, last_frac: float = 0.5):
        if not (0 < first_frac < 1 and 0 < last_frac < 1 and first_frac + last_frac <= 1):
            raise ValueError(
                f"Invalid window fractions first={first_frac}, last={last_frac}"
            )
        self.first_frac = first_frac
        self.last_frac = last_frac

    def compute(self, chain: Chain, parameter_index: int = 0) -> Tuple[float, bool]:
        """
        Returns:
            z_score: Geweke statistic
            converged: Whether |z| < 1.96
        """
        x = chain.column(parameter_index)
        n = len(x)

        n_first = int(self.first_frac * n)
        n_last = int(self.last_frac * n)
        if n_first < 2 or n_last < 2:
            raise InsufficientDataError(
                f"Chain of {n} samples too short for Geweke windows"
            )

        first_samples = x[:n_first]
        last_samples = x[-n_last:]

        se = np.sqrt(
            _spectral_variance(first_samples) / n_first
            + _spectral_variance(last_samples) / n_last
        )

        z_score = (np.mean(first_samples) - np.mean(last_samples)) / se if se > 0 else 0.0
        z_score = float(z_score)

        return z_score, abs(z_score) < 1.96


class HeidelbergerWelchTest:
    """
    Heidelberger-Welch stationarity and half-width test.

    Reference:
        Heidelberger & Welch (1983) "Simulation run length control"
    """

    def __init__(self, alpha: float = 0.05, epsilon: float = 0.1):
        self.alpha = alpha
        self.epsilon = epsilon

    def cramer_von_mises_test(self, x: np.ndarray, var: Optional[float] = None) -> bool:
        """
        Simplified Cramér-von Mises test for stationarity.

        Args:
            x: Values of one parameter
            var: Spectral variance estimate (default: autocorrelation-adjusted variance)
        """
        n = len(x)
        if var is None:
            var = _spectral_variance(x)
        if var == 0:
            return True

        cumsum = np.cumsum(x - np.mean(x))

        # Brownian bridge transformation
        bridge = cumsum - np.linspace(0, cumsum[-1], n)

        statistic = np.sum(bridge**2) / (n**2 * var)

        # Critical value for alpha=0.05
        critical_value = 0.461

        return bool(statistic < critical_value)

    def compute(self, chain: Chain, parameter_index: int = 0) -> Tuple[bool, bool]:
        """
        Returns:
            stationary: Whether chain appears stationary
            halfwidth_passed: Whether precision criterion is met
        """
        x = chain.column(parameter_index)

        var = _spectral_variance(x)
        stationary = self.cramer_von_mises_test(x, var)

        mean_est = np.mean(x)
        halfwidth = 1.96 * np.sqrt(var / len(x))

        halfwidth_passed = bool((halfwidth / abs(mean_est)) < self.epsilon) if mean_est != 0 else True

        return stationary, halfwidth_passed


class ConvergenceDiagnostics:
    """
    Combined convergence assessment for one chain or a set of replicates.
    """

    def __init__(
        self,
        r_hat_threshold: float = 1.1,
        min_ess: int = 100,
        heidelberger_alpha: float = 0.05,
        heidelberger_epsilon: float = 0.1
    ):
        self.gelman_rubin = GelmanRubinDiagnostic(r_hat_threshold)
        self.ess_calculator = EffectiveSampleSize(min_ess)
        self.mcse_calculator = MCMCError()
        self.geweke = GewekeDiagnostic()
        self.heidelberger = HeidelbergerWelchTest(heidelberger_alpha, heidelberger_epsilon)

    def diagnose_single_chain(
        self,
        chain: Union[Chain, np.ndarray],
        runtime_seconds: Optional[float] = None
    ) -> ConvergenceResult:
        """
        Run within-chain diagnostics on every parameter.

        Args:
            chain: Chain (or raw array of retained samples)
            runtime_seconds: Time taken to generate samples
        """
        if not isinstance(chain, Chain):
            chain = Chain(chain)

        result = ConvergenceResult(converged=True)

        ess_values = self.ess_calculator.per_parameter(chain)
        worst = int(np.argmin(ess_values))
        ess = float(ess_values[worst])

        result.ess = ess
        if runtime_seconds is not None:
            result.ess_per_second = ess / runtime_seconds

        if ess < self.ess_calculator.min_ess:
            result.converged = False
            result.warnings.append(
                f"Low ESS for {chain.parameter_name(worst)}: "
                f"{ess:.1f} < {self.ess_calculator.min_ess}"
            )

        result.autocorr_time = chain.length / ess
        self._set_mcse(result, chain.column(worst), ess)

        max_abs_z = 0.0
        geweke_ran = True
        all_stationary = True
        all_halfwidth = True
        for p in range(chain.dimensionality):
            name = chain.parameter_name(p)
            try:
                z_score, geweke_passed = self.geweke.compute(chain, p)
            except InsufficientDataError as exc:
                geweke_ran = False
                result.warnings.append(f"Geweke test skipped for {name}: {exc}")
            else:
                max_abs_z = max(max_abs_z, abs(z_score))
                if not geweke_passed:
                    result.converged = False
                    result.warnings.append(
                        f"Geweke test failed for {name}: |z|={abs(z_score):.2f} > 1.96"
                    )

            stationary, halfwidth_passed = self.heidelberger.compute(chain, p)
            if not stationary:
                all_stationary = False
                result.converged = False
                result.warnings.append(f"Heidelberger-Welch stationarity test failed for {name}")
            if not halfwidth_passed:
                all_halfwidth = False
                result.warnings.append(f"Heidelberger-Welch half-width test failed for {name}")

        # None marks a test that could not run on every parameter
        result.geweke_z = max_abs_z if geweke_ran else None
        result.heidelberger_passed = all_stationary and all_halfwidth

        return result

    def _set_mcse(self, result: ConvergenceResult, x: np.ndarray, ess: float):
        """Spectral MCSE, cross-checked against batch means."""
        result.mcse = self.mcse_calculator.compute_spectral(x, ess)
        result.mcse_batch = self.mcse_calculator.compute_batch_means(x)

        if result.mcse > 0 and result.mcse_batch > 2 * result.mcse:
            result.warnings.append(
                f"Batch-means MCSE {result.mcse_batch:.4g} is more than twice "
                f"the ESS-based MCSE {result.mcse:.4g}; ESS may be overestimated"
            )

    def diagnose_multiple_chains(
        self,
        chains: Union[ChainSet, List[Union[Chain, np.ndarray]]],
        runtime_seconds: Optional[float] = None
    ) -> ConvergenceResult:
        """
        Run between- and within-chain diagnostics on replicate chains.

        The reported ESS is the sum of per-chain ESS values for the least
        efficient parameter.
        """
        chain_set = chains if isinstance(chains, ChainSet) else ChainSet(tuple(chains))

        result = ConvergenceResult(converged=True)

        r_hat, gr_converged = self.gelman_rubin.compute(chain_set)
        result.r_hat = r_hat
        if not gr_converged:
            result.converged = False
            result.warnings.append(f"R̂={r_hat:.3f} > {self.gelman_rubin.threshold}")

        per_chain = np.stack([self.ess_calculator.per_parameter(c) for c in chain_set])
        total_ess = per_chain.sum(axis=0)
        worst = int(np.argmin(total_ess))
        ess = float(total_ess[worst])

        result.ess = ess
        if runtime_seconds is not None:
            result.ess_per_second = ess / runtime_seconds

        if ess < self.ess_calculator.min_ess:
            result.converged = False
            result.warnings.append(f"Low ESS: {ess:.1f} < {self.ess_calculator.min_ess}")

        pooled = chain_set.pooled()
        result.autocorr_time = pooled.length / ess
        self._set_mcse(result, pooled.column(worst), ess)

        z_scores = []
        hw_passed = []
        for i, chain in enumerate(chain_set):
            chain_result = self.diagnose_single_chain(chain)
            z_scores.append(chain_result.geweke_z)
            hw_passed.append(chain_result.heidelberger_passed)
            if not chain_result.converged:
                result.converged = False
                result.warnings.append(f"Chain {i} failed convergence")
        result.geweke_z = None if None in z_scores else max(z_scores)
        result.heidelberger_passed = all(hw_passed)

        return result

    def recommend_sampling_params(self, result: ConvergenceResult) -> Dict[str, Any]:
        """
        Recommend burn-in, iteration and thinning changes from diagnostics.
        """
        recommendations = {}

        if result.r_hat is not None and result.r_hat >= self.gelman_rubin.threshold:
            recommendations['increase_burnin'] = True
            recommendations['suggested_burnin_multiplier'] = 2.0

        if result.ess is not None and result.ess < self.ess_calculator.min_ess:
            increase_factor = self.ess_calculator.min_ess / result.ess
            recommendations['increase_iterations'] = True
            recommendations['suggested_iteration_multiplier'] = max(2.0, increase_factor)

        if result.autocorr_time is not None and result.autocorr_time > 10:
            recommendations['improve_mixing'] = True
            recommendations['suggested_thin'] = int(np.ceil(result.autocorr_time))

        if abs(result.geweke_z or 0) > 1.96:
            recommendations['check_stationarity'] = True
            recommendations['suggested_diagnostics'] = ['trace plots', 'running means']

        return recommendations


def quick_convergence_check(
    samples: Union[Chain, ChainSet, np.ndarray, List],
    verbose: bool = True,
    r_hat_threshold: float = 1.1,
    min_ess: int = 100
) -> bool:
    """
    One-call convergence verdict for a chain or a set of replicates.

    A ChainSet, list or tuple is treated as replicate chains; anything
    else as one chain.
    """
    diagnostics = ConvergenceDiagnostics(r_hat_threshold=r_hat_threshold, min_ess=min_ess)

    if isinstance(samples, (ChainSet, list, tuple)):
        result = diagnostics.diagnose_multiple_chains(samples)
    else:
        result = diagnostics.diagnose_single_chain(samples)

    if verbose:
        print(result.report())

    return result.converged
