"""
Posterior summaries of sampled chains.

Point estimates (mean, kernel-density mode), highest posterior density
intervals, the two-sided pMCMC value reported by MCMCglmm, derived
variance-ratio chains (heritability, repeatability), and a per-parameter
report that bundles these with autocorrelation and effective sample size.
"""

import numpy as np
from typing import Dict, List, Optional, Sequence, Tuple, Union, Any
from dataclasses import dataclass, field
from scipy.stats import gaussian_kde

from .chains import Chain
from .convergence import autocorrelation, effective_sample_size
from .errors import InvalidProbabilityError, NonFiniteSampleError


def posterior_mean(chain: Chain, parameter_index: int) -> float:
    return float(np.mean(chain.column(parameter_index)))


def posterior_mode(
    chain: Chain,
    parameter_index: int,
    adjust: float = 1.0,
    grid_size: int = 512
) -> float:
    """
    Mode of the posterior as the peak of a Gaussian kernel density estimate.

    Args:
        chain: Sampled chain
        parameter_index: Column of the parameter
        adjust: Multiplier on Scott's bandwidth (MCMCglmm's posterior.mode uses 0.1)
        grid_size: Number of evaluation points spanning the sample range

    Returns:
        Location of the density maximum
    """
    x = chain.column(parameter_index)
    if adjust <= 0:
        raise ValueError(f"adjust must be positive, got {adjust}")

    lo, hi = float(np.min(x)), float(np.max(x))
    if lo == hi or len(x) < 2:
        return lo

    kde = gaussian_kde(x)
    kde.set_bandwidth(kde.scotts_factor() * adjust)

    grid = np.linspace(lo, hi, grid_size)
    density = kde(grid)

    return float(grid[np.argmax(density)])


def highest_density_interval(
    chain: Chain,
    parameter_index: int,
    probability: float = 0.95
) -> Tuple[float, float]:
    """
    Narrowest interval holding ``probability`` of the sorted samples.

    A window of ceil(probability * n) consecutive sorted values is slid
    across the samples and the narrowest one is returned.
    """
    x = chain.column(parameter_index)
    if not 0 < probability < 1:
        raise InvalidProbabilityError(
            f"probability must be in (0, 1), got {probability}"
        )

    sorted_x = np.sort(x)
    n = len(sorted_x)

    # Round first so that e.g. 0.95 * 100 is not pushed to 96 by float error
    window = int(np.ceil(round(probability * n, 9)))
    window = min(max(window, 1), n)

    widths = sorted_x[window - 1:] - sorted_x[:n - window + 1]
    start = int(np.argmin(widths))

    return float(sorted_x[start]), float(sorted_x[start + window - 1])


def posterior_p_value(chain: Chain, parameter_index: int) -> float:
    """
    Two-sided MCMC p-value (pMCMC).

    Twice the smaller tail mass on either side of zero, floored at 1/n.
    Exact zeros belong to neither tail.
    """
    x = chain.column(parameter_index)
    n = len(x)
    above = np.sum(x > 0) / n
    below = np.sum(x < 0) / n
    return float(2 * max(0.5 / n, min(above, below)))


def derive_ratio(
    chain: Chain,
    numerator: Union[int, str],
    denominator: Sequence[Union[int, str]],
    name: Optional[str] = None
) -> Chain:
    """
    Per-sample ratio of one variance component to a sum of components.

    With variance components ``animal`` (phylogenetic) and ``units``
    (residual), ``derive_ratio(vcv, "animal", ["animal", "units"])`` is the
    posterior of phylogenetic heritability.

    Returns:
        One-parameter chain with the same burn-in and thinning
    """
    def _resolve(key):
        return chain.index_of(key) if isinstance(key, str) else chain.check_index(key)

    num_index = _resolve(numerator)
    den_indices = [_resolve(d) for d in denominator]
    if not den_indices:
        raise ValueError("denominator must name at least one parameter")

    total = chain.samples[:, den_indices].sum(axis=1)
    zero = total == 0
    if np.any(zero):
        raise NonFiniteSampleError(
            f"Denominator is zero in {int(np.sum(zero))} of {chain.length} samples"
        )
    ratio = chain.samples[:, num_index] / total

    if name is None:
        name = f"{chain.parameter_name(num_index)}_ratio"

    return Chain(ratio, burnin=chain.burnin, thin=chain.thin, names=(name,))


@dataclass
class ParameterSummary:
    """Posterior summary of a single parameter."""
    name: str
    mean: float
    mode: float
    hdi_lower: float
    hdi_upper: float
    ess: float
    pmcmc: float
    autocorrelation: Dict[int, float] = field(default_factory=dict)


@dataclass
class DiagnosticReport:
    """Per-parameter summaries for one chain."""
    probability: float
    n_samples: int
    burnin: int
    thin: int
    parameters: List[ParameterSummary] = field(default_factory=list)

    def __getitem__(self, key: Union[int, str]) -> ParameterSummary:
        if isinstance(key, str):
            for summary in self.parameters:
                if summary.name == key:
                    return summary
            raise KeyError(key)
        return self.parameters[key]

    def as_rows(self) -> List[Dict[str, Any]]:
        """Flat dicts, one per parameter, for tabulation."""
        rows = []
        for p in self.parameters:
            row = {
                'parameter': p.name,
                'post.mean': p.mean,
                'post.mode': p.mode,
                'l-hdi': p.hdi_lower,
                'u-hdi': p.hdi_upper,
                'eff.samp': p.ess,
                'pMCMC': p.pmcmc,
            }
            for lag, value in p.autocorrelation.items():
                row[f'acf.lag{lag}'] = value
            rows.append(row)
        return rows

    def __str__(self) -> str:
        pct = f"{self.probability * 100:g}%"
        lines = [
            f" Sample size  = {self.n_samples} (burnin = {self.burnin}, thin = {self.thin})",
            "",
            f"{'':>16} {'post.mean':>10} {'post.mode':>10} "
            f"{'l-' + pct + ' HDI':>12} {'u-' + pct + ' HDI':>12} {'eff.samp':>9} {'pMCMC':>8}",
        ]
        for p in self.parameters:
            lines.append(
                f"{p.name[:16]:>16} {p.mean:>10.4g} {p.mode:>10.4g} "
                f"{p.hdi_lower:>12.4g} {p.hdi_upper:>12.4g} {p.ess:>9.1f} {p.pmcmc:>8.3g}"
            )
        return "\n".join(lines)


def summarize(
    chain: Chain,
    probability: float = 0.95,
    lags: Sequence[int] = (1, 5, 10, 50),
    adjust: float = 1.0
) -> DiagnosticReport:
    """
    Summarize every parameter of a chain.

    Lags that are not smaller than the chain length are left out of the
    autocorrelation table.
    """
    if not 0 < probability < 1:
        raise InvalidProbabilityError(
            f"probability must be in (0, 1), got {probability}"
        )

    usable_lags = sorted(lag for lag in set(lags) if 0 <= lag < chain.length)
    report = DiagnosticReport(
        probability=probability,
        n_samples=chain.length,
        burnin=chain.burnin,
        thin=chain.thin,
    )

    for p in range(chain.dimensionality):
        acf = autocorrelation(chain, p, usable_lags[-1]) if usable_lags else np.array([])
        lower, upper = highest_density_interval(chain, p, probability)
        report.parameters.append(ParameterSummary(
            name=chain.parameter_name(p),
            mean=posterior_mean(chain, p),
            mode=posterior_mode(chain, p, adjust=adjust),
            hdi_lower=lower,
            hdi_upper=upper,
            ess=effective_sample_size(chain, p),
            pmcmc=posterior_p_value(chain, p),
            autocorrelation={lag: float(acf[lag]) for lag in usable_lags},
        ))

    return report
