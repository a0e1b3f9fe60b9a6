"""
Plotly figures for visual chain inspection.

Trace and density panels side by side (the usual first look at a fitted
model's chains), autocorrelation bar charts, and overlaid replicate
traces for judging whether independent runs explore the same region.
"""

import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots
from scipy.stats import gaussian_kde

from ..diagnostics.chains import Chain, ChainSet
from ..diagnostics.convergence import autocorrelation
from ..diagnostics.posterior import highest_density_interval, posterior_mode


def trace_figure(chain: Chain, parameter_index: int, probability: float = 0.95) -> go.Figure:
    """
    Trace (left) and kernel density (right) for one parameter.

    The density panel marks the posterior mode and the HDI bounds.
    """
    x = chain.column(parameter_index)
    name = chain.parameter_name(parameter_index)

    fig = make_subplots(
        rows=1, cols=2,
        subplot_titles=(f"Trace of {name}", f"Density of {name}"),
        column_widths=[0.65, 0.35],
    )

    iterations = chain.burnin + chain.thin * np.arange(chain.length)
    fig.add_trace(
        go.Scatter(x=iterations, y=x, mode='lines', name='Trace', line=dict(width=1)),
        row=1, col=1
    )

    lower, upper = highest_density_interval(chain, parameter_index, probability)
    mode = posterior_mode(chain, parameter_index)

    if np.ptp(x) > 0:
        grid = np.linspace(np.min(x), np.max(x), 256)
        density = gaussian_kde(x)(grid)
        fig.add_trace(
            go.Scatter(x=grid, y=density, mode='lines', name='Density', fill='tozeroy'),
            row=1, col=2
        )

    fig.add_vline(x=mode, line_dash='solid', line_color='black', row=1, col=2)
    for bound in (lower, upper):
        fig.add_vline(x=bound, line_dash='dash', line_color='gray', row=1, col=2)

    fig.update_xaxes(title_text="Iteration", row=1, col=1)
    fig.update_xaxes(title_text=name, row=1, col=2)
    fig.update_layout(height=350, showlegend=False)

    return fig


def autocorrelation_figure(chain: Chain, parameter_index: int, max_lag: int = 50) -> go.Figure:
    """Bar chart of autocorrelation at lags 0..max_lag (capped at n - 1)."""
    max_lag = min(max_lag, chain.length - 1)
    acf = autocorrelation(chain, parameter_index, max_lag)

    fig = go.Figure(data=go.Bar(x=np.arange(max_lag + 1), y=acf, name='ACF'))

    # Approximate 95% band for white noise
    band = 1.96 / np.sqrt(chain.length)
    fig.add_hline(y=band, line_dash='dot', line_color='gray')
    fig.add_hline(y=-band, line_dash='dot', line_color='gray')

    fig.update_layout(
        title=f"Autocorrelation of {chain.parameter_name(parameter_index)}",
        xaxis_title="Lag",
        yaxis_title="Autocorrelation",
        yaxis_range=[-1, 1],
        height=300,
    )
    return fig


def chain_set_trace_figure(chain_set: ChainSet, parameter_index: int) -> go.Figure:
    """Overlaid traces of every replicate chain for one parameter."""
    index = chain_set.check_index(parameter_index)
    name = chain_set[0].parameter_name(index)

    fig = go.Figure()
    for i, chain in enumerate(chain_set):
        fig.add_trace(go.Scatter(
            y=chain.column(index), mode='lines', name=f"Chain {i + 1}", line=dict(width=1)
        ))

    fig.update_layout(
        title=f"Replicate traces of {name}",
        xaxis_title="Sample",
        yaxis_title=name,
        height=350,
    )
    return fig
