"""
Smoke tests for the plotly chain figures.
"""

import numpy as np
import plotly.graph_objects as go
import pytest
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mcmcdiag.diagnostics import Chain, IndexOutOfRangeError, autocorrelation
from mcmcdiag.sampling import ar1_chain, replicate_chains
from mcmcdiag.visualization import (
    autocorrelation_figure,
    chain_set_trace_figure,
    trace_figure,
)


def test_trace_figure_has_trace_and_density():
    chain = Chain.from_sampler_output(
        ar1_chain(600, seed=1, names=["mass"]).samples, burnin=100, thin=5, names=["mass"]
    )
    fig = trace_figure(chain, 0)

    assert isinstance(fig, go.Figure)
    assert len(fig.data) == 2
    trace, density = fig.data
    assert len(trace.y) == chain.length
    # x axis is in original sampler iterations
    assert trace.x[0] == 100 and trace.x[1] == 105
    assert len(density.x) == 256
    assert "mass" in fig.layout.annotations[0].text


def test_trace_figure_constant_chain_has_no_density():
    fig = trace_figure(Chain(np.full(50, 2.0)), 0)
    assert len(fig.data) == 1


def test_autocorrelation_figure_caps_lag():
    chain = ar1_chain(30, rho=0.7, seed=2)
    fig = autocorrelation_figure(chain, 0, max_lag=100)

    bars = fig.data[0]
    assert len(bars.y) == 30
    np.testing.assert_allclose(bars.y, autocorrelation(chain, 0, 29))


def test_chain_set_trace_figure():
    chain_set = replicate_chains(3, 200, n_params=2, seed=5)
    fig = chain_set_trace_figure(chain_set, 1)

    assert len(fig.data) == 3
    assert [t.name for t in fig.data] == ["Chain 1", "Chain 2", "Chain 3"]

    with pytest.raises(IndexOutOfRangeError):
        chain_set_trace_figure(chain_set, 2)
