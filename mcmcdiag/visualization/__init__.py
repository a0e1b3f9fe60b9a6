"""
Plotly figures for inspecting chains.
"""

from .traces import (
    trace_figure,
    autocorrelation_figure,
    chain_set_trace_figure,
)

__all__ = [
    'trace_figure',
    'autocorrelation_figure',
    'chain_set_trace_figure',
]
