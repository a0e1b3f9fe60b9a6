"""
Test chain containers.

Covers construction, immutability, burn-in/thinning bookkeeping,
CSV loading and chain-set validation.
"""

import io
import dataclasses

import numpy as np
import pytest
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from mcmcdiag.diagnostics import (
    Chain,
    ChainSet,
    DimensionMismatchError,
    IndexOutOfRangeError,
    InsufficientChainsError,
    InsufficientDataError,
    NonFiniteSampleError,
)


class TestChain:
    """Construction and access of single chains."""

    def test_one_dimensional_input_is_single_parameter(self):
        chain = Chain([0.1, 0.2, 0.3])
        assert chain.length == 3
        assert chain.dimensionality == 1
        assert len(chain) == 3
        np.testing.assert_allclose(chain.column(0), [0.1, 0.2, 0.3])

    def test_two_dimensional_input(self):
        chain = Chain(np.arange(12.0).reshape(4, 3))
        assert chain.length == 4
        assert chain.dimensionality == 3
        np.testing.assert_allclose(chain.column(2), [2.0, 5.0, 8.0, 11.0])

    def test_samples_are_read_only_copies(self):
        raw = np.zeros((5, 2))
        chain = Chain(raw)
        raw[0, 0] = 99.0

        assert chain.samples[0, 0] == 0.0
        with pytest.raises(ValueError):
            chain.samples[0, 0] = 1.0
        with pytest.raises(dataclasses.FrozenInstanceError):
            chain.burnin = 10

    def test_rejects_empty_and_bad_shapes(self):
        with pytest.raises(InsufficientDataError):
            Chain([])
        with pytest.raises(InsufficientDataError):
            Chain(np.empty((0, 3)))
        with pytest.raises(ValueError):
            Chain(np.zeros((2, 2, 2)))
        with pytest.raises(ValueError):
            Chain([1.0, 2.0], thin=0)

    def test_rejects_non_finite_samples(self):
        with pytest.raises(NonFiniteSampleError):
            Chain([1.0, np.nan])
        with pytest.raises(NonFiniteSampleError):
            Chain([[0.5, 1.0], [np.inf, 2.0]])
        with pytest.raises(NonFiniteSampleError):
            Chain.from_sampler_output([0.1, np.nan, 0.2], burnin=1)
        # Burn-in is discarded before the check
        assert Chain.from_sampler_output([np.nan, 0.1, 0.2], burnin=1).length == 2

    def test_index_validation(self):
        chain = Chain(np.zeros((10, 2)))
        assert chain.check_index(1) == 1
        assert chain.check_index(np.int64(0)) == 0

        for bad in (2, -1, 1.0, True, "0"):
            with pytest.raises(IndexOutOfRangeError):
                chain.column(bad)

    def test_index_error_is_value_and_index_error(self):
        chain = Chain(np.zeros(5))
        with pytest.raises(ValueError):
            chain.column(3)
        with pytest.raises(IndexError):
            chain.column(3)

    def test_names(self):
        chain = Chain(np.zeros((3, 2)), names=["(Intercept)", "mass"])
        assert chain.names == ("(Intercept)", "mass")
        assert chain.index_of("mass") == 1
        assert chain.parameter_name(0) == "(Intercept)"
        assert Chain(np.zeros(3)).parameter_name(0) == "param_0"

        with pytest.raises(IndexOutOfRangeError):
            chain.index_of("tarsus")
        with pytest.raises(DimensionMismatchError):
            Chain(np.zeros((3, 2)), names=["only_one"])

    def test_from_sampler_output_applies_burnin_and_thin(self):
        raw = np.arange(1100.0)
        chain = Chain.from_sampler_output(raw, burnin=100, thin=10)

        assert chain.length == 100
        assert chain.burnin == 100
        assert chain.thin == 10
        assert chain.column(0)[0] == 100.0
        assert chain.column(0)[1] == 110.0

    def test_from_sampler_output_rejects_excess_burnin(self):
        with pytest.raises(InsufficientDataError):
            Chain.from_sampler_output(np.arange(50.0), burnin=50)
        with pytest.raises(ValueError):
            Chain.from_sampler_output(np.arange(50.0), burnin=-1)


class TestChainCSV:
    """Loading chains written by the sampler."""

    def test_plain_header(self):
        text = '"(Intercept)","mass"\n1.0,2.0\n1.5,2.5\n2.0,3.0\n'
        chain = Chain.from_csv(io.StringIO(text))

        assert chain.names == ("(Intercept)", "mass")
        np.testing.assert_allclose(chain.column(1), [2.0, 2.5, 3.0])

    def test_r_row_labels_are_dropped(self):
        text = '"","animal","units"\n"1",0.5,1.2\n"2",0.6,1.1\n"3",0.4,1.3\n'
        chain = Chain.from_csv(io.StringIO(text), burnin=1)

        assert chain.names == ("animal", "units")
        assert chain.length == 2
        np.testing.assert_allclose(chain.samples, [[0.6, 1.1], [0.4, 1.3]])

    def test_quoted_names_with_commas(self):
        text = '"","(Intercept)","at.level(sex, 1)"\n"1",0.5,1.5\n"2",0.6,1.4\n'
        chain = Chain.from_csv(io.StringIO(text))

        assert chain.dimensionality == 2
        assert chain.names == ("(Intercept)", "at.level(sex, 1)")
        np.testing.assert_allclose(chain.column(1), [1.5, 1.4])

    def test_missing_values_are_rejected(self):
        with pytest.raises(NonFiniteSampleError):
            Chain.from_csv(io.StringIO("a,b\n1.0,2.0\n,3.0\n"))

    def test_bytes_and_paths(self, tmp_path):
        text = "a;b\n1;2\n3;4\n"
        from_bytes = Chain.from_csv(io.BytesIO(text.encode("utf-8")), delimiter=";")

        path = tmp_path / "chain.csv"
        path.write_text(text, encoding="utf-8")
        from_path = Chain.from_csv(str(path), delimiter=";")

        np.testing.assert_allclose(from_bytes.samples, from_path.samples)
        assert from_path.names == ("a", "b")

    def test_header_only(self):
        with pytest.raises(InsufficientDataError):
            Chain.from_csv(io.StringIO("a,b\n"))


class TestChainSet:
    """Replicate chain groups."""

    def test_accepts_chains_and_arrays(self):
        chain_set = ChainSet.of(Chain(np.zeros((5, 2))), np.ones((5, 2)))
        assert len(chain_set) == 2
        assert chain_set.dimensionality == 2
        assert all(isinstance(c, Chain) for c in chain_set)

    def test_rejects_empty(self):
        with pytest.raises(InsufficientChainsError):
            ChainSet(())

    def test_rejects_mixed_dimensionality(self):
        with pytest.raises(DimensionMismatchError):
            ChainSet.of(np.zeros((5, 2)), np.zeros((5, 3)))

    def test_pooled(self):
        chain_set = ChainSet.of(
            Chain(np.zeros((4, 2)), names=["a", "b"]),
            Chain(np.ones((4, 2)), names=["a", "b"]),
        )
        pooled = chain_set.pooled()

        assert pooled.length == 8
        assert pooled.names == ("a", "b")
        assert pooled.column(0)[-1] == 1.0

    def test_unequal_lengths_warn(self):
        with pytest.warns(UserWarning):
            chain_set = ChainSet.of(np.zeros(10), np.zeros(6))
        assert chain_set.min_length == 6
