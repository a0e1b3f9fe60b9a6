"""
Immutable containers for sampler output.

A Chain holds the retained draws of one sampler run as an
(n_samples, n_params) array; a ChainSet groups independent replicate
runs of the same model so they can be compared for convergence.

Samples handed to a Chain are assumed to be post burn-in and thinning.
The ``burnin`` and ``thin`` attributes only record how they were obtained.
"""

import warnings
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .errors import (
    DimensionMismatchError,
    IndexOutOfRangeError,
    InsufficientChainsError,
    InsufficientDataError,
    NonFiniteSampleError,
)


@dataclass(frozen=True, eq=False)
class Chain:
    """Draws from a single sampler run."""

    samples: np.ndarray
    burnin: int = 0
    thin: int = 1
    names: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        samples = np.array(self.samples, dtype=float)
        if samples.ndim == 1:
            samples = samples[:, np.newaxis]
        if samples.ndim != 2:
            raise ValueError(
                f"Chain samples must be 1D or 2D, got {samples.ndim} dimensions"
            )
        if samples.shape[0] == 0 or samples.shape[1] == 0:
            raise InsufficientDataError("Chain must contain at least one sample")
        if not np.all(np.isfinite(samples)):
            n_bad = int(np.sum(~np.all(np.isfinite(samples), axis=1)))
            raise NonFiniteSampleError(
                f"{n_bad} of {samples.shape[0]} samples contain NaN or infinite values"
            )
        if self.burnin < 0:
            raise ValueError(f"burnin must be non-negative, got {self.burnin}")
        if self.thin < 1:
            raise ValueError(f"thin must be at least 1, got {self.thin}")

        samples.setflags(write=False)
        object.__setattr__(self, 'samples', samples)

        if self.names is not None:
            names = tuple(str(n) for n in self.names)
            if len(names) != samples.shape[1]:
                raise DimensionMismatchError(
                    f"Got {len(names)} names for {samples.shape[1]} parameters"
                )
            object.__setattr__(self, 'names', names)

    @classmethod
    def from_sampler_output(
        cls,
        raw: Union[np.ndarray, Sequence],
        burnin: int = 0,
        thin: int = 1,
        names: Optional[Sequence[str]] = None
    ) -> 'Chain':
        """
        Build a chain from every iteration a sampler produced.

        Args:
            raw: All iterations, shape (n_iterations,) or (n_iterations, n_params)
            burnin: Number of leading iterations to discard
            thin: Keep every ``thin``-th iteration after burn-in
            names: Optional parameter names

        Returns:
            Chain of the retained iterations
        """
        raw = np.asarray(raw, dtype=float)
        if burnin < 0:
            raise ValueError(f"burnin must be non-negative, got {burnin}")
        if thin < 1:
            raise ValueError(f"thin must be at least 1, got {thin}")
        if burnin >= len(raw):
            raise InsufficientDataError(
                f"burnin={burnin} discards all {len(raw)} iterations"
            )

        kept = raw[burnin::thin]
        return cls(kept, burnin=burnin, thin=thin,
                   names=tuple(names) if names is not None else None)

    @classmethod
    def from_csv(
        cls,
        source,
        delimiter: str = ',',
        burnin: int = 0,
        thin: int = 1
    ) -> 'Chain':
        """
        Load a chain from delimited text with a header row of parameter names.

        ``source`` may be a path or a file-like object (text or bytes).
        A leading unnamed column, as written by R's ``write.csv``, is
        treated as row labels and dropped.
        """
        df = pd.read_csv(source, sep=delimiter)

        first = str(df.columns[0]) if len(df.columns) else ''
        if not first.strip() or first.startswith('Unnamed: 0'):
            df = df.iloc[:, 1:]

        if df.shape[0] == 0 or df.shape[1] == 0:
            raise InsufficientDataError("Chain file has no sample rows")

        values = df.to_numpy(dtype=float)
        return cls.from_sampler_output(
            values, burnin=burnin, thin=thin, names=[str(c) for c in df.columns]
        )

    @property
    def length(self) -> int:
        return self.samples.shape[0]

    @property
    def dimensionality(self) -> int:
        return self.samples.shape[1]

    def __len__(self) -> int:
        return self.length

    def check_index(self, parameter_index: int) -> int:
        """Validate a parameter index against the chain's dimensionality."""
        if not isinstance(parameter_index, (int, np.integer)) or isinstance(parameter_index, bool):
            raise IndexOutOfRangeError(
                f"Parameter index must be an integer, got {parameter_index!r}"
            )
        if not 0 <= parameter_index < self.dimensionality:
            raise IndexOutOfRangeError(
                f"Parameter index {parameter_index} outside [0, {self.dimensionality})"
            )
        return int(parameter_index)

    def column(self, parameter_index: int) -> np.ndarray:
        """Values of one parameter across all samples (read-only view)."""
        return self.samples[:, self.check_index(parameter_index)]

    def index_of(self, name: str) -> int:
        if self.names is None or name not in self.names:
            raise IndexOutOfRangeError(f"No parameter named {name!r}")
        return self.names.index(name)

    def parameter_name(self, parameter_index: int) -> str:
        index = self.check_index(parameter_index)
        if self.names is None:
            return f"param_{index}"
        return self.names[index]


@dataclass(frozen=True, eq=False)
class ChainSet:
    """Independent replicate chains of the same model."""

    chains: Tuple[Chain, ...] = field(default_factory=tuple)

    def __post_init__(self):
        chains = tuple(
            c if isinstance(c, Chain) else Chain(c) for c in self.chains
        )
        if not chains:
            raise InsufficientChainsError("ChainSet needs at least one chain")

        dims = {c.dimensionality for c in chains}
        if len(dims) > 1:
            raise DimensionMismatchError(
                f"All chains must share dimensionality, got {sorted(dims)}"
            )

        lengths = {c.length for c in chains}
        if len(lengths) > 1:
            warnings.warn(
                f"Chains have unequal lengths {sorted(lengths)}; "
                f"between-chain comparisons use the shortest"
            )

        object.__setattr__(self, 'chains', chains)

    @classmethod
    def of(cls, *chains: Union[Chain, np.ndarray]) -> 'ChainSet':
        return cls(tuple(chains))

    @property
    def dimensionality(self) -> int:
        return self.chains[0].dimensionality

    @property
    def min_length(self) -> int:
        return min(c.length for c in self.chains)

    def __len__(self) -> int:
        return len(self.chains)

    def __iter__(self) -> Iterable[Chain]:
        return iter(self.chains)

    def __getitem__(self, i: int) -> Chain:
        return self.chains[i]

    def check_index(self, parameter_index: int) -> int:
        return self.chains[0].check_index(parameter_index)

    def pooled(self) -> Chain:
        """All chains concatenated into one chain."""
        first = self.chains[0]
        return Chain(
            np.vstack([c.samples for c in self.chains]),
            burnin=first.burnin,
            thin=first.thin,
            names=first.names,
        )
