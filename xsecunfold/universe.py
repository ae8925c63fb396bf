"""Universe histograms and covariance matrix containers."""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np

_HIST_NAMES = (
    "hist_true",
    "hist_reco",
    "hist_2d",
    "hist_categ",
    "hist_reco2d",
    "hist_true2d",
)


def has_ending(full_string, ending):
    """Return True if ``full_string`` ends with ``ending``."""
    if len(full_string) >= len(ending):
        return full_string.endswith(ending)
    return False


def split_universe_key(key):
    """Split a ``<name>_<index>_2d`` histogram key into ``(name, index)``.

    Raises ValueError if the key does not end in ``_2d`` or does not carry
    an integer universe index after its last underscore.
    """
    if not has_ending(key, "_2d"):
        raise ValueError(f"Universe key {key!r} does not end in '_2d'")
    stem = key[: -len("_2d")]
    name, sep, index_str = stem.rpartition("_")
    if not sep:
        raise ValueError(f"Universe key {key!r} has no universe index")
    try:
        index = int(index_str)
    except ValueError:
        raise ValueError(
            f"Invalid universe index {index_str!r} in key {key!r}"
        ) from None
    return name, index


@dataclass
class CovMatrix:
    """A square covariance matrix, or no matrix at all (``None``).

    Adding a missing matrix leaves the other operand unchanged, so a sum
    built from an empty CovMatrix takes the shape of its first real term.
    """

    cov_matrix: Optional[np.ndarray] = None

    def __post_init__(self):
        if self.cov_matrix is None:
            return
        mat = np.array(self.cov_matrix, dtype=float)
        if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
            raise ValueError("Non-square matrix passed to CovMatrix")
        self.cov_matrix = mat

    @classmethod
    def zeros(cls, size):
        """Return a CovMatrix holding a ``size`` x ``size`` zero matrix."""
        if size < 0:
            raise ValueError("Covariance matrix size cannot be negative")
        return cls(np.zeros((size, size)))

    @property
    def size(self):
        """Number of rows (and columns), or 0 when no matrix is held."""
        return 0 if self.cov_matrix is None else self.cov_matrix.shape[0]

    def __iadd__(self, other):
        if not isinstance(other, CovMatrix):
            return NotImplemented
        if other.cov_matrix is None:
            return self
        if self.cov_matrix is None:
            self.cov_matrix = other.cov_matrix.copy()
            return self
        if self.cov_matrix.shape != other.cov_matrix.shape:
            raise ValueError(
                "Cannot add covariance matrices of shapes "
                f"{self.cov_matrix.shape} and {other.cov_matrix.shape}"
            )
        self.cov_matrix = self.cov_matrix + other.cov_matrix
        return self

    def __add__(self, other):
        if not isinstance(other, CovMatrix):
            return NotImplemented
        result = CovMatrix(
            None if self.cov_matrix is None else self.cov_matrix.copy()
        )
        result += other
        return result

    def get_matrix(self):
        """Return a copy of the matrix elements as a 2D array."""
        if self.cov_matrix is None:
            raise ValueError("CovMatrix holds no matrix")
        return self.cov_matrix.copy()


@dataclass
class Universe:
    """Event-count histograms for one systematic universe.

    ``hist_2d`` is indexed as (true bin, reco bin), ``hist_categ`` as
    (category, reco bin), ``hist_reco2d`` as (reco bin, reco bin) and
    ``hist_true2d`` as (true bin, true bin). ``sumw2`` holds the summed
    squared weights of each histogram under the same names; when not given
    it defaults to the bin contents, as for unweighted counts.
    """

    name: str
    index: int
    hist_true: np.ndarray
    hist_reco: np.ndarray
    hist_2d: np.ndarray
    hist_categ: np.ndarray
    hist_reco2d: np.ndarray
    hist_true2d: np.ndarray
    sumw2: Dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self):
        for hist_name in _HIST_NAMES:
            setattr(self, hist_name, np.array(getattr(self, hist_name), dtype=float))
        sumw2 = {}
        for hist_name in _HIST_NAMES:
            contents = getattr(self, hist_name)
            if hist_name in self.sumw2:
                w2 = np.array(self.sumw2[hist_name], dtype=float)
                if w2.shape != contents.shape:
                    raise ValueError(f"sumw2 shape mismatch for {hist_name}")
            else:
                w2 = contents.copy()
            sumw2[hist_name] = w2
        unknown = set(self.sumw2) - set(_HIST_NAMES)
        if unknown:
            raise ValueError(f"Unknown histogram names in sumw2: {sorted(unknown)}")
        self.sumw2 = sumw2

    @classmethod
    def empty(cls, name, index, num_true_bins, num_reco_bins, num_categories):
        """Return a universe whose histograms are all zero."""
        return cls(
            name=name,
            index=index,
            hist_true=np.zeros(num_true_bins),
            hist_reco=np.zeros(num_reco_bins),
            hist_2d=np.zeros((num_true_bins, num_reco_bins)),
            hist_categ=np.zeros((num_categories, num_reco_bins)),
            hist_reco2d=np.zeros((num_reco_bins, num_reco_bins)),
            hist_true2d=np.zeros((num_true_bins, num_true_bins)),
        )

    @property
    def num_true_bins(self):
        return self.hist_true.shape[0]

    @property
    def num_reco_bins(self):
        return self.hist_reco.shape[0]

    def shapes(self) -> Tuple[Tuple[int, ...], ...]:
        """Shapes of the six histograms in a fixed order."""
        return tuple(getattr(self, n).shape for n in _HIST_NAMES)

    def add(self, other, scale=1.0):
        """Add ``scale`` times the histograms of ``other`` to this universe."""
        if self.shapes() != other.shapes():
            raise ValueError(
                f"Histogram shape mismatch between universes {self.name!r} "
                f"and {other.name!r}"
            )
        for hist_name in _HIST_NAMES:
            setattr(
                self,
                hist_name,
                getattr(self, hist_name) + scale * getattr(other, hist_name),
            )
            self.sumw2[hist_name] = (
                self.sumw2[hist_name] + scale * scale * other.sumw2[hist_name]
            )