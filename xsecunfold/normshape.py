"""Decomposition of covariance matrices into norm, shape and mixed pieces."""

import logging
from dataclasses import dataclass, field

import numpy as np

from xsecunfold.bins import TrueBinType

logger = logging.getLogger(__name__)


def _empty():
    return np.zeros((0, 0))


@dataclass
class NormShapeCovMatrix:
    """Normalization, shape and mixed components of a covariance matrix."""

    mixed: np.ndarray = field(default_factory=_empty)
    norm: np.ndarray = field(default_factory=_empty)
    shape: np.ndarray = field(default_factory=_empty)
    mixed_plus_shape: np.ndarray = field(default_factory=_empty)


def _as_column_values(prediction):
    pred = np.asarray(prediction, dtype=float)
    if pred.ndim == 2:
        if pred.shape[1] != 1:
            raise ValueError("Prediction must be a column vector")
        return pred[:, 0]
    if pred.ndim == 1:
        return pred
    raise ValueError("Prediction must be a column vector")


def decompose_norm_shape(prediction, cov_matrix):
    """Split a covariance matrix into norm, shape and mixed components."""
    n = _as_column_values(prediction)
    m = np.asarray(cov_matrix, dtype=float)
    size = n.shape[0]
    if m.ndim != 2 or m.shape != (size, size):
        raise ValueError(
            "Invalid matrix dimensions encountered in norm/shape decomposition"
        )

    total = n.sum()
    m_total = m.sum()
    row_sums = m.sum(axis=1)
    col_sums = m.sum(axis=0)

    with np.errstate(divide="ignore", invalid="ignore"):
        row_term = np.outer(row_sums, n) / total
        col_term = np.outer(n, col_sums) / total
        norm = np.outer(n, n) * m_total / total / total

    shape = m - row_term - col_term + norm
    mixed = row_term + col_term - 2.0 * norm
    return NormShapeCovMatrix(
        mixed=mixed, norm=norm, shape=shape, mixed_plus_shape=shape + mixed
    )


def make_block_diagonal_norm_shape_covmat(unfolded_signal, unfolded_covmat, true_bins):
    """Decompose each signal block separately and assemble block-diagonal results."""
    signal = _as_column_values(unfolded_signal)
    covmat = np.asarray(unfolded_covmat, dtype=float)

    block_map = {}
    for tb, tbin in enumerate(true_bins):
        if tbin.bin_type == TrueBinType.SIGNAL:
            block_map.setdefault(tbin.block_index, []).append(tb)

    num_signal = sum(len(indices) for indices in block_map.values())
    result = NormShapeCovMatrix(
        mixed=np.zeros((num_signal, num_signal)),
        norm=np.zeros((num_signal, num_signal)),
        shape=np.zeros((num_signal, num_signal)),
    )

    logger.debug("Creating norm/shape covariance matrices for %d block(s)", len(block_map))

    for block_index in sorted(block_map):
        indices = block_map[block_index]
        logger.debug("Norm/shape decomposition for block %d", block_index)
        sel = np.ix_(indices, indices)
        decomp = decompose_norm_shape(signal[indices], covmat[sel])
        result.norm[sel] = decomp.norm
        result.shape[sel] = decomp.shape
        result.mixed[sel] = decomp.mixed

    result.mixed_plus_shape = result.shape + result.mixed
    return result