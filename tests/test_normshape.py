import numpy as np
import pytest

from xsecunfold.bins import TrueBin, TrueBinType
from xsecunfold.normshape import (
    decompose_norm_shape,
    make_block_diagonal_norm_shape_covmat,
)

PRED = np.array([[10.0], [20.0], [30.0]])
COV = np.array([[4.0, 1.0, 0.5], [1.0, 9.0, 2.0], [0.5, 2.0, 16.0]])


def test_components_sum_to_original():
    d = decompose_norm_shape(PRED, COV)
    np.testing.assert_allclose(d.norm + d.shape + d.mixed, COV)
    np.testing.assert_allclose(d.mixed_plus_shape, d.shape + d.mixed)


def test_shape_has_zero_total_and_norm_carries_total():
    d = decompose_norm_shape(PRED, COV)
    assert d.shape.sum() == pytest.approx(0.0, abs=1e-10)
    assert d.mixed.sum() == pytest.approx(0.0, abs=1e-10)
    assert d.norm.sum() == pytest.approx(COV.sum())


def test_shape_rows_sum_to_zero():
    d = decompose_norm_shape(PRED, COV)
    np.testing.assert_allclose(d.shape.sum(axis=1), 0.0, atol=1e-10)


def test_fully_correlated_normalization_has_no_shape():
    pred = np.array([1.0, 2.0, 3.0])
    cov = np.outer(pred, pred) * 0.01
    d = decompose_norm_shape(pred, cov)
    np.testing.assert_allclose(d.shape, 0.0, atol=1e-12)
    np.testing.assert_allclose(d.norm, cov)


def test_dimension_mismatch_raises():
    with pytest.raises(ValueError):
        decompose_norm_shape(PRED, np.eye(2))


def test_non_column_prediction_raises():
    with pytest.raises(ValueError):
        decompose_norm_shape(np.ones((3, 2)), COV)


def test_block_diagonal_decomposition():
    signal = np.array([[10.0], [20.0], [30.0], [40.0]])
    cov = np.array(
        [
            [4.0, 1.0, 0.3, 0.2],
            [1.0, 9.0, 0.1, 0.4],
            [0.3, 0.1, 16.0, 3.0],
            [0.2, 0.4, 3.0, 25.0],
        ]
    )
    true_bins = [
        TrueBin("", TrueBinType.SIGNAL, 0),
        TrueBin("", TrueBinType.SIGNAL, 0),
        TrueBin("", TrueBinType.SIGNAL, 1),
        TrueBin("", TrueBinType.SIGNAL, 1),
        TrueBin("", TrueBinType.BACKGROUND, 0),
    ]
    result = make_block_diagonal_norm_shape_covmat(signal, cov, true_bins)
    assert result.norm.shape == (4, 4)

    first = decompose_norm_shape(signal[:2], cov[:2, :2])
    second = decompose_norm_shape(signal[2:], cov[2:, 2:])
    np.testing.assert_allclose(result.norm[:2, :2], first.norm)
    np.testing.assert_allclose(result.shape[2:, 2:], second.shape)
    np.testing.assert_allclose(result.mixed[2:, 2:], second.mixed)
    for m in (result.norm, result.shape, result.mixed):
        np.testing.assert_array_equal(m[:2, 2:], 0.0)
        np.testing.assert_array_equal(m[2:, :2], 0.0)
    np.testing.assert_allclose(result.mixed_plus_shape, result.mixed + result.shape)


def test_single_block_matches_full_decomposition():
    true_bins = [TrueBin("", TrueBinType.SIGNAL, 3) for _ in range(3)]
    result = make_block_diagonal_norm_shape_covmat(PRED, COV, true_bins)
    full = decompose_norm_shape(PRED, COV)
    np.testing.assert_allclose(result.norm, full.norm)
    np.testing.assert_allclose(result.shape, full.shape)
    np.testing.assert_allclose(result.mixed, full.mixed)