import numpy as np
import pytest

from xsecunfold.matrix_utils import direct_sum, invert_matrix


def test_inverse_reproduces_identity():
    mat = np.array([[4.0, 1.0, 0.5], [1.0, 3.0, 0.2], [0.5, 0.2, 2.0]])
    inv = invert_matrix(mat, 1e-8)
    np.testing.assert_allclose(mat @ inv, np.eye(3), atol=1e-10)
    np.testing.assert_allclose(inv @ mat, np.eye(3), atol=1e-10)


def test_inverse_of_diagonal():
    inv = invert_matrix(np.diag([2.0, 4.0]))
    np.testing.assert_allclose(inv, np.diag([0.5, 0.25]))


def test_singular_matrix_raises():
    with pytest.raises(ValueError):
        invert_matrix(np.array([[1.0, 2.0], [2.0, 4.0]]))


def test_non_square_raises():
    with pytest.raises(ValueError):
        invert_matrix(np.ones((2, 3)))


def test_direct_sum_of_two_matrices():
    a = np.array([[1.0, 2.0], [3.0, 4.0]])
    b = np.array([[5.0]])
    result = direct_sum(a, b)
    assert result.shape == (3, 3)
    np.testing.assert_array_equal(result[:2, :2], a)
    np.testing.assert_array_equal(result[2:, 2:], b)
    assert result[:2, 2:].sum() == 0.0
    assert result[2:, :2].sum() == 0.0


def test_direct_sum_of_rectangular_blocks():
    a = np.ones((2, 3))
    b = np.full((1, 2), 7.0)
    c = np.eye(2)
    result = direct_sum(a, b, c)
    assert result.shape == (5, 7)
    np.testing.assert_array_equal(result[2:3, 3:5], b)
    np.testing.assert_array_equal(result[3:, 5:], c)
    assert result.sum() == a.sum() + b.sum() + c.sum()


def test_direct_sum_of_nothing_is_empty():
    assert direct_sum().shape == (0, 0)