"""Matrix helpers: checked inversion and direct sums."""

import numpy as np

DEFAULT_MATRIX_INVERSION_TOLERANCE = 1e-4


def invert_matrix(matrix, inversion_tolerance=DEFAULT_MATRIX_INVERSION_TOLERANCE):
    """Invert a square matrix, checking that the result reproduces the identity.

    Raises ValueError if the matrix is not square, is singular, or if any
    element of ``matrix @ inverse`` differs from the identity by more than
    ``inversion_tolerance``.
    """
    mat = np.asarray(matrix, dtype=float)
    if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
        raise ValueError("Cannot invert a non-square matrix")

    n = mat.shape[0]
    identity = np.eye(n)
    try:
        q, r = np.linalg.qr(mat)
        inverse = np.linalg.solve(r, q.T)
    except np.linalg.LinAlgError as err:
        raise ValueError("Matrix inversion failed") from err

    if not np.all(np.isfinite(inverse)):
        raise ValueError("Matrix inversion failed")

    deviation = np.abs(mat @ inverse - identity)
    if n and deviation.max() > inversion_tolerance:
        raise ValueError(
            "Matrix inversion exceeded the allowed tolerance "
            f"({deviation.max():g} > {inversion_tolerance:g})"
        )
    return inverse


def direct_sum(*args):
    """Return the block-diagonal direct sum of the given 2D matrices."""
    blocks = [np.atleast_2d(np.asarray(m, dtype=float)) for m in args]
    for block in blocks:
        if block.ndim != 2:
            raise ValueError("direct_sum requires two-dimensional matrices")

    rows = sum(b.shape[0] for b in blocks)
    cols = sum(b.shape[1] for b in blocks)
    result = np.zeros((rows, cols))

    r0 = c0 = 0
    for block in blocks:
        nr, nc = block.shape
        result[r0:r0 + nr, c0:c0 + nc] = block
        r0 += nr
        c0 += nc
    return result