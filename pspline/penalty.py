import numbers

import numpy as np


def _check_n_basis(n_basis):
    if not isinstance(n_basis, numbers.Integral) or n_basis < 1:
        raise ValueError(f"n_basis must be a positive integer, got {n_basis!r}.")
    return int(n_basis)


def difference_matrix(n_basis):
    """
    Square first difference matrix.

    ``D[0, 0] = 1``, ``D[i, i] = 1`` and ``D[i, i - 1] = -1`` for ``i > 0``,
    so ``D @ alpha`` is ``alpha[0]`` followed by the successive
    differences of `alpha`. `D` is invertible, hence ``D.T @ D`` is
    positive definite.

    Parameters
    ----------
    n_basis : int
        Number of coefficients.

    Returns
    -------
    np.ndarray
        Array of shape ``(n_basis, n_basis)``.
    """
    n_basis = _check_n_basis(n_basis)
    return np.eye(n_basis) - np.eye(n_basis, k=-1)


def difference_penalty(n_basis, order=1):
    """
    Difference operator of a given order, shape ``(n_basis - order, n_basis)``.

    The null space of ``D.T @ D`` is the polynomials of degree ``order - 1``
    in the coefficient index, which are left unpenalized.
    """
    n_basis = _check_n_basis(n_basis)
    if not isinstance(order, numbers.Integral) or not 1 <= order < n_basis:
        raise ValueError(
            f"Difference order must be in [1, {n_basis - 1}], got {order!r}."
        )
    return np.diff(np.eye(n_basis), n=order, axis=0)
