import logging
import numbers
from dataclasses import dataclass, field

import numpy as np

from .exceptions import DimensionMismatch, InvalidKnots, InvalidOrder

logger = logging.getLogger(__name__)


def check_knots(knots):
    """
    Validate a knot sequence and return it as a float array.

    Parameters
    ----------
    knots : array-like
        Candidate knot sequence.

    Returns
    -------
    np.ndarray
        A fresh 1D float copy of `knots`.
    """
    try:
        knots = np.array(knots, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidKnots(f"Knots must be numeric: {e}") from e
    if knots.ndim != 1:
        raise InvalidKnots(f"Knots must be one dimensional, got shape {knots.shape}.")
    if knots.shape[0] < 2:
        raise InvalidKnots(f"At least 2 knots are required, got {knots.shape[0]}.")
    if not np.all(np.isfinite(knots)):
        raise InvalidKnots("Knots must be finite.")
    if np.any(np.diff(knots) < 0):
        raise InvalidKnots("Knots must be non-decreasing.")
    return knots


def _check_positive_order(order):
    if isinstance(order, (bool, np.bool_)) or not isinstance(order, numbers.Integral):
        raise InvalidOrder(f"Order must be an integer, got {order!r}.")
    order = int(order)
    if order < 1:
        raise InvalidOrder(f"Order must be at least 1, got {order}.")
    return order


def check_order(order, n_knots):
    """
    Validate a spline order against the number of knots.

    The order `d` is one more than the polynomial degree, so ``order=4``
    is a cubic spline. Valid orders are ``1 <= d <= n_knots - 1``.
    """
    order = _check_positive_order(order)
    if order > n_knots - 1:
        raise InvalidOrder(
            f"Order {order} needs at least {order + 1} knots, got {n_knots}."
        )
    return order


def _as_points(x):
    x = np.atleast_1d(np.asarray(x, dtype=float))
    if x.ndim != 1:
        raise DimensionMismatch(f"Points must be one dimensional, got shape {x.shape}.")
    return x


def _indicator(knots, x):
    # half-open on the right: u_k <= x < u_{k+1}
    inside = (x[:, None] >= knots[None, :-1]) & (x[:, None] < knots[None, 1:])
    return inside.astype(float)


def _blend(knots, x, lower, order):
    n_cols = knots.shape[0] - order

    left_den = knots[order - 1:order - 1 + n_cols] - knots[:n_cols]
    right_den = knots[order:] - knots[1:n_cols + 1]
    left_num = x[:, None] - knots[None, :n_cols]
    right_num = knots[None, order:] - x[:, None]

    # zero-width spans and zero lower order terms contribute nothing
    left = np.divide(left_num, left_den, out=np.zeros_like(left_num),
                     where=(left_den > 0) & (lower[:, :-1] != 0))
    right = np.divide(right_num, right_den, out=np.zeros_like(right_num),
                      where=(right_den > 0) & (lower[:, 1:] != 0))

    return left * lower[:, :-1] + right * lower[:, 1:]


def indicator_basis(knots, x):
    """
    Order 1 B-spline basis.

    Column `k` is 1 where ``knots[k] <= x < knots[k+1]`` and 0 elsewhere.

    Parameters
    ----------
    knots : array-like
        Non-decreasing knot sequence of length `U`.
    x : array-like
        Evaluation points.

    Returns
    -------
    np.ndarray
        Array of shape ``(len(x), U - 1)``.
    """
    knots = check_knots(knots)
    return _indicator(knots, _as_points(x))


def blend_order(knots, x, lower, order):
    """
    One step of the Cox-de Boor recursion.

    Combines adjacent columns of the order ``order - 1`` basis `lower`
    into the order `order` basis.

    Parameters
    ----------
    knots : array-like
        Non-decreasing knot sequence of length `U`.
    x : array-like
        Evaluation points, the same ones `lower` was computed at.
    lower : np.ndarray
        Basis of order ``order - 1``, shape ``(len(x), U - order + 1)``.
    order : int
        Target order, at least 2.

    Returns
    -------
    np.ndarray
        Basis of order `order`, shape ``(len(x), U - order)``.
    """
    knots = check_knots(knots)
    order = check_order(order, knots.shape[0])
    if order < 2:
        raise InvalidOrder("The recursion starts at order 2; use indicator_basis for order 1.")
    x = _as_points(x)
    lower = np.asarray(lower, dtype=float)
    expected = (x.shape[0], knots.shape[0] - order + 1)
    if lower.shape != expected:
        raise DimensionMismatch(
            f"Lower order basis has shape {lower.shape}, expected {expected}."
        )
    return _blend(knots, x, lower, order)


def bspline_basis(knots, x, order=4):
    """
    Evaluate the B-spline basis matrix by the Cox-de Boor recursion.

    Orders are built up one at a time from the indicator basis, keeping
    only the previous order's matrix.

    Parameters
    ----------
    knots : array-like
        Non-decreasing knot sequence of length `U`. Repeated knots are
        allowed.
    x : array-like
        Evaluation points. Need not be sorted or lie within the knots;
        points outside ``[knots[0], knots[-1])`` get an all-zero row.
    order : int, optional
        Spline order `d` (degree + 1). Default is 4 (cubic).

    Returns
    -------
    np.ndarray
        Basis matrix of shape ``(len(x), U - d)``. Column `k` is non-zero
        only inside ``(knots[k], knots[k + d])``.
    """
    knots = check_knots(knots)
    order = check_order(order, knots.shape[0])
    x = _as_points(x)

    basis = _indicator(knots, x)
    for m in range(2, order + 1):
        basis = _blend(knots, x, basis, m)

    logger.debug("evaluated order %d basis at %d points: shape %s",
                 order, x.shape[0], basis.shape)
    return basis


def bspline_basis_tensor(knots, x, order=4):
    """
    Evaluate every level of the Cox-de Boor recursion.

    Returns
    -------
    np.ndarray
        Array of shape ``(len(x), U - 1, order)``. The order `m` basis
        occupies ``T[:, :U - m, m - 1]``; the remaining columns of that
        slice are zero.
    """
    knots = check_knots(knots)
    order = check_order(order, knots.shape[0])
    x = _as_points(x)
    n_knots = knots.shape[0]

    tensor = np.zeros((x.shape[0], n_knots - 1, order))
    basis = _indicator(knots, x)
    tensor[:, :, 0] = basis
    for m in range(2, order + 1):
        basis = _blend(knots, x, basis, m)
        tensor[:, :n_knots - m, m - 1] = basis
    return tensor


def uniform_knots(x_min, x_max, n_segments, order=4):
    """
    Equally spaced knots covering ``[x_min, x_max]``.

    The range is cut into `n_segments` segments and the grid is extended
    by ``order - 1`` segments on either side, so that the basis sums to
    one everywhere on ``[x_min, x_max]``.

    Returns
    -------
    np.ndarray
        ``n_segments + 2 * order - 1`` knots, giving
        ``n_segments + order - 1`` basis functions.
    """
    order = _check_positive_order(order)
    if not isinstance(n_segments, numbers.Integral) or n_segments < 1:
        raise InvalidKnots(f"n_segments must be a positive integer, got {n_segments!r}.")
    if not (np.isfinite(x_min) and np.isfinite(x_max)) or x_max <= x_min:
        raise InvalidKnots(f"Need finite x_min < x_max, got [{x_min}, {x_max}].")

    dx = (x_max - x_min) / n_segments
    return x_min + dx * np.arange(-(order - 1), n_segments + order)


@dataclass
class BasisEvaluator:
    """
    B-spline basis of a fixed knot sequence and order.

    Parameters
    ----------
    knots : np.ndarray
        Non-decreasing knot sequence.
    order : int, optional
        Spline order (degree + 1). Default is 4 (cubic).
    """

    knots: np.ndarray
    order: int = 4

    n_basis: int = field(init=False, default=0)

    def __post_init__(self):
        self.knots = check_knots(self.knots)
        self.order = check_order(self.order, self.knots.shape[0])
        self.n_basis = self.knots.shape[0] - self.order

    def evaluate(self, x):
        """
        Basis matrix at `x`, shape ``(len(x), n_basis)``.
        """
        return bspline_basis(self.knots, x, self.order)

    def evaluate_all(self, x):
        """
        All recursion levels at `x`, see `bspline_basis_tensor`.
        """
        return bspline_basis_tensor(self.knots, x, self.order)

    def support(self, k):
        """
        Open interval outside of which basis function `k` vanishes.
        """
        if not 0 <= k < self.n_basis:
            raise IndexError(f"Basis index {k} out of range for {self.n_basis} functions.")
        return self.knots[k], self.knots[k + self.order]
