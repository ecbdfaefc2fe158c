"""Exceptions raised by basis evaluation and penalized fitting."""

import numpy as np


class PSplineError(Exception):
    """Base exception for all pspline errors."""

    pass


class InvalidOrder(PSplineError, ValueError):
    """Raised when the spline order is invalid.

    This occurs when:
    - Order is not an integer
    - Order is less than 1
    - Order exceeds the number of knots minus one
    """

    pass


class InvalidKnots(PSplineError, ValueError):
    """Raised when a knot sequence is unusable.

    This occurs when:
    - Knots are not a one dimensional sequence
    - Knots contain NaN or infinite values
    - Knots decrease anywhere
    - Fewer than two knots are given
    """

    pass


class DimensionMismatch(PSplineError, ValueError):
    """Raised when basis, response, penalty or weight shapes disagree."""

    pass


class SingularSystem(PSplineError, np.linalg.LinAlgError):
    """Raised when the penalized normal equations cannot be solved.

    Typically ``lamval == 0`` with a basis matrix that is not of full
    column rank, e.g. when some basis functions see no observations.
    """

    pass
