import logging

from .basis import (BasisEvaluator,
                    blend_order,
                    bspline_basis,
                    bspline_basis_tensor,
                    check_knots,
                    check_order,
                    indicator_basis,
                    uniform_knots)
from .penalty import difference_matrix, difference_penalty
from .fitter import PenalizedFitter, PSplineSmoother, penalized_lstsq
from .estimator import PSplineRegressor
from .exceptions import (DimensionMismatch,
                         InvalidKnots,
                         InvalidOrder,
                         PSplineError,
                         SingularSystem)

__version__ = "0.0.1"

logging.getLogger(__name__).addHandler(logging.NullHandler())
