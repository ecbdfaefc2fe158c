from dataclasses import dataclass, field

import numpy as np
from sklearn.base import BaseEstimator, RegressorMixin

from .exceptions import DimensionMismatch
from .fitter import PSplineSmoother


def _as_column(X):
    X = np.asarray(X, dtype=float)
    if X.ndim == 2:
        if X.shape[1] != 1:
            raise DimensionMismatch(f"Expected a single feature, got {X.shape[1]}.")
        X = X[:, 0]
    elif X.ndim != 1:
        raise DimensionMismatch(f"Expected 1D or single column 2D input, got shape {X.shape}.")
    return X


@dataclass
class PSplineRegressor(RegressorMixin, BaseEstimator):
    """
    Penalized B-spline regression estimator.

    Parameters
    ----------
    lamval : float, optional
        The penalty weight. Ignored when `df` is given.
    df : float, optional
        The desired effective degrees of freedom, used to choose `lamval`.
    n_segments : int, optional
        Number of equally spaced knot intervals over the range of `X`.
    order : int, optional
        B-spline order, 4 for cubic.
    penalty_order : int, optional
        Order of the coefficient differences penalized.

    Attributes
    ----------
    fitter_ : PSplineSmoother
        The fitted smoother holding the basis, coefficients and linear
        components.
    """

    lamval: float = 1.0
    df: float = None
    n_segments: int = 20
    order: int = 4
    penalty_order: int = 1
    fitter_: PSplineSmoother = field(init=False, default=None, repr=False)

    def fit(self, X, y, sample_weight=None):
        """
        Fit the P-spline to the data.

        Parameters
        ----------
        X : np.ndarray
            The predictor, 1D or a single column.
        y : np.ndarray
            The response variable.
        sample_weight : np.ndarray, optional
            Weights for the observations.

        Returns
        -------
        self : PSplineRegressor
            The fitted estimator.
        """
        x = _as_column(X)
        self.fitter_ = PSplineSmoother(x,
                                       w=sample_weight,
                                       lamval=None if self.df is not None else self.lamval,
                                       df=self.df,
                                       n_segments=self.n_segments,
                                       order=self.order,
                                       penalty_order=self.penalty_order)
        self.fitter_.smooth(y)
        return self

    def predict(self, X):
        """
        Predict the response for new predictor values.
        """
        if self.fitter_ is None:
            raise ValueError("Model has not been fitted yet. Call fit(X, y) first.")
        return self.fitter_.predict(_as_column(X))
