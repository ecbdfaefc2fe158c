import logging
from dataclasses import dataclass, field

import numpy as np
from scipy.linalg import cho_factor, cho_solve
from scipy.optimize import brentq

from .basis import BasisEvaluator, check_knots, uniform_knots
from .exceptions import DimensionMismatch, SingularSystem
from .penalty import difference_matrix, difference_penalty

logger = logging.getLogger(__name__)


def _check_lamval(lamval):
    lamval = float(lamval)
    if not np.isfinite(lamval) or lamval < 0:
        raise ValueError(f"Penalty weight must be finite and non-negative, got {lamval}.")
    return lamval


def _factor(M):
    """
    Cholesky factor of the penalized normal equations.
    """
    try:
        c_and_lower = cho_factor(M, lower=False)
    except np.linalg.LinAlgError as e:
        raise SingularSystem(
            f"Penalized system of size {M.shape[0]} is not positive definite."
        ) from e

    # pivot ratio squared bounds the condition number from below
    pivots = np.abs(np.diag(c_and_lower[0]))
    tol = np.sqrt(M.shape[0] * np.finfo(float).eps)
    if pivots.min() <= tol * pivots.max():
        raise SingularSystem(
            f"Penalized system of size {M.shape[0]} is numerically singular "
            f"(pivot ratio {pivots.min() / pivots.max():.3g})."
        )
    return c_and_lower


@dataclass
class PenalizedFitter:
    """
    Ridge penalized least squares on a fixed basis.

    Minimizes ``||W^(1/2) (y - B alpha)||^2 + lamval ||D alpha||^2``
    through the normal equations ``(B'WB + lamval D'D) alpha = B'Wy``.

    Parameters
    ----------
    B : np.ndarray
        Basis matrix of shape ``(n, K)``.
    lamval : float
        Non-negative penalty weight.
    D : np.ndarray, optional
        Penalty matrix with `K` columns. Defaults to the square first
        difference matrix.
    w : np.ndarray, optional
        Non-negative observation weights of length `n`.
    """

    B: np.ndarray
    lamval: float
    D: np.ndarray = None
    w: np.ndarray = None

    alpha_: np.ndarray = field(init=False, default=None, repr=False)
    fitted_: np.ndarray = field(init=False, default=None, repr=False)

    def __post_init__(self):
        self.B = np.asarray(self.B, dtype=float)
        if self.B.ndim != 2:
            raise DimensionMismatch(f"Basis matrix must be 2D, got shape {self.B.shape}.")
        n, K = self.B.shape
        if K == 0:
            raise DimensionMismatch("Basis matrix has no columns.")

        if self.D is None:
            self.D = difference_matrix(K)
        self.D = np.asarray(self.D, dtype=float)
        if self.D.ndim != 2 or self.D.shape[1] != K:
            raise DimensionMismatch(
                f"Penalty matrix has shape {self.D.shape}, expected {K} columns."
            )

        self.lamval = _check_lamval(self.lamval)
        self._prepare_matrices(self.w)

    def _prepare_matrices(self, w):
        n = self.B.shape[0]
        if w is not None:
            w = np.asarray(w, dtype=float)
            if w.shape != (n,):
                raise DimensionMismatch(f"Weights have shape {w.shape}, expected ({n},).")
            if np.any(w < 0) or not np.all(np.isfinite(w)):
                raise ValueError("Weights must be finite and non-negative.")
            self.BTW_ = self.B.T * w
        else:
            self.BTW_ = self.B.T
        self.w = w
        self.BTWB_ = self.BTW_ @ self.B
        self.DTD_ = self.D.T @ self.D

    def update_weights(self, w):
        """
        Replace the observation weights.
        """
        self._prepare_matrices(w)
        self.alpha_ = self.fitted_ = None

    def _system(self, lamval):
        return self.BTWB_ + lamval * self.DTD_

    def fit(self, y):
        """
        Solve for the coefficients.

        Parameters
        ----------
        y : np.ndarray
            Response of length `n`.

        Returns
        -------
        self : PenalizedFitter
        """
        y = np.asarray(y, dtype=float)
        n, K = self.B.shape
        if y.shape != (n,):
            raise DimensionMismatch(f"Response has shape {y.shape}, expected ({n},).")

        logger.debug("solving penalized system of size %d, lamval=%g", K, self.lamval)
        c_and_lower = _factor(self._system(self.lamval))
        self.alpha_ = cho_solve(c_and_lower, self.BTW_ @ y)
        self.fitted_ = self.B @ self.alpha_
        return self

    def fitted(self, alpha=None):
        """
        Fitted curve ``B @ alpha`` at the observation points.
        """
        if alpha is None:
            if self.alpha_ is None:
                raise ValueError("Model has not been fitted yet. Call fit(y) first.")
            alpha = self.alpha_
        return self.B @ np.asarray(alpha, dtype=float)

    def compute_df(self, lamval=None):
        """
        Effective degrees of freedom, the trace of the hat matrix.

        Equal to ``trace((B'WB + lamval D'D)^-1 B'WB)``.
        """
        if lamval is None:
            lamval = self.lamval
        lamval = _check_lamval(lamval)
        c_and_lower = _factor(self._system(lamval))
        return np.trace(cho_solve(c_and_lower, self.BTWB_))


def penalized_lstsq(B, y, lamval, D=None, w=None):
    """
    Coefficients of a ridge penalized least squares fit.

    Solves ``(B'B + lamval D'D) alpha = B'y`` by a Cholesky factorization.

    Parameters
    ----------
    B : np.ndarray
        Basis matrix of shape ``(n, K)``.
    y : np.ndarray
        Response of length `n`.
    lamval : float
        Non-negative penalty weight.
    D : np.ndarray, optional
        Penalty matrix with `K` columns, by default the square first
        difference matrix.
    w : np.ndarray, optional
        Observation weights.

    Returns
    -------
    np.ndarray
        Coefficient vector of length `K`.

    Raises
    ------
    DimensionMismatch
        If the shapes of `B`, `y`, `D` or `w` are inconsistent.
    SingularSystem
        If ``B'B + lamval D'D`` is singular within numerical tolerance.
    """
    return PenalizedFitter(B, lamval, D=D, w=w).fit(y).alpha_


@dataclass
class PSplineSmoother:
    """
    P-spline smoother: a B-spline basis with a difference penalty on the
    coefficients.

    Parameters
    ----------
    x : np.ndarray
        The predictor variable.
    w : np.ndarray, optional
        Weights for the observations.
    lamval : float, optional
        The penalty weight. If neither `lamval` nor `df` is given it is 0.
    df : float, optional
        Target effective degrees of freedom; `lamval` is solved to match.
    knots : np.ndarray, optional
        The full knot sequence. If not specified, equally spaced knots over
        the range of `x` are used.
    n_segments : int, optional
        Number of knot intervals spanning the range of `x` when `knots` is
        not given. Default is 20.
    order : int, optional
        The order of the B-spline (default is 4 for cubic B-splines).
    penalty_order : int, optional
        Order of the coefficient differences penalized. 1 uses the square
        first difference matrix.
    """

    x: np.ndarray
    w: np.ndarray = None
    lamval: float = None
    df: float = None
    knots: np.ndarray = None
    n_segments: int = None
    order: int = 4
    penalty_order: int = 1

    evaluator_: BasisEvaluator = field(init=False, default=None, repr=False)
    _fitter: PenalizedFitter = field(init=False, default=None, repr=False)

    y: np.ndarray = field(init=False, default=None, repr=False)
    alpha_: np.ndarray = field(init=False, default=None, repr=False)
    coef_: float = field(init=False, default=None)
    intercept_: float = field(init=False, default=None)

    def __post_init__(self):
        if self.lamval is not None and self.df is not None:
            raise ValueError("Only one of `lamval` or `df` can be provided.")

        self.x = np.asarray(self.x, dtype=float)
        if self.x.ndim != 1:
            raise DimensionMismatch(f"x must be one dimensional, got shape {self.x.shape}.")
        if self.w is not None:
            self.w = np.asarray(self.w, dtype=float)

        self._setup_knots()
        self._prepare_matrices()

        if self.df is not None:
            self.lamval = self._find_lamval_for_df(self.df)
        elif self.lamval is None:
            self.lamval = 0.0
        self._fitter.lamval = _check_lamval(self.lamval)

    def _setup_knots(self):
        if self.knots is None:
            if self.n_segments is None:
                self.n_segments = 20
            self.knots = uniform_knots(self.x.min(), self.x.max(),
                                       self.n_segments, self.order)
        else:
            self.knots = check_knots(self.knots)
        self.evaluator_ = BasisEvaluator(self.knots, self.order)

    def _penalty(self):
        n_basis = self.evaluator_.n_basis
        if self.penalty_order == 1:
            return difference_matrix(n_basis)
        return difference_penalty(n_basis, self.penalty_order)

    def _prepare_matrices(self):
        N = self.evaluator_.evaluate(self.x)
        self._fitter = PenalizedFitter(N, 0.0, D=self._penalty(), w=self.w)

    @property
    def N_(self):
        return self._fitter.B

    @property
    def D_(self):
        return self._fitter.D

    def compute_df(self, lamval=None):
        """
        Compute the degrees of freedom for a given lambda.
        """
        if lamval is None:
            lamval = self.lamval
        return self._fitter.compute_df(lamval)

    def _find_lamval_for_df(self, target_df, log10_lam_bounds=(-8, 8)):
        """
        Finds the lambda value that yields the target degrees of freedom.
        """
        n_basis = self.evaluator_.n_basis
        min_df = 0 if self.penalty_order == 1 else self.penalty_order
        if target_df >= n_basis - 0.01:
            raise ValueError(f"Target DF ({target_df}) too high. Max is roughly {n_basis}.")
        if target_df <= min_df + 0.01:
            raise ValueError(f"Target DF ({target_df}) too low. Min is {min_df}.")

        def df_error_func(log_lam):
            return self.compute_df(10 ** log_lam) - target_df

        try:
            log_lam_opt = brentq(df_error_func, log10_lam_bounds[0], log10_lam_bounds[1])
        except ValueError as e:
            raise RuntimeError(
                "Could not find root in the given bounds. This usually means "
                "the target DF is effectively unreachable or bounds need expanding."
            ) from e

        lamval = 10 ** log_lam_opt
        logger.debug("lamval %g gives df %g", lamval, target_df)
        return lamval

    def update_weights(self, w):
        """
        Update the weights, re-solving for `lamval` if `df` was given.
        """
        # the fitter validates before anything is replaced
        self._fitter.update_weights(w)
        self.w = self._fitter.w
        if self.df is not None:
            self.lamval = self._find_lamval_for_df(self.df)
            self._fitter.lamval = self.lamval
        if self.y is not None:
            self.smooth(self.y)

    def smooth(self, y, sample_weight=None):
        """
        Fit the P-spline to the response `y`.

        Parameters
        ----------
        y : np.ndarray
            Response variable.
        sample_weight : np.ndarray, optional
            Observation weights. If provided, replaces the instance weights.

        Returns
        -------
        self : PSplineSmoother
        """
        if sample_weight is not None:
            self._fitter.update_weights(sample_weight)
            self.w = self._fitter.w
            if self.df is not None:
                self.lamval = self._find_lamval_for_df(self.df)

        self.y = np.asarray(y, dtype=float)
        self._fitter.lamval = _check_lamval(self.lamval)
        self.alpha_ = self._fitter.fit(self.y).alpha_

        # linear trend of the fitted curve
        y_hat = self._fitter.fitted_
        w_eff = np.sqrt(self.w) if self.w is not None else np.ones(len(self.x))

        X = np.vander(self.x, 2)
        Xw = X * w_eff[:, None]
        yw = y_hat * w_eff
        beta = np.linalg.lstsq(Xw, yw, rcond=None)[0]

        self.intercept_ = beta[1]
        self.coef_ = beta[0]
        return self

    def predict(self, x):
        """
        Predict the response for a new set of predictor variables.

        Parameters
        ----------
        x : np.ndarray
            The predictor variables. Points outside the knot span
            predict 0.

        Returns
        -------
        np.ndarray
            The predicted response.
        """
        if self.alpha_ is None:
            raise ValueError("Model has not been fitted yet. Call smooth(y) first.")
        return self.evaluator_.evaluate(x) @ self.alpha_

    @property
    def fitted_(self):
        return self._fitter.fitted_

    @property
    def nonlinear_(self):
        """
        The non-linear component of the fitted spline.
        """
        if self.coef_ is None:
            return None
        linear_part = self.coef_ * self.x + self.intercept_
        return self.fitted_ - linear_part
