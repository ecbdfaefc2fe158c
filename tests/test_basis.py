import numpy as np
import pytest
from scipy.interpolate import BSpline

from pspline.basis import (BasisEvaluator,
                           blend_order,
                           bspline_basis,
                           bspline_basis_tensor,
                           indicator_basis,
                           uniform_knots)
from pspline.exceptions import DimensionMismatch, InvalidKnots, InvalidOrder


def scipy_basis(knots, x, order):
    n_basis = len(knots) - order
    N = np.zeros((len(x), n_basis))
    for i in range(n_basis):
        c = np.zeros(n_basis)
        c[i] = 1.0
        spl = BSpline(knots, c, order - 1)
        N[:, i] = spl(x)
    return N


def random_knots(rng, n_knots=12):
    return np.sort(rng.uniform(0, 10, n_knots))


@pytest.mark.parametrize("order", [1, 2, 3, 4, 5])
@pytest.mark.parametrize("uniform", [True, False])
def test_matches_scipy(order, uniform):
    rng = np.random.default_rng(0)
    if uniform:
        knots = np.linspace(0, 10, 12)
    else:
        knots = random_knots(rng)

    # base interval of scipy's BSpline
    lo, hi = knots[order - 1], knots[len(knots) - order]
    x = rng.uniform(lo, hi, 200)

    N = bspline_basis(knots, x, order)
    ref = scipy_basis(knots, x, order)

    assert N.shape == (200, len(knots) - order)
    np.testing.assert_allclose(N, ref, atol=1e-12)


@pytest.mark.parametrize("order", [1, 2, 3, 4, 6])
def test_local_support(order):
    rng = np.random.default_rng(1)
    knots = random_knots(rng)
    x = rng.uniform(knots[0] - 2, knots[-1] + 2, 500)

    N = bspline_basis(knots, x, order)
    assert np.all(N >= 0)
    for k in range(N.shape[1]):
        outside = (x <= knots[k]) | (x >= knots[k + order])
        np.testing.assert_array_equal(N[outside, k], 0)


@pytest.mark.parametrize("order", [1, 2, 3, 4, 5])
def test_partition_of_unity(order):
    rng = np.random.default_rng(2)
    knots = random_knots(rng, 15)
    lo, hi = knots[order - 1], knots[len(knots) - order]
    x = rng.uniform(lo, hi, 300)

    N = bspline_basis(knots, x, order)
    np.testing.assert_allclose(N.sum(1), 1, atol=1e-12)


def test_indicator_basis():
    rng = np.random.default_rng(3)
    knots = np.linspace(0, 1, 8)
    x = rng.uniform(0, 1, 100)

    N = indicator_basis(knots, x)
    assert N.shape == (100, 7)
    np.testing.assert_array_equal(N.sum(1), 1)
    assert set(np.unique(N)) == {0.0, 1.0}
    np.testing.assert_array_equal(N, bspline_basis(knots, x, order=1))


def test_indicator_half_open_right():
    knots = np.array([0., 1., 2.])
    N = indicator_basis(knots, [0., 1., 2.])
    expected = np.array([[1., 0.],
                         [0., 1.],
                         [0., 0.]])
    np.testing.assert_array_equal(N, expected)


@pytest.mark.parametrize("order", [2, 3, 4, 5, 6])
def test_recursion_consistency(order):
    rng = np.random.default_rng(4)
    knots = random_knots(rng)
    x = rng.uniform(knots[0] - 1, knots[-1] + 1, 100)

    lower = bspline_basis(knots, x, order - 1)
    np.testing.assert_allclose(blend_order(knots, x, lower, order),
                               bspline_basis(knots, x, order))


def test_tensor_slices():
    rng = np.random.default_rng(5)
    knots = random_knots(rng)
    x = rng.uniform(knots[0], knots[-1], 50)
    order = 4

    T = bspline_basis_tensor(knots, x, order)
    U = len(knots)
    assert T.shape == (50, U - 1, order)
    for m in range(1, order + 1):
        np.testing.assert_allclose(T[:, :U - m, m - 1], bspline_basis(knots, x, m))
        np.testing.assert_array_equal(T[:, U - m:, m - 1], 0)


def test_decile_knots_scenario():
    knots = np.arange(0, 101, 10, dtype=float)
    x = np.linspace(1.0, 99.0, 991)

    N = bspline_basis(knots, x, order=4)
    assert N.shape == (991, 7)

    interior = (x > 30) & (x < 70)
    np.testing.assert_allclose(N[interior].sum(1), 1, atol=1e-12)
    # outside the interior rows fall short of 1
    assert np.all(N[x < 29].sum(1) < 1)


def test_repeated_knots():
    knots = np.array([0., 1., 2., 2., 3., 4., 5.])
    x = np.array([0.5, 1.5, 2.0, 2.5, 3.5, 4.5])

    with np.errstate(all='raise'):
        for order in range(1, 5):
            N = bspline_basis(knots, x, order)
            assert np.all(np.isfinite(N))

    N2 = bspline_basis(knots, x, order=2)
    # zero width span [2, 2] drops the left term of column 2
    np.testing.assert_allclose(N2[:, 2], [0, 0, 1, 0.5, 0, 0])
    # and the right term of column 1
    np.testing.assert_allclose(N2[:, 1], [0, 0.5, 0, 0, 0, 0])


def test_repeated_knots_match_scipy():
    rng = np.random.default_rng(6)
    knots = np.array([0., 1., 2., 3., 3., 4., 5., 6.])
    x = rng.uniform(2, 4, 100)
    np.testing.assert_allclose(bspline_basis(knots, x, 3),
                               scipy_basis(knots, x, 3), atol=1e-12)


def test_all_knots_equal():
    with np.errstate(all='raise'):
        N = bspline_basis(np.ones(5), [0., 1., 2.], order=3)
    np.testing.assert_array_equal(N, 0)


def test_unsorted_points():
    rng = np.random.default_rng(7)
    knots = np.linspace(0, 1, 10)
    x = rng.uniform(-0.5, 1.5, 60)
    perm = rng.permutation(60)

    np.testing.assert_array_equal(bspline_basis(knots, x[perm]),
                                  bspline_basis(knots, x)[perm])
    np.testing.assert_array_equal(bspline_basis(knots, [-3., 7.]), 0)


def test_non_finite_points():
    knots = np.arange(0, 101, 10, dtype=float)
    x = np.array([np.inf, -np.inf, 1e308, -1e308, 50.])

    with np.errstate(all='raise'):
        N = bspline_basis(knots, x, order=4)
    assert np.all(np.isfinite(N))
    np.testing.assert_array_equal(N[:4], 0)
    np.testing.assert_allclose(N[4], bspline_basis(knots, [50.], order=4)[0])
    np.testing.assert_allclose(N[4].sum(), 1)

    np.testing.assert_array_equal(bspline_basis(knots, [np.nan]), 0)


def test_inputs_not_mutated():
    knots = [0., 1., 2., 3., 4., 5.]
    x = np.array([0.5, 2.5, 4.5])
    x_copy = x.copy()
    bspline_basis(knots, x, order=3)
    assert knots == [0., 1., 2., 3., 4., 5.]
    np.testing.assert_array_equal(x, x_copy)


@pytest.mark.parametrize("order", [0, -1, 2.5, True, 6, 10])
def test_invalid_order(order):
    knots = np.arange(6, dtype=float)
    with pytest.raises(InvalidOrder):
        bspline_basis(knots, [0.5], order)


@pytest.mark.parametrize("knots", [[0., 2., 1., 3., 4.],
                                   [0., 1., np.nan, 3., 4.],
                                   [[0., 1.], [2., 3.]],
                                   [1.],
                                   ['a', 'b', 'c']])
def test_invalid_knots(knots):
    with pytest.raises(InvalidKnots):
        bspline_basis(knots, [0.5], order=1)


def test_errors_are_value_errors():
    with pytest.raises(ValueError):
        bspline_basis([1., 0.], [0.5], order=1)
    with pytest.raises(ValueError):
        bspline_basis([0., 1.], [0.5], order=2)


def test_blend_order_shape_check():
    knots = np.arange(8, dtype=float)
    x = np.array([1.5, 2.5])
    with pytest.raises(DimensionMismatch):
        blend_order(knots, x, np.zeros((2, 3)), 3)
    with pytest.raises(InvalidOrder):
        blend_order(knots, x, indicator_basis(knots, x), 1)


@pytest.mark.parametrize("order", [1, 2, 3, 4])
def test_uniform_knots(order):
    knots = uniform_knots(-1, 3, 8, order)
    assert len(knots) == 8 + 2 * order - 1
    np.testing.assert_allclose(np.diff(knots), 0.5)
    np.testing.assert_allclose(knots[order - 1], -1)
    np.testing.assert_allclose(knots[len(knots) - order], 3)

    if order > 1:
        x = np.linspace(-1, 3, 101)
        N = bspline_basis(knots, x, order)
        assert N.shape[1] == 8 + order - 1
        np.testing.assert_allclose(N.sum(1), 1, atol=1e-10)


def test_uniform_knots_errors():
    with pytest.raises(InvalidKnots):
        uniform_knots(1, 1, 5)
    with pytest.raises(InvalidKnots):
        uniform_knots(0, 1, 0)
    with pytest.raises(InvalidOrder):
        uniform_knots(0, 1, 5, order=0)
    with pytest.raises(InvalidOrder):
        uniform_knots(0, 1, 5, order=True)
    with pytest.raises(InvalidOrder):
        uniform_knots(0, 1, 5, order=2.5)


def test_basis_evaluator():
    knots = np.linspace(0, 1, 11)
    evaluator = BasisEvaluator(knots)
    assert evaluator.order == 4
    assert evaluator.n_basis == 7

    x = np.linspace(0, 1, 25)
    np.testing.assert_array_equal(evaluator.evaluate(x), bspline_basis(knots, x, 4))
    assert evaluator.evaluate_all(x).shape == (25, 10, 4)
    np.testing.assert_allclose(evaluator.support(2), (0.2, 0.6))
    with pytest.raises(IndexError):
        evaluator.support(7)
    with pytest.raises(InvalidOrder):
        BasisEvaluator(knots, order=11)
