import numpy as np
import pytest

from mriquant.polynomial import Polynomial, choose


def test_choose_known_values():
    assert choose(5, 2) == 10
    assert choose(7, 0) == 1
    assert choose(2, 5) == 0


@pytest.mark.parametrize("n", range(1, 12))
def test_choose_pascal_identity(n):
    for k in range(1, n + 1):
        assert choose(n, k) == choose(n - 1, k - 1) + choose(n - 1, k)


@pytest.mark.parametrize("order,dimension", [(0, 3), (1, 3), (2, 3), (3, 2), (4, 1)])
def test_nterms_matches_binomial(order, dimension):
    poly = Polynomial(order, dimension)
    assert poly.nterms() == choose(order + dimension, order)
    assert len(poly.terms(np.ones(dimension))) == poly.nterms()


def test_default_is_constant():
    poly = Polynomial()
    assert poly.nterms() == 1
    np.testing.assert_array_equal(poly.terms([1.0, 2.0, 3.0]), [1.0])


def test_first_order_term_names():
    assert Polynomial(1, 3).term_names() == "1 + a + b + c"


def test_second_order_term_names_2d():
    assert Polynomial(2, 2).term_names() == "11 + 1a + 1b + aa + ab + bb"


def test_first_order_terms_are_point():
    point = [2.0, 3.0, 5.0]
    np.testing.assert_allclose(Polynomial(1, 3).terms(point), [1.0] + point)


def test_terms_at_unit_point_are_ones():
    np.testing.assert_allclose(Polynomial(3, 3).terms([1, 1, 1]), np.ones(choose(6, 3)))


def test_second_order_terms_contain_squares_and_products():
    terms = Polynomial(2, 2).terms([2.0, 3.0])
    np.testing.assert_allclose(terms, [1.0, 2.0, 3.0, 4.0, 6.0, 9.0])


def test_value_is_sum_of_values():
    poly = Polynomial(2, 3)
    poly.coeffs = np.arange(poly.nterms(), dtype=float)
    point = [0.5, -1.5, 2.0]
    assert poly.value(point) == pytest.approx(poly.values(point).sum())
    assert poly.value(point) == pytest.approx(float(poly.terms(point) @ poly.coeffs))


def test_zero_coefficients_give_zero():
    assert Polynomial(3, 3).value([1.2, 3.4, 5.6]) == 0.0


def test_wrong_dimension_raises():
    with pytest.raises(ValueError):
        Polynomial(2, 3).terms([1.0, 2.0])


def test_negative_order_raises():
    with pytest.raises(ValueError):
        Polynomial(-1, 3)