"""Multivariate polynomials with every term up to a fixed total order."""

from __future__ import annotations

from itertools import combinations_with_replacement
from math import prod
from typing import Sequence

import numpy as np


def choose(n: int, k: int) -> int:
    """Return the binomial coefficient C(n, k), or 0 when k > n."""
    if k > n:
        return 0
    result = 1
    for d in range(1, k + 1):
        result *= n
        n -= 1
        result //= d
    return result


class Polynomial:
    """A polynomial of a given order in a given number of dimensions.

    Terms are the products of ``order`` factors drawn, with repetition,
    from ``(1, x_1, ..., x_D)``, listed in lexicographic order of the factors.
    """

    def __init__(self, order: int = 0, dimension: int = 3) -> None:
        if order < 0:
            raise ValueError(f"polynomial order must be non-negative, got {order}")
        if dimension < 1:
            raise ValueError(f"polynomial dimension must be positive, got {dimension}")
        self.order = order
        self.dimension = dimension
        self.coeffs = np.zeros(choose(order + dimension, order))

    def nterms(self) -> int:
        """Number of coefficients held."""
        return len(self.coeffs)

    def _factor_indices(self):
        return combinations_with_replacement(range(self.dimension + 1), self.order)

    def terms(self, point: Sequence[float]) -> np.ndarray:
        """Evaluate every term (without coefficients) at ``point``."""
        p = np.asarray(point, dtype=float).ravel()
        if p.size != self.dimension:
            raise ValueError(
                f"point has {p.size} coordinates, polynomial has {self.dimension} dimensions"
            )
        factors = np.concatenate(([1.0], p))
        return np.array(
            [prod((factors[i] for i in combo), start=1.0) for combo in self._factor_indices()]
        )

    def values(self, point: Sequence[float]) -> np.ndarray:
        """Each term at ``point`` multiplied by its coefficient."""
        return self.terms(point) * self.coeffs

    def value(self, point: Sequence[float]) -> float:
        """The polynomial evaluated at ``point``."""
        return float(self.values(point).sum())

    def term_names(self) -> str:
        """Describe the terms, e.g. ``"1 + a + b + c"`` for first order in 3D."""
        symbols = "1" + "".join(chr(ord("a") + i) for i in range(self.dimension))
        names = ("".join(symbols[i] for i in combo) for combo in self._factor_indices())
        return " + ".join(names)