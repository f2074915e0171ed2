import numpy as np
from numpy.polynomial.legendre import leggauss

from .quadrature import Quadrature


class GaussLegendreQuadrature(Quadrature):
    """Gauss-Legendre rule with `index` points on the reference interval [0, 1].

    Exact for polynomials of degree up to `2*index - 1`.
    """
    def make(self, index: int):
        if index is None or index < 1:
            raise ValueError(f"The number of Gauss points should be positive, but got {index}.")
        x, w = leggauss(index)
        quadpts = np.asarray(0.5 * (x + 1.0), dtype=self.dtype)
        weights = np.asarray(0.5 * w, dtype=self.dtype)
        return quadpts, weights
