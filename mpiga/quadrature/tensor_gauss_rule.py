from typing import Sequence

import numpy as np

from .quadrature import Quadrature
from .gauss_legendre import GaussLegendreQuadrature


class TensorGaussRule(Quadrature):
    """Tensor product of 1-D Gauss-Legendre rules on the unit box.

    Nodes are ordered with the first direction running fastest.

    Parameters:
        num_nodes (Sequence[int]): Number of Gauss points in every direction.
    """
    def __init__(self, num_nodes: Sequence[int], *, dtype=None) -> None:
        self.num_nodes = tuple(int(n) for n in num_nodes)
        super().__init__(self.num_nodes, dtype=dtype)

    def make(self, num_nodes):
        if len(num_nodes) == 0:
            raise ValueError("TensorGaussRule needs at least one direction.")
        rules = [GaussLegendreQuadrature(n, dtype=self.dtype) for n in num_nodes]
        grids = np.meshgrid(*[r.quadpts for r in rules], indexing='ij')
        wgrid = np.meshgrid(*[r.weights for r in rules], indexing='ij')
        # first direction fastest
        quadpts = np.stack([g.ravel(order='F') for g in grids], axis=-1)
        weights = np.prod(np.stack([w.ravel(order='F') for w in wgrid], axis=-1), axis=-1)
        return quadpts, weights
