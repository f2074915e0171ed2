from typing import Callable

import numpy as np
from numpy.typing import NDArray

from ..functionspace import TensorBSplineBasis
from ..topology import PatchCorner
from .geometry_evaluator import EvalFlag, GeometryEvaluator

__all__ = ['BSplinePatch']


class BSplinePatch():
    """A tensor-product B-spline map from the parameter box to physical space.

    Parameters:
        basis (TensorBSplineBasis): The basis of the map.
        coefs (NDArray): Control points shaped (basis.size(), gdim).
    """
    def __init__(self, basis: TensorBSplineBasis, coefs) -> None:
        coefs = np.asarray(coefs, dtype=np.float64)
        if coefs.ndim != 2 or coefs.shape[0] != basis.size():
            raise ValueError(f"coefs should be shaped ({basis.size()}, gdim), "
                             f"but got {tuple(coefs.shape)}.")
        if coefs.shape[1] < basis.dim():
            raise ValueError(f"A {basis.dim()}D patch needs at least {basis.dim()} "
                             f"physical coordinates, but got {coefs.shape[1]}.")
        self.basis = basis
        self.coefs = coefs

    @classmethod
    def from_map(cls, basis: TensorBSplineBasis, mapping: Callable[[NDArray], NDArray]):
        """Interpolate `mapping` at the Greville points of `basis`.

        The result reproduces `mapping` exactly when it lies in the spline space.
        """
        return cls(basis, basis.interpolate(mapping(basis.greville())))

    def __call__(self, points: NDArray) -> NDArray:
        return self.basis.eval_points(points, self.coefs, 0)[0]

    def __repr__(self) -> str:
        return f"BSplinePatch(dim={self.dim()}, gdim={self.geo_dim()}, size={self.basis.size()})"

    def dim(self) -> int:
        return self.basis.dim()

    def geo_dim(self) -> int:
        return self.coefs.shape[1]

    def parameter_range(self) -> NDArray:
        return self.basis.support()

    def evaluator(self, flags: EvalFlag = EvalFlag.NEED_VALUE) -> GeometryEvaluator:
        return GeometryEvaluator(self, flags)

    def corner_point(self, corner: int) -> NDArray:
        """Physical coordinates of corner `corner` (1-based)."""
        pars = PatchCorner(0, corner).parameters(self.dim())
        sizes = self.basis.size_cwise()
        multi = [0 if p == 0 else n - 1 for p, n in zip(pars, sizes)]
        return self.coefs[self.basis.index(multi)]
