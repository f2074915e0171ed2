from typing import Optional

import numpy as np
from numpy.typing import NDArray

from ..typing import SourceLike
from ..functionspace import TensorBSplineBasis, BoxElement
from ..geometry import EvalFlag, GeometryEvaluator
from .assembler_options import AssemblerOptions
from .visitor import Visitor, quadrature_rule

__all__ = ['PoissonVisitor']


class PoissonVisitor(Visitor):
    """Local stiffness matrix and load vector of the Poisson problem

        (grad u, grad v) = (f, v).

    Parameters:
        rhs (SourceLike | None): The source `f`. A callable returning values
            shaped (NQ,) or (NQ, nRhs), a scalar, or None for zero.
        param_coef (bool, optional): Evaluate `rhs` at parametric instead of
            physical points.
    """
    def __init__(self, rhs: Optional[SourceLike] = None, param_coef: bool = False) -> None:
        self.rhs = rhs
        self.param_coef = param_coef
        self.local_mat = np.zeros((0, 0))
        self.local_rhs = np.zeros((0, 1))
        self.actives = np.zeros(0, dtype=np.int64)

    def initialize(self, basis: TensorBSplineBasis, patch_index: int,
                   options: Optional[AssemblerOptions] = None):
        flags = EvalFlag.NEED_VALUE | EvalFlag.NEED_MEASURE | EvalFlag.NEED_GRAD_TRANSFORM
        return quadrature_rule(basis, options), flags

    def _source_values(self, points: NDArray) -> NDArray:
        NQ = points.shape[0]
        f = self.rhs
        if f is None:
            return np.zeros((NQ, 1))
        if callable(f):
            val = np.asarray(f(points), dtype=np.float64)
        else:
            val = np.full(NQ, float(f))
        if val.shape[0] != NQ:
            raise ValueError(f"The source returns {val.shape[0]} values at {NQ} points.")
        return val.reshape(NQ, -1)

    def evaluate(self, geo_eval: GeometryEvaluator, basis: TensorBSplineBasis,
                 data, nodes: NDArray) -> None:
        self.actives = basis.active_functions(nodes[0])
        self.phi, gphi = basis.evaluate_values_and_derivatives(nodes, 1)
        geo_eval.evaluate_at(nodes)
        self.gphi = geo_eval.transform_all_gradients(gphi)

        points = nodes if self.param_coef else geo_eval.values()
        self.fval = self._source_values(points)

        self._reset_buffers(self.actives.shape[0], self.fval.shape[1])

    def _reset_buffers(self, nact: int, n_rhs: int) -> None:
        # buffers are kept across elements and only resized when the shape changes
        if self.local_mat.shape != (nact, nact):
            self.local_mat = np.zeros((nact, nact))
        else:
            self.local_mat.fill(0.0)
        if self.local_rhs.shape != (nact, n_rhs):
            self.local_rhs = np.zeros((nact, n_rhs))
        else:
            self.local_rhs.fill(0.0)

    def assemble(self, element: BoxElement, geo_eval: GeometryEvaluator, weights: NDArray) -> None:
        ws = weights * geo_eval.measures()
        self.local_mat += np.einsum('q, qid, qjd -> ij', ws, self.gphi, self.gphi, optimize=True)
        self.local_rhs += np.einsum('q, qi, qr -> ir', ws, self.phi, self.fval, optimize=True)

    def local_to_global(self, patch_index: int, eliminated: Optional[NDArray], system) -> None:
        system.push(self.local_mat, self.local_rhs, self.actives, eliminated, patch_index)
