from enum import IntFlag
from typing import Optional

import numpy as np
from numpy.typing import NDArray

__all__ = ['EvalFlag', 'GeometryEvaluator']


class EvalFlag(IntFlag):
    """Geometry quantities a visitor asks the evaluator to compute."""
    NONE = 0
    NEED_VALUE = 1
    NEED_JACOBIAN = 2
    NEED_MEASURE = 4
    NEED_GRAD_TRANSFORM = 8


class GeometryEvaluator():
    """Evaluate a patch map and its derived quantities at element nodes.

    Only the quantities requested by `flags` are computed in `evaluate_at`.
    The Jacobian is computed whenever a measure or a gradient transform is
    requested. Asking for a quantity that was not computed raises
    RuntimeError.

    Parameters:
        patch (BSplinePatch): The geometry map.
        flags (EvalFlag): Requested quantities.
    """
    def __init__(self, patch, flags: EvalFlag = EvalFlag.NEED_VALUE) -> None:
        self.patch = patch
        self.flags = EvalFlag(flags)
        self._values: Optional[NDArray] = None
        self._jacobians: Optional[NDArray] = None
        self._measures: Optional[NDArray] = None
        self._inverses: Optional[NDArray] = None

    def _need_jacobian(self) -> bool:
        return bool(self.flags & (EvalFlag.NEED_JACOBIAN | EvalFlag.NEED_MEASURE
                                  | EvalFlag.NEED_GRAD_TRANSFORM))

    def evaluate_at(self, nodes: NDArray) -> None:
        """Evaluate at parametric `nodes` shaped (NQ, dim) of one element."""
        nodes = np.atleast_2d(np.asarray(nodes, dtype=np.float64))
        basis = self.patch.basis
        act = basis.active_functions(nodes[0])
        max_order = 1 if self._need_jacobian() else 0
        data = basis.evaluate_values_and_derivatives(nodes, max_order)
        coefs = self.patch.coefs[act]

        self._values = None
        self._jacobians = None
        self._measures = None
        self._inverses = None

        if self.flags & EvalFlag.NEED_VALUE:
            self._values = data[0] @ coefs
        if max_order == 0:
            return

        # J[q, i, d] = d x_i / d u_d
        J = np.einsum('qad, ai -> qid', data[1], coefs)
        self._jacobians = J
        gdim, pdim = J.shape[1:]

        if self.flags & EvalFlag.NEED_MEASURE:
            if gdim == pdim:
                self._measures = np.abs(np.linalg.det(J))
            else:
                self._measures = np.sqrt(np.linalg.det(np.swapaxes(J, -1, -2) @ J))

        if self.flags & EvalFlag.NEED_GRAD_TRANSFORM:
            if gdim == pdim:
                self._inverses = np.linalg.inv(J)
            else:
                self._inverses = np.linalg.pinv(J)

    def _get(self, value, name: str) -> NDArray:
        if value is None:
            raise RuntimeError(f"The {name} is not available, check the evaluation flags "
                               "and call evaluate_at() first.")
        return value

    def values(self) -> NDArray:
        """Physical points shaped (NQ, gdim)."""
        return self._get(self._values, "value")

    def jacobians(self) -> NDArray:
        return self._get(self._jacobians, "jacobian")

    def jacobian(self, k: int) -> NDArray:
        return self.jacobians()[k]

    def measures(self) -> NDArray:
        return self._get(self._measures, "measure")

    def measure(self, k: int) -> float:
        return float(self.measures()[k])

    def transform_gradients(self, k: int, grads: NDArray) -> NDArray:
        """Map parametric gradients (nAct, dim) at node `k` to physical ones (nAct, gdim)."""
        inv = self._get(self._inverses, "gradient transform")
        return np.asarray(grads) @ inv[k]

    def transform_all_gradients(self, grads: NDArray) -> NDArray:
        """Map parametric gradients (NQ, nAct, dim) to physical ones (NQ, nAct, gdim)."""
        inv = self._get(self._inverses, "gradient transform")
        return np.einsum('qad, qdi -> qai', grads, inv)
