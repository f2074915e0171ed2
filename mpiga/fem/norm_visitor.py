from typing import Callable, NamedTuple, Optional

import numpy as np
from numpy.typing import NDArray

from ..functionspace import PatchFunction, BoxElement
from ..geometry import EvalFlag, GeometryEvaluator
from .visitor import NormVisitor

__all__ = ['NormData', 'L2NormVisitor', 'H1SemiNormVisitor', 'H1NormVisitor']


class NormData(NamedTuple):
    """The function compared against, handed to norm visitors as `data`.

    Attributes:
        func (Callable | None): Values at points, None for zero.
        grad (Callable | None): Gradients at points shaped (NQ, ..., gdim),
            None for zero.
        param (bool): Whether `func` and `grad` take parametric points.
    """
    func: Optional[Callable] = None
    grad: Optional[Callable] = None
    param: bool = False


def _at(func: Optional[Callable], points: NDArray, shape) -> NDArray:
    if func is None:
        return np.zeros(shape)
    return np.asarray(func(points), dtype=np.float64).reshape(shape)


class L2NormVisitor(NormVisitor):
    """Squared L2 distance `int (f1 - f2)^2` on an element."""
    def evaluate(self, geo_eval: GeometryEvaluator, func1: PatchFunction,
                 data: NormData, nodes: NDArray) -> None:
        geo_eval.evaluate_at(nodes)
        val, _ = func1.values_and_gradients(nodes)
        val = val.reshape(nodes.shape[0], -1)
        points = nodes if data.param else geo_eval.values()
        self.diff = val - _at(data.func, points, val.shape)

    def compute(self, element: BoxElement, geo_eval: GeometryEvaluator, weights: NDArray) -> float:
        ws = weights * geo_eval.measures()
        return float(np.einsum('q, qi, qi ->', ws, self.diff, self.diff))


class H1SemiNormVisitor(NormVisitor):
    """Squared H1 semi-norm distance `int |grad f1 - grad f2|^2` on an element."""
    def flags(self) -> EvalFlag:
        return EvalFlag.NEED_VALUE | EvalFlag.NEED_MEASURE | EvalFlag.NEED_GRAD_TRANSFORM

    def evaluate(self, geo_eval: GeometryEvaluator, func1: PatchFunction,
                 data: NormData, nodes: NDArray) -> None:
        geo_eval.evaluate_at(nodes)
        _, grad = func1.values_and_gradients(nodes)
        NQ, dim = nodes.shape[0], nodes.shape[1]
        # (NQ, ncomp, dim) -> physical (NQ, ncomp, gdim)
        grad = geo_eval.transform_all_gradients(grad.reshape(NQ, -1, dim))
        points = nodes if data.param else geo_eval.values()
        self.diff = grad - _at(data.grad, points, grad.shape)

    def compute(self, element: BoxElement, geo_eval: GeometryEvaluator, weights: NDArray) -> float:
        ws = weights * geo_eval.measures()
        return float(np.einsum('q, qij, qij ->', ws, self.diff, self.diff))


class H1NormVisitor(NormVisitor):
    """Squared full H1 distance, the sum of the L2 and H1 semi-norm parts."""
    def __init__(self) -> None:
        self._l2 = L2NormVisitor()
        self._semi = H1SemiNormVisitor()

    def flags(self) -> EvalFlag:
        return self._semi.flags()

    def evaluate(self, geo_eval: GeometryEvaluator, func1: PatchFunction,
                 data: NormData, nodes: NDArray) -> None:
        self._l2.evaluate(geo_eval, func1, data, nodes)
        self._semi.evaluate(geo_eval, func1, data, nodes)

    def compute(self, element: BoxElement, geo_eval: GeometryEvaluator, weights: NDArray) -> float:
        return (self._l2.compute(element, geo_eval, weights)
                + self._semi.compute(element, geo_eval, weights))
