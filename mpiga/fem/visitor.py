from typing import Optional, Tuple

from numpy.typing import NDArray

from ..functionspace import TensorBSplineBasis, BoxElement
from ..geometry import EvalFlag, GeometryEvaluator
from ..quadrature import TensorGaussRule
from .assembler_options import AssemblerOptions

__all__ = ['Visitor', 'NormVisitor', 'quadrature_rule']


def quadrature_rule(basis: TensorBSplineBasis,
                    options: Optional[AssemblerOptions] = None) -> TensorGaussRule:
    """Gauss rule with `degree + 1` nodes per direction, or the count given
    by the quadrature scaling of `options`."""
    if options is None:
        return TensorGaussRule([basis.degree(d) + 1 for d in range(basis.dim())])
    return TensorGaussRule([options.num_quadrature_nodes(basis.degree(d))
                            for d in range(basis.dim())])


class Visitor():
    """The base class of element visitors.

    ## Introduction

    A visitor computes the contribution of one element to a global
    quantity. The assembler calls, for every patch,

        rule, flags = visitor.initialize(basis, patch_index, options)

    and then for every element of the patch

        visitor.evaluate(geo_eval, basis, data, nodes)
        visitor.assemble(element, geo_eval, weights)
        visitor.local_to_global(patch_index, eliminated, system)

    The local buffers belong to the visitor instance and are reused across
    elements, so one instance must not be shared by concurrent tasks.
    """
    def initialize(self, basis: TensorBSplineBasis, patch_index: int,
                   options: Optional[AssemblerOptions] = None) -> Tuple[TensorGaussRule, EvalFlag]:
        raise NotImplementedError

    def evaluate(self, geo_eval: GeometryEvaluator, basis, data, nodes: NDArray) -> None:
        raise NotImplementedError

    def assemble(self, element: BoxElement, geo_eval: GeometryEvaluator, weights: NDArray) -> None:
        raise NotImplementedError

    def local_to_global(self, patch_index: int, eliminated: Optional[NDArray], system) -> None:
        raise NotImplementedError


class NormVisitor(Visitor):
    """Visitors computing the squared norm of a function on each element.

    `evaluate` receives the patch function as `basis` and the comparison
    data as `data`; `compute` returns the element's squared contribution.
    """
    def initialize(self, basis: TensorBSplineBasis, patch_index: int,
                   options: Optional[AssemblerOptions] = None) -> Tuple[TensorGaussRule, EvalFlag]:
        return quadrature_rule(basis, options), self.flags()

    def flags(self) -> EvalFlag:
        return EvalFlag.NEED_VALUE | EvalFlag.NEED_MEASURE

    def compute(self, element: BoxElement, geo_eval: GeometryEvaluator, weights: NDArray) -> float:
        raise NotImplementedError

    def assemble(self, element: BoxElement, geo_eval: GeometryEvaluator, weights: NDArray) -> None:
        raise TypeError(f"{self.__class__.__name__} computes scalars, use compute().")

    def local_to_global(self, patch_index: int, eliminated: Optional[NDArray], system) -> None:
        raise TypeError(f"{self.__class__.__name__} computes scalars, it has nothing to scatter.")
