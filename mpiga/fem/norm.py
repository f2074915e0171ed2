from typing import Callable, List, Optional

import numpy as np

from .. import logger
from ..functionspace import MultiPatchField
from .assembler_options import AssemblerOptions
from .norm_visitor import NormData
from .visitor import NormVisitor

__all__ = ['Norm']


class Norm():
    """Norms of a field, or of its distance to a given function.

    Parameters:
        field (MultiPatchField): The discrete field `f1`.
        func2 (Callable | None, optional): The function `f2` compared against.
            None means zero, so `apply` gives the norm of `field` itself.
        param_func (bool, optional): Whether `func2` takes parametric points.
        func2_grad (Callable | None, optional): Gradient of `f2`, used by the
            H1 visitors.
        options (AssemblerOptions | None, optional): Quadrature options.

    Example:
        >>> err = Norm(uh, pde.solution).apply(L2NormVisitor())
    """
    def __init__(self, field: MultiPatchField, func2: Optional[Callable] = None,
                 param_func: bool = False, func2_grad: Optional[Callable] = None,
                 options: Optional[AssemblerOptions] = None) -> None:
        self.field = field
        self.data = NormData(func2, func2_grad, param_func)
        self.options = options
        self._value = 0.0
        self._el_wise: List[float] = []

    def set_field(self, field: MultiPatchField) -> None:
        self.field = field

    def apply(self, visitor: NormVisitor, store_element_wise: bool = False) -> float:
        """Sum the element contributions of `visitor` over all patches.

        The result is the square root of the sum. With `store_element_wise`,
        the square root of every element contribution is kept, in element
        order across the patches.
        """
        self._el_wise = []
        total = 0.0
        mp = self.field.patches()
        for k, func1 in enumerate(self.field):
            basis = func1.basis
            rule, flags = visitor.initialize(basis, k, self.options)
            geo_eval = mp.patch(k).evaluator(flags)
            for element in basis.element_iterator():
                nodes, weights = rule.map_to(element.lower, element.upper)
                visitor.evaluate(geo_eval, func1, self.data, nodes)
                result = visitor.compute(element, geo_eval, weights)
                total += result
                if store_element_wise:
                    self._el_wise.append(float(np.sqrt(result)))
        self._value = float(np.sqrt(total))
        logger.debug(f"(NORM) {visitor.__class__.__name__}: {self._value:.6e}")
        return self._value

    def value(self) -> float:
        return self._value

    def element_norms(self) -> List[float]:
        return self._el_wise
