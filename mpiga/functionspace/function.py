from typing import Iterator, List, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .bspline_basis import TensorBSplineBasis

__all__ = ['PatchFunction', 'MultiPatchField']


class PatchFunction():
    """A spline function on one patch, given by coefficients in a basis.

    Parameters:
        basis (TensorBSplineBasis): The basis on the patch.
        coefs (NDArray): Coefficients shaped (basis.size(), ...). Trailing
            dimensions are value components.
    """
    def __init__(self, basis: TensorBSplineBasis, coefs) -> None:
        coefs = np.asarray(coefs, dtype=np.float64)
        if coefs.shape[0] != basis.size():
            raise ValueError(f"The basis has {basis.size()} functions, "
                             f"but {coefs.shape[0]} coefficients are given.")
        self.basis = basis
        self.coefs = coefs

    def __call__(self, points: NDArray) -> NDArray:
        return self.basis.eval_points(points, self.coefs, 0)[0]

    def value_shape(self) -> Tuple[int, ...]:
        return self.coefs.shape[1:]

    def grad(self, points: NDArray) -> NDArray:
        """Parametric gradients at `points`, shaped (NP, ..., dim)."""
        return self.basis.eval_points(points, self.coefs, 1)[1]

    def values_and_gradients(self, nodes: NDArray) -> Tuple[NDArray, NDArray]:
        """Values and parametric gradients at nodes of one element.

        Returns:
            (NDArray, NDArray): Shaped (NQ, ...) and (NQ, ..., dim).
        """
        nodes = np.atleast_2d(nodes)
        act = self.basis.active_functions(nodes[0])
        phi, gphi = self.basis.evaluate_values_and_derivatives(nodes, 1)
        c = self.coefs[act]
        val = np.einsum('qa, a... -> q...', phi, c)
        grad = np.einsum('qad, a... -> q...d', gphi, c)
        return val, grad


class MultiPatchField():
    """A discrete function living on a multi-patch domain, one `PatchFunction`
    per patch."""
    def __init__(self, multipatch, functions: Sequence[PatchFunction]) -> None:
        if len(functions) != multipatch.number_of_patches():
            raise ValueError(f"The domain has {multipatch.number_of_patches()} patches, "
                             f"but {len(functions)} functions are given.")
        self.multipatch = multipatch
        self.functions: List[PatchFunction] = list(functions)

    def __len__(self) -> int:
        return len(self.functions)

    def __iter__(self) -> Iterator[PatchFunction]:
        return iter(self.functions)

    def patches(self):
        return self.multipatch

    def function(self, k: int) -> PatchFunction:
        return self.functions[k]

    def coefficients(self, k: int) -> NDArray:
        return self.functions[k].coefs

    def value(self, points: NDArray, k: int) -> NDArray:
        """Evaluate on patch `k` at parametric `points`."""
        return self.functions[k](points)

    def physical_points(self, points: NDArray, k: int) -> NDArray:
        return self.multipatch.patch(k)(points)
