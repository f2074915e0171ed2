from typing import Optional, Tuple

import numpy as np
from numpy.typing import NDArray


class Quadrature():
    r"""Base class of quadrature rules on the reference box $[0, 1]^d$.

    Subclasses build nodes and weights in `make`. Nodes of a 1-D rule are
    shaped (NQ,), nodes of a rule in d > 1 directions are shaped (NQ, d).
    """
    def __init__(self, index=None, *, dtype=None) -> None:
        self.dtype = dtype if dtype else np.float64
        self.quadpts, self.weights = self.make(index)

    def __len__(self) -> int:
        return self.number_of_quadrature_points()

    def make(self, index) -> Tuple[NDArray, NDArray]:
        raise NotImplementedError

    def dim(self) -> int:
        return 1 if self.quadpts.ndim == 1 else self.quadpts.shape[1]

    def number_of_quadrature_points(self) -> int:
        return self.weights.shape[0]

    def get_quadrature_points_and_weights(self) -> Tuple[NDArray, NDArray]:
        return self.quadpts, self.weights

    def map_to(self, lower, upper) -> Tuple[NDArray, NDArray]:
        """Map the rule onto the box `[lower, upper]`.

        Returns:
            (NDArray, NDArray): Nodes shaped (NQ, dim) and weights shaped (NQ,).
        """
        GD = self.dim()
        lower = np.asarray(lower, dtype=self.dtype).reshape(-1)
        upper = np.asarray(upper, dtype=self.dtype).reshape(-1)
        if lower.shape[0] != GD or upper.shape[0] != GD:
            raise ValueError(f"Element corners should have {GD} coordinates, "
                             f"but got {lower.shape[0]} and {upper.shape[0]}.")
        h = upper - lower
        if np.any(h < 0):
            raise ValueError(f"Malformed element: lower corner {lower} above upper corner {upper}.")
        ref = self.quadpts.reshape(-1, GD)
        nodes = lower[None, :] + ref * h[None, :]
        weights = self.weights * np.prod(h)
        return nodes, weights
