from typing import Union

import numpy as np
from numpy.typing import NDArray
from scipy.sparse import issparse
from scipy.sparse.linalg import LinearOperator as ScipyLinearOperator

__all__ = [
    'DimensionMismatchError',
    'LinearOperator',
    'MatrixOperator',
    'IdentityOperator',
    'DiagonalOperator',
    'ScaledOperator',
    'as_operator'
]


class DimensionMismatchError(ValueError):
    """Raised when operator or vector sizes do not fit together."""
    pass


class LinearOperator():
    """The base class of linear operators.

    An operator maps vectors of length `cols()` to vectors of length
    `rows()`. Inputs may carry several columns, shaped (cols(), m).
    Operators are shared by reference, so one instance may appear in
    several block structures and solvers at the same time.
    """
    def apply(self, x: NDArray) -> NDArray:
        raise NotImplementedError

    def rows(self) -> int:
        raise NotImplementedError

    def cols(self) -> int:
        raise NotImplementedError

    @property
    def shape(self):
        return (self.rows(), self.cols())

    def __matmul__(self, x: NDArray) -> NDArray:
        return self.apply(x)

    def _check_input(self, x: NDArray) -> NDArray:
        x = np.asarray(x)
        if x.shape[0] != self.cols():
            raise DimensionMismatchError(f"{self.__class__.__name__} expects {self.cols()} rows "
                                         f"of input, but got {x.shape[0]}.")
        return x

    def to_scipy(self) -> ScipyLinearOperator:
        """Wrap into a `scipy.sparse.linalg.LinearOperator`."""
        return ScipyLinearOperator(self.shape, matvec=self.apply, matmat=self.apply,
                                   dtype=np.float64)


class MatrixOperator(LinearOperator):
    """A dense array or a scipy sparse matrix seen as an operator."""
    def __init__(self, matrix) -> None:
        if not issparse(matrix):
            matrix = np.asarray(matrix, dtype=np.float64)
            if matrix.ndim != 2:
                raise ValueError(f"MatrixOperator needs a 2-D matrix, but got {matrix.ndim}-D.")
        self.matrix = matrix

    def apply(self, x: NDArray) -> NDArray:
        return self.matrix @ self._check_input(x)

    def rows(self) -> int:
        return self.matrix.shape[0]

    def cols(self) -> int:
        return self.matrix.shape[1]


class IdentityOperator(LinearOperator):
    def __init__(self, n: int) -> None:
        self.n = n

    def apply(self, x: NDArray) -> NDArray:
        return self._check_input(x).copy()

    def rows(self) -> int:
        return self.n

    def cols(self) -> int:
        return self.n


class DiagonalOperator(LinearOperator):
    """Multiplication by a diagonal, e.g. the inverse diagonal of a matrix
    as Jacobi preconditioner."""
    def __init__(self, diag) -> None:
        self.diag = np.asarray(diag, dtype=np.float64).reshape(-1)

    @classmethod
    def jacobi(cls, matrix):
        d = matrix.diagonal()
        if np.any(d == 0):
            raise ValueError("The Jacobi preconditioner needs a diagonal without zeros.")
        return cls(1.0 / d)

    def apply(self, x: NDArray) -> NDArray:
        x = self._check_input(x)
        if x.ndim == 1:
            return self.diag * x
        return self.diag[:, None] * x

    def rows(self) -> int:
        return self.diag.shape[0]

    def cols(self) -> int:
        return self.diag.shape[0]


class ScaledOperator(LinearOperator):
    """The operator `alpha * op`."""
    def __init__(self, op: LinearOperator, alpha: float = 1.0) -> None:
        self.op = op
        self.alpha = alpha

    def apply(self, x: NDArray) -> NDArray:
        return self.alpha * self.op.apply(x)

    def rows(self) -> int:
        return self.op.rows()

    def cols(self) -> int:
        return self.op.cols()


def as_operator(obj: Union[LinearOperator, NDArray]) -> LinearOperator:
    """Return `obj` itself if it is an operator, else wrap it as a matrix."""
    if isinstance(obj, LinearOperator):
        return obj
    return MatrixOperator(obj)
