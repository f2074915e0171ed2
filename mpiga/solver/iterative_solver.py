from typing import Optional, Union

import numpy as np
from numpy.typing import NDArray

from .. import logger
from .linear_operator import (
    LinearOperator, IdentityOperator, DimensionMismatchError, as_operator
)

__all__ = ['IterativeSolver']


class IterativeSolver():
    """The base class of iterative solvers.

    ## Introduction

    A solver is bound to a square operator at construction. A matrix is
    wrapped into a `MatrixOperator` owned by the solver, an operator is
    used by reference.

    `solve` calls `init_iteration` once and then `step` until it reports
    convergence or `max_iterations` steps are done. Not converging is not
    an error: the last iterate is returned, and `iterations()` and `error()`
    tell how far the solver got. `step` changes the internal state of the
    solver, so one instance runs one iteration at a time.

    Parameters:
        mat (LinearOperator | NDArray | sparse matrix): The system operator.
        max_iterations (int, optional): Defaults to 1000.
        tolerance (float, optional): Bound on the relative residual, defaults
            to 1e-10.

    Raises:
        DimensionMismatchError: If the operator is not square.
    """
    def __init__(self, mat: Union[LinearOperator, NDArray], max_iterations: int = 1000,
                 tolerance: float = 1e-10) -> None:
        self.owns_operator = not isinstance(mat, LinearOperator)
        self.mat = as_operator(mat)
        if self.mat.rows() != self.mat.cols():
            raise DimensionMismatchError(f"{self.__class__.__name__} needs a square operator, "
                                         f"but got {self.mat.rows()}x{self.mat.cols()}.")
        self._max_iters = max_iterations
        self._tol = tolerance
        self._num_iter = 0
        self._error = 0.0

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(size={self.size()}, "
                f"max_iterations={self._max_iters}, tolerance={self._tol})")

    def init_iteration(self, rhs: NDArray, x: NDArray, precond: LinearOperator) -> bool:
        """Set up the iteration for `rhs` from the initial guess `x`.

        Returns:
            bool: Whether `x` already meets the tolerance.
        """
        raise NotImplementedError

    def step(self, x: NDArray, precond: LinearOperator) -> bool:
        """Do one iteration, updating `x` in place.

        Returns:
            bool: Whether the tolerance is met.
        """
        raise NotImplementedError

    def solve(self, rhs: NDArray, x: Optional[NDArray] = None,
              precond: Optional[LinearOperator] = None) -> NDArray:
        """Solve `mat @ x = rhs`.

        Parameters:
            rhs (NDArray): The right-hand side of length `size()`.
            x (NDArray | None, optional): Initial guess, zero by default.
                It is not modified.
            precond (LinearOperator | None, optional): Applies an
                approximate inverse of `mat`. Identity by default.

        Returns:
            NDArray: The last iterate.
        """
        n = self.size()
        rhs = np.asarray(rhs, dtype=np.float64)
        if rhs.ndim == 2 and rhs.shape[1] == 1:
            rhs = rhs[:, 0]
        if rhs.shape != (n,):
            raise DimensionMismatchError(f"rhs should be shaped ({n},), but got {rhs.shape}.")
        if x is None:
            x = np.zeros(n)
        else:
            x = np.array(x, dtype=np.float64).reshape(-1)
            if x.shape[0] != n:
                raise DimensionMismatchError(f"x should have {n} entries, but got {x.shape[0]}.")
        if precond is None:
            precond = IdentityOperator(n)
        elif precond.rows() != n or precond.cols() != n:
            raise DimensionMismatchError(f"The preconditioner should be {n}x{n}, "
                                         f"but got {precond.rows()}x{precond.cols()}.")

        name = self.__class__.__name__
        self._num_iter = 0
        if self.init_iteration(rhs, x, precond):
            logger.info(f"{name}: converged in 0 iterations, error {self._error:.3e}.")
            return x

        while self._num_iter < self._max_iters:
            self._num_iter += 1
            if self.step(x, precond):
                logger.info(f"{name}: converged in {self._num_iter} iterations, "
                            f"error {self._error:.3e}.")
                return x

        logger.info(f"{name}: failed, stopped by max_iterations ({self._max_iters}) "
                    f"with error {self._error:.3e}.")
        return x

    def size(self) -> int:
        return self.mat.rows()

    def set_max_iterations(self, max_iterations: int) -> None:
        self._max_iters = max_iterations

    def set_tolerance(self, tolerance: float) -> None:
        self._tol = tolerance

    def iterations(self) -> int:
        return self._num_iter

    def error(self) -> float:
        return self._error

    def tolerance(self) -> float:
        return self._tol

    def max_iterations(self) -> int:
        return self._max_iters
