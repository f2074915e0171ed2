import numpy as np
from numpy.typing import NDArray

from .linear_operator import LinearOperator
from .iterative_solver import IterativeSolver

__all__ = ['ConjugateGradient']


class ConjugateGradient(IterativeSolver):
    """Preconditioned conjugate gradient method for symmetric positive
    definite operators.

    `error()` is the relative residual `|b - A x| / |b|`.
    """
    def init_iteration(self, rhs: NDArray, x: NDArray, precond: LinearOperator) -> bool:
        self._rhs_norm = np.linalg.norm(rhs)
        if self._rhs_norm == 0.0:
            x[:] = 0.0
            self._error = 0.0
            return True
        self._r = rhs - self.mat.apply(x)
        self._error = np.linalg.norm(self._r) / self._rhs_norm
        if self._error < self._tol:
            return True
        z = precond.apply(self._r)
        self._p = z
        self._rz = self._r @ z
        return False

    def step(self, x: NDArray, precond: LinearOperator) -> bool:
        Ap = self.mat.apply(self._p)
        alpha = self._rz / (self._p @ Ap)
        x += alpha * self._p
        self._r -= alpha * Ap
        self._error = np.linalg.norm(self._r) / self._rhs_norm
        if self._error < self._tol:
            return True

        z = precond.apply(self._r)
        rz_new = self._r @ z
        beta = rz_new / self._rz
        self._p = z + beta * self._p
        self._rz = rz_new
        return False
