import numpy as np
from numpy.typing import NDArray

from .linear_operator import LinearOperator
from .iterative_solver import IterativeSolver

__all__ = ['MinimalResidual']


class MinimalResidual(IterativeSolver):
    """Preconditioned MINRES for symmetric, possibly indefinite operators.

    The preconditioner must be symmetric positive definite. Saddle-point
    systems are typically preconditioned by a `BlockOperator` with
    approximate inverses of the diagonal blocks.

    `error()` is the residual estimate of the Lanczos recurrence relative to
    `|b|`; it equals the true relative residual in exact arithmetic when no
    preconditioner is used.
    """
    def init_iteration(self, rhs: NDArray, x: NDArray, precond: LinearOperator) -> bool:
        n = self.size()
        self._rhs_norm2 = rhs @ rhs
        if self._rhs_norm2 == 0.0:
            x[:] = 0.0
            self._error = 0.0
            return True

        self._v = np.zeros(n)
        self._v_new = rhs - self.mat.apply(x)
        self._res_norm2 = self._v_new @ self._v_new
        self._error = np.sqrt(self._res_norm2 / self._rhs_norm2)
        if self._error < self._tol:
            return True

        self._w = np.zeros(n)
        self._w_new = precond.apply(self._v_new)
        beta_new2 = self._v_new @ self._w_new
        if beta_new2 < 0.0:
            raise ValueError("The MINRES preconditioner should be positive definite.")
        self._beta_new = np.sqrt(beta_new2)
        self._beta_one = self._beta_new
        self._v_new /= self._beta_new
        self._w_new /= self._beta_new

        self._c, self._c_old = 1.0, 1.0
        self._s, self._s_old = 0.0, 0.0
        self._p_old = np.zeros(n)
        self._p = np.zeros(n)
        self._eta = 1.0
        return False

    def step(self, x: NDArray, precond: LinearOperator) -> bool:
        beta = self._beta_new
        v_old = self._v
        self._v = self._v_new
        self._w = self._w_new

        # Lanczos
        v_new = self.mat.apply(self._w) - beta * v_old
        alpha = v_new @ self._w
        v_new -= alpha * self._v
        w_new = precond.apply(v_new)
        beta_new2 = v_new @ w_new
        if beta_new2 < 0.0:
            raise ValueError("The MINRES preconditioner should be positive definite.")
        beta_new = np.sqrt(beta_new2)
        if beta_new > 0.0:
            v_new /= beta_new
            w_new /= beta_new
        self._v_new, self._w_new, self._beta_new = v_new, w_new, beta_new

        # Givens rotations
        c, c_old, s, s_old = self._c, self._c_old, self._s, self._s_old
        r2 = s * alpha + c * c_old * beta
        r3 = s_old * beta
        r1_hat = c * alpha - c_old * s * beta
        r1 = np.sqrt(r1_hat**2 + beta_new2)
        self._c_old, self._s_old = c, s
        self._c, self._s = r1_hat / r1, beta_new / r1

        # update the iterate
        p_oold = self._p_old
        self._p_old = self._p
        self._p = (self._w - r2 * self._p_old - r3 * p_oold) / r1
        x += self._beta_one * self._c * self._eta * self._p

        self._res_norm2 *= self._s**2
        self._error = np.sqrt(self._res_norm2 / self._rhs_norm2)
        if self._error < self._tol:
            return True
        self._eta = -self._s * self._eta
        return False
