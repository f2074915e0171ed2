from typing import List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray
from scipy.sparse import coo_matrix, csr_matrix

from ..functionspace import DofMapper

__all__ = ['SparseSystem']


class SparseSystem():
    """Accumulator of a global sparse matrix and its right-hand side.

    ## Introduction

    Local contributions are pushed as COO triplets and summed when the
    system is finalized. The rows and columns are the free indices of the
    DOF mapper; contributions to eliminated indices are condensed:

    - free row, free column: added to the matrix,
    - free row, eliminated column: `local_mat[i, j] * g[slot(j)]` is
      subtracted from the right-hand side of row `i`,
    - eliminated row: dropped.

    Both `(i, j)` and `(j, i)` entries are stored, symmetric or not.

    Parameters:
        mapper (DofMapper): A finalized DOF mapper.
        n_rhs (int | None, optional): Number of right-hand sides. When None,
            it is taken from the first contribution pushed.
    """
    def __init__(self, mapper: DofMapper, n_rhs: Optional[int] = None) -> None:
        if not mapper.is_finalized():
            raise RuntimeError("SparseSystem needs a finalized DofMapper.")
        self.mapper = mapper
        self._rows: List[NDArray] = []
        self._cols: List[NDArray] = []
        self._vals: List[NDArray] = []
        self._rhs: Optional[NDArray] = None
        if n_rhs is not None:
            self._rhs = np.zeros((mapper.free_size(), n_rhs), dtype=np.float64)
        self._finalized = False

    def __repr__(self) -> str:
        nnz = sum(v.shape[0] for v in self._vals)
        return f"SparseSystem(size={self.size()}, triplets={nnz})"

    def size(self) -> int:
        return self.mapper.free_size()

    def n_rhs(self) -> int:
        return 0 if self._rhs is None else self._rhs.shape[1]

    def _rhs_buffer(self, n_rhs: int) -> NDArray:
        if self._rhs is None:
            self._rhs = np.zeros((self.size(), n_rhs), dtype=np.float64)
        elif self._rhs.shape[1] != n_rhs:
            raise ValueError(f"The system has {self._rhs.shape[1]} right-hand sides, "
                             f"but a contribution with {n_rhs} is pushed.")
        return self._rhs

    def push(self, local_mat: NDArray, local_rhs: Optional[NDArray], actives: NDArray,
             eliminated: Optional[NDArray], patch: int) -> None:
        """Scatter one element's contribution.

        Parameters:
            local_mat (NDArray): Local matrix shaped (nAct, nAct).
            local_rhs (NDArray | None): Local right-hand side shaped (nAct, nRhs).
            actives (NDArray): Local indices of the active functions on `patch`.
            eliminated (NDArray | None): Eliminated-value table shaped
                (boundary_size, nRhs). None is read as all zero.
            patch (int): The patch index.
        """
        if self._finalized:
            raise RuntimeError("Cannot push into a finalized SparseSystem.")
        gidx = self.mapper.local_to_global(actives, patch)
        nact = gidx.shape[0]
        if local_mat.shape != (nact, nact):
            raise ValueError(f"local_mat should be shaped ({nact}, {nact}), "
                             f"but got {tuple(local_mat.shape)}.")
        if local_rhs is not None:
            local_rhs = np.asarray(local_rhs).reshape(nact, -1)
        if eliminated is not None:
            eliminated = np.asarray(eliminated)
            n_elim = 1 if eliminated.ndim == 1 else eliminated.shape[-1]
            n_rhs = local_rhs.shape[1] if local_rhs is not None else (self.n_rhs() or 1)
            if n_elim not in (1, n_rhs):
                raise ValueError(f"The eliminated-value table has {n_elim} columns, "
                                 f"but the system has {n_rhs} right-hand sides.")
        free = self.mapper.is_free(gidx)
        fi = np.nonzero(free)[0]
        ei = np.nonzero(~free)[0]

        ff = local_mat[np.ix_(fi, fi)]
        self._rows.append(np.repeat(gidx[fi], fi.shape[0]))
        self._cols.append(np.tile(gidx[fi], fi.shape[0]))
        self._vals.append(ff.ravel())

        if local_rhs is not None:
            rhs = self._rhs_buffer(local_rhs.shape[1])
            np.add.at(rhs, gidx[fi], local_rhs[fi])
        else:
            rhs = self._rhs_buffer(self.n_rhs() or 1)

        if eliminated is not None and ei.shape[0] > 0 and fi.shape[0] > 0:
            eliminated = eliminated.reshape(self.mapper.boundary_size(), -1)
            g = eliminated[self.mapper.eliminated_slot(gidx[ei])]
            np.add.at(rhs, gidx[fi], -local_mat[np.ix_(fi, ei)] @ g)

    def merge(self, other: 'SparseSystem') -> None:
        """Add the contributions accumulated in `other`."""
        if other.mapper is not self.mapper:
            raise ValueError("Only systems built on the same DofMapper can be merged.")
        self._rows.extend(other._rows)
        self._cols.extend(other._cols)
        self._vals.extend(other._vals)
        if other._rhs is not None:
            self._rhs_buffer(other._rhs.shape[1])
            self._rhs += other._rhs

    def matrix(self) -> csr_matrix:
        n = self.size()
        if len(self._vals) == 0:
            return csr_matrix((n, n), dtype=np.float64)
        rows = np.concatenate(self._rows)
        cols = np.concatenate(self._cols)
        vals = np.concatenate(self._vals)
        return coo_matrix((vals, (rows, cols)), shape=(n, n)).tocsr()

    def rhs(self) -> NDArray:
        if self._rhs is None:
            return np.zeros((self.size(), 1), dtype=np.float64)
        return self._rhs

    def finalize(self) -> Tuple[csr_matrix, NDArray]:
        """Sum the duplicate triplets and close the system.

        Returns:
            (csr_matrix, NDArray): The matrix and the right-hand side; the
            latter is 1-D when there is a single right-hand side.
        """
        A = self.matrix()
        A.sum_duplicates()
        F = self.rhs()
        self._finalized = True
        if F.shape[1] == 1:
            F = F[:, 0]
        return A, F
