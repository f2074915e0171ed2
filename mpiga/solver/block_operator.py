from typing import Dict, List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from .linear_operator import LinearOperator, DimensionMismatchError

__all__ = ['BlockOperator', 'BlockSizeMismatchError']


class BlockSizeMismatchError(DimensionMismatchError):
    """Raised when an operator does not fit the sizes of its block row or column."""
    pass


class BlockOperator(LinearOperator):
    """A grid of operators applied to a partitioned vector.

    ## Introduction

    Slot `(i, j)` holds any `LinearOperator` (another `BlockOperator`
    included) or nothing, which stands for a zero block. Only populated
    slots are stored.

    The size of block row `i` and block column `j` is fixed by the first
    operator registered in that row or column. Row `i` of the result is
    the sum of `C[i, j] @ x[j]` over the populated slots of row `i`, and
    is zero when the row has none.

    Parameters:
        n_block_rows (int): Number of block rows.
        n_block_cols (int): Number of block columns.
    """
    def __init__(self, n_block_rows: int, n_block_cols: int) -> None:
        if n_block_rows < 1 or n_block_cols < 1:
            raise ValueError("A BlockOperator needs at least one block row and column.")
        self._blocks: Dict[Tuple[int, int], LinearOperator] = {}
        self._row_sizes: List[Optional[int]] = [None] * n_block_rows
        self._col_sizes: List[Optional[int]] = [None] * n_block_cols

    def __repr__(self) -> str:
        return (f"BlockOperator({len(self._row_sizes)}x{len(self._col_sizes)}, "
                f"blocks={sorted(self._blocks)})")

    def n_block_rows(self) -> int:
        return len(self._row_sizes)

    def n_block_cols(self) -> int:
        return len(self._col_sizes)

    def add_operator(self, row: int, col: int, op: Optional[LinearOperator]) -> None:
        """Put `op` into slot `(row, col)`. None clears the slot.

        Raises:
            BlockSizeMismatchError: If `op` does not fit the sizes already
                fixed for block row `row` or block column `col`.
        """
        if not (0 <= row < len(self._row_sizes) and 0 <= col < len(self._col_sizes)):
            raise IndexError(f"Block ({row}, {col}) is out of range for a "
                             f"{len(self._row_sizes)}x{len(self._col_sizes)} block operator.")
        if op is None:
            self._blocks.pop((row, col), None)
            return
        rsize = self._row_sizes[row]
        csize = self._col_sizes[col]
        if rsize is not None and rsize != op.rows():
            raise BlockSizeMismatchError(f"Block row {row} has size {rsize}, "
                                         f"but the operator has {op.rows()} rows.")
        if csize is not None and csize != op.cols():
            raise BlockSizeMismatchError(f"Block column {col} has size {csize}, "
                                         f"but the operator has {op.cols()} columns.")
        self._row_sizes[row] = op.rows()
        self._col_sizes[col] = op.cols()
        self._blocks[(row, col)] = op

    def get_operator(self, row: int, col: int) -> Optional[LinearOperator]:
        return self._blocks.get((row, col), None)

    def row_sizes(self) -> List[int]:
        return [0 if s is None else s for s in self._row_sizes]

    def col_sizes(self) -> List[int]:
        return [0 if s is None else s for s in self._col_sizes]

    def rows(self) -> int:
        return sum(self.row_sizes())

    def cols(self) -> int:
        return sum(self.col_sizes())

    def apply(self, x: NDArray) -> NDArray:
        x = self._check_input(x)
        cofs = np.concatenate([[0], np.cumsum(self.col_sizes())])
        rofs = np.concatenate([[0], np.cumsum(self.row_sizes())])
        result = np.zeros((self.rows(),) + x.shape[1:], dtype=np.result_type(x, np.float64))
        for (i, j), op in self._blocks.items():
            result[rofs[i]:rofs[i+1]] += op.apply(x[cofs[j]:cofs[j+1]])
        return result
