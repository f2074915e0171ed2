
from .linear_operator import (
    DimensionMismatchError, LinearOperator, MatrixOperator, IdentityOperator,
    DiagonalOperator, ScaledOperator, as_operator
)
from .block_operator import BlockOperator, BlockSizeMismatchError
from .iterative_solver import IterativeSolver
from .cg import ConjugateGradient
from .minres import MinimalResidual
