import math
from dataclasses import dataclass
from typing import Optional

__all__ = ['AssemblerOptions']

_DIRICHLET_STRATEGIES = ('interpolation', 'l2')


@dataclass
class AssemblerOptions:
    """Options of the assembly loop.

    Attributes:
        qu_a (float): Quadrature nodes per direction are
            `ceil(qu_a * degree + qu_b)`. The defaults give `degree + 1`.
        qu_b (int): See `qu_a`.
        dirichlet_strategy (str): How eliminated values are computed from
            Dirichlet data, 'interpolation' at the Greville points or 'l2'
            projection on the boundary sides.
        check_topology (bool): Run `BoxTopology.check_consistency` before
            assembling.
        strict_topology (bool): Refuse to assemble on an inconsistent topology.
        parallel (bool): Default of the `parallel` argument of `assemble`.
        max_workers (int | None): Threads used by parallel assembly.
        progress (bool): Show a progress bar over the patches.
    """
    qu_a: float = 1.0
    qu_b: int = 1
    dirichlet_strategy: str = 'interpolation'
    check_topology: bool = True
    strict_topology: bool = False
    parallel: bool = False
    max_workers: Optional[int] = None
    progress: bool = False

    def __post_init__(self):
        if self.dirichlet_strategy not in _DIRICHLET_STRATEGIES:
            raise ValueError(f"Unknown dirichlet_strategy '{self.dirichlet_strategy}', "
                             f"should be one of {_DIRICHLET_STRATEGIES}.")
        if self.qu_a <= 0:
            raise ValueError(f"qu_a should be positive, but got {self.qu_a}.")

    def num_quadrature_nodes(self, degree: int) -> int:
        return max(math.ceil(self.qu_a * degree + self.qu_b), 1)
