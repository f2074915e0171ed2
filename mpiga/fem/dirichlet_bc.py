from typing import Callable, Iterator, List, NamedTuple, Optional

from ..topology import BoxTopology, PatchSide

__all__ = ['DirichletCondition', 'BoundaryConditions']


class DirichletCondition(NamedTuple):
    side: PatchSide
    function: Optional[Callable]
    parametric: bool = False


class BoundaryConditions():
    """Dirichlet data prescribed on patch sides.

    A side carries at most one condition. A condition whose function is None
    prescribes zero.
    """
    def __init__(self) -> None:
        self._conditions: List[DirichletCondition] = []

    @classmethod
    def on_boundary(cls, topology: BoxTopology, function: Optional[Callable] = None,
                    parametric: bool = False):
        """Prescribe `function` on every boundary side of `topology`."""
        bc = cls()
        for ps in topology.boundaries:
            bc.add_dirichlet(ps, function, parametric)
        return bc

    def __len__(self) -> int:
        return len(self._conditions)

    def __iter__(self) -> Iterator[DirichletCondition]:
        return iter(self._conditions)

    def add_dirichlet(self, side: PatchSide, function: Optional[Callable] = None,
                      parametric: bool = False) -> None:
        if any(c.side == side for c in self._conditions):
            raise ValueError(f"{side} already carries a Dirichlet condition.")
        self._conditions.append(DirichletCondition(side, function, parametric))

    def dirichlet_sides(self) -> List[PatchSide]:
        return [c.side for c in self._conditions]
