"""Value types naming the sides and corners of box-shaped patches.

Sides and corners use 1-based identifiers. A side is the face of the
parameter hyper-cube where one coordinate ``direction`` is fixed to
``parameter`` (0 or 1), with identifier ``2*direction + parameter + 1``.
In 2-D this gives::

    3 = south (v=0), 4 = north (v=1)
    1 = west  (u=0), 2 = east  (u=1)

A corner identifier is one plus the corner's parameter bits read
little-endian, so in 2-D: 1 = (0, 0), 2 = (1, 0), 3 = (0, 1), 4 = (1, 1).
"""
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

__all__ = [
    'WEST', 'EAST', 'SOUTH', 'NORTH', 'FRONT', 'BACK',
    'SOUTHWEST', 'SOUTHEAST', 'NORTHWEST', 'NORTHEAST',
    'number_of_sides', 'number_of_corners', 'side_index', 'corner_index',
    'PatchSide', 'PatchCorner', 'BoundaryInterface'
]

WEST, EAST, SOUTH, NORTH, FRONT, BACK = 1, 2, 3, 4, 5, 6
SOUTHWEST, SOUTHEAST, NORTHWEST, NORTHEAST = 1, 2, 3, 4


def number_of_sides(dim: int) -> int:
    return 2 * dim


def number_of_corners(dim: int) -> int:
    return 2 ** dim


def side_index(direction: int, parameter: int) -> int:
    """Side identifier of the face `x[direction] == parameter`."""
    return 2 * direction + int(parameter) + 1


def corner_index(pars: Sequence[int]) -> int:
    """Corner identifier of the corner with parameter bits `pars`."""
    return 1 + sum(int(b) << d for d, b in enumerate(pars))


@dataclass(frozen=True, order=True)
class PatchSide:
    """A side `side` of the patch with index `patch`."""
    patch: int
    side: int

    def direction(self) -> int:
        """The parametric direction which is fixed on this side."""
        return (self.side - 1) // 2

    def parameter(self) -> int:
        """The value (0 or 1) the fixed direction takes on this side."""
        return (self.side - 1) % 2

    def opposite(self) -> 'PatchSide':
        return PatchSide(self.patch, side_index(self.direction(), 1 - self.parameter()))

    def __repr__(self) -> str:
        return f"PatchSide({self.patch}, {self.side})"


@dataclass(frozen=True, order=True)
class PatchCorner:
    """A corner `corner` of the patch with index `patch`."""
    patch: int
    corner: int

    def parameters(self, dim: int) -> Tuple[int, ...]:
        c = self.corner - 1
        return tuple((c >> d) & 1 for d in range(dim))

    def sides(self, dim: int) -> List[PatchSide]:
        """The `dim` sides meeting at this corner, ordered by direction."""
        pars = self.parameters(dim)
        return [PatchSide(self.patch, side_index(d, pars[d])) for d in range(dim)]

    def pars_on_side(self, side: int, dim: int) -> Tuple[int, ...]:
        """Parameter bits of the corner along the free directions of `side`."""
        direction = (side - 1) // 2
        pars = self.parameters(dim)
        return pars[:direction] + pars[direction+1:]

    @classmethod
    def on_side(cls, ps: PatchSide, pars: Sequence[int]) -> 'PatchCorner':
        """The corner of `ps.patch` lying on `ps` with free parameters `pars`."""
        full = list(pars)
        full.insert(ps.direction(), ps.parameter())
        return cls(ps.patch, corner_index(full))

    def __repr__(self) -> str:
        return f"PatchCorner({self.patch}, {self.corner})"


@dataclass(frozen=True)
class BoundaryInterface:
    """Two patch sides glued together.

    `orientation[k]` is True when the k-th tangential direction of the
    shared side runs the same way on both patches.
    """
    ps1: PatchSide
    ps2: PatchSide
    orientation: Tuple[bool, ...] = ()

    def __contains__(self, ps: PatchSide) -> bool:
        return ps == self.ps1 or ps == self.ps2

    def other(self, ps: PatchSide) -> Optional[PatchSide]:
        if ps == self.ps1:
            return self.ps2
        if ps == self.ps2:
            return self.ps1
        return None

    def patches(self) -> Tuple[int, int]:
        return self.ps1.patch, self.ps2.patch
