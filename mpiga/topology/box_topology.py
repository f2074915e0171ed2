from typing import Callable, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from .. import logger
from .boundary import (
    PatchSide, PatchCorner, BoundaryInterface,
    number_of_sides, number_of_corners
)

__all__ = [
    'BoxTopology',
    'DuplicateSideError',
    'UnsupportedDimensionError'
]

CornerCycle = List[PatchCorner]
_Predicate = Callable[[CornerCycle], bool]


class DuplicateSideError(ValueError):
    """Raised when a patch side is classified twice."""
    pass


class UnsupportedDimensionError(NotImplementedError):
    """Raised when an operation is not defined for the topology's dimension."""
    pass


class BoxTopology():
    """Connectivity of a collection of box-shaped patches.

    ## Introduction

    Every side of every patch is exactly one of: a member of a
    `BoundaryInterface`, a boundary side, or unclassified. Sides are indexed
    by a dictionary, so membership queries are O(1).

    Partially built topologies are allowed: `check_consistency` reports
    missing classifications and out-of-range patch indices as warnings and
    never raises.

    ## Vertices

    In 2-D, walking around a corner by repeatedly crossing interfaces gives
    the cycle of patch corners meeting at one vertex. A closed cycle of
    length 4 is an ordinary (regular) vertex, any other closed cycle is an
    extraordinary (singular) vertex, and an open walk means the vertex lies
    on the domain boundary.
    """
    def __init__(self, dim: int = 2, nboxes: int = 0) -> None:
        if dim < 1:
            raise ValueError(f"dim should be a positive integer, but got {dim}.")
        self._dim = dim
        self._nboxes = nboxes
        self._interfaces: List[BoundaryInterface] = []
        self._boundaries: List[PatchSide] = []
        self._interface_of: Dict[PatchSide, BoundaryInterface] = {}
        self._boundary_set: Set[PatchSide] = set()

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(dim={self._dim}, nboxes={self._nboxes}, "
                f"interfaces={len(self._interfaces)}, boundaries={len(self._boundaries)})")

    ### START: Basic properties ###
    def dim(self) -> int:
        return self._dim

    def size(self) -> int:
        """Number of patches."""
        return self._nboxes

    def n_interfaces(self) -> int:
        return len(self._interfaces)

    def n_boundary(self) -> int:
        return len(self._boundaries)

    @property
    def interfaces(self) -> Tuple[BoundaryInterface, ...]:
        return tuple(self._interfaces)

    @property
    def boundaries(self) -> Tuple[PatchSide, ...]:
        return tuple(self._boundaries)

    def add_box(self, n: int = 1) -> int:
        """Append `n` patches, returning the index of the first new one."""
        first = self._nboxes
        self._nboxes += n
        return first

    def clear(self) -> None:
        self._nboxes = 0
        self._interfaces.clear()
        self._boundaries.clear()
        self._interface_of.clear()
        self._boundary_set.clear()
    ### END: Basic properties ###

    ### START: Side classification ###
    def _check_unclassified(self, ps: PatchSide) -> None:
        if ps in self._interface_of:
            raise DuplicateSideError(f"{ps} is already part of an interface.")
        if ps in self._boundary_set:
            raise DuplicateSideError(f"{ps} is already marked as boundary.")

    def add_interface(self, ps1: PatchSide, ps2: PatchSide,
                      orientation: Optional[Sequence[bool]] = None) -> BoundaryInterface:
        """Glue side `ps1` to side `ps2`.

        Parameters:
            ps1 (PatchSide): Side on the first patch.
            ps2 (PatchSide): Side on the second patch.
            orientation (Sequence[bool] | None, optional): For each tangential
                direction, whether it runs the same way on both sides.
                Defaults to all True.

        Raises:
            DuplicateSideError: If either side is already classified, or if
                `ps1 == ps2`.

        Returns:
            BoundaryInterface: The interface created.
        """
        if ps1 == ps2:
            raise DuplicateSideError(f"Cannot glue {ps1} to itself.")
        self._check_unclassified(ps1)
        self._check_unclassified(ps2)

        if orientation is None:
            orientation = (True,) * (self._dim - 1)
        orientation = tuple(bool(o) for o in orientation)
        if len(orientation) != self._dim - 1:
            raise ValueError(f"orientation should have {self._dim - 1} entries, "
                             f"but got {len(orientation)}.")

        bi = BoundaryInterface(ps1, ps2, orientation)
        self._interfaces.append(bi)
        self._interface_of[ps1] = bi
        self._interface_of[ps2] = bi
        return bi

    def add_boundary(self, ps: PatchSide) -> None:
        self._check_unclassified(ps)
        self._boundaries.append(ps)
        self._boundary_set.add(ps)

    def add_auto_boundaries(self) -> int:
        """Mark every unclassified side as boundary.

        Returns:
            int: Number of sides that were marked.
        """
        count = 0
        for ps in self.patch_sides():
            if not self.is_boundary(ps) and not self.is_interface(ps):
                self.add_boundary(ps)
                count += 1
        if count > 0:
            logger.debug(f"(TOPOLOGY) {count} sides marked as boundary automatically.")
        return count

    def is_interface(self, ps: PatchSide) -> bool:
        return ps in self._interface_of

    def is_boundary(self, ps: PatchSide) -> bool:
        return ps in self._boundary_set

    def get_interface(self, ps: PatchSide) -> Optional[BoundaryInterface]:
        return self._interface_of.get(ps, None)

    def get_neighbour(self, ps: PatchSide) -> Optional[PatchSide]:
        """The side glued to `ps`, or None if `ps` is boundary or unclassified."""
        bi = self._interface_of.get(ps, None)
        if bi is None:
            return None
        return bi.other(ps)

    def patch_sides(self) -> Iterator[PatchSide]:
        """Iterate over all sides of all patches."""
        nsides = number_of_sides(self._dim)
        for p in range(self._nboxes):
            for s in range(1, nsides + 1):
                yield PatchSide(p, s)

    def patch_corners(self) -> Iterator[PatchCorner]:
        """Iterate over all corners of all patches."""
        ncorners = number_of_corners(self._dim)
        for p in range(self._nboxes):
            for c in range(1, ncorners + 1):
                yield PatchCorner(p, c)

    def unclassified_sides(self) -> List[PatchSide]:
        return [ps for ps in self.patch_sides()
                if not self.is_boundary(ps) and not self.is_interface(ps)]

    def check_consistency(self) -> List[str]:
        """Check the side-count invariant and the patch indices.

        Every problem found is logged as a warning. Nothing is raised, as
        an incomplete topology is a valid state while it is being built.

        Returns:
            List[str]: The warning messages, empty if the topology is consistent.
        """
        msgs: List[str] = []
        num_sides = self._nboxes * number_of_sides(self._dim)
        nif = self.n_interfaces()
        nbd = self.n_boundary()

        if num_sides != 2 * nif + nbd:
            msgs.append(f"BoxTopology has inconsistent interfaces or boundaries: "
                        f"{self._nboxes} patches with {num_sides} sides, "
                        f"{nif} declared interfaces, {nbd} declared boundaries, "
                        f"leaving {num_sides - 2*nif - nbd} sides unaccounted for.")

        for ps in self._boundaries:
            if ps.patch >= self._nboxes or ps.patch < 0:
                msgs.append(f"BoxTopology: box index {ps.patch} in boundary out of range.")

        for bi in self._interfaces:
            if not (0 <= bi.ps1.patch < self._nboxes and 0 <= bi.ps2.patch < self._nboxes):
                msgs.append(f"BoxTopology: box index {bi.ps1.patch} or {bi.ps2.patch} "
                            "in interface out of range.")

        for msg in msgs:
            logger.warning(msg)

        return msgs
    ### END: Side classification ###

    ### START: Vertex classification ###
    def classify_corner(self, start: PatchCorner) -> Tuple[CornerCycle, bool]:
        """Walk around the vertex at `start` by crossing interfaces.

        The walk leaves each corner through one of its two sides, crosses
        the interface glued to it and continues through the other side of
        the corner reached. When the first direction runs into a boundary
        side, the walk restarts at `start` in the other direction.

        Parameters:
            start (PatchCorner): The corner to start from.

        Raises:
            UnsupportedDimensionError: If the topology is not 2-D.

        Returns:
            (List[PatchCorner], bool): The corners met, starting with `start`,
            and whether the walk closed on itself.
        """
        if self._dim != 2:
            raise UnsupportedDimensionError("Corner classification works only for 2D, "
                                            f"but the topology is {self._dim}D.")
        cycle: CornerCycle = []
        cur_side, end_side = start.sides(self._dim)
        cur_corner = start
        first_turn = True
        max_len = max(self._nboxes, 1) * number_of_corners(self._dim)

        while True:
            cycle.append(cur_corner)
            if len(cycle) > max_len:
                raise RuntimeError(f"Walk around {start} does not terminate, "
                                   "the interface orientations are inconsistent.")
            neighbour = self.get_neighbour(cur_side)

            if neighbour is None:
                if not first_turn:
                    break
                cur_side, end_side = end_side, cur_side
                cur_corner = start
                first_turn = False
                neighbour = self.get_neighbour(cur_side)
                if neighbour is None:
                    break

            pars = cur_corner.pars_on_side(cur_side.side, self._dim)
            orient = self._interface_of[cur_side].orientation
            pars = tuple(p if o else 1 - p for p, o in zip(pars, orient))
            cur_corner = PatchCorner.on_side(neighbour, pars)

            s0, s1 = cur_corner.sides(self._dim)
            if neighbour == s0:
                cur_side = s1
            elif neighbour == s1:
                cur_side = s0
            else:
                raise RuntimeError(f"{cur_corner} does not lie on {neighbour}.")

            if cur_corner == start:
                break

        return cycle, first_turn

    def collect_vertices(self, predicate: _Predicate) -> List[CornerCycle]:
        """Collect the closed corner cycles accepted by `predicate`.

        Every corner of every patch is classified in order. Open cycles are
        skipped, as are cycles containing a corner that was visited before
        (so each vertex is reported once, from its smallest corner).
        """
        if self._dim != 2:
            raise UnsupportedDimensionError("Vertex classification works only for 2D, "
                                            f"but the topology is {self._dim}D.")
        result: List[CornerCycle] = []
        for corner in self.patch_corners():
            cycle, closed = self.classify_corner(corner)
            if not closed:
                continue
            if any(pc < corner for pc in cycle):
                continue
            if predicate(cycle):
                result.append(cycle)
        return result

    def singular_vertices(self) -> List[CornerCycle]:
        """Interior vertices where other than 4 patches meet."""
        return self.collect_vertices(lambda cycle: len(cycle) != 4)

    def regular_vertices(self) -> List[CornerCycle]:
        """Interior vertices where exactly 4 patches meet."""
        return self.collect_vertices(lambda cycle: len(cycle) == 4)
    ### END: Vertex classification ###
