from typing import Iterable, List, Optional, Sequence, Union

import numpy as np
from numpy.typing import NDArray

from .. import logger
from ..topology import BoxTopology, BoundaryInterface, PatchSide

__all__ = ['DofMapper']

_IndexLike = Union[int, Sequence[int], NDArray]


class DofMapper():
    """Map patch-local basis function indices to global degrees of freedom.

    ## Introduction

    Every patch contributes `sizes[p]` local functions. Local functions
    that coincide across an interface are matched into one global index,
    and functions fixed by constraints (e.g. Dirichlet data) are marked as
    eliminated. After `finalize` the global index space is

        free indices       0 .. free_size()-1
        eliminated indices free_size() .. size()-1

    and the mapper is immutable. The eliminated-value table used in static
    condensation is indexed by `eliminated_slot(global)`.

    A matched group containing an eliminated function is eliminated as a
    whole.
    """
    def __init__(self, sizes: Sequence[int]) -> None:
        sizes = np.asarray(sizes, dtype=np.int64).reshape(-1)
        if np.any(sizes < 0):
            raise ValueError("Patch sizes should be non-negative.")
        self._sizes = sizes
        self._offsets = np.concatenate([[0], np.cumsum(sizes)]).astype(np.int64)
        total = int(self._offsets[-1])
        self._parent = np.arange(total, dtype=np.int64)
        self._marked = np.zeros(total, dtype=np.bool_)
        self._map: Optional[NDArray] = None
        self._nfree = -1

    @classmethod
    def from_bases(cls, bases: Sequence, topology: Optional[BoxTopology] = None,
                   dirichlet_sides: Iterable[PatchSide] = (), *, finalize=True):
        """Build the mapper of a conforming multi-patch discretization.

        Parameters:
            bases (Sequence[TensorBSplineBasis]): One basis per patch.
            topology (BoxTopology | None, optional): Interfaces to match.
            dirichlet_sides (Iterable[PatchSide], optional): Sides whose
                functions are eliminated.
            finalize (bool, optional): Whether to finalize the mapper.
        """
        mapper = cls([b.size() for b in bases])
        if topology is not None:
            if topology.size() != len(bases):
                raise ValueError(f"The topology has {topology.size()} patches, "
                                 f"but {len(bases)} bases are given.")
            for bi in topology.interfaces:
                mapper.match_interface(bi, bases)
        for ps in dirichlet_sides:
            mapper.mark_boundary(ps.patch, bases[ps.patch].boundary(ps.side))
        if finalize:
            mapper.finalize()
        return mapper

    def __repr__(self) -> str:
        if self.is_finalized():
            return (f"DofMapper(patches={self.number_of_patches()}, "
                    f"free={self.free_size()}, eliminated={self.boundary_size()})")
        return f"DofMapper(patches={self.number_of_patches()}, not finalized)"

    def _check_not_finalized(self):
        if self._map is not None:
            raise RuntimeError("The DofMapper is finalized and can not be modified.")

    def _check_finalized(self):
        if self._map is None:
            raise RuntimeError("The DofMapper should be finalized before mapping indices.")

    def _flat(self, patch: int, local: _IndexLike) -> NDArray:
        if not 0 <= patch < self._sizes.shape[0]:
            raise IndexError(f"Patch index {patch} out of range [0, {self._sizes.shape[0]}).")
        local = np.asarray(local, dtype=np.int64)
        if np.any(local < 0) or np.any(local >= self._sizes[patch]):
            raise IndexError(f"Local index out of range for patch {patch} "
                             f"with {self._sizes[patch]} functions.")
        return local + self._offsets[patch]

    def _find(self, i: int) -> int:
        parent = self._parent
        root = i
        while parent[root] != root:
            root = parent[root]
        while parent[i] != root:
            parent[i], i = root, parent[i]
        return int(root)

    ### START: Construction ###
    def match_dofs(self, patch1: int, dofs1: _IndexLike, patch2: int, dofs2: _IndexLike) -> None:
        """Identify `dofs1` of `patch1` with `dofs2` of `patch2` pairwise."""
        self._check_not_finalized()
        f1 = self._flat(patch1, dofs1).reshape(-1)
        f2 = self._flat(patch2, dofs2).reshape(-1)
        if f1.shape != f2.shape:
            raise ValueError(f"Cannot match {f1.shape[0]} functions with {f2.shape[0]} functions.")
        for a, b in zip(f1, f2):
            ra, rb = self._find(int(a)), self._find(int(b))
            if ra != rb:
                self._parent[max(ra, rb)] = min(ra, rb)

    def match_interface(self, bi: BoundaryInterface, bases: Sequence) -> None:
        """Match the functions on both sides of the interface `bi`."""
        g1 = bases[bi.ps1.patch].boundary_grid(bi.ps1.side)
        g2 = bases[bi.ps2.patch].boundary_grid(bi.ps2.side)
        if g1.shape != g2.shape:
            raise ValueError(f"Non-conforming interface {bi.ps1} - {bi.ps2}: "
                             f"{g1.shape} functions against {g2.shape}.")
        for axis, same in enumerate(bi.orientation):
            if not same:
                g2 = np.flip(g2, axis=axis)
        self.match_dofs(bi.ps1.patch, g1.ravel(), bi.ps2.patch, g2.ravel())

    def mark_boundary(self, patch: int, dofs: _IndexLike) -> None:
        """Mark `dofs` of `patch` as eliminated."""
        self._check_not_finalized()
        self._marked[self._flat(patch, dofs)] = True

    def finalize(self) -> None:
        """Number the free groups first, then the eliminated ones."""
        self._check_not_finalized()
        total = self._parent.shape[0]
        roots = np.array([self._find(i) for i in range(total)], dtype=np.int64)
        elim_root = np.zeros(total, dtype=np.bool_)
        elim_root[roots[self._marked]] = True

        # roots are the smallest member of their group, so groups are
        # numbered by their first function in patch order
        unique_roots = np.unique(roots)
        free_roots = unique_roots[~elim_root[unique_roots]]
        bd_roots = unique_roots[elim_root[unique_roots]]

        number = np.full(total, -1, dtype=np.int64)
        number[free_roots] = np.arange(free_roots.shape[0])
        number[bd_roots] = free_roots.shape[0] + np.arange(bd_roots.shape[0])

        self._map = number[roots]
        self._nfree = int(free_roots.shape[0])
        logger.info(f"DofMapper finalized: {self._nfree} free and "
                    f"{bd_roots.shape[0]} eliminated dofs on {self.number_of_patches()} patches.")

    def is_finalized(self) -> bool:
        return self._map is not None
    ### END: Construction ###

    ### START: Queries ###
    def number_of_patches(self) -> int:
        return self._sizes.shape[0]

    def patch_size(self, patch: int) -> int:
        return int(self._sizes[patch])

    def size(self) -> int:
        """Total number of global indices, free and eliminated."""
        self._check_finalized()
        return int(self._map.max()) + 1 if self._map.shape[0] > 0 else 0

    def free_size(self) -> int:
        self._check_finalized()
        return self._nfree

    def boundary_size(self) -> int:
        """Number of eliminated global indices."""
        return self.size() - self.free_size()

    def local_to_global(self, local: _IndexLike, patch: int) -> NDArray:
        self._check_finalized()
        return self._map[self._flat(patch, local)]

    def index(self, i: int, patch: int) -> int:
        return int(self.local_to_global(i, patch))

    def is_free(self, gidx: _IndexLike) -> Union[bool, NDArray]:
        self._check_finalized()
        gidx = np.asarray(gidx)
        result = gidx < self._nfree
        return bool(result) if result.ndim == 0 else result

    def is_free_local(self, local: _IndexLike, patch: int) -> Union[bool, NDArray]:
        return self.is_free(self.local_to_global(local, patch))

    def eliminated_slot(self, gidx: _IndexLike) -> Union[int, NDArray]:
        """Row of the eliminated-value table holding the value of `gidx`."""
        self._check_finalized()
        gidx = np.asarray(gidx, dtype=np.int64)
        if np.any(gidx < self._nfree):
            raise ValueError("eliminated_slot() is called with a free index.")
        slot = gidx - self._nfree
        return int(slot) if slot.ndim == 0 else slot

    def patch_dofs(self, patch: int) -> NDArray:
        """Global indices of all functions of `patch`."""
        self._check_finalized()
        return self._map[self._offsets[patch]:self._offsets[patch + 1]]

    def eliminated_locals(self, patch: int) -> NDArray:
        """Local indices of `patch` whose global index is eliminated."""
        return np.nonzero(self.patch_dofs(patch) >= self._nfree)[0]
    ### END: Queries ###
