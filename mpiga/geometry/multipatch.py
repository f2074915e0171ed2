import copy
from typing import Iterator, List, Optional, Sequence

import numpy as np

from .. import logger
from ..functionspace import TensorBSplineBasis
from ..topology import (
    BoxTopology, PatchSide, PatchCorner, UnsupportedDimensionError,
    WEST, EAST, SOUTH, NORTH
)
from .bspline_patch import BSplinePatch

__all__ = ['MultiPatch']


class MultiPatch():
    """A collection of patches together with their topology.

    Parameters:
        patches (Sequence[BSplinePatch]): The patches.
        topology (BoxTopology | None, optional): The connectivity. When None,
            an empty topology with one box per patch is created; call
            `compute_topology` to fill it.
    """
    def __init__(self, patches: Sequence[BSplinePatch],
                 topology: Optional[BoxTopology] = None) -> None:
        self._patches: List[BSplinePatch] = list(patches)
        if len(self._patches) == 0:
            raise ValueError("A MultiPatch needs at least one patch.")
        dim = self._patches[0].dim()
        if any(p.dim() != dim for p in self._patches):
            raise ValueError("All patches should have the same parametric dimension.")
        if topology is None:
            topology = BoxTopology(dim, len(self._patches))
        elif topology.size() != len(self._patches):
            raise ValueError(f"The topology has {topology.size()} boxes, "
                             f"but {len(self._patches)} patches are given.")
        self.topology = topology

    @classmethod
    def from_grid(cls, nx: int = 1, ny: int = 1, box: Sequence[float] = (0.0, 1.0, 0.0, 1.0),
                  degree: int = 1, interior: int = 0):
        """Split the rectangle `box` into `nx * ny` affine patches.

        Patch `(i, j)` has index `i + nx*j`. Neighbouring patches are glued
        with identity orientation, the remaining sides are boundary.
        """
        x0, x1, y0, y1 = box
        hx = (x1 - x0) / nx
        hy = (y1 - y0) / ny
        patches = []
        for j in range(ny):
            for i in range(nx):
                basis = TensorBSplineBasis.uniform(2, degree, interior)
                lower = np.array([x0 + i*hx, y0 + j*hy])
                scale = np.array([hx, hy])
                patches.append(BSplinePatch.from_map(basis, lambda u: lower + u*scale))

        topo = BoxTopology(2, nx*ny)
        for j in range(ny):
            for i in range(nx):
                k = i + nx*j
                if i + 1 < nx:
                    topo.add_interface(PatchSide(k, EAST), PatchSide(k + 1, WEST))
                if j + 1 < ny:
                    topo.add_interface(PatchSide(k, NORTH), PatchSide(k + nx, SOUTH))
        topo.add_auto_boundaries()
        return cls(patches, topo)

    def __len__(self) -> int:
        return len(self._patches)

    def __iter__(self) -> Iterator[BSplinePatch]:
        return iter(self._patches)

    def __repr__(self) -> str:
        return f"MultiPatch(patches={len(self._patches)}, topology={self.topology!r})"

    def number_of_patches(self) -> int:
        return len(self._patches)

    def patch(self, k: int) -> BSplinePatch:
        return self._patches[k]

    def dim(self) -> int:
        return self.topology.dim()

    def geo_dim(self) -> int:
        return self._patches[0].geo_dim()

    def bases(self) -> List[TensorBSplineBasis]:
        """Copies of the patch bases, to be refined for the discretization."""
        return [copy.deepcopy(p.basis) for p in self._patches]

    def compute_topology(self, tol: float = 1e-8) -> BoxTopology:
        """Find the interfaces by matching the corner points of patch sides.

        Sides whose end points coincide are glued, with orientation False
        when the end points match in reverse order. All sides left over are
        marked as boundary. Any classification already present is cleared.
        """
        if self.dim() != 2:
            raise UnsupportedDimensionError("compute_topology works only for 2D, "
                                            f"but the patches are {self.dim()}D.")
        topo = self.topology
        topo.clear()
        topo.add_box(len(self._patches))

        def ends(ps: PatchSide):
            patch = self._patches[ps.patch]
            return [patch.corner_point(PatchCorner.on_side(ps, (t,)).corner) for t in (0, 1)]

        sides = list(topo.patch_sides())
        points = {ps: ends(ps) for ps in sides}
        for a, ps1 in enumerate(sides):
            if topo.is_interface(ps1):
                continue
            p0, p1 = points[ps1]
            for ps2 in sides[a+1:]:
                if ps2.patch == ps1.patch or topo.is_interface(ps2):
                    continue
                q0, q1 = points[ps2]
                if np.allclose(p0, q0, atol=tol) and np.allclose(p1, q1, atol=tol):
                    topo.add_interface(ps1, ps2, (True,))
                    break
                if np.allclose(p0, q1, atol=tol) and np.allclose(p1, q0, atol=tol):
                    topo.add_interface(ps1, ps2, (False,))
                    break
        topo.add_auto_boundaries()
        logger.info(f"Topology computed: {topo.n_interfaces()} interfaces "
                    f"and {topo.n_boundary()} boundary sides.")
        return topo
