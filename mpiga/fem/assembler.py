import copy
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray
from scipy.sparse import csr_matrix
from tqdm import tqdm

from .. import logger
from ..functionspace import DofMapper, TensorBSplineBasis, PatchFunction, MultiPatchField
from ..geometry import EvalFlag, MultiPatch
from ..quadrature import GaussLegendreQuadrature
from ..topology import UnsupportedDimensionError
from .assembler_options import AssemblerOptions
from .dirichlet_bc import BoundaryConditions, DirichletCondition
from .sparse_system import SparseSystem
from .visitor import Visitor

__all__ = ['Assembler', 'InconsistentTopologyError']


class InconsistentTopologyError(ValueError):
    """Raised by strict assemblers when the topology fails its consistency check."""
    pass


class Assembler():
    """Drive element visitors over a multi-patch discretization.

    ## Introduction

    The assembler borrows the domain, the discretization bases and the
    boundary conditions. It builds the DOF mapper once: functions on both
    sides of an interface are matched, functions on Dirichlet sides are
    eliminated.

    `assemble` loops over the patches and their elements and returns the
    finalized matrix over the free indices together with the condensed
    right-hand side. Every call works on its own `SparseSystem`.

    Parameters:
        multipatch (MultiPatch): The domain.
        bases (Sequence[TensorBSplineBasis] | None, optional): One
            discretization basis per patch, defaults to copies of the patch
            bases.
        bconditions (BoundaryConditions | None, optional): Dirichlet data.
        options (AssemblerOptions | None, optional): Assembly options.
    """
    def __init__(self, multipatch: MultiPatch,
                 bases: Optional[Sequence[TensorBSplineBasis]] = None,
                 bconditions: Optional[BoundaryConditions] = None,
                 options: Optional[AssemblerOptions] = None) -> None:
        if bases is None:
            bases = multipatch.bases()
        if len(bases) != multipatch.number_of_patches():
            raise ValueError(f"The domain has {multipatch.number_of_patches()} patches, "
                             f"but {len(bases)} bases are given.")
        for k, basis in enumerate(bases):
            if basis.dim() != multipatch.patch(k).dim():
                raise ValueError(f"The basis of patch {k} is {basis.dim()}D, "
                                 f"but the patch is {multipatch.patch(k).dim()}D.")

        self.multipatch = multipatch
        self.bases = bases
        self.bconditions = bconditions if bconditions is not None else BoundaryConditions()
        self.options = options if options is not None else AssemblerOptions()
        self.mapper = DofMapper.from_bases(bases, multipatch.topology,
                                           self.bconditions.dirichlet_sides())
        self._dirichlet_values: Optional[NDArray] = None

    def __repr__(self) -> str:
        return (f"Assembler(patches={self.multipatch.number_of_patches()}, "
                f"free={self.number_of_free_dofs()}, "
                f"eliminated={self.number_of_eliminated_dofs()})")

    def number_of_free_dofs(self) -> int:
        return self.mapper.free_size()

    def number_of_eliminated_dofs(self) -> int:
        return self.mapper.boundary_size()

    def check_topology(self) -> List[str]:
        """Run the topology consistency check according to the options.

        Raises:
            InconsistentTopologyError: If the check fails and the options ask
                for a strict topology.
        """
        msgs = self.multipatch.topology.check_consistency()
        if msgs and self.options.strict_topology:
            raise InconsistentTopologyError("Refusing to assemble on an inconsistent topology: "
                                            + " ".join(msgs))
        return msgs

    ### START: Assembly ###
    def assemble(self, visitor: Visitor, eliminated: Optional[NDArray] = None,
                 parallel: Optional[bool] = None) -> Tuple[csr_matrix, NDArray]:
        """Assemble the global system of `visitor`.

        Parameters:
            visitor (Visitor): The element visitor.
            eliminated (NDArray | None, optional): The eliminated-value table
                shaped (boundary_size,) or (boundary_size, nRhs). Defaults to
                the values computed from the Dirichlet data.
            parallel (bool | None, optional): Assemble the patches on a thread
                pool. Defaults to `options.parallel`.

        Returns:
            (csr_matrix, NDArray): The matrix shaped (nFree, nFree) and the
            right-hand side shaped (nFree,) or (nFree, nRhs).
        """
        if self.options.check_topology:
            self.check_topology()
        if eliminated is None:
            eliminated = self.dirichlet_values()
        eliminated = np.asarray(eliminated, dtype=np.float64)
        nb = self.mapper.boundary_size()
        if eliminated.shape[0] != nb:
            raise ValueError(f"The eliminated-value table should have {nb} rows, "
                             f"but got {eliminated.shape[0]}.")
        if eliminated.ndim == 1:
            eliminated = eliminated[:, None]

        if parallel is None:
            parallel = self.options.parallel
        NP = self.multipatch.number_of_patches()

        if parallel and NP > 1:
            system = SparseSystem(self.mapper)
            with ThreadPoolExecutor(max_workers=self.options.max_workers) as executor:
                futures = [executor.submit(self._assemble_patches, copy.deepcopy(visitor),
                                           [k], eliminated, False)
                           for k in range(NP)]
                for future in tqdm(futures, desc="Assembling", disable=not self.options.progress):
                    system.merge(future.result())
        else:
            system = self._assemble_patches(visitor, range(NP), eliminated,
                                            self.options.progress)

        A, F = system.finalize()
        logger.info(f"Assembled {visitor.__class__.__name__} on {NP} patches: "
                    f"{A.shape[0]} free dofs, {A.nnz} nonzeros.")
        return A, F

    def _assemble_patches(self, visitor: Visitor, patches: Iterable[int],
                          eliminated: NDArray, progress: bool) -> SparseSystem:
        system = SparseSystem(self.mapper)
        for k in tqdm(patches, desc="Assembling", disable=not progress):
            basis = self.bases[k]
            rule, flags = visitor.initialize(basis, k, self.options)
            if rule.dim() != basis.dim():
                raise ValueError(f"The quadrature rule is {rule.dim()}D, "
                                 f"but the basis of patch {k} is {basis.dim()}D.")
            geo_eval = self.multipatch.patch(k).evaluator(flags)
            NE = 0
            for element in basis.element_iterator():
                nodes, weights = rule.map_to(element.lower, element.upper)
                visitor.evaluate(geo_eval, basis, None, nodes)
                visitor.assemble(element, geo_eval, weights)
                visitor.local_to_global(k, eliminated, system)
                NE += 1
            logger.debug(f"(ASSEMBLER) patch {k}: {NE} elements, "
                         f"{len(rule)} quadrature points per element.")
        return system
    ### END: Assembly ###

    ### START: Dirichlet values ###
    def dirichlet_values(self) -> NDArray:
        """The eliminated-value table of the Dirichlet data, computed once."""
        if self._dirichlet_values is None:
            self._dirichlet_values = self.compute_dirichlet_values()
        return self._dirichlet_values

    def compute_dirichlet_values(self, bconditions: Optional[BoundaryConditions] = None) -> NDArray:
        """Eliminated values from Dirichlet data.

        With the 'interpolation' strategy the trace of the boundary functions
        interpolates the data at their Greville points on every side. With
        'l2' the data is projected on every side, the end values being
        interpolated.

        Returns:
            NDArray: Shaped (boundary_size, nRhs).
        """
        if bconditions is None:
            bconditions = self.bconditions
        mapper = self.mapper
        table = None
        for cond in bconditions:
            p, side = cond.side.patch, cond.side.side
            idx = self.bases[p].boundary(side)
            if self.options.dirichlet_strategy == 'l2':
                vals = self._project_side(cond)
            else:
                vals = self._interpolate_side(cond)
            if table is None:
                table = np.zeros((mapper.boundary_size(), vals.shape[1]))
            gidx = mapper.local_to_global(idx, p)
            table[mapper.eliminated_slot(gidx)] = vals
        if table is None:
            table = np.zeros((mapper.boundary_size(), 1))
        return table

    def _eval_condition(self, cond: DirichletCondition, patch: int, pars: NDArray) -> NDArray:
        n = pars.shape[0]
        if cond.function is None:
            return np.zeros((n, 1))
        points = pars if cond.parametric else self.multipatch.patch(patch)(pars)
        return np.asarray(cond.function(points), dtype=np.float64).reshape(n, -1)

    def _interpolate_side(self, cond: DirichletCondition) -> NDArray:
        p, side = cond.side.patch, cond.side.side
        basis = self.bases[p]
        pars = basis.greville()[basis.boundary(side)]
        vals = self._eval_condition(cond, p, pars)
        d = cond.side.direction()
        tangential = [basis.component(t) for t in range(basis.dim()) if t != d]
        if not tangential:
            return vals
        return TensorBSplineBasis(*tangential).interpolate(vals)

    def _project_side(self, cond: DirichletCondition) -> NDArray:
        p = cond.side.patch
        basis = self.bases[p]
        if basis.dim() != 2:
            raise UnsupportedDimensionError("L2 projection of Dirichlet data works only for 2D, "
                                            f"but the basis is {basis.dim()}D.")
        d = cond.side.direction()
        t = 1 - d
        fixed = basis.support()[d, cond.side.parameter()]
        B = basis.component(t)
        n = B.size()
        qf = GaussLegendreQuadrature(self.options.num_quadrature_nodes(B.degree()))
        geo_eval = self.multipatch.patch(p).evaluator(EvalFlag.NEED_JACOBIAN)

        M = np.zeros((n, n))
        b = None
        for a0, a1 in B.elements():
            s, ws = qf.map_to([a0], [a1])
            s = s[:, 0]
            pars = np.empty((s.shape[0], 2))
            pars[:, t] = s
            pars[:, d] = fixed
            geo_eval.evaluate_at(pars)
            ds = np.linalg.norm(geo_eval.jacobians()[:, :, t], axis=-1)
            phi = B.eval_all_ders(s, 0)[0]
            act = B.active(s[0])
            fval = self._eval_condition(cond, p, pars)
            if b is None:
                b = np.zeros((n, fval.shape[1]))
            M[np.ix_(act, act)] += np.einsum('q, qi, qj -> ij', ws*ds, phi, phi, optimize=True)
            b[act] += np.einsum('q, qi, qr -> ir', ws*ds, phi, fval, optimize=True)

        u0, u1 = B.support()
        ends = np.empty((2, 2))
        ends[:, t] = [u0, u1]
        ends[:, d] = fixed
        c = np.zeros_like(b)
        c[[0, -1]] = self._eval_condition(cond, p, ends)
        if n > 2:
            inner = np.arange(1, n - 1)
            rhs = b[inner] - M[np.ix_(inner, [0, n - 1])] @ c[[0, -1]]
            c[inner] = np.linalg.solve(M[np.ix_(inner, inner)], rhs)
        return c
    ### END: Dirichlet values ###

    def construct_solution(self, x: NDArray, eliminated: Optional[NDArray] = None) -> MultiPatchField:
        """Scatter the free solution `x` and the eliminated values into
        per-patch coefficients."""
        mapper = self.mapper
        nfree = mapper.free_size()
        x = np.asarray(x, dtype=np.float64)
        if x.shape[0] != nfree:
            raise ValueError(f"The solution should have {nfree} rows, but got {x.shape[0]}.")
        if eliminated is None:
            eliminated = self.dirichlet_values()
        elim = np.asarray(eliminated, dtype=np.float64)
        if elim.ndim == 1:
            elim = elim[:, None]
        xs = x[:, None] if x.ndim == 1 else x

        functions = []
        for k, basis in enumerate(self.bases):
            gidx = mapper.patch_dofs(k)
            free = gidx < nfree
            coefs = np.empty((gidx.shape[0], xs.shape[1]))
            coefs[free] = xs[gidx[free]]
            coefs[~free] = elim[gidx[~free] - nfree]
            if x.ndim == 1:
                coefs = coefs[:, 0]
            functions.append(PatchFunction(basis, coefs))
        return MultiPatchField(self.multipatch, functions)
