import numpy as np
import pytest
from scipy.sparse.linalg import spsolve

from mpiga.geometry import BSplinePatch, MultiPatch
from mpiga.functionspace import TensorBSplineBasis
from mpiga.topology import BoxTopology, PatchSide, EAST, WEST, SOUTH
from mpiga.fem import (
    Assembler, AssemblerOptions, BoundaryConditions, InconsistentTopologyError,
    PoissonVisitor, L2NormVisitor, H1SemiNormVisitor, Norm
)
from mpiga.solver import ConjugateGradient

from assembler_data import *


def refined_bases(mp, refine):
    bases = mp.bases()
    for basis in bases:
        basis.uniform_refine(2**refine - 1)
    return bases


def solve_poisson(mp, bases, source, solution, options=None):
    bc = BoundaryConditions.on_boundary(mp.topology, solution)
    assembler = Assembler(mp, bases, bc, options)
    A, F = assembler.assemble(PoissonVisitor(source))
    x = spsolve(A.tocsc(), F)
    return assembler, assembler.construct_solution(x)


class TestAssembler:
    def test_zero_source(self):
        mp = MultiPatch.from_grid(2, 2, degree=2)
        bc = BoundaryConditions.on_boundary(mp.topology)
        assembler = Assembler(mp, refined_bases(mp, 1), bc)
        A, F = assembler.assemble(PoissonVisitor(None))
        assert A.shape == (assembler.number_of_free_dofs(),)*2
        np.testing.assert_allclose(A.toarray(), A.toarray().T, atol=1e-12)
        np.testing.assert_allclose(F, 0.0)

        solver = ConjugateGradient(A)
        x = solver.solve(F)
        np.testing.assert_allclose(x, 0.0)
        assert solver.iterations() == 0

    @pytest.mark.parametrize("data", linear_data)
    def test_linear_solution(self, data):
        mp = MultiPatch.from_grid(*data["grid"], box=data["box"], degree=data["degree"])
        bases = refined_bases(mp, data["refine"])
        _, uh = solve_poisson(mp, bases, 0.0, linear_solution)
        l2 = Norm(uh, linear_solution).apply(L2NormVisitor())
        h1 = Norm(uh, linear_solution, func2_grad=linear_gradient).apply(H1SemiNormVisitor())
        assert l2 < 1e-10
        assert h1 < 1e-9

    def test_flipped_interface(self):
        basis = TensorBSplineBasis.uniform(2, 2, 0)
        p0 = BSplinePatch.from_map(basis, lambda u: u)
        p1 = BSplinePatch.from_map(basis, lambda u: np.stack([1.0 + u[:, 0], 1.0 - u[:, 1]], axis=1))
        mp = MultiPatch([p0, p1])
        mp.compute_topology()
        assert mp.topology.interfaces[0].orientation == (False,)

        _, uh = solve_poisson(mp, refined_bases(mp, 2), 0.0, linear_solution)
        assert Norm(uh, linear_solution).apply(L2NormVisitor()) < 1e-10

    def test_convergence(self):
        mp = MultiPatch.from_grid(2, 2, degree=2)
        errors = []
        for refine in range(1, 4):
            _, uh = solve_poisson(mp, refined_bases(mp, refine), sin_source, sin_solution)
            errors.append(Norm(uh, sin_solution).apply(L2NormVisitor()))
        errors = np.array(errors)
        # cubic order in L2 for quadratic splines
        assert np.all(errors[:-1] / errors[1:] > 5.0)

    @pytest.mark.parametrize("strategy", ["interpolation", "l2"])
    def test_convergence_with_boundary_data(self, strategy):
        mp = MultiPatch.from_grid(2, 2, degree=2)
        options = AssemblerOptions(dirichlet_strategy=strategy)
        errors = []
        for refine in range(1, 4):
            _, uh = solve_poisson(mp, refined_bases(mp, refine), 0.0, exp_solution, options)
            errors.append(Norm(uh, exp_solution).apply(L2NormVisitor()))
        rates = np.log2(np.array(errors[:-1]) / np.array(errors[1:]))
        assert np.all(rates > 2.5)

    def test_trace_interpolates_data(self):
        mp = MultiPatch.from_grid(1, 1, degree=2)
        bases = refined_bases(mp, 2)
        assembler, uh = solve_poisson(mp, bases, 0.0, exp_solution)
        basis = bases[0]
        g = basis.component(1).greville()
        pts = np.stack([np.ones_like(g), g], axis=1)
        trace = basis.eval_points(pts, uh.coefficients(0))[0]
        np.testing.assert_allclose(trace, exp_solution(pts), atol=1e-12)

        # the coefficients themselves are not the point values
        east = basis.boundary(EAST)
        assert np.max(np.abs(uh.coefficients(0)[east] - exp_solution(pts))) > 1e-4

    def test_parallel_equals_serial(self):
        mp = MultiPatch.from_grid(3, 2, degree=2)
        bc = BoundaryConditions.on_boundary(mp.topology, sin_solution)
        options = AssemblerOptions(max_workers=3)
        assembler = Assembler(mp, refined_bases(mp, 1), bc, options)
        A0, F0 = assembler.assemble(PoissonVisitor(sin_source), parallel=False)
        A1, F1 = assembler.assemble(PoissonVisitor(sin_source), parallel=True)
        np.testing.assert_allclose(A1.toarray(), A0.toarray(), atol=1e-13)
        np.testing.assert_allclose(F1, F0, atol=1e-13)

    def test_multiple_rhs(self):
        mp = MultiPatch.from_grid(2, 1, degree=2)
        assembler = Assembler(mp, bconditions=BoundaryConditions.on_boundary(mp.topology))
        source = lambda p: np.stack([np.ones(p.shape[0]), p[:, 0]], axis=1)
        A, F = assembler.assemble(PoissonVisitor(source))
        assert F.shape == (assembler.number_of_free_dofs(), 2)
        _, F0 = assembler.assemble(PoissonVisitor(1.0))
        np.testing.assert_allclose(F[:, 0], F0)

    def test_dirichlet_strategies(self):
        mp = MultiPatch.from_grid(2, 2, box=(0.0, 2.0, 0.0, 1.0), degree=2)
        bases = refined_bases(mp, 1)
        bc = BoundaryConditions.on_boundary(mp.topology, linear_solution)
        g0 = Assembler(mp, bases, bc).dirichlet_values()
        g1 = Assembler(mp, bases, bc, AssemblerOptions(dirichlet_strategy='l2')).dirichlet_values()
        assert g0.shape == (Assembler(mp, bases, bc).number_of_eliminated_dofs(), 1)
        np.testing.assert_allclose(g1, g0, atol=1e-12)

    def test_partial_dirichlet(self):
        mp = MultiPatch.from_grid(2, 1, degree=2)
        bc = BoundaryConditions()
        bc.add_dirichlet(PatchSide(0, WEST), lambda p: np.ones(p.shape[0]))
        with pytest.raises(ValueError):
            bc.add_dirichlet(PatchSide(0, WEST))
        assembler = Assembler(mp, bconditions=bc)
        assert assembler.number_of_eliminated_dofs() == 3
        np.testing.assert_allclose(assembler.dirichlet_values(), 1.0)

        # without a source the solution is the constant extension
        A, F = assembler.assemble(PoissonVisitor())
        uh = assembler.construct_solution(spsolve(A.tocsc(), F))
        for k in range(2):
            np.testing.assert_allclose(uh.coefficients(k), 1.0, atol=1e-10)

    def test_inconsistent_topology(self):
        grid = MultiPatch.from_grid(2, 1)
        topo = BoxTopology(2, 2)
        topo.add_interface(PatchSide(0, EAST), PatchSide(1, WEST))
        topo.add_boundary(PatchSide(0, SOUTH))
        mp = MultiPatch([grid.patch(0), grid.patch(1)], topo)

        # default: warn and assemble
        assembler = Assembler(mp)
        assert len(assembler.check_topology()) == 1
        A, F = assembler.assemble(PoissonVisitor(1.0))
        assert A.shape[0] == 6

        strict = Assembler(mp, options=AssemblerOptions(strict_topology=True))
        with pytest.raises(InconsistentTopologyError):
            strict.assemble(PoissonVisitor(1.0))

    def test_invalid_input(self):
        mp = MultiPatch.from_grid(2, 1)
        with pytest.raises(ValueError):
            Assembler(mp, mp.bases()[:1])
        with pytest.raises(ValueError):
            Assembler(mp, [TensorBSplineBasis.uniform(1, 1, 0)]*2)
        bc = BoundaryConditions.on_boundary(mp.topology)
        assembler = Assembler(mp, bconditions=bc)
        with pytest.raises(ValueError):
            assembler.assemble(PoissonVisitor(), eliminated=np.zeros(1))
        with pytest.raises(ValueError):
            assembler.construct_solution(np.zeros(assembler.number_of_free_dofs() + 1))
        with pytest.raises(ValueError):
            AssemblerOptions(dirichlet_strategy='nitsche')


class TestPoissonVisitor:
    def test_buffers_reused(self):
        mp = MultiPatch.from_grid(1, 1, degree=1)
        basis = refined_bases(mp, 1)[0]
        visitor = PoissonVisitor(1.0)
        rule, flags = visitor.initialize(basis, 0)
        geo_eval = mp.patch(0).evaluator(flags)
        buffers = set()
        mats = []
        for element in basis.element_iterator():
            nodes, weights = rule.map_to(element.lower, element.upper)
            visitor.evaluate(geo_eval, basis, None, nodes)
            visitor.assemble(element, geo_eval, weights)
            buffers.add(id(visitor.local_mat))
            mats.append(visitor.local_mat.copy())
        assert len(mats) == 4
        assert len(buffers) == 1
        # every element starts from zero, equal elements give equal matrices
        for mat in mats[1:]:
            np.testing.assert_allclose(mat, mats[0], atol=1e-14)
        np.testing.assert_allclose(mats[0].sum(axis=1), 0.0, atol=1e-14)

if __name__ == "__main__":
    pytest.main(['./test_assembler.py'])
